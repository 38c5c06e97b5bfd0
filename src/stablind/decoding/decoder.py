"""Generic event decoder for ``Program data:`` payloads.

This module translates raw event bytes into `DecodedFields` using an
`EventRegistry`: the first 8 bytes select the `EventSpec`, the rest is read
field by field in declared order with the Borsh primitives.

Output values are JSON-safe: integers become decimal strings (u64 never loses
precision), addresses become base58 strings, booleans and strings stay native.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

from solders.pubkey import Pubkey

from stablind.codec.borsh import BorshReader
from stablind.constants import DISCRIMINATOR_SIZE
from stablind.decoding.registries import make_core_registry
from stablind.decoding.specs import EventRegistry, EventSpec
from stablind.errors import DecodeError

logger = logging.getLogger(__name__)

SUBJECT_FIELD = "stablecoin"

# ---------- decoded event ----------


@dataclass(slots=True)
class DecodedFields:
    """Event name plus its field values in declared order."""

    name: str
    fields: dict[str, Any]


# ---------- helper functions ----------


def _normalize(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Pubkey):
        return str(value)
    return value


def _read_fields(spec: EventSpec, data: bytes) -> dict[str, Any]:
    reader = BorshReader(data, DISCRIMINATOR_SIZE)
    out: dict[str, Any] = {}
    try:
        for f in spec.fields:
            out[f.name] = _normalize(reader.read(f.type))
    except DecodeError as exc:
        raise DecodeError(f"{spec.name}: {exc}") from exc
    if reader.remaining:
        logger.debug("%s: ignoring %d trailing bytes", spec.name, reader.remaining)
    return out


_DEFAULT_REGISTRY: EventRegistry | None = None


def default_event_registry() -> EventRegistry:
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = make_core_registry()
    return _DEFAULT_REGISTRY


# ---------- main decoder ----------


def decode_event(data: bytes, registry: EventRegistry | None = None) -> DecodedFields | None:
    """Decode one event payload, or return None when it is not recognised.

    - fewer than 8 bytes, or an unregistered discriminator → None
    - a registered discriminator whose body is too short → `DecodeError`
    """
    reg = registry if registry is not None else default_event_registry()
    if len(data) < DISCRIMINATOR_SIZE:
        return None
    spec = reg.get(bytes(data[:DISCRIMINATOR_SIZE]))
    if spec is None:
        return None
    return DecodedFields(name=spec.name, fields=_read_fields(spec, bytes(data)))


def decode_program_data(b64: str, registry: EventRegistry | None = None) -> DecodedFields | None:
    """Decode the base64 part of a ``Program data:`` log line.

    Raises:
        DecodeError: invalid base64, or a short body for a known event.
    """
    try:
        raw = base64.b64decode(b64.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64 payload: {exc}") from exc
    return decode_event(raw, registry)


def subject_of(fields: dict[str, Any]) -> str:
    """Subject entity (the stablecoin state account) an event belongs to."""
    subject = fields.get(SUBJECT_FIELD)
    if not subject:
        raise DecodeError(f"event has no {SUBJECT_FIELD!r} field")
    return str(subject)
