"""8-byte discriminators: sha256("<namespace>:<Name>")[:8]."""

from __future__ import annotations

import hashlib
from functools import lru_cache

from stablind.constants import DISCRIMINATOR_SIZE, EVENT_NAMESPACE, INSTRUCTION_NAMESPACE


@lru_cache(maxsize=256)
def discriminator(namespace: str, name: str) -> bytes:
    """Return the first 8 bytes of sha256 over the namespaced name."""
    preimage = f"{namespace}:{name}".encode("utf-8")
    return hashlib.sha256(preimage).digest()[:DISCRIMINATOR_SIZE]


def instruction_discriminator(name: str) -> bytes:
    """Discriminator for an instruction (``global:<snake_case_name>``)."""
    return discriminator(INSTRUCTION_NAMESPACE, name)


def event_discriminator(name: str) -> bytes:
    """Discriminator for an emitted event (``event:<EventName>``)."""
    return discriminator(EVENT_NAMESPACE, name)
