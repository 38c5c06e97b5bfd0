"""Registry builder utilities for creating event registries from signatures.

This module provides the core tools for building EventRegistry instances:
- `event_spec_from_signature()` turns ``"Name(field: type, ...)"`` plus an
  operation rule into an EventSpec keyed by its ``event:<Name>`` discriminator
- `make_registry()` builds a registry from ``(signature, rule)`` pairs
"""

from __future__ import annotations

from collections.abc import Iterable

from stablind.codec.discriminator import event_discriminator
from stablind.codec.layout import parse_signature

from .specs import EventRegistry, EventSpec, FieldSpec, OperationRefs, OperationRule


def field(name: str) -> OperationRefs.Field:
    """Shorthand for a reference to a decoded field."""
    return OperationRefs.Field(name=name)


def rule(
    operation: str,
    actor: str,
    *,
    amount: str | None = None,
    target: str | None = None,
) -> OperationRule:
    """Build an OperationRule whose slots all reference decoded fields by name."""
    return OperationRule(
        operation=operation,
        actor=field(actor),
        amount=field(amount) if amount else None,
        target=field(target) if target else None,
    )


def event_spec_from_signature(signature: str, operation: OperationRule) -> EventSpec:
    """Build an EventSpec from an event layout signature.

    Example input:
      "TokensBurned(stablecoin: pubkey, burner: pubkey, amount: u64, total_burned: u64, timestamp: i64)"
    """
    name, fields = parse_signature(signature)
    return EventSpec(
        discriminator=event_discriminator(name),
        name=name,
        fields=tuple(FieldSpec(n, t) for n, t in fields),
        operation=operation,
    )


def registry_from_signature(signature: str, operation: OperationRule) -> EventRegistry:
    """Build an EventRegistry (single entry) from a signature string."""
    spec = event_spec_from_signature(signature, operation)
    return {spec.discriminator: spec}


def make_registry(entries: Iterable[tuple[str, OperationRule]]) -> EventRegistry:
    """Create a registry from ``(signature, operation rule)`` pairs.

    Raises:
        ValueError: two signatures share an event name.
    """
    reg: EventRegistry = {}
    for signature, operation in entries:
        event_reg = registry_from_signature(signature, operation)
        for disc, spec in event_reg.items():
            if disc in reg:
                raise ValueError(f"Duplicate event {spec.name}")
        reg.update(event_reg)
    return reg
