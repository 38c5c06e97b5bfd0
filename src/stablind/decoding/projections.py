"""Projection of decoded events onto normalized operation rows.

Each registered event carries exactly one `OperationRule`; projecting is a pure
lookup of the rule plus field resolution, so it never fails for an event the
decoder produced.
"""

from __future__ import annotations

from stablind.core.models import DecodedEvent, OperationRecord
from stablind.decoding.decoder import DecodedFields, subject_of
from stablind.decoding.registries import make_full_registry
from stablind.decoding.specs import EventRegistry, OperationRule, resolve_operation_ref

_RULES: dict[str, OperationRule] | None = None


def _rules_by_name(registry: EventRegistry | None) -> dict[str, OperationRule]:
    global _RULES
    if registry is not None:
        return {spec.name: spec.operation for spec in registry.values()}
    if _RULES is None:
        _RULES = {spec.name: spec.operation for spec in make_full_registry().values()}
    return _RULES


def project_operation(
    event: DecodedFields | DecodedEvent,
    signature: str | None = None,
    *,
    registry: EventRegistry | None = None,
) -> OperationRecord:
    """Build the operation row for one decoded event.

    `signature` defaults to the event's own signature when a `DecodedEvent` is
    passed. Rules are looked up by event name in `registry` (core and
    governance events by default).

    Raises:
        KeyError: the event name has no rule.
    """
    if isinstance(event, DecodedEvent):
        name, fields = event.event_type, event.fields
        signature = signature or event.signature
    else:
        name, fields = event.name, event.fields
    if not signature:
        raise ValueError("signature is required")

    rules = _rules_by_name(registry)
    if name not in rules:
        raise KeyError(f"no operation rule for event {name!r}")
    op = rules[name]

    return OperationRecord(
        operation=op.operation,
        subject_id=subject_of(fields),
        actor=resolve_operation_ref(op.actor, fields) or "",
        signature=signature,
        amount=resolve_operation_ref(op.amount, fields),
        target=resolve_operation_ref(op.target, fields),
    )
