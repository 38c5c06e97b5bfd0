"""Event decoding for the SSS token program.

This package provides:
- Event specification system (EventSpec, FieldSpec, OperationRule)
- Signature-based registry builders and the core/governance registries
- Decoder that turns ``Program data:`` payloads into DecodedFields
- Projection of decoded events onto operation rows
"""

from stablind.decoding.decoder import DecodedFields, decode_event, decode_program_data, subject_of
from stablind.decoding.projections import project_operation
from stablind.decoding.registries import make_core_registry, make_full_registry, make_governance_registry
from stablind.decoding.registry_builder import event_spec_from_signature, make_registry
from stablind.decoding.specs import (
    EventName,
    EventRegistry,
    EventSpec,
    FieldSpec,
    GovernanceEventName,
    OperationRefs,
    OperationRule,
)

__all__ = [
    "DecodedFields",
    "decode_event",
    "decode_program_data",
    "subject_of",
    "project_operation",
    "make_core_registry",
    "make_full_registry",
    "make_governance_registry",
    "event_spec_from_signature",
    "make_registry",
    "EventName",
    "EventRegistry",
    "EventSpec",
    "FieldSpec",
    "GovernanceEventName",
    "OperationRefs",
    "OperationRule",
]
