from __future__ import annotations

from .codec.instructions import encode_instruction
from .codec.pda import derive
from .decoding.decoder import DecodedFields, decode_event, decode_program_data
from .decoding.projections import project_operation
from .decoding.registries import make_core_registry, make_full_registry, make_governance_registry
from .decoding.specs import EventName, EventRegistry, EventSpec
from .errors import DecodeError, DerivationError, EncodeError, StablindError, UnknownInstructionError

__all__ = [
    "encode_instruction",
    "derive",
    "DecodedFields",
    "decode_event",
    "decode_program_data",
    "project_operation",
    "make_core_registry",
    "make_full_registry",
    "make_governance_registry",
    "EventName",
    "EventRegistry",
    "EventSpec",
    "StablindError",
    "EncodeError",
    "DecodeError",
    "DerivationError",
    "UnknownInstructionError",
]
