"""Outbound instruction layouts and the instruction encoder.

Each instruction is declared once as a layout signature; the registry compiles
the signatures into `InstructionSpec`s keyed by instruction name. Encoding is
the 8-byte ``global:<name>`` discriminator followed by the Borsh-encoded
arguments in declared order.

Example
-------
>>> from stablind.codec.instructions import encode_instruction
>>> payload = encode_instruction("update_minter", {"quota": 10_000, "epoch_duration": None})
>>> len(payload)  # 8 discriminator + 8 quota + 1 option flag
17
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from stablind.codec.borsh import encode_fields
from stablind.codec.discriminator import instruction_discriminator
from stablind.codec.layout import parse_signature
from stablind.errors import EncodeError, UnknownInstructionError


class InstructionType(IntEnum):
    """Governance operation kinds, serialized as a single u8."""

    PAUSE = 0
    UNPAUSE = 1
    UPDATE_ROLES = 2
    UPDATE_MINTER = 3
    TRANSFER_AUTHORITY = 4
    ADD_TO_BLACKLIST = 5
    REMOVE_FROM_BLACKLIST = 6
    UPDATE_SUPPLY_CAP = 7
    CONFIGURE_TRANSFER_LIMITS = 8


@dataclass(frozen=True)
class InstructionSpec:
    """One instruction layout: name, discriminator and ordered argument fields."""

    name: str
    discriminator: bytes
    fields: tuple[tuple[str, str], ...]

    @property
    def field_names(self) -> list[str]:
        return [name for name, _ in self.fields]


InstructionRegistry = dict[str, InstructionSpec]


INSTRUCTION_SIGNATURES: tuple[str, ...] = (
    # core
    "initialize(name: string, symbol: string, uri: string, decimals: u8, "
    "enable_permanent_delegate: bool, enable_transfer_hook: bool, default_account_frozen: bool)",
    "mint_tokens(amount: u64)",
    "burn_tokens(amount: u64)",
    "freeze_account()",
    "thaw_account()",
    "pause()",
    "unpause()",
    "update_roles(is_minter: bool, is_burner: bool, is_pauser: bool, is_blacklister: bool, is_seizer: bool)",
    "update_minter(quota: u64, epoch_duration: option<i64>)",
    "transfer_authority()",
    # compliance
    "add_to_blacklist(reason: string)",
    "remove_from_blacklist()",
    "seize()",
    "update_supply_cap(new_max_supply: u64)",
    "configure_transfer_limits(max_per_tx: u64, max_per_day: u64)",
    # governance
    "create_multisig(signers: vec<pubkey>, threshold: u8)",
    "create_proposal(instruction_type: u8, data: bytes)",
    "approve_proposal(proposal_id: u64)",
    "execute_proposal(proposal_id: u64)",
    "configure_timelock(delay: i64, enabled: bool)",
    "propose_timelocked(op_id: u64, op_type: u8, data: bytes)",
    "execute_timelocked(op_id: u64)",
    "cancel_timelocked(op_id: u64)",
)


def instruction_spec_from_signature(signature: str) -> InstructionSpec:
    """Build an InstructionSpec from ``"name(field: type, ...)"``."""
    name, fields = parse_signature(signature)
    return InstructionSpec(
        name=name,
        discriminator=instruction_discriminator(name),
        fields=tuple(fields),
    )


def make_instruction_registry(signatures: Iterable[str] = INSTRUCTION_SIGNATURES) -> InstructionRegistry:
    """Create a registry from layout signatures (defaults to every known instruction)."""
    reg: InstructionRegistry = {}
    for signature in signatures:
        spec = instruction_spec_from_signature(signature)
        reg[spec.name] = spec
    return reg


_DEFAULT_REGISTRY: InstructionRegistry | None = None


def default_instruction_registry() -> InstructionRegistry:
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = make_instruction_registry()
    return _DEFAULT_REGISTRY


def _normalize_args(spec: InstructionSpec, args: Mapping[str, Any] | Sequence[Any] | None) -> dict[str, Any]:
    if args is None:
        return {}
    if isinstance(args, Mapping):
        return {k: (int(v) if isinstance(v, IntEnum) else v) for k, v in args.items()}
    if isinstance(args, (str, bytes)):
        raise EncodeError(f"{spec.name}: arguments must be a mapping or a sequence")
    values = list(args)
    if len(values) != len(spec.fields):
        raise EncodeError(f"{spec.name} takes {len(spec.fields)} arguments, got {len(values)}")
    return {name: (int(v) if isinstance(v, IntEnum) else v) for name, v in zip(spec.field_names, values)}


def encode_instruction(
    name: str,
    args: Mapping[str, Any] | Sequence[Any] | None = None,
    *,
    registry: InstructionRegistry | None = None,
) -> bytes:
    """Encode an instruction payload: discriminator + Borsh fields in declared order.

    Args:
        name: instruction name (snake_case, as declared by the program).
        args: field values by name, or positionally in declared order.
        registry: layouts to use; defaults to every known instruction.

    Raises:
        UnknownInstructionError: no layout for `name`.
        EncodeError: missing/unexpected fields or values that do not fit their type.
    """
    reg = registry if registry is not None else default_instruction_registry()
    spec = reg.get(name)
    if spec is None:
        raise UnknownInstructionError(name)
    values = _normalize_args(spec, args)
    try:
        body = encode_fields(list(spec.fields), values)
    except EncodeError as exc:
        raise EncodeError(f"{name}: {exc}") from exc
    return spec.discriminator + body
