"""Outbound wire format: Borsh codec, discriminators, instruction layouts and PDAs.

This package provides:
- Borsh primitives (`encode_value`, `BorshReader`)
- Namespaced 8-byte discriminators
- Instruction layouts and `encode_instruction`
- Program-derived address derivation (`derive`, `find_*_address`)
"""

from stablind.codec.borsh import BorshReader, encode_fields, encode_value, to_pubkey
from stablind.codec.discriminator import discriminator, event_discriminator, instruction_discriminator
from stablind.codec.instructions import (
    InstructionSpec,
    InstructionType,
    encode_instruction,
    make_instruction_registry,
)
from stablind.codec.pda import (
    create_program_address,
    derive,
    find_blacklist_address,
    find_minter_address,
    find_multisig_address,
    find_proposal_address,
    find_role_address,
    find_stablecoin_address,
    find_timelock_address,
    find_timelock_config_address,
    find_transfer_limit_address,
)

__all__ = [
    "BorshReader",
    "encode_fields",
    "encode_value",
    "to_pubkey",
    "discriminator",
    "event_discriminator",
    "instruction_discriminator",
    "InstructionSpec",
    "InstructionType",
    "encode_instruction",
    "make_instruction_registry",
    "create_program_address",
    "derive",
    "find_blacklist_address",
    "find_minter_address",
    "find_multisig_address",
    "find_proposal_address",
    "find_role_address",
    "find_stablecoin_address",
    "find_timelock_address",
    "find_timelock_config_address",
    "find_transfer_limit_address",
]
