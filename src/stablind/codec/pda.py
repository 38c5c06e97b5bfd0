"""Program-derived address (PDA) derivation.

A PDA is ``sha256(seed_1 ‖ … ‖ seed_n ‖ bump ‖ program_id ‖ "ProgramDerivedAddress")``
for the highest bump in 255..0 whose hash is *not* a point on the ed25519
curve, so no private key can exist for it.

The ``find_*`` helpers fix the seed prefix and seed order per account kind;
any reordering yields a different (wrong) address.
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Callable, Sequence

from solders.pubkey import Pubkey

from stablind.codec.borsh import AddressLike, to_pubkey
from stablind.constants import (
    BLACKLIST_SEED,
    MAX_SEED_LEN,
    MAX_SEEDS,
    MINTER_SEED,
    MULTISIG_SEED,
    PDA_MARKER,
    PROPOSAL_SEED,
    ROLE_SEED,
    SSS_TOKEN_PROGRAM_ID,
    STABLECOIN_SEED,
    TIMELOCK_CONFIG_SEED,
    TIMELOCK_SEED,
    TRANSFER_LIMIT_SEED,
)
from stablind.errors import DerivationError

DEFAULT_PROGRAM_ID = Pubkey.from_string(SSS_TOKEN_PROGRAM_ID)


def _check_seeds(seeds: Sequence[bytes], max_seeds: int = MAX_SEEDS) -> None:
    if len(seeds) > max_seeds:
        raise DerivationError(f"at most {max_seeds} seeds are allowed, got {len(seeds)}")
    for i, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(f"seed {i} is {len(seed)} bytes, max is {MAX_SEED_LEN}")


def _candidate(seeds: Sequence[bytes], program_id: Pubkey) -> bytes:
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    return hasher.digest()


def create_program_address(seeds: Sequence[bytes], program_id: AddressLike) -> Pubkey:
    """Hash `seeds` (bump included) into an address; reject on-curve results."""
    owner = to_pubkey(program_id)
    _check_seeds(seeds)
    address = Pubkey.from_bytes(_candidate(seeds, owner))
    if address.is_on_curve():
        raise DerivationError("derived address lies on the ed25519 curve")
    return address


def derive(seeds: Sequence[bytes], program_id: AddressLike = DEFAULT_PROGRAM_ID) -> tuple[Pubkey, int]:
    """Return the first off-curve ``(address, bump)`` trying bumps 255 down to 0.

    Raises:
        DerivationError: invalid seeds, or every bump produced an on-curve point.
    """
    owner = to_pubkey(program_id)
    seeds = [bytes(s) for s in seeds]
    # the bump byte takes one seed slot
    _check_seeds(seeds, MAX_SEEDS - 1)
    for bump in range(255, -1, -1):
        address = Pubkey.from_bytes(_candidate([*seeds, bytes([bump])], owner))
        if not address.is_on_curve():
            return address, bump
    raise DerivationError(f"no off-curve address for seeds under program {owner}")


def _u64_seed(value: int) -> bytes:
    return struct.pack("<Q", value)


# ---------- seed helpers per account kind ----------


def find_stablecoin_address(mint: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID) -> tuple[Pubkey, int]:
    """Primary stablecoin state account for a mint."""
    return derive([STABLECOIN_SEED, bytes(to_pubkey(mint))], program_id)


def find_role_address(
    stablecoin: AddressLike, holder: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    """Per-holder role record."""
    return derive([ROLE_SEED, bytes(to_pubkey(stablecoin)), bytes(to_pubkey(holder))], program_id)


def find_minter_address(
    stablecoin: AddressLike, minter: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    """Per-minter quota record."""
    return derive([MINTER_SEED, bytes(to_pubkey(stablecoin)), bytes(to_pubkey(minter))], program_id)


def find_blacklist_address(
    stablecoin: AddressLike, address: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    """Per-address denylist record."""
    return derive([BLACKLIST_SEED, bytes(to_pubkey(stablecoin)), bytes(to_pubkey(address))], program_id)


def find_multisig_address(stablecoin: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID) -> tuple[Pubkey, int]:
    return derive([MULTISIG_SEED, bytes(to_pubkey(stablecoin))], program_id)


def find_proposal_address(
    stablecoin: AddressLike, proposal_id: int, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    return derive([PROPOSAL_SEED, bytes(to_pubkey(stablecoin)), _u64_seed(proposal_id)], program_id)


def find_timelock_config_address(
    stablecoin: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    return derive([TIMELOCK_CONFIG_SEED, bytes(to_pubkey(stablecoin))], program_id)


def find_timelock_address(
    stablecoin: AddressLike, op_id: int, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    return derive([TIMELOCK_SEED, bytes(to_pubkey(stablecoin)), _u64_seed(op_id)], program_id)


def find_transfer_limit_address(
    stablecoin: AddressLike, program_id: AddressLike = DEFAULT_PROGRAM_ID
) -> tuple[Pubkey, int]:
    return derive([TRANSFER_LIMIT_SEED, bytes(to_pubkey(stablecoin))], program_id)


# kind → (helper, argument names) used by the CLI
PDA_KINDS: dict[str, tuple[Callable[..., tuple[Pubkey, int]], tuple[str, ...]]] = {
    "stablecoin": (find_stablecoin_address, ("mint",)),
    "role": (find_role_address, ("stablecoin", "holder")),
    "minter": (find_minter_address, ("stablecoin", "minter")),
    "blacklist": (find_blacklist_address, ("stablecoin", "address")),
    "multisig": (find_multisig_address, ("stablecoin",)),
    "proposal": (find_proposal_address, ("stablecoin", "proposal_id")),
    "timelock_config": (find_timelock_config_address, ("stablecoin",)),
    "timelock": (find_timelock_address, ("stablecoin", "op_id")),
    "transfer_limit": (find_transfer_limit_address, ("stablecoin",)),
}
