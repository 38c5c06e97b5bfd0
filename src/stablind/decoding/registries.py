"""Event registries for the SSS token program.

All registries are built from layout signatures via the registry_builder module
and compose with `{**a, **b}` syntax.

Available registries:
- Core events (13): make_core_registry(), the listener default
- Governance events (multisig + timelock): make_governance_registry()
- Both: make_full_registry()

Example
-------
>>> from stablind.decoding.registries import make_core_registry, make_governance_registry
>>> reg = {**make_core_registry(), **make_governance_registry()}
"""

from __future__ import annotations

from .registry_builder import make_registry, rule
from .specs import EventRegistry


# -------------------------
# Core registry (lifecycle, supply, roles, compliance)
# -------------------------

def make_core_registry() -> EventRegistry:
    """Return registry for the 13 core stablecoin events."""
    return make_registry([
        (
            "StablecoinInitialized(stablecoin: pubkey, mint: pubkey, authority: pubkey, name: string, "
            "symbol: string, is_sss2: bool, timestamp: i64)",
            rule("initialize", "authority", target="mint"),
        ),
        (
            "TokensMinted(stablecoin: pubkey, minter: pubkey, recipient: pubkey, amount: u64, "
            "total_minted: u64, timestamp: i64)",
            rule("mint", "minter", amount="amount", target="recipient"),
        ),
        (
            "TokensBurned(stablecoin: pubkey, burner: pubkey, amount: u64, total_burned: u64, timestamp: i64)",
            rule("burn", "burner", amount="amount"),
        ),
        (
            "AccountFrozen(stablecoin: pubkey, account: pubkey, frozen_by: pubkey, timestamp: i64)",
            rule("freeze", "frozen_by", target="account"),
        ),
        (
            "AccountThawed(stablecoin: pubkey, account: pubkey, thawed_by: pubkey, timestamp: i64)",
            rule("thaw", "thawed_by", target="account"),
        ),
        (
            "StablecoinPaused(stablecoin: pubkey, paused_by: pubkey, timestamp: i64)",
            rule("pause", "paused_by"),
        ),
        (
            "StablecoinUnpaused(stablecoin: pubkey, unpaused_by: pubkey, timestamp: i64)",
            rule("unpause", "unpaused_by"),
        ),
        (
            "RolesUpdated(stablecoin: pubkey, holder: pubkey, is_minter: bool, is_burner: bool, "
            "is_pauser: bool, is_blacklister: bool, is_seizer: bool, updated_by: pubkey, timestamp: i64)",
            rule("update_roles", "updated_by", target="holder"),
        ),
        (
            "MinterUpdated(stablecoin: pubkey, minter: pubkey, new_quota: u64, updated_by: pubkey, timestamp: i64)",
            rule("update_minter", "updated_by", amount="new_quota", target="minter"),
        ),
        (
            "AuthorityTransferred(stablecoin: pubkey, previous_authority: pubkey, new_authority: pubkey, "
            "timestamp: i64)",
            rule("transfer_authority", "previous_authority", target="new_authority"),
        ),
        (
            "AddedToBlacklist(stablecoin: pubkey, address: pubkey, reason: string, blacklisted_by: pubkey, "
            "timestamp: i64)",
            rule("blacklist_add", "blacklisted_by", target="address"),
        ),
        (
            "RemovedFromBlacklist(stablecoin: pubkey, address: pubkey, removed_by: pubkey, timestamp: i64)",
            rule("blacklist_remove", "removed_by", target="address"),
        ),
        (
            "TokensSeized(stablecoin: pubkey, from: pubkey, to: pubkey, amount: u64, seized_by: pubkey, "
            "timestamp: i64)",
            rule("seize", "seized_by", amount="amount", target="from"),
        ),
    ])


# -------------------------
# Governance registry (multisig proposals, timelocked operations)
# -------------------------

def make_governance_registry() -> EventRegistry:
    """Return registry for multisig and timelock events."""
    return make_registry([
        (
            "MultisigCreated(stablecoin: pubkey, threshold: u8, signer_count: u8, created_by: pubkey, timestamp: i64)",
            rule("create_multisig", "created_by"),
        ),
        (
            "ProposalCreated(stablecoin: pubkey, proposal_id: u64, instruction_type: u8, proposer: pubkey, "
            "timestamp: i64)",
            rule("create_proposal", "proposer"),
        ),
        (
            "ProposalApproved(stablecoin: pubkey, proposal_id: u64, approver: pubkey, approval_count: u8, "
            "timestamp: i64)",
            rule("approve_proposal", "approver"),
        ),
        (
            "ProposalExecuted(stablecoin: pubkey, proposal_id: u64, executor: pubkey, timestamp: i64)",
            rule("execute_proposal", "executor"),
        ),
        (
            "TimelockConfigured(stablecoin: pubkey, delay: i64, enabled: bool, configured_by: pubkey, timestamp: i64)",
            rule("configure_timelock", "configured_by"),
        ),
        (
            "TimelockProposed(stablecoin: pubkey, op_id: u64, op_type: u8, eta: i64, proposer: pubkey, "
            "timestamp: i64)",
            rule("propose_timelocked", "proposer"),
        ),
        (
            "TimelockExecuted(stablecoin: pubkey, op_id: u64, executor: pubkey, timestamp: i64)",
            rule("execute_timelocked", "executor"),
        ),
        (
            "TimelockCancelled(stablecoin: pubkey, op_id: u64, cancelled_by: pubkey, timestamp: i64)",
            rule("cancel_timelocked", "cancelled_by"),
        ),
    ])


def make_full_registry() -> EventRegistry:
    """Core and governance events together."""
    return {**make_core_registry(), **make_governance_registry()}
