"""Event specification primitives and registry typing.

Defines lightweight dataclasses to describe how to decode events:
- `EventName` / `GovernanceEventName`: the closed sets of event names the program emits
- `FieldSpec`: one Borsh field in the event body (declared order, no padding)
- `OperationRule`: how an event projects into a normalized operation row
- `EventSpec`: one event rule (discriminator, fields, operation projection)
- `EventRegistry`: mapping from 8-byte discriminator → EventSpec
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum


class EventName(str, Enum):
    """Core events emitted by the token program."""

    STABLECOIN_INITIALIZED = "StablecoinInitialized"
    TOKENS_MINTED = "TokensMinted"
    TOKENS_BURNED = "TokensBurned"
    ACCOUNT_FROZEN = "AccountFrozen"
    ACCOUNT_THAWED = "AccountThawed"
    STABLECOIN_PAUSED = "StablecoinPaused"
    STABLECOIN_UNPAUSED = "StablecoinUnpaused"
    ROLES_UPDATED = "RolesUpdated"
    MINTER_UPDATED = "MinterUpdated"
    AUTHORITY_TRANSFERRED = "AuthorityTransferred"
    ADDED_TO_BLACKLIST = "AddedToBlacklist"
    REMOVED_FROM_BLACKLIST = "RemovedFromBlacklist"
    TOKENS_SEIZED = "TokensSeized"


class GovernanceEventName(str, Enum):
    """Multisig and timelock events (opt-in registry)."""

    MULTISIG_CREATED = "MultisigCreated"
    PROPOSAL_CREATED = "ProposalCreated"
    PROPOSAL_APPROVED = "ProposalApproved"
    PROPOSAL_EXECUTED = "ProposalExecuted"
    TIMELOCK_CONFIGURED = "TimelockConfigured"
    TIMELOCK_PROPOSED = "TimelockProposed"
    TIMELOCK_EXECUTED = "TimelockExecuted"
    TIMELOCK_CANCELLED = "TimelockCancelled"


# Field types an event body may use.
EVENT_FIELD_TYPES = frozenset({"pubkey", "u64", "i64", "u8", "bool", "string"})


# ---- Operation projection ----
# Each slot of an operation row is either a reference to a decoded field or absent.
#   - OperationRefs.Field(name="<name>") → take from the decoded field map
#   - OperationRefs.Constant(value="v")   → output a constant string
class OperationRefs:
    @dataclass(frozen=True, kw_only=True)
    class Field:
        name: str

    @dataclass(frozen=True, kw_only=True)
    class Constant:
        value: str


OperationRef = OperationRefs.Field | OperationRefs.Constant | None


def resolve_operation_ref(ref: OperationRef, values: dict[str, object]) -> str | None:
    """Resolve an operation reference against decoded values."""
    if ref is None:
        return None
    match ref:
        case OperationRefs.Field():
            v = values.get(ref.name)
            return None if v is None else str(v)
        case OperationRefs.Constant():
            return ref.value
    raise RuntimeError("Unsupported OperationRef type")


@dataclass(frozen=True)
class OperationRule:
    """Projection of one event type into an operation row."""

    operation: str
    actor: OperationRef
    amount: OperationRef = None
    target: OperationRef = None

    def refs(self) -> dict[str, OperationRef]:
        return {"actor": self.actor, "amount": self.amount, "target": self.target}


@dataclass(frozen=True)
class FieldSpec:
    """Describe one field of the event body (declared position and Borsh type)."""

    name: str
    type: str  # "pubkey", "u64", "i64", "u8", "bool", "string"


@dataclass(frozen=True)
class EventSpec:
    """One event decoding rule + operation projection."""

    discriminator: bytes
    name: str
    fields: tuple[FieldSpec, ...]
    operation: OperationRule

    def __post_init__(self):
        if len(self.discriminator) != 8:
            raise ValueError(f"{self.name} discriminator must be 8 bytes")

        field_names = {f.name for f in self.fields}
        if len(field_names) != len(self.fields):
            raise ValueError(f"{self.name} declares duplicate fields")
        for f in self.fields:
            if f.type not in EVENT_FIELD_TYPES:
                raise ValueError(f"{self.name}.{f.name} has unsupported type {f.type!r}")

        if self.operation.actor is None:
            raise ValueError(f"{self.name} operation rule has no actor")
        for slot, ref in self.operation.refs().items():
            match ref:
                case OperationRefs.Field():
                    if ref.name not in field_names:
                        raise ValueError(f"{self.name} {slot} refers to a non-existent field {ref.name!r}")
                case OperationRefs.Constant() | None:
                    pass
                case _:
                    raise ValueError(f"{self.name} {slot} is not an OperationRef instance")

    @property
    def layout(self) -> list[tuple[str, str]]:
        """Ordered ``(name, type)`` pairs, as consumed by the Borsh codec."""
        return [(f.name, f.type) for f in self.fields]


# The full registry keyed by 8-byte discriminator.
EventRegistry = dict[bytes, EventSpec]


def get_event_specs_names(event_specs: Iterable[EventSpec]) -> list[str]:
    return [event_spec.name for event_spec in event_specs]


def get_event_registry_names(registry: EventRegistry) -> list[str]:
    return get_event_specs_names(registry.values())


def find_spec_by_name(registry: EventRegistry, name: str) -> EventSpec | None:
    for spec in registry.values():
        if spec.name == name:
            return spec
    return None


def missing_event_names(registry: EventRegistry, names: Sequence[str]) -> list[str]:
    """Names from `names` that have no spec in `registry`."""
    present = set(get_event_registry_names(registry))
    return [n for n in names if n not in present]
