"""Core data models shared by the listener, the audit store and the dispatcher.

This module defines:
- `LogNotification`: one program-logs notification, minimally normalized.
- `DecodedEvent`: a recognised event ready to be persisted.
- `OperationRecord`: normalized projection of an event onto an operation row.
- `EventRow` / `OperationRow`: rows read back from the audit store.
- `WebhookRegistration` / `DeliveryResult`: webhook subscription and outcome.

Design notes
------------
- Integer field values are carried as decimal strings so u64 amounts survive
  JSON and any column type unchanged.
- Timestamps are unix seconds (capture time), not chain block time.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any

from stablind.constants import WILDCARD

OPERATION_STATUS_CONFIRMED = "confirmed"


# === Stream record ===


@dataclass(slots=True, frozen=True)
class LogNotification:
    """Logs of one transaction as pushed by the subscription."""

    signature: str
    logs: tuple[str, ...]
    slot: int
    err: Any = None  # transaction error object, None on success

    @property
    def failed(self) -> bool:
        return self.err is not None


@dataclass(slots=True)
class DecodedEvent:
    """A recognised program event with its transaction metadata."""

    event_type: str
    fields: dict[str, Any]
    subject_id: str
    signature: str
    slot: int
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready payload for webhook subscribers."""
        return {
            "event_type": self.event_type,
            "stablecoin": self.subject_id,
            "signature": self.signature,
            "slot": self.slot,
            "timestamp": self.timestamp,
            "data": dict(self.fields),
        }


@dataclass(slots=True, frozen=True)
class OperationRecord:
    """Normalized operation row derived from one event."""

    operation: str
    subject_id: str
    actor: str
    signature: str
    amount: str | None = None
    target: str | None = None
    status: str = OPERATION_STATUS_CONFIRMED


# === Audit store rows ===


@dataclass(slots=True)
class EventRow:
    id: int
    event_type: str
    stablecoin: str
    data: dict[str, Any]
    signature: str
    slot: int
    timestamp: int
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class OperationRow:
    id: int
    operation: str
    mint: str
    actor: str
    amount: str | None
    target: str | None
    signature: str
    status: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# === Webhooks ===


@dataclass(slots=True)
class WebhookRegistration:
    """A subscriber endpoint and the event types it wants."""

    id: int
    url: str
    events: tuple[str, ...]
    secret: str | None = None
    active: bool = True
    created_at: str | None = None

    def wants(self, event_type: str) -> bool:
        """True if the registration is active and subscribed to `event_type` (or to everything)."""
        return self.active and (WILDCARD in self.events or event_type in self.events)


@dataclass(slots=True)
class DeliveryResult:
    """Outcome of one webhook POST."""

    webhook_id: int
    url: str
    ok: bool
    status_code: int | None = None
    error: str | None = None
