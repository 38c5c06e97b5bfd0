from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol, runtime_checkable

from stablind.core.models import (
    DecodedEvent,
    DeliveryResult,
    EventRow,
    LogNotification,
    OperationRow,
    WebhookRegistration,
)


# ---------------------------------------------------------------------------
# ILogStream
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogStream(Protocol):
    """
    Push stream of program-log notifications.

    Domain expectations:
    - `subscribe` returns the subscription id; the caller owns it.
    - `notifications()` yields in arrival order and ends when the transport
      closes; transport failures surface as exceptions from the iterator.
    """

    async def subscribe(self, program_id: str, commitment: str) -> int:
        """
        Start a logs subscription filtered to transactions mentioning `program_id`.

        Implementations:
        - WebsocketLogStream (JSON-RPC `logsSubscribe`)
        - In-memory fake stream for testing
        """
        ...

    async def unsubscribe(self, subscription_id: int) -> None:
        ...

    def notifications(self) -> AsyncIterator[LogNotification]:
        ...

    async def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# IEventSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventSink(Protocol):
    """
    Consumer of decoded events produced by the listener.

    Domain expectations:
    - `handle` is awaited once per decoded event, in stream order.
    - `drain` waits for any background work the sink started.
    """

    async def handle(self, event: DecodedEvent) -> bool:
        """Persist/forward one event; return True if it was new."""
        ...

    async def drain(self) -> None:
        ...


# ---------------------------------------------------------------------------
# IAuditStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IAuditStore(Protocol):
    """
    Append-only audit trail of events and operations.

    Domain expectations:
    - Rows are keyed by transaction signature; inserting twice is a no-op.
    - Listing is most-recent-first.
    """

    def record_event(
        self,
        event_type: str,
        subject_id: str,
        fields: dict[str, Any],
        signature: str,
        slot: int,
        timestamp: int,
    ) -> bool:
        ...

    def record_operation(
        self,
        operation: str,
        subject_id: str,
        actor: str,
        signature: str,
        amount: str | None = None,
        target: str | None = None,
    ) -> bool:
        ...

    def list_events(self, subject_id: str | None = None, limit: int = 50, offset: int = 0) -> list[EventRow]:
        ...

    def list_operations(self, subject_id: str | None = None, limit: int = 50, offset: int = 0) -> list[OperationRow]:
        ...


# ---------------------------------------------------------------------------
# IWebhookRepository / IWebhookDispatcher
# ---------------------------------------------------------------------------

@runtime_checkable
class IWebhookRepository(Protocol):
    """Registered webhook subscribers."""

    def register(self, url: str, events: Sequence[str], secret: str | None = None) -> int:
        ...

    def active_for(self, event_type: str) -> list[WebhookRegistration]:
        ...


@runtime_checkable
class IWebhookDispatcher(Protocol):
    """Delivers one event to every matching subscriber."""

    async def dispatch(self, event_type: str, payload: dict[str, Any]) -> list[DeliveryResult]:
        ...
