from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass

from stablind.core.interfaces import IAuditStore, IWebhookDispatcher
from stablind.core.models import DecodedEvent
from stablind.decoding.projections import project_operation
from stablind.decoding.specs import EventRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class IndexStats:
    """
    Aggregated counters for the live indexing pipeline.

    Mutated by the listener (stream-side counters) and by the service
    (storage and delivery counters):
    - notifications received / failed transactions skipped
    - log lines that were not ours / could not be decoded
    - events stored / duplicates ignored / webhook dispatches started
    """

    notifications: int = 0
    failed_skipped: int = 0
    lines_unrecognised: int = 0
    lines_malformed: int = 0
    events_stored: int = 0
    duplicates: int = 0
    dispatches: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class IndexEventsService:
    """
    Persist decoded events and fan them out to webhook subscribers.

    Ordering per event: the event row is written first; only when it is new is
    the operation row written and a dispatch scheduled. A redelivered
    notification therefore yields neither a second row nor a second delivery.

    Dispatches run as tracked background tasks so a slow subscriber never
    holds up the stream; `drain()` waits for the ones still in flight.
    """

    def __init__(
        self,
        store: IAuditStore,
        dispatcher: IWebhookDispatcher | None = None,
        *,
        registry: EventRegistry | None = None,
        stats: IndexStats | None = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.registry = registry
        self.stats = stats or IndexStats()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def handle(self, event: DecodedEvent) -> bool:
        """Record one event; return True if it was new."""
        inserted = await asyncio.to_thread(
            self.store.record_event,
            event.event_type,
            event.subject_id,
            event.fields,
            event.signature,
            event.slot,
            event.timestamp,
        )
        if not inserted:
            self.stats.duplicates += 1
            return False

        op = project_operation(event, registry=self.registry)
        await asyncio.to_thread(
            self.store.record_operation,
            op.operation,
            op.subject_id,
            op.actor,
            op.signature,
            op.amount,
            op.target,
        )
        self.stats.events_stored += 1
        logger.info("Event captured: %s (%s)", event.event_type, event.signature)

        if self.dispatcher is not None:
            task = asyncio.create_task(self._dispatch(event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            self.stats.dispatches += 1
        return True

    async def _dispatch(self, event: DecodedEvent) -> None:
        try:
            await self.dispatcher.dispatch(event.event_type, event.to_payload())
        except Exception:
            logger.exception("Webhook dispatch failed for %s (%s)", event.event_type, event.signature)

    async def drain(self) -> None:
        """Wait for every background dispatch started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
