"""Live program-log listener.

Flow:
  1. `start()` subscribes to logs mentioning the program and keeps the
     subscription id; a background task consumes notifications in order
  2. Failed transactions are discarded as a whole
  3. Each ``Program data: <base64>`` line is decoded against the registry;
     bad lines are counted and skipped, the rest of the stream continues
  4. Decoded events go to the sink (audit store + webhooks)

A transport failure ends the session: it is logged, kept in `last_error`, and
`wait()` returns. Restarting is the caller's job (`stop()` then `start()`).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import Enum

from stablind.constants import PROGRAM_DATA_PREFIX, SSS_TOKEN_PROGRAM_ID
from stablind.core.interfaces import IEventSink, ILogStream
from stablind.core.models import DecodedEvent, LogNotification
from stablind.core.use_cases.index_events import IndexStats
from stablind.decoding.decoder import decode_program_data, subject_of
from stablind.decoding.specs import EventRegistry
from stablind.errors import DecodeError

logger = logging.getLogger(__name__)


class ListenerState(str, Enum):
    STOPPED = "stopped"
    SUBSCRIBED = "subscribed"


class EventListener:
    """Subscribes to program logs and forwards decoded events to a sink."""

    def __init__(
        self,
        stream: ILogStream,
        sink: IEventSink,
        *,
        program_id: str = SSS_TOKEN_PROGRAM_ID,
        commitment: str = "confirmed",
        registry: EventRegistry | None = None,
        stats: IndexStats | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.stream = stream
        self.sink = sink
        self.program_id = program_id
        self.commitment = commitment
        self.registry = registry
        self.stats = stats or IndexStats()
        self._clock = clock

        self.state = ListenerState.STOPPED
        self.subscription_id: int | None = None
        self.last_error: BaseException | None = None
        self._task: asyncio.Task | None = None
        self._busy = asyncio.Lock()
        self._stopping = False

    # ---------- lifecycle ----------

    async def start(self) -> None:
        """Subscribe and start consuming notifications in the background.

        Raises:
            RuntimeError: the listener is already running.
        """
        if self.state is not ListenerState.STOPPED:
            raise RuntimeError("listener is already started")
        self.last_error = None
        self._stopping = False
        self.subscription_id = await self.stream.subscribe(self.program_id, self.commitment)
        self.state = ListenerState.SUBSCRIBED
        self._task = asyncio.create_task(self._run(), name="stablind-listener")
        logger.info("Listening for %s events (subscription %s)", self.program_id, self.subscription_id)

    async def stop(self) -> None:
        """Unsubscribe, finish in-flight processing, drain the sink. Idempotent."""
        if self.state is ListenerState.STOPPED:
            return
        self._stopping = True
        # holding the lock means no notification is half-processed
        async with self._busy:
            if self._task is not None and not self._task.done():
                self._task.cancel()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self.subscription_id is not None:
            try:
                await self.stream.unsubscribe(self.subscription_id)
            except Exception as exc:
                logger.warning("Unsubscribe failed: %s", exc)
        try:
            await self.stream.close()
        except Exception as exc:
            logger.warning("Closing the log stream failed: %s", exc)

        await self.sink.drain()
        self.subscription_id = None
        self.state = ListenerState.STOPPED
        logger.info("Event listener stopped")

    async def wait(self) -> None:
        """Return when the session ends (stream closed, transport failure, or stop)."""
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        try:
            async for notification in self.stream.notifications():
                async with self._busy:
                    if self._stopping:
                        break
                    await self.process_notification(notification)
            logger.info("Log stream ended")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.last_error = exc
            logger.error("Log stream failed: %s", exc)

    # ---------- processing ----------

    async def process_notification(self, notification: LogNotification) -> int:
        """Decode and forward every event in one notification; return how many were new."""
        self.stats.notifications += 1
        if notification.failed:
            self.stats.failed_skipped += 1
            logger.debug("Skipping failed transaction %s", notification.signature)
            return 0

        stored = 0
        for line in notification.logs:
            if not line.startswith(PROGRAM_DATA_PREFIX):
                continue
            event = self._decode_line(line[len(PROGRAM_DATA_PREFIX) :], notification)
            if event is None:
                continue
            try:
                if await self.sink.handle(event):
                    stored += 1
            except Exception:
                logger.exception("Failed to record %s (%s)", event.event_type, event.signature)
        return stored

    def _decode_line(self, payload: str, notification: LogNotification) -> DecodedEvent | None:
        try:
            decoded = decode_program_data(payload, self.registry)
            if decoded is None:
                self.stats.lines_unrecognised += 1
                logger.debug("Unrecognised program data in %s", notification.signature)
                return None
            subject = subject_of(decoded.fields)
        except DecodeError as exc:
            self.stats.lines_malformed += 1
            logger.warning("Malformed event in %s: %s", notification.signature, exc)
            return None
        return DecodedEvent(
            event_type=decoded.name,
            fields=decoded.fields,
            subject_id=subject,
            signature=notification.signature,
            slot=notification.slot,
            timestamp=int(self._clock()),
        )
