"""Restart loop for the live indexer.

This module provides two layers:

1) `supervise(...)`:
   - Keeps one `EventListener` running: after a session ends (transport
     failure, stream closed) it calls `stop()` then `start()` again with
     capped exponential backoff.
   - Depends only on the listener; does not build any infrastructure.

2) `run_indexer(...)` (convenience wrapper):
   - Wires the websocket stream, DuckDB store, webhook registry/dispatcher
     and the indexing service from an `IndexerConfig`.
   - Calls `supervise(...)` under the hood.
"""

from __future__ import annotations

import asyncio
import logging

from stablind.clients.ws import WebsocketLogStream
from stablind.core.config import IndexerConfig
from stablind.core.use_cases.index_events import IndexEventsService, IndexStats
from stablind.decoding.specs import EventRegistry
from stablind.indexing.listener import EventListener
from stablind.services.webhooks import WebhookDispatcher
from stablind.storage.audit import AuditStore
from stablind.storage.database import connect
from stablind.storage.webhooks import WebhookRepository

logger = logging.getLogger(__name__)


async def _sleep_or_stop(stop_event: asyncio.Event, delay: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


async def _session(listener: EventListener, stop_event: asyncio.Event) -> None:
    """Run one subscribed session until it ends or a stop is requested."""
    session = asyncio.create_task(listener.wait())
    stopper = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({session, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (session, stopper):
            task.cancel()
        await asyncio.gather(session, stopper, return_exceptions=True)
        await listener.stop()


async def supervise(
    listener: EventListener,
    *,
    stop_event: asyncio.Event | None = None,
    backoff_initial_s: float = 1.0,
    backoff_max_s: float = 60.0,
    max_restarts: int | None = None,
) -> int:
    """Run `listener` until `stop_event` is set (or restarts run out); return the restart count."""
    stop_event = stop_event or asyncio.Event()
    restarts = 0
    backoff = backoff_initial_s

    while not stop_event.is_set():
        try:
            await listener.start()
        except Exception as exc:
            listener.last_error = exc
            logger.error("Subscription failed: %s", exc)
            await listener.stream.close()
        else:
            backoff = backoff_initial_s
            await _session(listener, stop_event)

        if stop_event.is_set():
            break
        if max_restarts is not None and restarts >= max_restarts:
            logger.error("Giving up after %d restarts", restarts)
            break
        restarts += 1
        logger.warning("Listener session ended (%s); restarting in %.1fs", listener.last_error, backoff)
        await _sleep_or_stop(stop_event, backoff)
        backoff = min(backoff * 2, backoff_max_s)

    return restarts


async def run_indexer(
    config: IndexerConfig,
    *,
    stop_event: asyncio.Event | None = None,
    registry: EventRegistry | None = None,
) -> IndexStats:
    """Listen → decode → store → notify until stopped; return the final counters."""
    con = connect(config.db_path)
    store = AuditStore(con)
    dispatcher = WebhookDispatcher(WebhookRepository(con), config.dispatcher)
    stats = IndexStats()
    service = IndexEventsService(store, dispatcher, registry=registry, stats=stats)
    stream = WebsocketLogStream(
        config.listener.ws_url,
        open_timeout_s=config.listener.open_timeout_s,
        ping_interval_s=config.listener.ping_interval_s,
    )
    listener = EventListener(
        stream,
        service,
        program_id=config.listener.program_id,
        commitment=config.listener.commitment,
        registry=registry,
        stats=stats,
    )
    try:
        await supervise(
            listener,
            stop_event=stop_event,
            backoff_initial_s=config.backoff_initial_s,
            backoff_max_s=config.backoff_max_s,
            max_restarts=config.max_restarts,
        )
    finally:
        await listener.stop()
        await dispatcher.aclose()
        con.close()
    return stats
