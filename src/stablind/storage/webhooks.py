from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from urllib.parse import urlparse

import duckdb

from stablind.constants import WILDCARD
from stablind.core.models import WebhookRegistration
from stablind.storage import sql
from stablind.storage.database import MEMORY, connect, cursor

logger = logging.getLogger(__name__)


def _check_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"webhook url must be http(s): {url!r}")


def _normalize_events(events: Sequence[str] | str) -> tuple[str, ...]:
    if isinstance(events, str):
        events = events.split(",")
    out: list[str] = []
    for e in events:
        e = e.strip()
        if e and e not in out:
            out.append(e)
    if not out:
        raise ValueError("a webhook needs at least one event type (or '*')")
    if WILDCARD in out:
        return (WILDCARD,)
    return tuple(out)


def _row_to_registration(row: tuple) -> WebhookRegistration:
    return WebhookRegistration(
        id=row[0],
        url=row[1],
        events=tuple(e for e in row[2].split(",") if e),
        secret=row[3],
        active=bool(row[4]),
        created_at=None if row[5] is None else str(row[5]),
    )


class WebhookRepository:
    """Webhook subscribers persisted in the `webhooks` table."""

    def __init__(self, con: duckdb.DuckDBPyConnection | None = None, *, path: str = MEMORY) -> None:
        self.con = con if con is not None else connect(path)
        self._lock = threading.Lock()

    def register(self, url: str, events: Sequence[str] | str, secret: str | None = None) -> int:
        """Add a subscriber and return its id.

        Raises:
            ValueError: empty event set or a non-http(s) url.
        """
        _check_url(url)
        names = _normalize_events(events)
        with self._lock, cursor(self.con) as cur:
            webhook_id = cur.execute(sql.INSERT_WEBHOOK, [url, ",".join(names), secret or None]).fetchone()[0]
        logger.info("Registered webhook %d -> %s for %s", webhook_id, url, ",".join(names))
        return webhook_id

    def list(self) -> list[WebhookRegistration]:
        with cursor(self.con) as cur:
            return [_row_to_registration(r) for r in cur.execute(sql.LIST_WEBHOOKS_QUERY).fetchall()]

    def get(self, webhook_id: int) -> WebhookRegistration | None:
        with cursor(self.con) as cur:
            row = cur.execute(sql.GET_WEBHOOK_QUERY, [webhook_id]).fetchone()
        return None if row is None else _row_to_registration(row)

    def remove(self, webhook_id: int) -> bool:
        """Delete a subscriber; False when the id does not exist."""
        with self._lock, cursor(self.con) as cur:
            if cur.execute(sql.GET_WEBHOOK_QUERY, [webhook_id]).fetchone() is None:
                return False
            cur.execute(sql.DELETE_WEBHOOK, [webhook_id])
        logger.info("Removed webhook %d", webhook_id)
        return True

    def set_active(self, webhook_id: int, active: bool) -> bool:
        with self._lock, cursor(self.con) as cur:
            if cur.execute(sql.GET_WEBHOOK_QUERY, [webhook_id]).fetchone() is None:
                return False
            cur.execute(sql.SET_WEBHOOK_ACTIVE, [active, webhook_id])
        return True

    def active_for(self, event_type: str) -> list[WebhookRegistration]:
        """Active subscribers whose event set contains `event_type` or the wildcard."""
        with cursor(self.con) as cur:
            rows = cur.execute(sql.ACTIVE_WEBHOOKS_QUERY).fetchall()
        return [reg for reg in map(_row_to_registration, rows) if reg.wants(event_type)]
