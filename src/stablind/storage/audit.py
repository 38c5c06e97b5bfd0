"""Append-only audit trail of decoded events and their operation rows.

Every row is keyed by transaction signature: recording the same signature twice
is a no-op reported through the boolean return value, never an exception.
Methods are synchronous (DuckDB is blocking); async callers wrap them in
`asyncio.to_thread`, each call using its own cursor.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

import duckdb

from stablind.core.models import OPERATION_STATUS_CONFIRMED, EventRow, OperationRow
from stablind.storage import sql
from stablind.storage.database import MEMORY, connect, cursor

logger = logging.getLogger(__name__)


def _where_subject(column: str, subject_id: str | None) -> tuple[str, list[Any]]:
    if subject_id is None:
        return "", []
    return f"WHERE {column} = ?", [subject_id]


class AuditStore:
    """DuckDB-backed events/operations tables."""

    def __init__(self, con: duckdb.DuckDBPyConnection | None = None, *, path: str = MEMORY) -> None:
        self.con = con if con is not None else connect(path)
        self._lock = threading.Lock()

    def close(self) -> None:
        self.con.close()

    # ---------- writes ----------

    def _insert_once(self, table: str, statement: str, params: list[Any], signature: str) -> bool:
        with self._lock, cursor(self.con) as cur:
            exists = cur.execute(sql.SIGNATURE_EXISTS_QUERY.format(table=table), [signature]).fetchone()
            if exists is not None:
                return False
            cur.execute(statement, params)
            return True

    def record_event(
        self,
        event_type: str,
        subject_id: str,
        fields: dict[str, Any],
        signature: str,
        slot: int,
        timestamp: int,
    ) -> bool:
        """Insert one event row; return False if `signature` is already recorded."""
        data = json.dumps(fields, separators=(",", ":"))
        inserted = self._insert_once(
            "events",
            sql.INSERT_EVENT,
            [event_type, subject_id, data, signature, slot, timestamp],
            signature,
        )
        if not inserted:
            logger.debug("Duplicate event %s (%s) ignored", event_type, signature)
        return inserted

    def record_operation(
        self,
        operation: str,
        subject_id: str,
        actor: str,
        signature: str,
        amount: str | None = None,
        target: str | None = None,
        status: str = OPERATION_STATUS_CONFIRMED,
    ) -> bool:
        """Insert one operation row; return False if `signature` is already recorded."""
        return self._insert_once(
            "operations",
            sql.INSERT_OPERATION,
            [operation, subject_id, actor, amount, target, signature, status],
            signature,
        )

    # ---------- reads ----------

    def list_events(self, subject_id: str | None = None, limit: int = 50, offset: int = 0) -> list[EventRow]:
        """Most recent first, optionally restricted to one stablecoin."""
        where, params = _where_subject("stablecoin", subject_id)
        with cursor(self.con) as cur:
            rows = cur.execute(sql.LIST_EVENTS_QUERY.format(where=where), [*params, limit, offset]).fetchall()
        return [
            EventRow(
                id=r[0],
                event_type=r[1],
                stablecoin=r[2],
                data=json.loads(r[3]),
                signature=r[4],
                slot=r[5],
                timestamp=r[6],
                created_at=str(r[7]),
            )
            for r in rows
        ]

    def list_operations(self, subject_id: str | None = None, limit: int = 50, offset: int = 0) -> list[OperationRow]:
        """Most recent first, optionally restricted to one stablecoin."""
        where, params = _where_subject("mint", subject_id)
        with cursor(self.con) as cur:
            rows = cur.execute(sql.LIST_OPERATIONS_QUERY.format(where=where), [*params, limit, offset]).fetchall()
        return [OperationRow(*r[:8], created_at=str(r[8])) for r in rows]

    def count_events(self, subject_id: str | None = None) -> int:
        where, params = _where_subject("stablecoin", subject_id)
        with cursor(self.con) as cur:
            return cur.execute(sql.COUNT_QUERY.format(table="events", where=where), params).fetchone()[0]

    def count_operations(self, subject_id: str | None = None) -> int:
        where, params = _where_subject("mint", subject_id)
        with cursor(self.con) as cur:
            return cur.execute(sql.COUNT_QUERY.format(table="operations", where=where), params).fetchone()[0]
