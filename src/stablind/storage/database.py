from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from collections.abc import Iterator

import duckdb

from stablind.storage import sql

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_CURSOR_LOCK = threading.Lock()


def connect(path: str = MEMORY) -> duckdb.DuckDBPyConnection:
    """Open (or create) the DuckDB database at `path` and ensure the schema exists."""
    if path != MEMORY:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
    con = duckdb.connect(path)
    for statement in sql.SCHEMA_STATEMENTS:
        con.execute(statement)
    logger.debug("Opened audit database at %s", path)
    return con


@contextmanager
def cursor(con: duckdb.DuckDBPyConnection) -> Iterator[duckdb.DuckDBPyConnection]:
    """Per-call cursor so one connection can be shared across threads."""
    with _CURSOR_LOCK:
        cur = con.cursor()
    try:
        yield cur
    finally:
        cur.close()
