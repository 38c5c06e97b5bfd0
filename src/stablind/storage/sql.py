"""
sql.py
------

DuckDB statements for the audit trail and the webhook registry.

Tables:
    - events      one row per captured event, keyed by transaction signature
    - operations  one normalized operation row per event, same key
    - webhooks    registered subscriber endpoints
"""

# =====================================================================
# SCHEMA
# =====================================================================

SCHEMA_STATEMENTS = (
    "CREATE SEQUENCE IF NOT EXISTS events_id_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS operations_id_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS webhooks_id_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS events (
        id          BIGINT DEFAULT nextval('events_id_seq'),
        event_type  VARCHAR NOT NULL,
        stablecoin  VARCHAR NOT NULL,
        data        VARCHAR NOT NULL,
        signature   VARCHAR PRIMARY KEY,
        slot        UBIGINT NOT NULL,
        timestamp   BIGINT NOT NULL,
        created_at  TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS operations (
        id          BIGINT DEFAULT nextval('operations_id_seq'),
        operation   VARCHAR NOT NULL,
        mint        VARCHAR NOT NULL,
        actor       VARCHAR NOT NULL,
        amount      VARCHAR,
        target      VARCHAR,
        signature   VARCHAR PRIMARY KEY,
        status      VARCHAR NOT NULL DEFAULT 'confirmed',
        created_at  TIMESTAMP DEFAULT current_timestamp
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS webhooks (
        id          BIGINT PRIMARY KEY DEFAULT nextval('webhooks_id_seq'),
        url         VARCHAR NOT NULL,
        events      VARCHAR NOT NULL,
        secret      VARCHAR,
        active      BOOLEAN NOT NULL DEFAULT true,
        created_at  TIMESTAMP DEFAULT current_timestamp
    )
    """,
)


# =====================================================================
# EVENTS / OPERATIONS
# =====================================================================

SIGNATURE_EXISTS_QUERY = "SELECT 1 FROM {table} WHERE signature = ?"

INSERT_EVENT = """
INSERT OR IGNORE INTO events (event_type, stablecoin, data, signature, slot, timestamp)
VALUES (?, ?, ?, ?, ?, ?)
"""

INSERT_OPERATION = """
INSERT OR IGNORE INTO operations (operation, mint, actor, amount, target, signature, status)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

LIST_EVENTS_QUERY = """
SELECT id, event_type, stablecoin, data, signature, slot, timestamp, created_at
FROM events
{where}
ORDER BY id DESC
LIMIT ? OFFSET ?
"""

LIST_OPERATIONS_QUERY = """
SELECT id, operation, mint, actor, amount, target, signature, status, created_at
FROM operations
{where}
ORDER BY id DESC
LIMIT ? OFFSET ?
"""

COUNT_QUERY = "SELECT count(*) FROM {table} {where}"


# =====================================================================
# WEBHOOKS
# =====================================================================

INSERT_WEBHOOK = "INSERT INTO webhooks (url, events, secret) VALUES (?, ?, ?) RETURNING id"

WEBHOOK_COLUMNS = "id, url, events, secret, active, created_at"

LIST_WEBHOOKS_QUERY = f"SELECT {WEBHOOK_COLUMNS} FROM webhooks ORDER BY id"

GET_WEBHOOK_QUERY = f"SELECT {WEBHOOK_COLUMNS} FROM webhooks WHERE id = ?"

ACTIVE_WEBHOOKS_QUERY = f"SELECT {WEBHOOK_COLUMNS} FROM webhooks WHERE active ORDER BY id"

DELETE_WEBHOOK = "DELETE FROM webhooks WHERE id = ?"

SET_WEBHOOK_ACTIVE = "UPDATE webhooks SET active = ? WHERE id = ?"
