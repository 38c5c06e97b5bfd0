"""Storage layer (DuckDB).

This package provides:
- `connect`: open a database file (or ``:memory:``) with the schema in place
- `AuditStore`: append-only events/operations keyed by transaction signature
- `WebhookRepository`: registered webhook subscribers
"""

from stablind.storage.audit import AuditStore
from stablind.storage.database import connect
from stablind.storage.webhooks import WebhookRepository

__all__ = ["AuditStore", "WebhookRepository", "connect"]
