"""Core data models, configurations, and interfaces.

This package provides:
- Data models (LogNotification, DecodedEvent, OperationRecord, WebhookRegistration, ...)
- Configuration classes (ListenerConfig, DispatcherConfig, IndexerConfig)
"""

from stablind.core.config import DispatcherConfig, IndexerConfig, ListenerConfig
from stablind.core.models import (
    DecodedEvent,
    DeliveryResult,
    EventRow,
    LogNotification,
    OperationRecord,
    OperationRow,
    WebhookRegistration,
)

__all__ = [
    "DispatcherConfig",
    "IndexerConfig",
    "ListenerConfig",
    "DecodedEvent",
    "DeliveryResult",
    "EventRow",
    "LogNotification",
    "OperationRecord",
    "OperationRow",
    "WebhookRegistration",
]
