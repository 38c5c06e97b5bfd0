import asyncio
import base64
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
from solders.pubkey import Pubkey

from stablind.codec.borsh import encode_fields
from stablind.constants import PROGRAM_DATA_PREFIX
from stablind.core.models import LogNotification
from stablind.decoding.registries import make_full_registry
from stablind.decoding.specs import EventSpec, find_spec_by_name
from stablind.storage.audit import AuditStore
from stablind.storage.database import connect
from stablind.storage.webhooks import WebhookRepository

_SAMPLES: dict[str, Callable[[], Any]] = {
    "pubkey": lambda: str(Pubkey.new_unique()),
    "u64": lambda: 1_000_000,
    "i64": lambda: 1_700_000_000,
    "u8": lambda: 2,
    "bool": lambda: True,
    "string": lambda: "USD Stable",
}


def sample_fields(spec: EventSpec, **overrides: Any) -> dict[str, Any]:
    """Plausible native values for every field of `spec`."""
    values = {f.name: _SAMPLES[f.type]() for f in spec.fields}
    values.update(overrides)
    return values


def event_bytes(name: str, values: dict[str, Any]) -> bytes:
    """Discriminator + Borsh body, exactly as the program emits it."""
    spec = find_spec_by_name(make_full_registry(), name)
    assert spec is not None, name
    return spec.discriminator + encode_fields(spec.layout, values)


def program_data_line(raw: bytes) -> str:
    return PROGRAM_DATA_PREFIX + base64.b64encode(raw).decode()


class FakeLogStream:
    """In-memory ILogStream: tests push notifications, `None` ends the stream, exceptions are raised."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.subscribed: list[tuple[str, str]] = []
        self.unsubscribed: list[int] = []
        self.closed = 0
        self._next_id = 1

    async def subscribe(self, program_id: str, commitment: str) -> int:
        self.subscribed.append((program_id, commitment))
        sid = self._next_id
        self._next_id += 1
        return sid

    async def unsubscribe(self, subscription_id: int) -> None:
        self.unsubscribed.append(subscription_id)

    def push(self, notification: LogNotification) -> None:
        self.queue.put_nowait(notification)

    def end(self) -> None:
        self.queue.put_nowait(None)

    def fail(self, exc: BaseException) -> None:
        self.queue.put_nowait(exc)

    async def notifications(self):
        while True:
            item = await self.queue.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.closed += 1


@pytest.fixture
def db():
    con = connect()
    yield con
    con.close()


@pytest.fixture
def store(db) -> AuditStore:
    return AuditStore(db)


@pytest.fixture
def webhook_repo(db) -> WebhookRepository:
    return WebhookRepository(db)


@pytest.fixture
def log_stream() -> FakeLogStream:
    return FakeLogStream()


@pytest.fixture
def mock_dispatcher():
    dispatcher = AsyncMock()
    dispatcher.dispatch = AsyncMock(return_value=[])
    return dispatcher


@pytest.fixture
def stablecoin() -> str:
    return str(Pubkey.new_unique())
