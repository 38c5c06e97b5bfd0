"""Webhook delivery.

This module provides:
- `WebhookDispatcher`: POSTs one event to every matching subscriber
- `sign_body`: HMAC-SHA256 signature sent as ``X-Webhook-Signature``

Delivery is at-most-once per dispatch: failures are logged and reported in the
returned `DeliveryResult`s, never retried and never raised, so one broken
endpoint cannot affect another subscriber.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from typing import Any

import httpx

from stablind.core.config import DispatcherConfig
from stablind.core.interfaces import IWebhookRepository
from stablind.core.models import DeliveryResult, WebhookRegistration

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


def sign_body(secret: str, body: bytes) -> str:
    """Return ``sha256=<hex>`` over the exact request body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def build_body(event_type: str, payload: dict[str, Any], timestamp_ms: int | None = None) -> bytes:
    envelope = {
        "event": event_type,
        "data": payload,
        "timestamp": int(time.time() * 1000) if timestamp_ms is None else timestamp_ms,
    }
    return json.dumps(envelope, separators=(",", ":")).encode("utf-8")


class WebhookDispatcher:
    """Async webhook fan-out with bounded concurrency.

    Parameters
    ----------
    repository : IWebhookRepository
        Source of active registrations (queried per dispatch).
    config : DispatcherConfig
        Request timeout, concurrency and user agent.
    client : httpx.AsyncClient | None
        Optional pre-built client (tests inject a MockTransport); owned otherwise.
    """

    def __init__(
        self,
        repository: IWebhookRepository,
        config: DispatcherConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or DispatcherConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_s),
            headers={"User-Agent": self.config.user_agent},
        )
        self._sem = asyncio.Semaphore(max(1, self.config.concurrency))

    async def _deliver(self, reg: WebhookRegistration, body: bytes) -> DeliveryResult:
        headers = {"Content-Type": "application/json"}
        if reg.secret:
            headers[SIGNATURE_HEADER] = sign_body(reg.secret, body)
        async with self._sem:
            try:
                r = await self.client.post(reg.url, content=body, headers=headers)
            except httpx.HTTPError as exc:
                logger.warning("Webhook %d (%s) failed: %s", reg.id, reg.url, exc)
                return DeliveryResult(webhook_id=reg.id, url=reg.url, ok=False, error=str(exc) or type(exc).__name__)
        if not r.is_success:
            logger.warning("Webhook %d (%s) returned HTTP %d", reg.id, reg.url, r.status_code)
            return DeliveryResult(
                webhook_id=reg.id, url=reg.url, ok=False, status_code=r.status_code, error=f"HTTP {r.status_code}"
            )
        return DeliveryResult(webhook_id=reg.id, url=reg.url, ok=True, status_code=r.status_code)

    async def dispatch(self, event_type: str, payload: dict[str, Any]) -> list[DeliveryResult]:
        """Deliver one event to every active subscriber of `event_type` (or of ``*``)."""
        targets = await asyncio.to_thread(self.repository.active_for, event_type)
        if not targets:
            return []
        body = build_body(event_type, payload)
        results = await asyncio.gather(*(self._deliver(reg, body) for reg in targets))
        ok = sum(1 for res in results if res.ok)
        logger.info("Dispatched %s to %d/%d webhooks", event_type, ok, len(results))
        return list(results)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this dispatcher created it."""
        if self._owns_client:
            await self.client.aclose()
