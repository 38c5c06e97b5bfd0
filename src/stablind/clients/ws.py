"""Solana JSON-RPC websocket client for program-log subscriptions.

This module provides:
- Pydantic models for ``logsNotification`` messages
- `WebsocketLogStream`: an `ILogStream` over `websockets`

It yields `LogNotification` records ready for the listener.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Literal

import websockets
from pydantic import BaseModel, ValidationError

from stablind.core.models import LogNotification

logger = logging.getLogger(__name__)


# ---------- wire models ----------


class RpcContext(BaseModel):
    slot: int


class RpcLogsValue(BaseModel):
    signature: str
    err: Any = None
    logs: list[str] | None = None


class RpcLogsResult(BaseModel):
    context: RpcContext
    value: RpcLogsValue


class LogsNotificationParams(BaseModel):
    result: RpcLogsResult
    subscription: int


class LogsNotification(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    method: Literal["logsNotification"]
    params: LogsNotificationParams

    def to_domain(self) -> LogNotification:
        value = self.params.result.value
        return LogNotification(
            signature=value.signature,
            logs=tuple(value.logs or ()),
            slot=self.params.result.context.slot,
            err=value.err,
        )


def logs_subscribe_request(request_id: int, program_id: str, commitment: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "logsSubscribe",
        "params": [{"mentions": [program_id]}, {"commitment": commitment}],
    }


def logs_unsubscribe_request(request_id: int, subscription_id: int) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "method": "logsUnsubscribe", "params": [subscription_id]}


def parse_notification(message: dict[str, Any]) -> LogNotification | None:
    """Return the notification carried by `message`, or None for anything else (RPC responses)."""
    if message.get("method") != "logsNotification":
        return None
    return LogsNotification.model_validate(message).to_domain()


# ---------- stream ----------


class WebsocketLogStream:
    """Program-logs subscription over one websocket connection.

    Parameters
    ----------
    url : str
        ``ws://`` or ``wss://`` RPC endpoint.
    open_timeout_s : float
        Handshake timeout; also bounds the wait for the subscribe response.
    ping_interval_s : float
        Keepalive ping interval.
    """

    def __init__(self, url: str, *, open_timeout_s: float = 10.0, ping_interval_s: float = 20.0) -> None:
        self.url = url
        self.open_timeout_s = open_timeout_s
        self.ping_interval_s = ping_interval_s
        self._ws = None
        self._ids = itertools.count(1)
        self._backlog: list[dict[str, Any]] = []

    async def _connection(self):
        if self._ws is None:
            self._ws = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout_s,
                ping_interval=self.ping_interval_s,
                max_size=None,
            )
            logger.info("Connected to %s", self.url)
        return self._ws

    async def subscribe(self, program_id: str, commitment: str) -> int:
        """Send ``logsSubscribe`` and wait for the subscription id.

        Raises:
            RuntimeError: the node rejected the request or did not answer
                within ``open_timeout_s``.
        """
        ws = await self._connection()
        request_id = next(self._ids)
        await ws.send(json.dumps(logs_subscribe_request(request_id, program_id, commitment)))
        try:
            subscription_id = await asyncio.wait_for(
                self._subscription_response(ws, request_id), timeout=self.open_timeout_s
            )
        except asyncio.TimeoutError:
            raise RuntimeError(f"logsSubscribe got no response within {self.open_timeout_s}s") from None
        logger.info("Subscribed to logs mentioning %s (subscription %d)", program_id, subscription_id)
        return subscription_id

    async def _subscription_response(self, ws, request_id: int) -> int:
        while True:
            message = json.loads(await ws.recv())
            if message.get("id") != request_id:
                # a notification racing the response
                self._backlog.append(message)
                continue
            if "error" in message:
                e = message["error"]
                raise RuntimeError(f"logsSubscribe failed: {e.get('code')} {e.get('message')}")
            return int(message["result"])

    async def unsubscribe(self, subscription_id: int) -> None:
        """Send ``logsUnsubscribe``; the response is consumed (and ignored) by `notifications()`."""
        if self._ws is None:
            return
        request_id = next(self._ids)
        await self._ws.send(json.dumps(logs_unsubscribe_request(request_id, subscription_id)))

    def _decode(self, message: dict[str, Any]) -> LogNotification | None:
        try:
            return parse_notification(message)
        except ValidationError as exc:
            logger.warning("Malformed logsNotification skipped: %s", exc)
            return None

    async def notifications(self) -> AsyncIterator[LogNotification]:
        """Yield notifications until the connection closes.

        A clean close ends the iteration; an abnormal close raises
        `websockets.exceptions.ConnectionClosedError`.
        """
        ws = await self._connection()
        while self._backlog:
            notification = self._decode(self._backlog.pop(0))
            if notification is not None:
                yield notification
        async for raw in ws:
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Non-JSON websocket frame skipped")
                continue
            notification = self._decode(message)
            if notification is not None:
                yield notification

    async def close(self) -> None:
        # frames buffered for the old subscription must not replay after a reconnect
        self._backlog.clear()
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
            logger.info("Closed connection to %s", self.url)
