"""Network clients (Solana JSON-RPC websocket)."""

from stablind.clients.ws import LogsNotification, WebsocketLogStream, parse_notification

__all__ = ["LogsNotification", "WebsocketLogStream", "parse_notification"]
