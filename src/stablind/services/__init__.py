"""Outbound services (webhook delivery)."""

from stablind.services.webhooks import WebhookDispatcher, sign_body

__all__ = ["WebhookDispatcher", "sign_body"]
