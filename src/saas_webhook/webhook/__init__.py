"""Marketplace SaaS webhook endpoint.

Wires the caller authentication and operation reconciliation into the
HTTP endpoint the Marketplace posts notifications to.
"""

from saas_webhook.webhook.app import create_app
from saas_webhook.webhook.service import WebhookService, get_webhook_service

__all__ = ["WebhookService", "create_app", "get_webhook_service"]
