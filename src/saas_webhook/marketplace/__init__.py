"""Azure Marketplace SaaS operation reconciliation.

Checks webhook notifications (ChangeQuantity, ChangePlan, ...) against the
operation status reported by the Marketplace SaaS fulfillment API.
"""

from saas_webhook.marketplace.client import (
    MarketplaceApiClient,
    MarketplaceApiError,
    get_marketplace_client,
)
from saas_webhook.marketplace.models import (
    DecisionOutcome,
    OperationStatus,
    OperationStatusRecord,
    RejectionReason,
    WebhookAction,
    WebhookDecision,
    WebhookNotification,
)
from saas_webhook.marketplace.reconciler import (
    OperationReconciler,
    PayloadError,
    get_operation_reconciler,
    parse_notification,
)

__all__ = [
    # Models
    "DecisionOutcome",
    "OperationStatus",
    "OperationStatusRecord",
    "RejectionReason",
    "WebhookAction",
    "WebhookDecision",
    "WebhookNotification",
    # Client
    "MarketplaceApiClient",
    "MarketplaceApiError",
    "get_marketplace_client",
    # Reconciler
    "OperationReconciler",
    "PayloadError",
    "get_operation_reconciler",
    "parse_notification",
]
