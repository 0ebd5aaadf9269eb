"""Webhook service: authentication followed by reconciliation."""

import logging

from saas_webhook.auth import WebhookTokenValidator, get_token_validator
from saas_webhook.marketplace import (
    OperationReconciler,
    RejectionReason,
    WebhookDecision,
    get_operation_reconciler,
)

logger = logging.getLogger(__name__)


class WebhookService:
    """Gates Marketplace webhook notifications.

    A call is authenticated first; only authenticated calls have their
    payload parsed and checked against the Marketplace. Every failure is
    turned into a decision, nothing is raised to the caller.
    """

    def __init__(
        self,
        validator: WebhookTokenValidator | None = None,
        reconciler: OperationReconciler | None = None,
    ) -> None:
        """Initialize the webhook service.

        Args:
            validator: Token validator (uses default if not provided).
            reconciler: Operation reconciler (uses default if not provided).
        """
        self._validator = validator or get_token_validator()
        self._reconciler = reconciler or get_operation_reconciler()

    async def handle(self, authorization: str | None, body: bytes) -> WebhookDecision:
        """Decide on a single webhook call.

        Args:
            authorization: Raw Authorization header value.
            body: Raw request body.

        Returns:
            The decision to report back to the Marketplace.
        """
        logger.info("SaaS webhook call received")

        try:
            auth_result = await self._validator.authenticate(authorization)
        except Exception:
            logger.exception("Unexpected error while authenticating webhook call")
            return self._log_decision(WebhookDecision.forbidden("authentication error"))

        if not auth_result.authenticated:
            logger.warning("Security checks did not pass: %s", auth_result.reason)
            return self._log_decision(WebhookDecision.forbidden(auth_result.reason))

        try:
            decision = await self._reconciler.reconcile(body)
        except Exception:
            logger.exception("Unexpected error while reconciling webhook call")
            decision = WebhookDecision.conflict(
                RejectionReason.INCONSISTENT_STATE,
                "reconciliation error",
            )

        return self._log_decision(decision)

    def _log_decision(self, decision: WebhookDecision) -> WebhookDecision:
        if decision.is_accepted:
            logger.info("Webhook decision: %s", decision.outcome.value)
        else:
            logger.info(
                "Webhook decision: %s (reason=%s, detail=%s)",
                decision.outcome.value,
                decision.reason.value if decision.reason else None,
                decision.detail,
            )
        return decision


# Global service instance
_webhook_service: WebhookService | None = None


def get_webhook_service() -> WebhookService:
    """Get the global webhook service instance.

    Returns:
        WebhookService instance.
    """
    global _webhook_service
    if _webhook_service is None:
        _webhook_service = WebhookService()
    return _webhook_service
