"""Reconciliation of webhook notifications against Marketplace operation status."""

import asyncio
import json
import logging
from collections.abc import Callable

from pydantic import ValidationError

from saas_webhook.config import Settings, get_settings
from saas_webhook.marketplace.client import (
    MarketplaceApiClient,
    MarketplaceApiError,
    get_marketplace_client,
)
from saas_webhook.marketplace.models import (
    OperationStatusRecord,
    RejectionReason,
    WebhookAction,
    WebhookDecision,
    WebhookNotification,
)
from saas_webhook.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

ActionRule = Callable[[WebhookNotification, OperationStatusRecord], WebhookDecision]


class PayloadError(Exception):
    """Raised when a webhook body cannot be parsed into a notification."""

    def __init__(self, message: str, reason: RejectionReason = RejectionReason.PAYLOAD_MALFORMED):
        super().__init__(message)
        self.reason = reason


def parse_notification(body: bytes | str) -> WebhookNotification:
    """Parse a raw webhook body into a notification.

    Args:
        body: Raw request body.

    Returns:
        WebhookNotification instance.

    Raises:
        PayloadError: If the body is not a valid notification. Actions
            outside WebhookAction are reported as UNRECOGNIZED_ACTION.
    """
    try:
        data = json.loads(body or b"null")
    except (ValueError, UnicodeDecodeError) as e:
        raise PayloadError(f"body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadError("payload must be a JSON object")

    try:
        return WebhookNotification(**data)
    except ValidationError as e:
        if any(err["loc"] == ("action",) and err["type"] == "enum" for err in e.errors()):
            raise PayloadError(
                f"unrecognized action: {data.get('action')!r}",
                reason=RejectionReason.UNRECOGNIZED_ACTION,
            ) from e
        raise PayloadError(f"invalid notification: {e}") from e


class OperationReconciler:
    """Decides whether a webhook notification matches Marketplace evidence.

    The caller of the webhook is not trusted for business facts: each
    notification is checked against the operation status reported by the
    Marketplace operations API. Any failure along the way rejects the
    notification with a conflict.
    """

    def __init__(
        self,
        client: MarketplaceApiClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            client: Marketplace API client (uses default if not provided).
            settings: Application settings (uses default if not provided).
        """
        self._client = client or get_marketplace_client()
        self._timeout = (settings or get_settings()).marketplace_api_timeout_seconds
        # Actions without an entry here are rejected
        self._rules: dict[WebhookAction, ActionRule] = {
            WebhookAction.CHANGE_QUANTITY: self._check_change_quantity,
            WebhookAction.CHANGE_PLAN: self._check_change_plan,
        }

    async def reconcile(self, body: bytes | str) -> WebhookDecision:
        """Reconcile a raw webhook body.

        Args:
            body: Raw request body of an authenticated webhook call.

        Returns:
            Accepted, or a conflict with the rejection reason.
        """
        try:
            notification = parse_notification(body)
        except PayloadError as e:
            logger.warning("Rejecting webhook payload: %s", e)
            return WebhookDecision.conflict(e.reason, str(e))

        logger.info(
            "Webhook notification received: action=%s operation=%s subscription=%s",
            notification.action.value,
            notification.operation_id,
            notification.subscription_id,
        )
        return await self.reconcile_notification(notification)

    async def reconcile_notification(
        self, notification: WebhookNotification
    ) -> WebhookDecision:
        """Reconcile a parsed notification against the Marketplace."""
        rule = self._rules.get(notification.action)
        if rule is None:
            logger.warning(
                "No validation rule for action %s, rejecting operation %s",
                notification.action.value,
                notification.operation_id,
            )
            return WebhookDecision.conflict(
                RejectionReason.UNRECOGNIZED_ACTION,
                f"action {notification.action.value} is not validated",
            )

        try:
            record = await self._fetch_operation(notification)
        except (MarketplaceApiError, asyncio.TimeoutError) as e:
            logger.error(
                "Marketplace operation %s could not be verified: %s",
                notification.operation_id,
                str(e) or "timed out",
            )
            return WebhookDecision.conflict(
                RejectionReason.ORACLE_UNAVAILABLE,
                "operation status unavailable",
            )

        mismatch = self._check_identity(notification, record)
        if mismatch:
            return mismatch

        decision = rule(notification, record)
        if decision.is_accepted:
            logger.info("Payload check against marketplace evidence: PASSED")
        return decision

    async def _fetch_operation(
        self, notification: WebhookNotification
    ) -> OperationStatusRecord:
        with tracer.start_as_current_span("marketplace.get_operation_status") as span:
            span.set_attribute("marketplace.operation_id", str(notification.operation_id))
            span.set_attribute("marketplace.action", notification.action.value)
            record = await asyncio.wait_for(
                self._client.get_operation_status(
                    notification.subscription_id,
                    notification.operation_id,
                ),
                timeout=self._timeout,
            )
            span.set_attribute("marketplace.operation_status", record.status.value)
            return record

    def _check_identity(
        self,
        notification: WebhookNotification,
        record: OperationStatusRecord,
    ) -> WebhookDecision | None:
        """Reject when the operation record describes a different operation."""
        if record.operation_id and record.operation_id != notification.operation_id:
            detail = "operation id differs from marketplace record"
        elif record.subscription_id and record.subscription_id != notification.subscription_id:
            detail = "subscription id differs from marketplace record"
        elif record.action and record.action != notification.action.value:
            detail = (
                f"action {notification.action.value} differs from "
                f"marketplace action {record.action}"
            )
        else:
            return None

        logger.warning("Operation %s rejected: %s", notification.operation_id, detail)
        return WebhookDecision.conflict(RejectionReason.INCONSISTENT_STATE, detail)

    def _check_pending(
        self,
        notification: WebhookNotification,
        record: OperationStatusRecord,
    ) -> WebhookDecision | None:
        if record.is_pending:
            return None
        logger.warning(
            "Invalid or already processed operation %s (status=%s)",
            notification.operation_id,
            record.status.value,
        )
        return WebhookDecision.conflict(
            RejectionReason.INCONSISTENT_STATE,
            f"operation status is {record.status.value}",
        )

    def _check_change_quantity(
        self,
        notification: WebhookNotification,
        record: OperationStatusRecord,
    ) -> WebhookDecision:
        rejected = self._check_pending(notification, record)
        if rejected:
            return rejected

        if notification.quantity != record.quantity:
            logger.warning(
                "Wrong quantity in payload: in marketplace %s, in payload %s",
                record.quantity,
                notification.quantity,
            )
            return WebhookDecision.conflict(
                RejectionReason.INCONSISTENT_STATE,
                "quantity differs from marketplace record",
            )

        return WebhookDecision.accepted()

    def _check_change_plan(
        self,
        notification: WebhookNotification,
        record: OperationStatusRecord,
    ) -> WebhookDecision:
        rejected = self._check_pending(notification, record)
        if rejected:
            return rejected

        if not notification.plan_id or notification.plan_id != record.plan_id:
            logger.warning(
                "Wrong plan in payload: in marketplace %s, in payload %s",
                record.plan_id,
                notification.plan_id,
            )
            return WebhookDecision.conflict(
                RejectionReason.INCONSISTENT_STATE,
                "plan differs from marketplace record",
            )

        return WebhookDecision.accepted()


# Global reconciler instance
_reconciler: OperationReconciler | None = None


def get_operation_reconciler() -> OperationReconciler:
    """Get the global operation reconciler instance.

    Returns:
        OperationReconciler instance.
    """
    global _reconciler
    if _reconciler is None:
        _reconciler = OperationReconciler()
    return _reconciler
