"""Data models for Azure Marketplace SaaS webhook reconciliation."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator


class WebhookAction(str, Enum):
    """Actions the Marketplace reports to the SaaS webhook."""

    CHANGE_QUANTITY = "ChangeQuantity"
    CHANGE_PLAN = "ChangePlan"
    UNSUBSCRIBE = "Unsubscribe"
    UNSUBSCRIBED = "Unsubscribed"
    SUSPEND = "Suspend"
    REINSTATE = "Reinstate"
    RENEW = "Renew"


class OperationStatus(str, Enum):
    """Status of a Marketplace operation as reported by the operations API."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"
    CONFLICT = "Conflict"


# Operations that have not reached a terminal status yet
PENDING_STATUSES = frozenset({OperationStatus.NOT_STARTED, OperationStatus.IN_PROGRESS})


class WebhookNotification(BaseModel):
    """Notification posted by the Marketplace to the webhook.

    Only documented webhook fields are accepted; anything else is a
    parse error.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    operation_id: UUID = Field(..., alias="id", description="Operation ID")
    subscription_id: UUID = Field(
        ...,
        alias="subscriptionId",
        description="SaaS subscription ID",
    )
    action: WebhookAction = Field(..., description="Reported action")
    quantity: StrictInt | None = Field(
        None,
        ge=0,
        description="Requested seat quantity (ChangeQuantity only)",
    )
    plan_id: str | None = Field(None, alias="planId", description="Requested plan")
    activity_id: str | None = Field(None, alias="activityId", description="Activity ID")
    publisher_id: str | None = Field(None, alias="publisherId", description="Publisher ID")
    offer_id: str | None = Field(None, alias="offerId", description="Offer ID")
    time_stamp: str | None = Field(None, alias="timeStamp", description="Event timestamp")
    status: str | None = Field(None, description="Operation status claimed by the caller")
    operation_request_source: str | None = Field(
        None,
        alias="operationRequestSource",
        description="Who initiated the operation (Azure or Partner)",
    )
    subscription: dict[str, Any] | None = Field(
        None,
        description="Subscription snapshot sent with newer API versions",
    )
    purchase_token: str | None = Field(
        None,
        alias="purchaseToken",
        description="Purchase identification token",
    )

    @model_validator(mode="after")
    def _quantity_required_for_change_quantity(self) -> "WebhookNotification":
        if self.action == WebhookAction.CHANGE_QUANTITY and self.quantity is None:
            raise ValueError("quantity is required for ChangeQuantity")
        return self


class OperationStatusRecord(BaseModel):
    """Operation as returned by the Marketplace operations API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: OperationStatus = Field(..., description="Current operation status")
    operation_id: UUID | None = Field(None, alias="id", description="Operation ID")
    subscription_id: UUID | None = Field(
        None,
        alias="subscriptionId",
        description="SaaS subscription ID",
    )
    action: str | None = Field(None, description="Operation action")
    quantity: int | None = Field(None, description="Authoritative seat quantity")
    plan_id: str | None = Field(None, alias="planId", description="Authoritative plan")
    offer_id: str | None = Field(None, alias="offerId", description="Offer ID")
    publisher_id: str | None = Field(None, alias="publisherId", description="Publisher ID")

    @property
    def is_pending(self) -> bool:
        """Whether the operation can still be accepted or rejected."""
        return self.status in PENDING_STATUSES


class DecisionOutcome(str, Enum):
    """Externally visible outcome of a webhook call."""

    ACCEPTED = "accepted"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"


class RejectionReason(str, Enum):
    """Why a webhook call was rejected."""

    AUTHENTICATION_FAILURE = "authentication_failure"
    PAYLOAD_MALFORMED = "payload_malformed"
    ORACLE_UNAVAILABLE = "oracle_unavailable"
    INCONSISTENT_STATE = "inconsistent_state"
    UNRECOGNIZED_ACTION = "unrecognized_action"


_STATUS_CODES = {
    DecisionOutcome.ACCEPTED: 200,
    DecisionOutcome.FORBIDDEN: 403,
    DecisionOutcome.CONFLICT: 409,
}


class WebhookDecision(BaseModel):
    """Decision taken for a single webhook call."""

    outcome: DecisionOutcome = Field(..., description="Decision outcome")
    reason: RejectionReason | None = Field(None, description="Rejection reason")
    detail: str | None = Field(None, description="Human readable detail for logs")

    @classmethod
    def accepted(cls) -> "WebhookDecision":
        return cls(outcome=DecisionOutcome.ACCEPTED)

    @classmethod
    def forbidden(cls, detail: str | None = None) -> "WebhookDecision":
        return cls(
            outcome=DecisionOutcome.FORBIDDEN,
            reason=RejectionReason.AUTHENTICATION_FAILURE,
            detail=detail,
        )

    @classmethod
    def conflict(cls, reason: RejectionReason, detail: str | None = None) -> "WebhookDecision":
        return cls(outcome=DecisionOutcome.CONFLICT, reason=reason, detail=detail)

    @property
    def is_accepted(self) -> bool:
        return self.outcome == DecisionOutcome.ACCEPTED

    @property
    def status_code(self) -> int:
        """HTTP status code reported back to the Marketplace."""
        return _STATUS_CODES[self.outcome]
