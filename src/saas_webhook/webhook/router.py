"""FastAPI router for the Marketplace SaaS webhook endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from saas_webhook.webhook.service import WebhookService, get_webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Webhook"])


@router.post("/webhook")
async def handle_webhook(
    request: Request,
    service: Annotated[WebhookService, Depends(get_webhook_service)],
) -> JSONResponse:
    """Receive a subscription lifecycle notification from the Marketplace.

    The endpoint is reachable anonymously; the caller is authenticated from
    the bearer token it presents. The Marketplace only looks at the status
    code:

    - 200: the notification matches Marketplace evidence
    - 403: the caller could not be authenticated
    - 409: the notification is malformed, stale or inconsistent

    Args:
        request: FastAPI request object.
        service: Webhook service instance.

    Returns:
        Response carrying the decision and, on rejection, a reason code.
    """
    body = await request.body()
    decision = await service.handle(request.headers.get("Authorization"), body)

    if decision.is_accepted:
        content = {"status": "accepted"}
    else:
        content = {"status": "rejected", "reason": decision.reason.value}

    return JSONResponse(status_code=decision.status_code, content=content)
