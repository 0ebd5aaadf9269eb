"""Client for the Azure Marketplace SaaS fulfillment operations API."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

import httpx
from pydantic import ValidationError

from saas_webhook.config import get_settings
from saas_webhook.marketplace.models import OperationStatusRecord

if TYPE_CHECKING:
    from saas_webhook.config.settings import Settings

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before they actually expire
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class MarketplaceApiError(Exception):
    """Error reaching or reading from the Marketplace API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AccessToken:
    """Azure AD access token for the Marketplace API."""

    value: str
    expires_at: float

    @property
    def is_fresh(self) -> bool:
        return time.monotonic() < self.expires_at - TOKEN_EXPIRY_MARGIN_SECONDS


class MarketplaceApiClient:
    """Read-only client for Marketplace operation status.

    Authenticates as the configured service principal with the OAuth2
    client-credentials grant. The access token is cached until shortly
    before it expires.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Marketplace API client.

        Args:
            settings: Application settings. Defaults to cached settings.
            http_client: Optional HTTP client for testing.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._token: AccessToken | None = None
        self._token_lock = asyncio.Lock()

    @property
    def timeout(self) -> float:
        return self._settings.marketplace_api_timeout_seconds

    def operation_url(self, subscription_id: UUID, operation_id: UUID) -> str:
        """Build the operation status URL for a subscription operation."""
        return (
            f"{self._settings.marketplace_api_base_url}/saas/subscriptions/"
            f"{subscription_id}/operations/{operation_id}"
        )

    async def get_operation_status(
        self,
        subscription_id: UUID,
        operation_id: UUID,
    ) -> OperationStatusRecord:
        """Fetch the current status of a subscription operation.

        Args:
            subscription_id: SaaS subscription ID.
            operation_id: Operation ID.

        Returns:
            OperationStatusRecord from the Marketplace.

        Raises:
            MarketplaceApiError: If the token or the status cannot be obtained.
        """
        token = await self._get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        response = await self._send(
            "GET",
            self.operation_url(subscription_id, operation_id),
            params={"api-version": self._settings.marketplace_api_version},
            headers=headers,
        )

        if response.status_code != 200:
            logger.error(
                "Marketplace API returned %d for operation %s (subscription=%s)",
                response.status_code,
                operation_id,
                subscription_id,
            )
            raise MarketplaceApiError(
                f"Operation status request failed with {response.status_code}",
                status_code=response.status_code,
            )

        try:
            record = OperationStatusRecord(**response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Unreadable operation status for %s: %s", operation_id, e)
            raise MarketplaceApiError(f"Unreadable operation status: {e}") from e

        logger.info(
            "Marketplace operation %s status: %s",
            operation_id,
            record.status.value,
        )
        return record

    async def _get_access_token(self) -> str:
        if self._token and self._token.is_fresh:
            return self._token.value

        async with self._token_lock:
            # Double-check after acquiring lock
            if self._token and self._token.is_fresh:
                return self._token.value

            self._token = await self._request_token()
            return self._token.value

    async def _request_token(self) -> AccessToken:
        settings = self._settings
        if not settings.marketplace_api_client_id or not settings.marketplace_api_tenant_id:
            raise MarketplaceApiError("Marketplace API credentials not configured")

        data = {
            "grant_type": "client_credentials",
            "client_id": settings.marketplace_api_client_id,
            "client_secret": settings.marketplace_api_client_secret.get_secret_value(),
            "scope": f"{settings.marketplace_api_resource_id}/.default",
        }

        response = await self._send("POST", settings.token_endpoint(), data=data)

        if response.status_code != 200:
            error_data = {}
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"error": response.text}
            logger.error(
                "Failed to acquire Marketplace API token: status=%d, error=%s",
                response.status_code,
                error_data.get("error", "unknown"),
            )
            raise MarketplaceApiError(
                f"Token request failed: {error_data.get('error', 'Unknown error')}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            token = AccessToken(
                value=payload["access_token"],
                expires_at=time.monotonic() + int(payload.get("expires_in", 3600)),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise MarketplaceApiError(f"Unreadable token response: {e}") from e

        logger.debug("Acquired Marketplace API access token")
        return token

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self._http_client:
                return await self._http_client.request(
                    method, url, timeout=self.timeout, **kwargs
                )
            async with httpx.AsyncClient() as client:
                return await client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as e:
            logger.error("HTTP error calling Marketplace: %s %s: %s", method, url, e)
            raise MarketplaceApiError(f"HTTP error calling Marketplace: {e}") from e


# Global client instance
_marketplace_client: MarketplaceApiClient | None = None


def get_marketplace_client() -> MarketplaceApiClient:
    """Get the global Marketplace API client instance.

    Returns:
        MarketplaceApiClient instance.
    """
    global _marketplace_client
    if _marketplace_client is None:
        _marketplace_client = MarketplaceApiClient()
    return _marketplace_client
