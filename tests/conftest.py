"""Pytest configuration and fixtures."""

import os
import time
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

# Set test environment variables before importing application modules
os.environ["AUTH_APPLICATION_ID"] = "11111111-1111-1111-1111-111111111111"
os.environ["AUTH_TENANT_ID"] = "22222222-2222-2222-2222-222222222222"
os.environ["MARKETPLACE_API_TENANT_ID"] = "33333333-3333-3333-3333-333333333333"
os.environ["MARKETPLACE_API_CLIENT_ID"] = "44444444-4444-4444-4444-444444444444"
os.environ["MARKETPLACE_API_CLIENT_SECRET"] = "test-client-secret"
os.environ["SKIP_JWT_SIGNATURE_VERIFICATION"] = "false"
os.environ["OTEL_ENABLED"] = "false"

APPLICATION_ID = os.environ["AUTH_APPLICATION_ID"]
TENANT_ID = os.environ["AUTH_TENANT_ID"]
SUBSCRIPTION_ID = "37f9dea2-4345-438f-b0bd-03d40d28c7e0"
OPERATION_ID = "529f53d8-a7ee-4d3f-8d0a-2a87ef9d3bd7"


@pytest.fixture
def test_settings():
    """Provide test settings."""
    from saas_webhook.config import Settings

    return Settings(
        auth_application_id=APPLICATION_ID,
        auth_tenant_id=TENANT_ID,
        marketplace_api_tenant_id="33333333-3333-3333-3333-333333333333",
        marketplace_api_client_id="44444444-4444-4444-4444-444444444444",
        marketplace_api_client_secret="test-client-secret",
        marketplace_api_timeout_seconds=0.5,
        skip_jwt_signature_verification=False,
    )


@pytest.fixture(scope="session")
def signing_key():
    """RSA key standing in for the Azure AD signing key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_client(signing_key):
    """Key set client that always resolves to the test signing key."""
    client = MagicMock()
    client.get_signing_key_from_jwt.return_value = MagicMock(key=signing_key.public_key())
    return client


@pytest.fixture
def make_token(signing_key):
    """Build RS256 webhook tokens; a claim overridden with None is left out."""

    def _make_token(key=None, **overrides) -> str:
        now = int(time.time())
        claims = {
            "aud": APPLICATION_ID,
            "tid": TENANT_ID,
            "iss": f"https://login.microsoftonline.com/{TENANT_ID}/v2.0",
            "iat": now,
            "nbf": now,
            "exp": now + 3600,
            "azp": "marketplace-caller",
        }
        claims.update(overrides)
        claims = {name: value for name, value in claims.items() if value is not None}
        return jwt.encode(claims, key or signing_key, algorithm="RS256")

    return _make_token


@pytest.fixture
def marketplace_client():
    """Marketplace API client mock returning a pending ChangeQuantity operation."""
    from saas_webhook.marketplace import OperationStatusRecord

    client = MagicMock()
    client.get_operation_status = AsyncMock(
        return_value=OperationStatusRecord(status="InProgress", quantity=5)
    )
    return client


@pytest.fixture
def change_quantity_payload():
    """Webhook body for a ChangeQuantity notification."""
    return {
        "id": OPERATION_ID,
        "activityId": "be750acb-00aa-4a02-86bc-476cbe66d7fa",
        "subscriptionId": SUBSCRIPTION_ID,
        "publisherId": "contoso",
        "offerId": "offer1",
        "planId": "silver",
        "quantity": 5,
        "timeStamp": "2023-02-10T18:48:58.4449937Z",
        "action": "ChangeQuantity",
        "status": "InProgress",
        "operationRequestSource": "Azure",
    }
