"""Webhook caller authentication.

Verifies that an incoming webhook call carries an Azure AD token issued to
the configured application in the configured tenant.
"""

from saas_webhook.auth.jwt import WebhookTokenValidator, get_token_validator
from saas_webhook.auth.models import AuthenticationResult, IdentityClaims

__all__ = [
    "AuthenticationResult",
    "IdentityClaims",
    "WebhookTokenValidator",
    "get_token_validator",
]
