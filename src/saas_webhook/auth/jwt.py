"""Webhook bearer token validation against Azure AD using PyJWT."""

import asyncio
import logging
from typing import Any

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidTokenError,
    PyJWKClientError,
    PyJWTError,
)
from pydantic import ValidationError

from saas_webhook.auth.models import AuthenticationResult, IdentityClaims
from saas_webhook.config import Settings, get_settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Tolerated clock skew between Azure AD and this host for exp/nbf/iat
CLOCK_SKEW_LEEWAY_SECONDS = 60


class WebhookTokenValidator:
    """Authenticates webhook calls by their Azure AD bearer token.

    The token must be signed by the tenant's published keys, unexpired, and
    carry ``aud``, ``tid`` and ``iss`` claims that exactly match the
    configured application and tenant.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        jwks_client: PyJWKClient | None = None,
    ):
        """Initialize the token validator.

        Args:
            settings: Application settings (uses default if not provided)
            jwks_client: Key set client (built from settings if not provided)
        """
        self._settings = settings or get_settings()
        self._jwks_client = jwks_client or PyJWKClient(
            self._settings.jwks_uri(),
            cache_keys=True,
            lifespan=3600,  # Cache keys for 1 hour
        )

    @property
    def application_id(self) -> str:
        """Get the expected token audience."""
        return self._settings.auth_application_id

    @property
    def tenant_id(self) -> str:
        """Get the expected token tenant."""
        return self._settings.auth_tenant_id

    async def authenticate(self, authorization: str | None) -> AuthenticationResult:
        """Authenticate a webhook call from its Authorization header.

        Never raises: a missing, malformed or mismatching credential yields
        a rejected result.

        Args:
            authorization: Raw Authorization header value

        Returns:
            AuthenticationResult with the verdict and decoded claims
        """
        token = self._extract_bearer_token(authorization)
        if token is None:
            logger.warning("Missing or malformed Authorization header")
            return AuthenticationResult.reject("missing_bearer_token")

        try:
            raw_claims = await self._decode(token)
        except ExpiredSignatureError:
            logger.warning("Webhook token has expired")
            return AuthenticationResult.reject("token_expired")
        except PyJWKClientError as e:
            logger.error("Failed to fetch signing key: %s", e)
            return AuthenticationResult.reject("signing_key_unavailable")
        except DecodeError as e:
            logger.warning("Failed to decode webhook token: %s", e)
            return AuthenticationResult.reject("token_unreadable")
        except InvalidTokenError as e:
            logger.warning("Webhook token validation failed: %s", e)
            return AuthenticationResult.reject("token_invalid")
        except PyJWTError as e:
            logger.warning("Webhook token could not be processed: %s", e)
            return AuthenticationResult.reject("token_invalid")

        for name, value in raw_claims.items():
            logger.debug("Token claim %s: %s", name, value)

        try:
            claims = IdentityClaims(**raw_claims)
        except ValidationError as e:
            logger.warning("Webhook token has invalid identity claims: %s", e)
            return AuthenticationResult.reject("claims_invalid")

        return self._check_claims(claims)

    def _extract_bearer_token(self, authorization: str | None) -> str | None:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None
        token = authorization[len(BEARER_PREFIX):].strip()
        return token or None

    async def _decode(self, token: str) -> dict[str, Any]:
        if self._settings.skip_jwt_signature_verification:
            logger.warning("JWT signature verification skipped - development mode only")
            return jwt.decode(token, options={"verify_signature": False})

        # Key set lookups may hit the network on a cache miss
        signing_key = await asyncio.to_thread(
            self._jwks_client.get_signing_key_from_jwt, token
        )
        # aud/iss/tid are compared explicitly in _check_claims
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            leeway=CLOCK_SKEW_LEEWAY_SECONDS,
            options={
                "verify_aud": False,
                "verify_iss": False,
                "verify_exp": True,
                "require": ["exp", "aud", "iss", "tid"],
            },
        )

    def _check_claims(self, claims: IdentityClaims) -> AuthenticationResult:
        if claims.aud != self.application_id:
            logger.warning(
                "Application ID does not match (configured=%s, received=%s)",
                self.application_id,
                claims.aud,
            )
            return AuthenticationResult.reject("audience_mismatch", claims)

        if claims.tid != self.tenant_id:
            logger.warning(
                "Tenant ID does not match (configured=%s, received=%s)",
                self.tenant_id,
                claims.tid,
            )
            return AuthenticationResult.reject("tenant_mismatch", claims)

        expected_issuer = self._settings.expected_issuer(claims.tid)
        if claims.iss != expected_issuer:
            logger.warning(
                "Issuer does not match (expected=%s, received=%s)",
                expected_issuer,
                claims.iss,
            )
            return AuthenticationResult.reject("issuer_mismatch", claims)

        logger.info("Webhook caller authenticated (tenant=%s)", claims.tid)
        return AuthenticationResult.accept(claims)


# Global validator instance (lazily initialized)
_validator: WebhookTokenValidator | None = None


def get_token_validator() -> WebhookTokenValidator:
    """Get the global webhook token validator instance.

    Returns:
        WebhookTokenValidator instance
    """
    global _validator
    if _validator is None:
        _validator = WebhookTokenValidator()
    return _validator
