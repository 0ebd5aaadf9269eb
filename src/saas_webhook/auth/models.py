"""Pydantic models for webhook caller authentication."""

from pydantic import BaseModel, ConfigDict, Field


class IdentityClaims(BaseModel):
    """Identity claims read from the webhook bearer token."""

    model_config = ConfigDict(extra="ignore")

    aud: str = Field(..., description="Audience (application ID)")
    tid: str = Field(..., description="Tenant ID")
    iss: str = Field(..., description="Issuer")
    exp: int | None = Field(default=None, description="Expiration time (Unix timestamp)")
    iat: int | None = Field(default=None, description="Issued at time (Unix timestamp)")
    azp: str | None = Field(default=None, description="Authorized party (client ID)")
    appid: str | None = Field(default=None, description="Calling application ID (v1 tokens)")
    oid: str | None = Field(default=None, description="Object ID of the calling principal")


class AuthenticationResult(BaseModel):
    """Verdict of the webhook caller authentication."""

    authenticated: bool = Field(..., description="Whether every identity check passed")
    reason: str | None = Field(default=None, description="Why authentication failed")
    claims: IdentityClaims | None = Field(
        default=None,
        description="Claims read from the token, when it could be decoded",
    )

    @classmethod
    def accept(cls, claims: IdentityClaims) -> "AuthenticationResult":
        return cls(authenticated=True, claims=claims)

    @classmethod
    def reject(
        cls, reason: str, claims: IdentityClaims | None = None
    ) -> "AuthenticationResult":
        return cls(authenticated=False, reason=reason, claims=claims)
