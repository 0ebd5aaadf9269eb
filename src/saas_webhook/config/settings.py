"""Application settings and configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Webhook caller identity (Azure AD application registered in Partner Center)
    auth_application_id: str = Field(
        default="",
        description="Expected 'aud' claim of incoming webhook tokens",
    )
    auth_tenant_id: str = Field(
        default="",
        description="Expected 'tid' claim of incoming webhook tokens",
    )
    auth_authority_host: str = Field(
        default="https://login.microsoftonline.com",
        description="Azure AD authority host used for issuer and key set URLs",
    )
    skip_jwt_signature_verification: bool = Field(
        default=False,
        description="Read token claims without verifying the signature (development only)",
    )

    # Marketplace SaaS fulfillment API (operation status oracle)
    marketplace_api_tenant_id: str = Field(
        default="",
        description="Tenant of the service principal calling the Marketplace API",
    )
    marketplace_api_client_id: str = Field(
        default="",
        description="Client ID of the service principal calling the Marketplace API",
    )
    marketplace_api_client_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Client secret of the service principal calling the Marketplace API",
    )
    marketplace_api_base_url: str = Field(
        default="https://marketplaceapi.microsoft.com/api",
        description="Marketplace SaaS fulfillment API base URL",
    )
    marketplace_api_version: str = Field(
        default="2018-08-31",
        description="Marketplace SaaS fulfillment API version",
    )
    marketplace_api_resource_id: str = Field(
        default="20e940b3-4c77-4b0b-9a53-9e16a1b010a7",
        description="Azure AD resource ID of the Marketplace SaaS API",
    )
    marketplace_api_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for a single Marketplace API call",
    )

    # Server
    webhook_host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    webhook_port: int = Field(
        default=8000,
        description="Server port",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log format",
    )

    # Development Settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    otel_service_name: str = Field(
        default="saas_webhook",
        description="Service name for OpenTelemetry traces",
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP exporter endpoint (gRPC)",
    )
    otel_exporter_otlp_http_endpoint: str = Field(
        default="http://localhost:4318",
        description="OTLP exporter endpoint (HTTP)",
    )
    otel_exporter_type: Literal["otlp", "otlp-http", "console"] = Field(
        default="otlp",
        description="Telemetry exporter type",
    )

    def expected_issuer(self, tenant_id: str) -> str:
        """Build the v2.0 token issuer URL for a tenant."""
        return f"{self.auth_authority_host}/{tenant_id}/v2.0"

    def jwks_uri(self) -> str:
        """Key set used to verify webhook token signatures."""
        return f"{self.auth_authority_host}/{self.auth_tenant_id}/discovery/v2.0/keys"

    def token_endpoint(self) -> str:
        """OAuth2 token endpoint for the Marketplace API service principal."""
        return f"{self.auth_authority_host}/{self.marketplace_api_tenant_id}/oauth2/v2.0/token"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
