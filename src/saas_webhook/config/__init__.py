"""Configuration module for the SaaS webhook."""

from saas_webhook.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
