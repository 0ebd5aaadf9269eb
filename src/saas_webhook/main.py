"""Main entry point for the SaaS webhook."""

import logging
import sys

import structlog
import uvicorn
from dotenv import load_dotenv

from saas_webhook.config import get_settings

TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_log_formatter(log_format: str) -> logging.Formatter:
    """Create the formatter for stdlib log records.

    ``json`` renders one JSON object per line with ``time``, ``level``,
    ``logger``, ``message`` and any ``extra`` fields; anything else gives
    the plain text format.
    """
    if log_format != "json":
        return logging.Formatter(TEXT_LOG_FORMAT)

    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[
            structlog.processors.TimeStamper(fmt="iso", key="time"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.ExtraAdder(),
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
        ],
    )


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_log_formatter(settings.log_format))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        handlers=[handler],
    )


def main() -> None:
    """Run the SaaS webhook server."""
    # Load environment variables from .env file
    load_dotenv()

    setup_logging()

    settings = get_settings()
    logger = logging.getLogger(__name__)

    # Tracing must be set up before the app is created
    from saas_webhook.telemetry import setup_telemetry, shutdown_telemetry

    setup_telemetry()

    logger.info(
        "Starting SaaS webhook",
        extra={
            "host": settings.webhook_host,
            "port": settings.webhook_port,
            "application_id": settings.auth_application_id,
            "tenant_id": settings.auth_tenant_id,
            "otel_enabled": settings.otel_enabled,
        },
    )
    if settings.skip_jwt_signature_verification:
        logger.warning("Webhook token signatures are NOT verified (development mode)")

    from saas_webhook.webhook import create_app

    app = create_app()

    try:
        uvicorn.run(
            app,
            host=settings.webhook_host,
            port=settings.webhook_port,
            log_level=settings.log_level.lower(),
        )
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    main()
