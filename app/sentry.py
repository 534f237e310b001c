"""
Sentry initialization for centralized error tracking.
Observes reality, never controls logic.
"""
import logging
from typing import Dict, Any

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from app.config import config
from app.logger import logger


def initialize_sentry():
    """Initialize Sentry SDK if DSN is configured."""
    if not config.has_sentry:
        logger.info("Sentry not configured, skipping initialization")
        return

    try:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            environment=config.ENVIRONMENT,
            integrations=[
                AsyncioIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
            before_send=_enrich_sentry_event
        )

        logger.info("Sentry initialized for error tracking")

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


def _enrich_sentry_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with system context and group upstream failures by status."""
    event.setdefault("tags", {})
    event["tags"]["system"] = "inventory-cache"
    event["tags"]["environment"] = config.ENVIRONMENT

    if hint and "exc_info" in hint:
        exc = hint["exc_info"][1]
        status = getattr(exc, "status", None)
        if status is not None:
            event["tags"]["upstream_status"] = str(status)

    return event


def capture_revalidation_failure(error: Exception, context: Dict[str, Any]):
    """Report a background revalidation failure that was not surfaced to any caller."""
    if not config.has_sentry:
        return

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("operation", "inventory_revalidation")
        scope.set_extra("context", context)
        scope.set_level("error")
        sentry_sdk.capture_exception(error)
