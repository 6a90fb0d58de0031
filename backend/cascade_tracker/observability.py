"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from cascade_tracker import __version__
from cascade_tracker.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire with instrumentation for the generation and resolution jobs.

    Must be called ONCE at application startup, before any generation or
    polling code runs.

    This function configures Logfire cloud tracking and instruments:
    - PydanticAI agents (cascade text generator)
    - HTTPX clients (Polymarket Gamma API)
    - Python logging (bridges to Logfire)
    - System metrics (CPU, memory, disk)

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="cascade-tracker",
            service_version=__version__,
            environment=settings.environment,
        )

        logfire.instrument_pydantic_ai()
        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        try:
            logfire.instrument_system_metrics()
        except Exception as metrics_error:
            logger.debug(f"System metrics instrumentation skipped: {metrics_error}")

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
