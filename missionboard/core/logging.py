"""Observability: stdlib logging routed through Pydantic Logfire, plus service spans.

Modules log with `logging.getLogger(__name__)` and pass structured fields in `extra`:

    logger.info("Mission accepted", extra={"mission_id": "12", "employee_id": "7"})

Records go to the console and, when LOGFIRE_TOKEN is set, to Logfire. Service functions
wrap their body in `span("<module>.<function>")`.
"""

import logging

import logfire
from fastapi import FastAPI

from missionboard.core.config import settings


NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "apscheduler.executors.default")


def configure_logfire() -> None:
    """Configure Logfire and attach it to the root logger."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="missionboard",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logfire.LogfireLoggingHandler(), logging.StreamHandler()],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"environment": settings.environment, "logfire": bool(settings.logfire_token)},
    )


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the app."""
    logfire.instrument_fastapi(app)


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span around a service operation."""
    return logfire.span(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Log `message` at `level` with keyword arguments as structured fields."""
    getattr(logger, level.lower())(message, extra=context)
