"""
TOKEN PULSE — Structured Logging Utility
Uses structlog for production-grade structured logging.
Every event carries the service name, the API instance id (once the app has
one) and the emitting component.
"""
import structlog
import logging
import sys
from typing import Optional
from token_pulse.config.settings import get_settings

# Chatty per-request/per-command stdlib loggers, kept at WARNING and above
QUIET_LOGGERS = ("uvicorn.access", "redis", "aiohttp.access")


def service_context(service: str, instance_id: Optional[str] = None):
    """Processor stamping service and instance onto each event."""

    def add_service_context(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        if instance_id:
            event_dict.setdefault("instance", instance_id)
        return event_dict

    return add_service_context


def setup_logging(instance_id: Optional[str] = None) -> None:
    """Configure structured logging for the entire application."""
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            service_context(settings.app_name, instance_id),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Uvicorn, aiohttp and redis log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str = None) -> structlog.BoundLogger:
    """Get a structured logger whose events are tagged with component=name."""
    component = name or "token_pulse"
    # Initial values stay lazy, so module-level loggers pick up setup_logging()
    return structlog.get_logger(component, component=component)
