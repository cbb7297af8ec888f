"""structlog configuration shared by the SDK and its host app."""

import logging

import structlog


def configure_logging(json_output: bool = False, level: int = logging.INFO) -> None:
    """Configure structlog once at startup.

    JSON output is meant for log shipping; the console renderer is for
    local development.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
