"""structlog configuration.

Learn: Every module does `logger = structlog.get_logger()` and logs dotted
event names with keyword context (`logger.info("auth.signed_out", user_id=...)`).
This module decides how those events are rendered: colourful console output
while developing, one JSON object per line everywhere else.

The request-id middleware binds `request_id` into structlog's contextvars,
and merge_contextvars stitches it into every entry for that request.
"""

import logging

import structlog


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog once at process start-up."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
