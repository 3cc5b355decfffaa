"""
Structured logging configuration using structlog.
Outputs JSON in production, pretty-printed elsewhere.
Lottery and booking services log one event per state change; dates in event
context are rendered as ISO strings, and slot_context() tags every event of a
lottery run or scheduler job with the (date, slot) it works on.
"""

import logging
import sys
from datetime import date

import structlog
from court_lottery.core.config import get_settings

_configured = False


def render_dates(logger, method_name, event_dict):
    """Target dates and reset stamps go out as ISO strings, not reprs."""
    for key, value in event_dict.items():
        if isinstance(value, date):
            event_dict[key] = value.isoformat()
    return event_dict


def setup_logging() -> None:
    global _configured
    if _configured:
        return

    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        render_dates,
    ]

    if settings.ENVIRONMENT == "production":
        # Machine-parseable output for log shipping
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "development")

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ]
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def slot_context(target_date: date, slot_key: str):
    """Bind the (date, slot) to every event logged inside the with-block."""
    return structlog.contextvars.bound_contextvars(target_date=target_date, slot_key=slot_key)
