"""Logging configuration for the marketplace domain.

stdlib logging carries the output (console, plus rotating files outside
tests); structlog builds the event dicts on top of it. Webhook handlers bind
the Stripe event id and type with ``add_context`` so every line logged while
a delivery is in flight can be traced back to it.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

JSON_ENVIRONMENTS = frozenset({"production", "staging"})

QUIET_LOGGERS = ("protean", "stripe", "urllib3", "asyncio")

# Keys that must never reach a log sink, whatever a caller binds
REDACTED_KEYS = frozenset({"stripe_signature", "webhook_secret", "api_key", "authorization"})

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def get_environment() -> str:
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or os.getenv("ENV") or "development").lower()


def get_log_level() -> str:
    """LOG_LEVEL wins; otherwise the level follows the environment."""
    return os.getenv("LOG_LEVEL", LEVEL_BY_ENVIRONMENT.get(get_environment(), "INFO"))


def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path, maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str = "logs", log_file_prefix: str = "marketplace") -> None:
    log_level = get_log_level()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setLevel(log_level)

    if get_environment() != "test":
        directory = Path(log_dir)
        directory.mkdir(exist_ok=True)
        handlers.append(_rotating_handler(directory / f"{log_file_prefix}.log", log_level))
        handlers.append(_rotating_handler(directory / f"{log_file_prefix}_error.log", logging.ERROR))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = handlers

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_secrets(_, __, event_dict: dict) -> dict:
    """structlog processor: mask credential-bearing keys."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def _renderer(environment: str):
    if environment in JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=environment == "development",
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def setup_structlog() -> None:
    environment = get_environment()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            _renderer(environment),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str = "logs", log_file_prefix: str = "marketplace") -> None:
    setup_stdlib_logging(log_dir=log_dir, log_file_prefix=log_file_prefix)
    setup_structlog()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def add_context(**kwargs: Any) -> None:
    """Bind values into every log line until ``clear_context`` is called."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
