"""Logging configuration for the store.

Everything goes through the stdlib root logger with structlog on top for
key-value events. Besides console and the general log file, two files are
kept for operators:

- ``stock_audit.log`` receives ledger movements, catalog changes and cancellations
- ``gymstore_error.log`` receives errors, which is where partial checkout
  failures and reconciliation mismatches end up

Production and staging render JSON; everything else renders for humans.
Under the ``test`` environment no files are written.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

import structlog

from store.settings import settings

SERVICE_NAME = "gymstore"

# Loggers whose records also go to the stock audit file
AUDITED_LOGGERS = ("store.stock.ledger", "store.stock.catalog", "store.order.cancellation")

_LEVELS_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_MAX_BYTES = 10 * 1024 * 1024


def get_log_level() -> str:
    return (settings.log_level or _LEVELS_BY_ENV.get(settings.environment, "INFO")).upper()


def _rotating(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(filename=path, maxBytes=_MAX_BYTES, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | Path | None = None) -> None:
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    for name in AUDITED_LOGGERS:
        audited = logging.getLogger(name)
        audited.handlers = [h for h in audited.handlers if not isinstance(h, logging.handlers.RotatingFileHandler)]

    if settings.environment != "test":
        log_dir = Path(log_dir or settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        root_logger.addHandler(_rotating(log_dir / f"{SERVICE_NAME}.log", log_level))
        root_logger.addHandler(_rotating(log_dir / f"{SERVICE_NAME}_error.log", logging.ERROR))

        audit_handler = _rotating(log_dir / "stock_audit.log", logging.INFO)
        for name in AUDITED_LOGGERS:
            logging.getLogger(name).addHandler(audit_handler)

    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def add_service(logger, method_name, event_dict):
    """Stamp every event with the service and environment it came from."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def setup_structlog() -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.RichTracebackFormatter(max_frames=2),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | Path | None = None) -> None:
    setup_stdlib_logging(log_dir)
    setup_structlog()


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
