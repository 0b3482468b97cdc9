"""
Structured logging setup.

structlog renders every event as one JSON line (or a console line when
LOG_JSON is off) on top of the stdlib logging machinery, so uvicorn's own
handlers and level filtering keep working.

Modules log like this:

    import structlog
    log = structlog.get_logger(__name__)
    log.info("transaction_created", transaction_id=str(txn.id))

Event names are snake_case verbs. Plaintext amounts and key material are
never passed to a logger.
"""

import logging
import sys

import structlog

from ledger_api.config import settings


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure stdlib logging and structlog once at process start.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL.
        json_output: Render JSON lines. Defaults to settings.LOG_JSON.
    """
    level = (level or settings.LOG_LEVEL).upper()
    if json_output is None:
        json_output = settings.LOG_JSON

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
