"""
Logging Setup.

structlog on top of the stdlib logging tree, configured once per process
from config/settings/logging.yaml. Modules ask for a logger with
get_logger(__name__) and never attach handlers themselves.

JSON records carry: timestamp, level, logger, event, func_name, lineno,
source, plus whatever was passed through ``extra`` or bound contextvars.

Usage:
    from notepad.core.logging import get_logger, log_with_source, setup_logging

    setup_logging(level="DEBUG", format_type="console")
    logger = get_logger(__name__)
    logger.info("Note created", extra={"note_id": note.id})
    log_with_source(logger, "sync", "info", "Sync finished", merged=3)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import Processor

from notepad.core.config import find_project_root, get_app_config
from notepad.core.config_schema import FileHandlerSchema

# Components that tag their records with an explicit ``source``
VALID_SOURCES = frozenset({
    "cli",
    "store",
    "remote",
    "sync",
    "service",
    "events",
    "internal",
    "unknown",
})

# Chatty third-party loggers kept at WARNING whatever the app level
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "httpcore")


def _processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderer: Processor, chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=chain)


def _log_file_handler(settings: FileHandlerSchema, formatter: logging.Formatter) -> logging.Handler:
    """Rotating JSONL file; relative paths land under the project root."""
    path = Path(settings.path)
    if not path.is_absolute():
        path = find_project_root() / path
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Every argument left as None falls back to logging.yaml. Calling it
    again replaces the handlers installed by the previous call.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: 'json' or 'console' for the console handler
        enable_console: Log to stderr
        enable_file_logging: Log JSONL to the configured file
    """
    settings = get_app_config().logging
    level = level or settings.level
    format_type = format_type or settings.format
    if enable_console is None:
        enable_console = settings.handlers.console.enabled
    if enable_file_logging is None:
        enable_file_logging = settings.handlers.file.enabled

    chain = _processors()
    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    as_json = _formatter(structlog.processors.JSONRenderer(), chain)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    if enable_console:
        # stderr keeps command output on stdout clean
        console = logging.StreamHandler(sys.stderr)
        if format_type == "console":
            console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=True), chain))
        else:
            console.setFormatter(as_json)
        root.addHandler(console)

    if enable_file_logging:
        root.addHandler(_log_file_handler(settings.handlers.file, as_json))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Structlog logger for a module, usually get_logger(__name__)."""
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Emit one record tagged with an explicit ``source``.

    Raises:
        AttributeError: If level is not a logger method
    """
    getattr(logger, level.lower())(message, source=source, **kwargs)
