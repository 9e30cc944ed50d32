"""
Logging Configuration
Loguru sinks with per-operation document/user context
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from loguru import logger as loguru_logger

from docvault.core.config import Settings, settings

# Context fields rendered on every line; "-" when no operation is bound
CONTEXT_FIELDS = ("document_id", "user_id")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "doc={extra[document_id]} user={extra[user_id]} - <level>{message}</level>"
)

# Stdlib loggers routed through loguru
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi")

# Chatty driver loggers capped at WARNING
QUIET_LOGGERS = ("sqlalchemy", "aiosqlite", "asyncio", "urllib3")


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(config: Settings = settings) -> None:
    """
    Setup application logging

    DEBUG gets colored console lines; otherwise every record is emitted as
    JSON with the bound document/user context under ``extra``. LOG_FILE adds
    a rotating JSON file.
    """
    loguru_logger.remove()
    loguru_logger.configure(extra={field: "-" for field in CONTEXT_FIELDS})

    if config.DEBUG:
        loguru_logger.add(sys.stdout, format=CONSOLE_FORMAT, level="DEBUG", colorize=True)
    else:
        loguru_logger.add(sys.stdout, level=config.LOG_LEVEL, serialize=True)

    if config.LOG_FILE:
        loguru_logger.add(
            config.LOG_FILE,
            rotation="100 MB",
            retention="7 days",
            compression="zip",
            level=config.LOG_LEVEL,
            serialize=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def log_context(document_id: Optional[Any] = None, user_id: Optional[Any] = None) -> Iterator[None]:
    """Bind document and user ids to every record logged inside the block"""
    fields = {
        name: str(value)
        for name, value in (("document_id", document_id), ("user_id", user_id))
        if value is not None
    }
    with loguru_logger.contextualize(**fields):
        yield


def get_logger(name: str) -> Any:
    """Get a logger instance"""
    return loguru_logger.bind(name=name)
