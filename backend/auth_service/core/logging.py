"""Loguru setup for the auth service.

One stdout sink at ``LOG_LEVEL``. Records from stdlib loggers (uvicorn,
SQLAlchemy) are forwarded into Loguru by :class:`InterceptHandler`.
SQLAlchemy gets its own threshold, ``SQL_LOG_LEVEL``, so statement logging
can stay quiet while the service logs at DEBUG (``DB_ECHO`` still turns
statement echo on explicitly).
"""

import logging
import os
import sys

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_LOG_LEVEL = os.getenv("SQL_LOG_LEVEL", "WARNING").upper()

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
SQLALCHEMY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

logger.remove()

logger.add(
    sys.stdout,
    level=LOG_LEVEL,
    format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name} | {message}",
    backtrace=True,
    diagnose=False,
)


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records to Loguru.

    Loguru's caller info points at the module that emitted the record, not
    at this handler.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames inside the logging package.
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def route_stdlib_loggers(names, level: str | None = None) -> None:
    """Send the named stdlib loggers through Loguru only.

    Args:
        names: Logger names to reroute.
        level: Threshold for these loggers; left unchanged when None.
    """
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        if level is not None:
            std_logger.setLevel(level)


logging.basicConfig(handlers=[InterceptHandler()], level=LOG_LEVEL)
route_stdlib_loggers(UVICORN_LOGGERS)
route_stdlib_loggers(SQLALCHEMY_LOGGERS, SQL_LOG_LEVEL)
