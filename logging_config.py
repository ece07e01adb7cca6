"""
Logging setup: everything (our modules, uvicorn, psycopg) ends up in loguru.
"""
import sys
import logging

from loguru import logger

import config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
PLAIN_FORMAT = "{time} | {level} | {name}:{function}:{line} | {message}"


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging():
    logger.remove()

    if config.LOG_JSON_FORMAT and config.IS_PRODUCTION:
        logger.add(sys.stdout, format=PLAIN_FORMAT, level=config.LOG_LEVEL, serialize=True)
    else:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=config.LOG_LEVEL, colorize=True)

    if config.IS_PRODUCTION:
        logger.add(
            "logs/app_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level=config.LOG_LEVEL,
            format=PLAIN_FORMAT,
            serialize=config.LOG_JSON_FORMAT,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ["uvicorn", "uvicorn.access", "uvicorn.error", "psycopg.pool"]:
        logging.getLogger(name).handlers = [InterceptHandler()]

    logger.info(f"Logging configured: env={config.ENVIRONMENT}, level={config.LOG_LEVEL}, json={config.LOG_JSON_FORMAT}")
