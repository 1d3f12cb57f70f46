import inspect
import logging
import sys

from loguru import logger

from src.constants import ENV, LOG_FORMAT, LOG_LEVEL, PRODUCT

__all__ = ["logger", "InterceptHandler"]


class InterceptHandler(logging.Handler):
    """Route stdlib logging records from the curation library into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            is_logging = filename == logging.__file__
            is_frozen = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (is_logging or is_frozen):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

logger.remove()  # Remove default configuration
if ENV == "dev":
    logger.add(f"/tmp/{PRODUCT}-{ENV}.log", level=LOG_LEVEL)
if LOG_FORMAT == "json":
    logger.add(sys.stdout, level=LOG_LEVEL, backtrace=True, diagnose=False, serialize=True)
else:
    logger.add(sys.stdout, level=LOG_LEVEL, backtrace=True, diagnose=False)
logger.debug("Logging setup completed")
