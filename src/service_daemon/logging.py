"""Logging configuration for the service daemon."""

import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records, e.g. asyncio's, to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the frames of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str, compact: bool = False):
    """Configure loguru logging for the host process.

    The library itself only emits records; hosts call this once at startup.

    Args:
        log_level: Log level to use (from settings or a CLI override).
        compact: Use a level + message format without timestamps (CLI output).
    """
    log_level = log_level.upper()

    logger.remove()  # Remove default handler
    if compact:
        logger.add(
            sys.stderr,
            format="<level>{level: <8}</level> | <level>{message}</level>",
            level=log_level,
            colorize=True,
        )
    else:
        logger.add(sys.stderr, level=log_level, colorize=True)

    logger.debug(f"Log level set to: {log_level}")

    # Redirect all standard logging to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # asyncio reports unretrieved task exceptions through stdlib logging
    for name in ("asyncio", "service_daemon"):
        logging.getLogger(name).setLevel(log_level)
