import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the package logger.

    Safe to call more than once; existing handlers are replaced so reloads
    do not duplicate output.
    """
    logger = logging.getLogger("docmorph")
    logger.handlers.clear()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
