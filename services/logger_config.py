# services/logger_config.py
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


def _file_handler(formatter: logging.Formatter) -> Optional[logging.Handler]:
    """Rotating file handler, or None when the log path is not writable."""
    try:
        os.makedirs(os.path.dirname(settings.LOG_FILE_PATH) or ".", exist_ok=True)
        handler = RotatingFileHandler(
            settings.LOG_FILE_PATH,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
        )
    except OSError as e:
        print(f"File logging disabled ({settings.LOG_FILE_PATH}): {e}")
        return None
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the chat API logger: full DEBUG trail in the rotating file,
    LOG_LEVEL and above on the console. Safe to call more than once.
    """
    logger = logging.getLogger(settings.LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = _file_handler(formatter)
    if file_handler:
        logger.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(settings.LOG_LEVEL.upper())
    logger.addHandler(console)

    logger.info(
        f"Logging to console at {settings.LOG_LEVEL.upper()}"
        f"{' and ' + settings.LOG_FILE_PATH if file_handler else ''}"
    )
    return logger
