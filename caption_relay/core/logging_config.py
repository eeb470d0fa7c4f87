import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, format: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configure the root logger once for the process and return the package logger.

    `level` falls back to settings.LOG_LEVEL, then INFO for unknown names.
    """
    if level is None:
        from caption_relay.core.config import settings
        level = settings.LOG_LEVEL

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=format, stream=sys.stdout)

    logger = logging.getLogger("caption_relay")
    logger.setLevel(log_level)
    return logger
