# pos_edge/core/logger.py
import logging

from pos_edge.core.config import settings

LOGGER_NAME = "pos_edge"

logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the ``pos_edge`` logger.

    Safe to call more than once; the handler is only added the first time.
    Module loggers created with ``logging.getLogger(__name__)`` under the
    ``pos_edge`` package propagate here.
    """
    lvl = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(lvl)

    if not logger.handlers:
        formatter = logging.Formatter("[%(asctime)s] [%(levelname)s] %(name)s: %(message)s")
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
