import logging

from econcomplex.config import LOG_FORMAT, LOG_LEVEL


def setup_logging(level: str = None):
    """
    Set up console logging for the econcomplex loggers.
    Call this once from the application; the library never configures
    handlers on import.
    """
    level = getattr(logging, (level or LOG_LEVEL).upper())

    logger = logging.getLogger("econcomplex")
    logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger


def get_logger(name):
    """
    Get a logger for any module.

    Usage in any file:
        logger = get_logger(__name__)
        logger.debug("Computing proximity")
    """
    return logging.getLogger(name)
