import logging

from schoolportal.core import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging() -> logging.Logger:
    level = getattr(logging, config.LOG_LEVEL, logging.INFO)

    logger = logging.getLogger("schoolportal")
    logger.setLevel(level)

    # Avoid duplicate console handlers when the app is reloaded
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(level)
        logger.addHandler(handler)

    logger.propagate = False
    return logger
