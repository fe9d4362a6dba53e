# cartshare/utils/logging.py
import logging
import sys

from cartshare.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    #handler tylko raz na logger, inaczej duplikaty przy reloadzie
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL.upper())
        logger.propagate = False

    return logger


def token_hint(token: str) -> str:
    """Skrocony token do logow - pelny token to sekret."""
    return f"{token[:6]}…" if token else "-"
