import logging
from logging.handlers import RotatingFileHandler

from backend.app.config import INSTANCE_DIR

LOG_PATH = INSTANCE_DIR / "reviews.log"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger under the `reviews` namespace with a rotating file
    handler attached. Safe to call repeatedly for the same name.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            LOG_PATH, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
