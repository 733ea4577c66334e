import logging
import os

from .config import LOG_LEVEL_ENV


def level_from_env(default: str = "INFO") -> str:
    """Log level named by the environment, or `default` if it is unset or unknown."""
    level = os.environ.get(LOG_LEVEL_ENV, default).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return default
    return level


# -----------------------
# Logger Configuration
# -----------------------
logger = logging.getLogger("market_insights")
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level_from_env())
