import logging
import sys

from product_api.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


def configure_logging(level: str = None) -> None:
    """
    Install a single stdout handler on the root logger.
    Safe to call more than once (uvicorn reload, tests).
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if not any(getattr(h, "_product_api", False) for h in root.handlers):
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        h._product_api = True
        root.addHandler(h)
