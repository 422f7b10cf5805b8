import logging
import sys

from backend.core import config

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Attach a single stdout handler to the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(level or config.LOG_LEVEL)

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)

    # Silence the discovery cache warning emitted by googleapiclient.
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

    _configured = True
