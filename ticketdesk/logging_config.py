import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stdout handler to the package logger (idempotent)"""
    from ticketdesk.config import settings

    package_logger = logging.getLogger("ticketdesk")
    package_logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
