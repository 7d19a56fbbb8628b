# byok/app/core/logging_config.py
import logging
from typing import Optional

from byok.app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the service and the init script."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    # httpx logs every request URL at INFO; operation names are noise there
    logging.getLogger("httpx").setLevel(logging.WARNING)
