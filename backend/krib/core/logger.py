import logging
import sys
from typing import Optional

from krib.core.config import get_settings

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure process-wide logging once. Safe to call repeatedly.
    """
    global _configured
    if _configured:
        return

    resolved = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _configured = True
