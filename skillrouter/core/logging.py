from __future__ import annotations

import logging

from skillrouter.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; only the level is refreshed on repeat calls.
    """
    global _configured
    resolved = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    root.setLevel(resolved)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    # httpx logs every request line at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
