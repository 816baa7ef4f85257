# app/core/log_config.py

from __future__ import annotations

import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger once per process.
    Uvicorn installs its own handlers; we only add ours if nothing is attached yet.
    """
    resolved = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
    else:
        root.setLevel(resolved)
