from __future__ import annotations

import logging

from app.config import settings

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once; later calls only adjust the level."""
    global _configured
    resolved = (level or settings.log_level or "INFO").upper()
    if not _configured:
        logging.basicConfig(level=resolved, format=_FORMAT)
        _configured = True
    logging.getLogger().setLevel(resolved)
    # Per-request access lines drown out tick summaries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
