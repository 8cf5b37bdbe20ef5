import logging
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    # uvicorn --reload re-imports the app; don't stack handlers
    if any(getattr(h, "_marketplace", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._marketplace = True  # type: ignore[attr-defined]
    root.addHandler(handler)
