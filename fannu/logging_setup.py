"""
Logging configuration shared by the web app and the scheduler
"""

import logging
from pathlib import Path
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def setup_logging(log_dir: Optional[Path] = None, level: Optional[str] = None) -> None:
    """Attach stream and file handlers to the root logger. Safe to call more than once."""
    global _configured
    if _configured:
        return

    log_dir = Path(log_dir) if log_dir else settings.BASE_DIR / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "fannu.log", encoding="utf-8"),
        ],
    )
    _configured = True
