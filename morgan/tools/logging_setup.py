from __future__ import annotations

import logging
from pathlib import Path
from morgan.config.settings import get_settings

# chatty at DEBUG, and nothing we need from them
_NOISY_LOGGERS = ("urllib3", "sqlalchemy.engine")


def setup_logging(level: str | None = None) -> None:
    s = get_settings()
    log_path = Path(s.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level_name = (level or s.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
