from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from edu_cti_dashboard.core import config

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("urllib3", "httpx")


def configure_logging(
    level: str = config.LOG_LEVEL,
    log_file: Optional[Path] = config.LOG_FILE,
) -> None:
    """
    Configure root logging once per process.
    If log_file is provided, writes to both console and file.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.info(f"Logging to file: {log_file}")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
