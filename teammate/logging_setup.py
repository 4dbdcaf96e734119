"""File-backed application logging (``logs/system.log``)."""

from __future__ import annotations

import logging
from pathlib import Path


LOG_FILE_NAME = "system.log"
_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(log_dir: str = "logs", level: int = logging.INFO) -> Path:
    """Attach an append-mode file handler for *log_dir*/system.log to the root logger.

    Calling it again with the same directory does not add a second handler.

    Returns:
        Path of the log file.
    """
    log_path = (Path(log_dir) / LOG_FILE_NAME).resolve()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return log_path

    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    return log_path
