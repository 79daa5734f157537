"""Logging setup shared by the API and the CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_FILE_NAME = "multichat.log"
_CONSOLE_HANDLER_NAME = "multichat.console"


def setup_logging(log_dir: Optional[str], level: int = logging.INFO) -> logging.Logger:
    """Configure console logging and, when ``log_dir`` is given, a log file.

    Calling it again adds no duplicate handlers.
    """
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    if not any(h.get_name() == _CONSOLE_HANDLER_NAME for h in root.handlers):
        console = logging.StreamHandler()
        console.set_name(_CONSOLE_HANDLER_NAME)
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        log_file = (path / LOG_FILE_NAME).resolve()
        if not any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file for h in root.handlers
        ):
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    # Suppress urllib3 connection logs (they contain endpoint URLs)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return root
