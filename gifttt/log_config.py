# gifttt/log_config.py
"""
Centralized logging configuration for gifttt.

 - Root logger writes to stderr.
 - Optionally also to a rotating log file (``[log] file`` / ``--log-file``).
 - Rule ``(log ...)`` output goes through the ``gifttt.rules`` logger.
"""

import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------------------
# Allow runtime log level control via environment variable
LOG_LEVEL_NAME = os.getenv("GIFTTT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None,
                  debug_mode: bool = False) -> logging.Logger:
    """Configure project-wide logging with optional debug mode and log file."""
    if debug_mode:
        resolved = logging.DEBUG
    else:
        name = (level or LOG_LEVEL_NAME).upper()
        resolved = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)

    # Remove all previous handlers (avoid duplicates)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console)

    if log_file:
        path = Path(log_file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Use rotating handler to prevent huge logs
            file_handler = RotatingFileHandler(
                path,
                mode="a",
                maxBytes=5_242_880,  # 5MB
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Could not open log file {path}: {e}")

    # Route Python warnings through logging
    logging.captureWarnings(True)

    logger = logging.getLogger("gifttt")
    logger.debug(f"Logging initialized (level={logging.getLevelName(resolved)}, file={log_file or '-'})")
    return logger
