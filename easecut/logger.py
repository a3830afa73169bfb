"""Logging setup for the EaseCut CLI and web server.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the entry points.  The level comes from the
LOG_LEVEL environment variable unless ``--verbose`` forces DEBUG.
"""

import logging
import os
import sys

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """Get log level from environment variable."""
    level_str = os.environ.get("LOG_LEVEL", "WARNING").upper()
    return LOG_LEVEL_MAP.get(level_str, logging.WARNING)


class EaseCutFormatter(logging.Formatter):
    """Clean INFO lines; time and level on everything else."""

    FORMATS = {
        logging.DEBUG: "%(asctime)s [DEBUG] %(name)s: %(message)s",
        logging.INFO: "%(message)s",
        logging.WARNING: "%(asctime)s [WARN] %(message)s",
        logging.ERROR: "%(asctime)s [ERROR] %(message)s",
        logging.CRITICAL: "%(asctime)s [CRITICAL] %(message)s",
    }

    def __init__(self):
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt, datefmt="%H:%M:%S")
        return formatter.format(record)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the ``easecut`` logger (idempotent)."""
    root = logging.getLogger("easecut")
    root.setLevel(logging.DEBUG if verbose else get_log_level())
    if not any(getattr(h, "_easecut", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(EaseCutFormatter())
        handler._easecut = True
        root.addHandler(handler)
    return root
