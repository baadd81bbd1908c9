"""Logging setup: timestamped log file plus informational console output."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _BelowWarning(logging.Filter):
    # warnings and errors reach the terminal through the CLI's rich console
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def setup_logging(log_file: Path, verbose: bool = False) -> None:
    """Configure file and console logging for one invocation.

    The log file is truncated on every run. Console output shows
    informational messages only.
    """
    root = logging.getLogger("arcman")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    except OSError as exc:
        print(f"WARNING: cannot open log file {log_file}: {exc}", file=sys.stderr)
    else:
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    console.addFilter(_BelowWarning())
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(console)

    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
