"""
Advisory lock marker — ``<archive path>/<LOCKFILE_SUFFIX>``.

The marker only says "possibly in use". It is written after a successful
mount and removed after unmount. There is no exclusion: two invocations
may mount the same archive at once, and a stale marker only produces a
warning.
"""

from __future__ import annotations

import logging
import socket
from datetime import datetime
from pathlib import Path

logger = logging.getLogger("arcman.lockfile")


class LockCoordinator:
    """Write, remove, and inspect lock markers.

    Args:
        suffix: File name of the marker inside the archive directory.
            An empty suffix disables the marker entirely.
    """

    def __init__(self, suffix: str) -> None:
        self.suffix = suffix.strip()

    @property
    def enabled(self) -> bool:
        return bool(self.suffix)

    def marker_path(self, archive_path: str) -> Path:
        return Path(archive_path) / self.suffix

    def acquire(self, archive_path: str) -> None:
        """Write (or overwrite) the marker with a hostname and timestamp."""
        if not self.enabled:
            return
        marker = self.marker_path(archive_path)
        stamp = f"{socket.gethostname()} - {datetime.now().astimezone().strftime('%a %b %d %H:%M:%S %Z %Y')}"
        try:
            marker.write_text(stamp + "\n", encoding="utf-8")
            logger.info(stamp)
        except OSError as exc:
            logger.warning("Could not write lockfile %s: %s", marker, exc)

    def release(self, archive_path: str) -> None:
        """Remove the marker. A missing marker is not an error."""
        if not self.enabled:
            return
        marker = self.marker_path(archive_path)
        try:
            marker.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove lockfile %s: %s", marker, exc)

    def inspect(self, archive_path: str) -> bool:
        """True when the marker is present."""
        if not self.enabled:
            return False
        return self.marker_path(archive_path).is_file()
