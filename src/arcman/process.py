"""
External process capability and mount-state probe.

Drivers never call ``subprocess`` directly; they go through a
ProcessRunner so tests can substitute a fake. No timeouts are applied to
synchronous calls: a hung tool hangs the command until Ctrl-C.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger("arcman.process")


class ProcessRunner:
    """Launch and run external tools."""

    def launch(
        self,
        args: Sequence[str],
        log_file: Path,
        stdin_data: Optional[str] = None,
    ) -> subprocess.Popen:
        """Start a detached process with its output redirected to a log file.

        Args:
            args: Command line.
            log_file: Receives stdout and stderr (truncated first).
            stdin_data: Written to the child's stdin, then stdin is closed.

        Returns:
            The running process handle.
        """
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Launching %s (log: %s)", args[0], log_file)
        with open(log_file, "wb") as log:
            proc = subprocess.Popen(
                list(args),
                stdin=subprocess.PIPE if stdin_data is not None else subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        if stdin_data is not None and proc.stdin is not None:
            try:
                proc.stdin.write(stdin_data.encode("utf-8"))
                proc.stdin.close()
            except BrokenPipeError:
                logger.debug("%s closed stdin early", args[0])
        return proc

    def is_alive(self, proc: subprocess.Popen) -> bool:
        return proc.poll() is None

    def wait_alive(self, proc: subprocess.Popen, delay: float) -> bool:
        """Sleep ``delay`` seconds, then report whether ``proc`` still runs.

        A crude readiness check: a tool that is merely slow to start
        looks the same as one that is healthy.
        """
        time.sleep(delay)
        return self.is_alive(proc)

    def run(
        self,
        args: Sequence[str],
        input: Optional[str] = None,
        capture: bool = False,
    ) -> subprocess.CompletedProcess:
        """Run a command to completion.

        With ``capture`` the child's stdout is returned as text and its
        stderr is discarded; otherwise the child shares the terminal.

        Raises:
            OSError: The executable could not be started.
        """
        logger.debug("Running %s", " ".join(args))
        return subprocess.run(
            list(args),
            input=input,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.DEVNULL if capture else None,
        )


def is_privileged() -> bool:
    """Whether the effective user is root."""
    return os.geteuid() == 0


def is_mounted(mount_point: str) -> bool:
    """Check whether ``mount_point`` is an active mount point.

    Uses ``/proc/mounts`` on Linux, the ``mount`` command elsewhere.
    """
    if not mount_point:
        return False
    target = os.path.normpath(mount_point)

    proc_mounts = Path("/proc/mounts")
    if proc_mounts.exists():
        try:
            for line in proc_mounts.read_text(encoding="utf-8").splitlines():
                parts = line.split()
                if len(parts) >= 2 and _unescape_mount_field(parts[1]) == target:
                    return True
        except OSError as exc:
            logger.debug("Cannot read /proc/mounts: %s", exc)
        return False

    try:
        result = subprocess.run(["mount"], capture_output=True, text=True, timeout=5)
        return f" on {target} " in result.stdout or f" on {target}\n" in result.stdout
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        logger.warning("No suitable tool found for mount verification!")
        return False


def _unescape_mount_field(field: str) -> str:
    # /proc/mounts escapes space, tab, newline and backslash as octal
    return (
        field.replace("\\040", " ")
        .replace("\\011", "\t")
        .replace("\\012", "\n")
        .replace("\\134", "\\")
    )


def has_entries(path: Path) -> bool:
    """True when ``path`` is a directory with at least one entry."""
    try:
        with os.scandir(path) as it:
            return any(True for _ in it)
    except OSError:
        return False
