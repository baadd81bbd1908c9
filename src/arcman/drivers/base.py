"""
Mount driver interface.

Each archive type has one driver implementing ``activate`` (mount) and
``deactivate`` (unmount). Drivers raise on fatal conditions and return a
result carrying notices for advisory ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ClassVar, Optional

import click

from ..errors import ActivationError, ConfigurationError, DeactivationError
from ..models import AppConfig, ArchiveRecord, ArchiveType
from ..preflight import require_tool
from ..process import ProcessRunner

logger = logging.getLogger("arcman.drivers")

SecretPrompt = Callable[[str], str]

# Tried in order until one succeeds
UNMOUNT_COMMANDS = (
    ("fusermount", "-u"),
    ("umount",),
    ("diskutil", "unmount"),
)


def prompt_secret(text: str) -> str:
    """Ask for a secret on the terminal without echo."""
    return click.prompt(text, hide_input=True, default="", show_default=False)


@dataclass
class ActivationResult:
    """Outcome of a mount that did not fail outright.

    ``consistent`` is False when the tool runs but the mount point is still
    empty: not fatal, but not a confirmed mount either.
    """

    mount_point: Optional[Path] = None
    pid: Optional[int] = None
    consistent: bool = True
    notices: list[str] = field(default_factory=list)


@dataclass
class DeactivationResult:
    """Outcome of an unmount.

    ``terminal`` tells the caller to stop: nothing was unmounted and the
    lock marker must be left alone.
    """

    performed: bool = True
    terminal: bool = False
    notices: list[str] = field(default_factory=list)


class MountDriver:
    """Base class for all archive type drivers.

    Subclasses set the class attributes and implement ``activate`` and
    ``deactivate``. ``record.path`` is guaranteed set by the caller.
    """

    archive_type: ClassVar[ArchiveType]
    tool_key: ClassVar[Optional[str]] = None
    requires_mount_point: ClassVar[bool] = False
    writes_lock_marker: ClassVar[bool] = False

    def __init__(
        self,
        config: AppConfig,
        runner: Optional[ProcessRunner] = None,
        prompt: SecretPrompt = prompt_secret,
    ) -> None:
        self.config = config
        self.runner = runner or ProcessRunner()
        self.prompt = prompt

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        raise NotImplementedError

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        raise NotImplementedError

    # -- shared helpers ----------------------------------------------------

    def tool(self) -> str:
        """Usable path of this driver's tool (raises if broken)."""
        return require_tool(self.config, self.tool_key)

    def prepare_mount_point(self, record: ArchiveRecord) -> Path:
        """Return the mount point, creating it if needed.

        Raises:
            ConfigurationError: ``ARCHIVE_<ID>_MOUNTPOINT`` is not set.
        """
        if not record.mount_point.is_set:
            raise ConfigurationError(
                f"Configuration error: {record.mount_point_key} is not set or empty."
            )
        mount_point = Path(record.mount_point.value)
        if not mount_point.is_dir():
            try:
                mount_point.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigurationError(
                    f"Cannot create mount point {mount_point}: {exc}"
                ) from exc
        return mount_point

    def unmount_with_fallbacks(self, record: ArchiveRecord) -> DeactivationResult:
        """Try each platform unmount command until one succeeds.

        Raises:
            DeactivationError: Every command failed or was unavailable.
        """
        mount_point = record.mount_point.value
        for cmd in UNMOUNT_COMMANDS:
            args = [*cmd, mount_point]
            try:
                result = self.runner.run(args)
            except OSError as exc:
                logger.debug("Unmount command %s unavailable: %s", cmd[0], exc)
                continue
            if result.returncode == 0:
                logger.debug("Unmounted %s with %s", mount_point, cmd[0])
                return DeactivationResult()
            logger.debug("%s failed (rc=%d)", " ".join(args), result.returncode)

        raise DeactivationError(
            f"Error unmounting {record.id} ({record.type})"
        )

    def app_managed_deactivate(self, record: ArchiveRecord, app: str, terminal: bool) -> DeactivationResult:
        """Unmount is not possible from here; the app closes its own archives."""
        notice = f"{app} archives are closed via the {app} app."
        logger.warning(notice)
        return DeactivationResult(performed=False, terminal=terminal, notices=[notice])

    def launch_app(self, record: ArchiveRecord, args: list[str], log_name: str) -> ActivationResult:
        """Detached launch followed by the liveness check.

        Raises:
            ActivationError: The process died within the launch delay.
        """
        tool = args[0]
        log_file = self.config.log_dir / log_name
        logger.info("Starting %s for archive %s", tool, record.id)
        try:
            proc = self.runner.launch(args, log_file)
        except OSError as exc:
            raise ActivationError(f"{tool} could not be started: {exc}") from exc

        if not self.runner.wait_alive(proc, self.config.launch_delay):
            raise ActivationError(
                f"{tool} could not be started. See {log_file} for details."
            )
        logger.info("%s successfully started for %s.", tool, record.id)
        return ActivationResult(pid=proc.pid)
