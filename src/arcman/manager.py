"""
Archive manager — mount and unmount one archive by ID.

Wraps the drivers with the steps every archive type shares: record
lookup, path check, lock marker handling, and the success log line.
Fatal conditions propagate as ArcmanError subclasses; the CLI reports
them and exits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .drivers import ActivationResult, DeactivationResult, get_driver, prompt_secret
from .drivers.base import SecretPrompt
from .errors import ConfigurationError
from .lockfile import LockCoordinator
from .models import AppConfig, ArchiveRecord
from .process import ProcessRunner, is_mounted
from .registry import Registry

logger = logging.getLogger("arcman.manager")


@dataclass
class MountOutcome:
    """What the CLI needs after a mount: where it is and what to warn about."""

    record: ArchiveRecord
    result: ActivationResult
    warnings: list[str] = field(default_factory=list)

    @property
    def mount_point(self) -> Optional[Path]:
        return self.result.mount_point

    @property
    def browsable(self) -> bool:
        """Mounted, consistent, and exposing a mount point to browse."""
        return self.result.consistent and self.result.mount_point is not None


@dataclass
class UnmountOutcome:
    record: ArchiveRecord
    result: Optional[DeactivationResult] = None
    was_mounted: bool = True
    warnings: list[str] = field(default_factory=list)


class ArchiveManager:
    """Mount/unmount entry points over a registry.

    Args:
        registry: Archives from the config file.
        config: Immutable runtime configuration.
        runner: External process capability (injectable for tests).
        prompt: Secret prompt used by drivers that ask for a password.
        mount_probe: Answers "is this path an active mount point?".
    """

    def __init__(
        self,
        registry: Registry,
        config: AppConfig,
        runner: Optional[ProcessRunner] = None,
        prompt: SecretPrompt = prompt_secret,
        mount_probe: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.runner = runner or ProcessRunner()
        self.prompt = prompt
        self.mount_probe = mount_probe or is_mounted
        self.locks = LockCoordinator(config.lockfile_suffix)

    def _driver(self, record: ArchiveRecord):
        return get_driver(record, self.config, runner=self.runner, prompt=self.prompt)

    @staticmethod
    def _require_path(record: ArchiveRecord) -> str:
        if not record.path.is_set:
            raise ConfigurationError(
                f"Configuration error: {record.path_key} is not set or empty."
            )
        return record.path.value

    @staticmethod
    def _degraded_warnings(record: ArchiveRecord, keys: tuple[str, ...]) -> list[str]:
        """Warnings for configured paths that fell back to their raw value."""
        warnings = []
        for key in keys:
            resolution = getattr(record, key)
            if resolution.degraded:
                config_key = record.path_key if key == "path" else record.mount_point_key
                warning = (
                    f"{config_key} could not be resolved, using '{resolution.value}' as given"
                )
                logger.warning(warning)
                warnings.append(warning)
        return warnings

    def mount(self, archive_id: str) -> MountOutcome:
        """Mount an archive.

        Raises:
            ConfigurationError: Unknown ID, bad type, or missing path.
            ToolUnavailableError: The driver's tool is unusable.
            PrivilegeError: eCryptfs without root.
            ActivationError: The tool failed.
        """
        record = self.registry.get(archive_id)
        driver = self._driver(record)
        archive_path = self._require_path(record)

        warnings = self._degraded_warnings(record, ("path", "mount_point"))
        if self.locks.inspect(archive_path):
            warning = (
                f"Lockfile present ({self.locks.marker_path(archive_path)}). "
                "The archive may have been improperly handled before."
            )
            logger.warning(warning)
            warnings.append(warning)

        logger.info("Mounting %s (%s)", record.id, record.type)
        result = driver.activate(record)
        warnings.extend(result.notices)

        if result.consistent:
            if result.mount_point is not None:
                logger.info("Archive successfully mounted:")
            else:
                logger.info("Application successfully started for archive:")
            logger.info("  %s", record.summary())
        else:
            logger.warning("  %s", record.summary())

        if driver.writes_lock_marker:
            self.locks.acquire(archive_path)

        return MountOutcome(record=record, result=result, warnings=warnings)

    def unmount(self, archive_id: str) -> UnmountOutcome:
        """Unmount an archive.

        Types with a mount point are checked against the mount table first;
        an archive that is not mounted is left alone.

        Raises:
            ConfigurationError: Unknown ID, bad type, or missing mount point.
            ToolUnavailableError: The driver's tool is unusable.
            PrivilegeError: eCryptfs without root.
            DeactivationError: Every unmount attempt failed.
        """
        record = self.registry.get(archive_id)
        driver = self._driver(record)

        warnings: list[str] = []
        if driver.requires_mount_point:
            if not record.mount_point.is_set:
                raise ConfigurationError(
                    f"Configuration error: {record.mount_point_key} is not set or empty."
                )
            warnings = self._degraded_warnings(record, ("mount_point",))
            if not self.mount_probe(record.mount_point.value):
                logger.info("Archive %s is not mounted.", record.id)
                return UnmountOutcome(record=record, was_mounted=False, warnings=warnings)

        logger.info("Unmounting %s", record.id)
        result = driver.deactivate(record)
        outcome = UnmountOutcome(record=record, result=result, warnings=warnings + result.notices)
        if result.terminal:
            return outcome

        if driver.writes_lock_marker and record.path.is_set:
            self.locks.release(record.path.value)
        logger.info("Archive %s successfully unmounted.", record.id)
        return outcome
