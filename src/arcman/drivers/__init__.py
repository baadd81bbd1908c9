"""
Mount drivers — one per archive type.

Each driver implements the MountDriver interface from ``base``. Adding an
archive type means adding a driver class and listing it in ``DRIVERS``.
"""

from __future__ import annotations

from typing import Optional

from ..errors import ConfigurationError
from ..models import AppConfig, ArchiveRecord, ArchiveType
from ..process import ProcessRunner
from .base import (
    ActivationResult,
    DeactivationResult,
    MountDriver,
    SecretPrompt,
    prompt_secret,
)
from .cryptomator import CryptomatorDriver
from .cryptomator_cli import CryptomatorCLIDriver
from .ecryptfs import EcryptfsDriver
from .gocryptfs import GocryptfsDriver
from .keepassxc import KeePassXCDriver

DRIVERS: dict[ArchiveType, type[MountDriver]] = {
    driver.archive_type: driver
    for driver in (
        CryptomatorDriver,
        CryptomatorCLIDriver,
        GocryptfsDriver,
        EcryptfsDriver,
        KeePassXCDriver,
    )
}


def driver_class(record: ArchiveRecord) -> type[MountDriver]:
    """Driver class for a record.

    Raises:
        ConfigurationError: The type is unset or unknown.
    """
    if not record.type:
        raise ConfigurationError(f"Configuration error: ARCHIVE_{record.id}_TYPE is not set or empty.")
    archive_type = record.archive_type
    if archive_type is None:
        raise ConfigurationError(f"Unknown archive type: {record.type}")
    return DRIVERS[archive_type]


def get_driver(
    record: ArchiveRecord,
    config: AppConfig,
    runner: Optional[ProcessRunner] = None,
    prompt: SecretPrompt = prompt_secret,
) -> MountDriver:
    """Instantiate the driver for a record's archive type."""
    return driver_class(record)(config, runner=runner, prompt=prompt)


__all__ = [
    "ActivationResult",
    "CryptomatorCLIDriver",
    "CryptomatorDriver",
    "DRIVERS",
    "DeactivationResult",
    "EcryptfsDriver",
    "GocryptfsDriver",
    "KeePassXCDriver",
    "MountDriver",
    "driver_class",
    "get_driver",
    "prompt_secret",
]
