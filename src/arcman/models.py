"""
Pydantic models for archives, display blocks, and the runtime configuration.

Records are rebuilt from the config file on every invocation. Nothing
here is persisted; the only durable state arcman owns is the lock marker
on disk (see ``lockfile.py``).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ArchiveType(str, Enum):
    """Archive flavour; selects the mount driver.

    Values are the literal ``ARCHIVE_<ID>_TYPE`` strings of the config file.
    """

    VAULT_APP = "Cryptomator"
    VAULT_APP_CLI = "CryptomatorCLI"
    BLOCK_CIPHER_FS = "gocryptfs"
    KERNEL_STACKED_FS = "ecryptfs"
    PASSWORD_DB = "KeePassXC"

    @classmethod
    def parse(cls, raw: str) -> Optional["ArchiveType"]:
        """Return the matching type, or None for unset/unknown values."""
        try:
            return cls(raw.strip())
        except ValueError:
            return None


class ResolutionKind(str, Enum):
    """Outcome of resolving a configured path."""

    UNSET = "unset"
    RESOLVED = "resolved"
    FALLBACK = "fallback"


class PathResolution(BaseModel):
    """Tagged result of ``paths.resolve``.

    ``FALLBACK`` carries the expanded string verbatim. It may be relative
    and it may not exist; treat it as best effort.
    """

    model_config = ConfigDict(frozen=True)

    kind: ResolutionKind
    value: str = ""

    @property
    def is_set(self) -> bool:
        return self.kind != ResolutionKind.UNSET

    @property
    def degraded(self) -> bool:
        return self.kind == ResolutionKind.FALLBACK

    def __str__(self) -> str:
        return self.value


class ArchiveRecord(BaseModel):
    """One configured archive."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    path: PathResolution
    mount_point: PathResolution
    description: str = ""
    block_id: str = ""

    @property
    def archive_type(self) -> Optional[ArchiveType]:
        """Parsed type, or None when the configured value is unknown."""
        return ArchiveType.parse(self.type)

    @property
    def path_key(self) -> str:
        return f"ARCHIVE_{self.id}_PATH"

    @property
    def mount_point_key(self) -> str:
        return f"ARCHIVE_{self.id}_MOUNTPOINT"

    def summary(self) -> str:
        """One-line ``id | type | description | path [-> mount point]``."""
        line = f"{self.id} | {self.type} | {self.description} | {self.path}"
        if self.mount_point.is_set:
            line += f" -> {self.mount_point}"
        return line


class Block(BaseModel):
    """A named display group. Order follows config declaration order."""

    model_config = ConfigDict(frozen=True)

    id: str
    description: str = ""


class AppConfig(BaseModel):
    """Immutable runtime configuration, built once at startup.

    Passed explicitly to every component that needs tool paths or
    settings; there is no module-level config state.
    """

    model_config = ConfigDict(frozen=True)

    config_file: Optional[Path] = None
    lockfile_suffix: str = ""
    tools: dict[str, str] = Field(default_factory=dict)
    ecryptfs_key_bytes: int = 16
    cryptomator_cli_mounter: str = (
        "org.cryptomator.frontend.fuse.mount.LinuxFuseMountProvider"
    )
    log_file: Path = Path("./archive-manager.log")
    log_dir: Path = Path(".")
    launch_delay: float = 2.0
    cli_launch_delay: float = 3.0

    def tool(self, key: str) -> str:
        """Raw configured path for a tool key (``""`` when unset)."""
        return self.tools.get(key, "")
