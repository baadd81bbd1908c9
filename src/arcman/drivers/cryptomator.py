"""
Cryptomator driver — the desktop vault app.

The app owns the whole mount lifecycle. We only start it with the vault
path and confirm the process survives the launch delay. Closing the vault
happens in the app's UI.
"""

from __future__ import annotations

from ..config import CRYPTOMATOR
from ..models import ArchiveRecord, ArchiveType
from .base import ActivationResult, DeactivationResult, MountDriver


class CryptomatorDriver(MountDriver):
    """VaultApp: detached GUI launch, no mount point, no lock marker."""

    archive_type = ArchiveType.VAULT_APP
    tool_key = CRYPTOMATOR

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        return self.launch_app(
            record, [self.tool(), record.path.value, "vault"], "cryptomator.log"
        )

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        return self.app_managed_deactivate(record, "Cryptomator", terminal=False)
