"""KeePassXC driver — opens a password database in the desktop app."""

from __future__ import annotations

from ..config import KEEPASSXC
from ..models import ArchiveRecord, ArchiveType
from .base import ActivationResult, DeactivationResult, MountDriver


class KeePassXCDriver(MountDriver):
    """PasswordDB: same launch protocol as Cryptomator.

    Unmount is terminal: the database stays open until closed in the app,
    so the caller must not touch the lock marker or report an unmount.
    """

    archive_type = ArchiveType.PASSWORD_DB
    tool_key = KEEPASSXC

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        return self.launch_app(record, [self.tool(), record.path.value], "keepassxc.log")

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        return self.app_managed_deactivate(record, "KeePassXC", terminal=True)
