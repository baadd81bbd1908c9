"""
gocryptfs driver — FUSE-mounted encrypted directory.

``gocryptfs <cipher dir> <mount point>`` runs in the foreground of the
terminal and asks for the password itself.
"""

from __future__ import annotations

import logging

from ..config import GOCRYPTFS
from ..errors import ActivationError
from ..models import ArchiveRecord, ArchiveType
from .base import ActivationResult, DeactivationResult, MountDriver

logger = logging.getLogger("arcman.drivers.gocryptfs")


class GocryptfsDriver(MountDriver):
    """BlockCipherFS: synchronous mount, fallback unmount chain."""

    archive_type = ArchiveType.BLOCK_CIPHER_FS
    tool_key = GOCRYPTFS
    requires_mount_point = True
    writes_lock_marker = True

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        tool = self.tool()
        mount_point = self.prepare_mount_point(record)
        try:
            result = self.runner.run([tool, record.path.value, str(mount_point)])
        except OSError as exc:
            raise ActivationError(f"Error mounting {record.id} (gocryptfs): {exc}") from exc
        if result.returncode != 0:
            raise ActivationError(f"Error mounting {record.id} (gocryptfs)")
        return ActivationResult(mount_point=mount_point)

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        return self.unmount_with_fallbacks(record)
