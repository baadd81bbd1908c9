"""
cryptomator-cli driver — headless Cryptomator with a FUSE mount.

Mount pipes the vault password to ``cryptomator-cli unlock --password:stdin``
and leaves the process running in the background; the archive stays
mounted as long as it lives. After the launch delay two things are
checked: the process is alive, and the mount point has content.

    alive + content   -> mounted
    alive + empty     -> inconsistent, warned about but not fatal
    dead              -> mount failed
"""

from __future__ import annotations

import logging

from ..config import CRYPTOMATOR_CLI
from ..errors import ActivationError, DeactivationError
from ..models import ArchiveRecord, ArchiveType
from ..process import has_entries
from .base import ActivationResult, DeactivationResult, MountDriver

logger = logging.getLogger("arcman.drivers.cryptomator_cli")


class CryptomatorCLIDriver(MountDriver):
    """VaultAppCLI: secret on stdin, detached launch, lock sub-command."""

    archive_type = ArchiveType.VAULT_APP_CLI
    tool_key = CRYPTOMATOR_CLI
    requires_mount_point = True
    writes_lock_marker = True

    def build_unlock_args(self, tool: str, record: ArchiveRecord) -> list[str]:
        return [
            tool,
            "unlock",
            "--password:stdin",
            f"--mountPoint={record.mount_point.value}",
            f"--mounter={self.config.cryptomator_cli_mounter}",
            record.path.value,
        ]

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        tool = self.tool()
        mount_point = self.prepare_mount_point(record)

        password = self.prompt("Enter password")
        log_file = self.config.log_dir / "cryptomator-cli.log"
        try:
            proc = self.runner.launch(
                self.build_unlock_args(tool, record), log_file, stdin_data=password + "\n"
            )
        except OSError as exc:
            raise ActivationError(f"Error mounting {record.id} (CryptomatorCLI): {exc}") from exc
        finally:
            del password

        if not self.runner.wait_alive(proc, self.config.cli_launch_delay):
            raise ActivationError(
                f"Error mounting {record.id} (CryptomatorCLI): "
                f"Process {proc.pid} seems to have been terminated unexpectedly."
            )

        logger.info("CryptomatorCLI is running, cryptomator-cli pid: %d", proc.pid)
        if has_entries(mount_point):
            logger.info("  to lock the archive, send 'kill %d'", proc.pid)
            return ActivationResult(mount_point=mount_point, pid=proc.pid)

        notice = (
            "Unexpected situation: CryptomatorCLI is running, but the mount point is empty. "
            f"Check what's going on and, if needed, send: 'kill {proc.pid}' or 'kill -9 {proc.pid}'"
        )
        logger.warning(notice)
        return ActivationResult(
            mount_point=mount_point, pid=proc.pid, consistent=False, notices=[notice]
        )

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        tool = self.tool()
        try:
            result = self.runner.run([tool, "lock", record.mount_point.value])
        except OSError as exc:
            raise DeactivationError(f"Error unmounting {record.id} (CryptomatorCLI): {exc}") from exc
        if result.returncode != 0:
            raise DeactivationError(f"Error unmounting {record.id} (CryptomatorCLI)")
        return DeactivationResult()
