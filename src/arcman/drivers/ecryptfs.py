"""
eCryptfs driver — kernel-stacked encrypted home directories.

Mount steps (root only):

1. read ``<archive>/.ecryptfs/wrapped-passphrase``
2. ``ecryptfs-unwrap-passphrase <file>`` with the user password on stdin;
   the passphrase is the second line of its output
3. ``ecryptfs-add-passphrase --fnek -`` with the passphrase on stdin;
   line 1 carries ``[<sig>]``, line 2 carries ``[<fnek sig>]``
4. ``<ECRYPTFS> -t ecryptfs -o <options> <archive>/.Private/ <mount point>``
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from ..config import ECRYPTFS
from ..errors import ActivationError, PrivilegeError
from ..models import ArchiveRecord, ArchiveType
from ..process import is_privileged
from .base import ActivationResult, DeactivationResult, MountDriver

logger = logging.getLogger("arcman.drivers.ecryptfs")

UNWRAP_HELPER = "ecryptfs-unwrap-passphrase"
ADD_PASSPHRASE_HELPER = "ecryptfs-add-passphrase"

WRAPPED_PASSPHRASE = Path(".ecryptfs") / "wrapped-passphrase"
PRIVATE_DIR = ".Private"

_BRACKETED_RE = re.compile(r".*\[(.*)\]")


def parse_signature(line: str) -> Optional[str]:
    """Extract the bracketed token from a signature helper output line."""
    match = _BRACKETED_RE.match(line)
    return match.group(1) if match else None


def mount_options(sig: str, fnek_sig: str, key_bytes: int = 16) -> str:
    """Compose the ``-o`` string for ``mount -t ecryptfs``."""
    return ",".join(
        [
            "key=passphrase",
            "ecryptfs_passthrough=n",
            "ecryptfs_enable_filename_crypto=y",
            f"ecryptfs_sig={sig}",
            f"ecryptfs_fnek_sig={fnek_sig}",
            "ecryptfs_unlink_sigs",
            f"ecryptfs_key_bytes={key_bytes}",
            "ecryptfs_cipher=aes",
        ]
    )


def require_root() -> None:
    """Raise PrivilegeError unless running as root."""
    if not is_privileged():
        raise PrivilegeError(
            "Root privileges are required for eCryptfs operations. "
            "Please run the command as root."
        )


class EcryptfsDriver(MountDriver):
    """KernelStackedFS: root-only mount with passphrase unwrapping."""

    archive_type = ArchiveType.KERNEL_STACKED_FS
    tool_key = ECRYPTFS
    requires_mount_point = True
    writes_lock_marker = True

    def activate(self, record: ArchiveRecord) -> ActivationResult:
        require_root()
        mount_point = self.prepare_mount_point(record)
        tool = self.tool()
        archive_path = Path(record.path.value)

        wrapped = archive_path / WRAPPED_PASSPHRASE
        if not wrapped.is_file():
            raise ActivationError(
                f"File {wrapped} not found. Cannot unwrap eCryptfs passphrase."
            )

        password = self.prompt(
            f"Enter the user password to decrypt the eCryptfs passphrase for archive {record.id}"
        )
        passphrase = self.unwrap_passphrase(wrapped, password)
        sig, fnek_sig = self.register_passphrase(passphrase)

        options = mount_options(sig, fnek_sig, self.config.ecryptfs_key_bytes)
        logger.info("eCryptfs mount options: %s", options)

        private_dir = archive_path / PRIVATE_DIR
        if not private_dir.is_dir():
            raise ActivationError(f"Directory {private_dir} not found.")

        logger.info(
            "Next, the mount command will be executed. Enter the user password "
            "again when prompted to mount archive %s.",
            record.id,
        )
        args = [tool, "-t", "ecryptfs", "-o", options, f"{private_dir}/", str(mount_point)]
        try:
            result = self.runner.run(args)
        except OSError as exc:
            raise ActivationError(f"Error mounting {record.id} (ecryptfs): {exc}") from exc
        if result.returncode != 0:
            raise ActivationError(f"Error mounting {record.id} (ecryptfs)")
        return ActivationResult(mount_point=mount_point)

    def unwrap_passphrase(self, wrapped: Path, password: str) -> str:
        """Return the unwrapped mount passphrase (second output line)."""
        try:
            result = self.runner.run(
                [UNWRAP_HELPER, str(wrapped)], input=password + "\n", capture=True
            )
        except OSError as exc:
            raise ActivationError(f"Error unwrapping the eCryptfs passphrase: {exc}") from exc
        lines = (result.stdout or "").splitlines()
        passphrase = lines[1].strip() if len(lines) > 1 else ""
        if not passphrase:
            raise ActivationError("Error unwrapping the eCryptfs passphrase.")
        return passphrase

    def register_passphrase(self, passphrase: str) -> tuple[str, str]:
        """Add the passphrase to the keyring; return (sig, fnek sig)."""
        try:
            result = self.runner.run(
                [ADD_PASSPHRASE_HELPER, "--fnek", "-"], input=passphrase, capture=True
            )
        except OSError as exc:
            raise ActivationError(f"Error adding the eCryptfs passphrase: {exc}") from exc
        lines = (result.stdout or "").splitlines()
        sig = parse_signature(lines[0]) if len(lines) > 0 else None
        fnek_sig = parse_signature(lines[1]) if len(lines) > 1 else None
        if not sig or not fnek_sig:
            raise ActivationError(
                "Could not read the eCryptfs key signatures from "
                f"{ADD_PASSPHRASE_HELPER} output."
            )
        return sig, fnek_sig

    def deactivate(self, record: ArchiveRecord) -> DeactivationResult:
        require_root()
        return self.unmount_with_fallbacks(record)
