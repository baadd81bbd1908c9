"""Tests for ArchiveManager: lookup, lock marker handling, unmount flow."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from arcman.config import ConfigSource
from arcman.errors import (
    ActivationError,
    ConfigurationError,
    DeactivationError,
    PrivilegeError,
)
from arcman.manager import ArchiveManager
from arcman.models import AppConfig
from arcman.registry import Registry

from conftest import LOCK_SUFFIX, FakeRunner


def make_registry(text: str) -> Registry:
    return Registry.from_source(ConfigSource.from_text(text))


def make_manager(
    text: str,
    config: AppConfig,
    runner: FakeRunner,
    prompt=None,
    mounted: bool = True,
) -> ArchiveManager:
    return ArchiveManager(
        make_registry(text),
        config,
        runner=runner,
        prompt=prompt or MagicMock(return_value="pw"),
        mount_probe=lambda _mp: mounted,
    )


@pytest.fixture
def gocryptfs_conf(vault_dir: Path, tmp_path: Path) -> str:
    mnt = tmp_path / "mnt" / "w"
    return (
        "ARCHIVE_w_TYPE=gocryptfs\n"
        f"ARCHIVE_w_PATH={vault_dir}\n"
        f"ARCHIVE_w_MOUNTPOINT={mnt}\n"
        "ARCHIVE_w_DESCRIPTION=Work files\n"
    )


# ---------------------------------------------------------------------------
# Mount
# ---------------------------------------------------------------------------


class TestMount:
    """ArchiveManager.mount."""

    def test_success_writes_lock(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path, tmp_path: Path) -> None:
        """A successful gocryptfs mount leaves a lock marker behind."""
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner).mount("w")

        marker = vault_dir / LOCK_SUFFIX
        assert marker.is_file()
        assert " - " in marker.read_text()
        assert outcome.mount_point == tmp_path / "mnt" / "w"
        assert outcome.browsable is True
        assert outcome.warnings == []

    def test_tool_failure_writes_no_lock(self, gocryptfs_conf: str, app_config: AppConfig, vault_dir: Path) -> None:
        """A failed mount must not leave a marker."""
        runner = FakeRunner(results={"gocryptfs": 1})
        with pytest.raises(ActivationError):
            make_manager(gocryptfs_conf, app_config, runner).mount("w")
        assert not (vault_dir / LOCK_SUFFIX).exists()

    def test_stale_lock_warns_and_continues(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """An existing marker is a warning; the mount still happens."""
        (vault_dir / LOCK_SUFFIX).write_text("otherhost - yesterday\n")
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner).mount("w")

        assert any("Lockfile present" in w for w in outcome.warnings)
        assert len(fake_runner.calls) == 1
        assert "otherhost" not in (vault_dir / LOCK_SUFFIX).read_text()

    def test_lock_disabled_with_empty_suffix(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """Without LOCKFILE_SUFFIX no marker is written."""
        config = app_config.model_copy(update={"lockfile_suffix": ""})
        make_manager(gocryptfs_conf, config, fake_runner).mount("w")
        assert list(vault_dir.iterdir()) == [vault_dir / "masterkey.cryptomator"]

    def test_unknown_id(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner) -> None:
        """An ID without a _TYPE entry is a configuration error."""
        with pytest.raises(ConfigurationError, match="Archive ID nope not found"):
            make_manager(gocryptfs_conf, app_config, fake_runner).mount("nope")
        assert fake_runner.calls == []

    def test_unknown_type(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """Unknown types fail before anything is invoked."""
        conf = f"ARCHIVE_x_TYPE=veracrypt\nARCHIVE_x_PATH={vault_dir}\n"
        with pytest.raises(ConfigurationError, match="Unknown archive type: veracrypt"):
            make_manager(conf, app_config, fake_runner).mount("x")
        assert fake_runner.calls == []
        assert fake_runner.launched == []

    def test_missing_path(self, app_config: AppConfig, fake_runner: FakeRunner) -> None:
        """A known ID without a path names the missing key."""
        conf = "ARCHIVE_k_TYPE=KeePassXC\n"
        with pytest.raises(ConfigurationError, match="ARCHIVE_k_PATH is not set or empty"):
            make_manager(conf, app_config, fake_runner).mount("k")
        assert fake_runner.launched == []

    def test_app_mount_writes_no_lock(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """VaultApp launches do not touch the lock marker."""
        conf = f"ARCHIVE_c_TYPE=Cryptomator\nARCHIVE_c_PATH={vault_dir}\n"
        outcome = make_manager(conf, app_config, fake_runner).mount("c")
        assert outcome.browsable is False
        assert outcome.result.consistent is True
        assert not (vault_dir / LOCK_SUFFIX).exists()

    def test_inconsistent_cli_mount(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path, tmp_path: Path) -> None:
        """A running cryptomator-cli with an empty mount point warns, still locks."""
        conf = (
            "ARCHIVE_cc_TYPE=CryptomatorCLI\n"
            f"ARCHIVE_cc_PATH={vault_dir}\n"
            f"ARCHIVE_cc_MOUNTPOINT={tmp_path / 'mnt' / 'cc'}\n"
        )
        outcome = make_manager(conf, app_config, fake_runner).mount("cc")
        assert outcome.browsable is False
        assert any("Unexpected situation" in w for w in outcome.warnings)
        assert (vault_dir / LOCK_SUFFIX).is_file()

    @patch("arcman.drivers.ecryptfs.is_privileged", return_value=False)
    def test_ecryptfs_without_root_prompts_nothing(self, _mock_priv: MagicMock, app_config: AppConfig, fake_runner: FakeRunner, tmp_path: Path) -> None:
        """The privilege check happens before any prompt or tool."""
        home = tmp_path / "ehome"
        home.mkdir()
        conf = (
            "ARCHIVE_e_TYPE=ecryptfs\n"
            f"ARCHIVE_e_PATH={home}\n"
            f"ARCHIVE_e_MOUNTPOINT={tmp_path / 'mnt' / 'e'}\n"
        )
        prompt = MagicMock()
        with pytest.raises(PrivilegeError):
            make_manager(conf, app_config, fake_runner, prompt=prompt).mount("e")
        prompt.assert_not_called()
        assert fake_runner.calls == []
        assert not (home / LOCK_SUFFIX).exists()


# ---------------------------------------------------------------------------
# Unmount
# ---------------------------------------------------------------------------


class TestUnmount:
    """ArchiveManager.unmount."""

    def test_success_removes_lock(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """After a successful unmount the marker is gone."""
        (vault_dir / LOCK_SUFFIX).write_text("host - now\n")
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner).unmount("w")
        assert outcome.was_mounted is True
        assert outcome.result.performed is True
        assert not (vault_dir / LOCK_SUFFIX).exists()

    def test_success_without_marker(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner) -> None:
        """A missing marker is not an error."""
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner).unmount("w")
        assert outcome.result.performed is True

    def test_not_mounted(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """When the probe says not mounted nothing is invoked."""
        (vault_dir / LOCK_SUFFIX).write_text("host - now\n")
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner, mounted=False).unmount("w")
        assert outcome.was_mounted is False
        assert outcome.result is None
        assert fake_runner.calls == []
        assert (vault_dir / LOCK_SUFFIX).exists()

    def test_failure_keeps_lock(self, gocryptfs_conf: str, app_config: AppConfig, vault_dir: Path) -> None:
        """If every unmount command fails the marker stays."""
        (vault_dir / LOCK_SUFFIX).write_text("host - now\n")
        runner = FakeRunner(results={"fusermount": 1, "umount": 1, "diskutil": 1})
        with pytest.raises(DeactivationError):
            make_manager(gocryptfs_conf, app_config, runner).unmount("w")
        assert (vault_dir / LOCK_SUFFIX).exists()

    def test_vault_app_is_noop(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """Cryptomator archives are closed in the app; nothing is run."""
        conf = f"ARCHIVE_c_TYPE=Cryptomator\nARCHIVE_c_PATH={vault_dir}\n"
        outcome = make_manager(conf, app_config, fake_runner, mounted=False).unmount("c")
        assert outcome.was_mounted is True
        assert outcome.result.performed is False
        assert "Cryptomator app" in outcome.warnings[0]
        assert fake_runner.calls == []

    def test_password_db_terminal_keeps_lock(self, app_config: AppConfig, fake_runner: FakeRunner, tmp_path: Path) -> None:
        """KeePassXC stops processing; an existing marker is left alone."""
        db_dir = tmp_path / "db"
        db_dir.mkdir()
        (db_dir / LOCK_SUFFIX).write_text("host - now\n")
        conf = f"ARCHIVE_k_TYPE=KeePassXC\nARCHIVE_k_PATH={db_dir}\n"
        outcome = make_manager(conf, app_config, fake_runner).unmount("k")
        assert outcome.result.terminal is True
        assert (db_dir / LOCK_SUFFIX).exists()
        assert fake_runner.calls == []

    def test_cli_lock_called(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path, tool_dir: Path) -> None:
        """cryptomator-cli archives are locked through the tool."""
        conf = (
            "ARCHIVE_cc_TYPE=CryptomatorCLI\n"
            f"ARCHIVE_cc_PATH={vault_dir}\n"
            "ARCHIVE_cc_MOUNTPOINT=/mnt/cc\n"
        )
        (vault_dir / LOCK_SUFFIX).write_text("host - now\n")
        make_manager(conf, app_config, fake_runner).unmount("cc")
        assert fake_runner.calls[0][0] == [str(tool_dir / "cryptomator_cli"), "lock", "/mnt/cc"]
        assert not (vault_dir / LOCK_SUFFIX).exists()

    def test_unknown_id(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner) -> None:
        """Unmounting an unknown ID is a configuration error."""
        with pytest.raises(ConfigurationError):
            make_manager(gocryptfs_conf, app_config, fake_runner).unmount("zz")


# ---------------------------------------------------------------------------
# Mount point and unresolvable paths
# ---------------------------------------------------------------------------


class TestMountPointChecks:
    """Missing and unresolvable mount points and archive paths."""

    @pytest.mark.parametrize("archive_type", ["gocryptfs", "ecryptfs", "CryptomatorCLI"])
    def test_unmount_without_mount_point(self, archive_type: str, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path) -> None:
        """Mount-point types cannot be unmounted without ARCHIVE_<ID>_MOUNTPOINT."""
        conf = f"ARCHIVE_w_TYPE={archive_type}\nARCHIVE_w_PATH={vault_dir}\n"
        probe = MagicMock(return_value=False)
        manager = ArchiveManager(make_registry(conf), app_config, runner=fake_runner, mount_probe=probe)
        with pytest.raises(ConfigurationError, match="ARCHIVE_w_MOUNTPOINT is not set or empty"):
            manager.unmount("w")
        probe.assert_not_called()
        assert fake_runner.calls == []

    def test_mount_warns_on_unresolvable_paths(self, app_config: AppConfig, fake_runner: FakeRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Relative paths that cannot be canonicalized are used as given, with a warning."""
        monkeypatch.chdir(tmp_path)
        conf = (
            "ARCHIVE_w_TYPE=gocryptfs\n"
            "ARCHIVE_w_PATH=vaults/missing\n"
            "ARCHIVE_w_MOUNTPOINT=mnt/w\n"
        )
        outcome = make_manager(conf, app_config, fake_runner).mount("w")
        assert "ARCHIVE_w_PATH could not be resolved, using 'vaults/missing' as given" in outcome.warnings
        assert "ARCHIVE_w_MOUNTPOINT could not be resolved, using 'mnt/w' as given" in outcome.warnings
        assert fake_runner.calls[0][0][1:] == ["vaults/missing", "mnt/w"]

    def test_mount_resolved_paths_do_not_warn(self, gocryptfs_conf: str, app_config: AppConfig, fake_runner: FakeRunner) -> None:
        outcome = make_manager(gocryptfs_conf, app_config, fake_runner).mount("w")
        assert not any("could not be resolved" in w for w in outcome.warnings)

    def test_unmount_warns_on_unresolvable_mount_point(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The unmount warning covers the mount point only."""
        monkeypatch.chdir(tmp_path)
        conf = (
            "ARCHIVE_w_TYPE=gocryptfs\n"
            f"ARCHIVE_w_PATH={vault_dir}\n"
            "ARCHIVE_w_MOUNTPOINT=mnt/gone\n"
        )
        outcome = make_manager(conf, app_config, fake_runner).unmount("w")
        assert outcome.warnings == ["ARCHIVE_w_MOUNTPOINT could not be resolved, using 'mnt/gone' as given"]
        assert fake_runner.calls[0][0] == ["fusermount", "-u", "mnt/gone"]

    def test_unmount_not_mounted_keeps_warning(self, app_config: AppConfig, fake_runner: FakeRunner, vault_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        conf = (
            "ARCHIVE_w_TYPE=gocryptfs\n"
            f"ARCHIVE_w_PATH={vault_dir}\n"
            "ARCHIVE_w_MOUNTPOINT=mnt/gone\n"
        )
        outcome = make_manager(conf, app_config, fake_runner, mounted=False).unmount("w")
        assert outcome.was_mounted is False
        assert len(outcome.warnings) == 1
