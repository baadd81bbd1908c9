"""Shared test fixtures for arcman."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest

from arcman.config import TOOL_KEYS
from arcman.models import AppConfig
from arcman.process import ProcessRunner

LOCK_SUFFIX = ".arcman.lock"


class FakeProc:
    """Stand-in for a launched subprocess.Popen."""

    def __init__(self, pid: int = 4242, alive: bool = True) -> None:
        self.pid = pid
        self.alive = alive


class FakeRunner(ProcessRunner):
    """Records every launch/run instead of spawning processes.

    ``results`` maps a program basename to an exit code, a
    CompletedProcess, or an exception to raise.
    """

    def __init__(self, alive: bool = True, results: Optional[Dict[str, Any]] = None) -> None:
        self.alive = alive
        self.results: Dict[str, Any] = results or {}
        self.launched: list = []
        self.calls: list = []

    def launch(self, args, log_file, stdin_data=None):
        self.launched.append((list(args), log_file, stdin_data))
        return FakeProc(alive=self.alive)

    def is_alive(self, proc) -> bool:
        return proc.alive

    def wait_alive(self, proc, delay: float) -> bool:
        return proc.alive

    def run(self, args, input=None, capture=False):
        self.calls.append((list(args), input, capture))
        result = self.results.get(os.path.basename(args[0]), 0)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, int):
            return subprocess.CompletedProcess(list(args), result, stdout="" if capture else None)
        return result


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A process runner that never spawns anything."""
    return FakeRunner()


@pytest.fixture
def tool_dir(tmp_path: Path) -> Path:
    """Directory with an executable stub script per tool key (exit 0)."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for key in TOOL_KEYS:
        script = bin_dir / key.lower()
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o755)
    return bin_dir


@pytest.fixture
def app_config(tmp_path: Path, tool_dir: Path) -> AppConfig:
    """AppConfig pointing at the stub tools, logging under tmp_path."""
    return AppConfig(
        lockfile_suffix=LOCK_SUFFIX,
        tools={key: str(tool_dir / key.lower()) for key in TOOL_KEYS},
        log_file=tmp_path / "logs" / "archive-manager.log",
        log_dir=tmp_path / "logs",
        launch_delay=0,
        cli_launch_delay=0,
    )


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """An existing archive directory with one file in it."""
    vault = tmp_path / "vaults" / "work"
    vault.mkdir(parents=True)
    (vault / "masterkey.cryptomator").write_text("{}")
    return vault


@pytest.fixture
def write_config(tmp_path: Path, tool_dir: Path) -> Callable[[str], Path]:
    """Write a config file with tool paths and logging set up for tests.

    Returns a function taking the archive-specific lines.
    """

    def _write(body: str) -> Path:
        lines = [f"LOCKFILE_SUFFIX={LOCK_SUFFIX}"]
        lines += [f"{key}={tool_dir / key.lower()}" for key in TOOL_KEYS]
        lines.append(f"LOG_FILE={tmp_path / 'logs' / 'archive-manager.log'}")
        lines.append(f"TOOL_LOG_DIR={tmp_path / 'logs'}")
        path = tmp_path / "archive-manager.conf"
        path.write_text("\n".join(lines) + "\n" + body, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _reset_arcman_logger():
    """Drop handlers installed by setup_logging so streams do not leak between tests."""
    yield
    logger = logging.getLogger("arcman")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
