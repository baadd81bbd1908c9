"""
Preflight tool checks — verify configured tool paths at startup.

Each tool key (KEEPASSXC, CRYPTOMATOR, ...) is checked for:
  - being set in the config file
  - resolving to a usable path
  - existing on disk
  - being executable

A failed check is only a warning. Archives handled by other tools stay
usable; the broken tool becomes fatal only when a driver invokes it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import TOOL_KEYS
from .errors import ToolUnavailableError
from .models import AppConfig, ResolutionKind
from .paths import resolve

logger = logging.getLogger("arcman.preflight")


class ToolStatus(str, Enum):
    """Status of a configured external tool."""

    OK = "ok"
    NOT_SET = "not_set"
    UNRESOLVABLE = "unresolvable"
    MISSING = "missing"
    NOT_EXECUTABLE = "not_executable"


@dataclass
class ToolCheck:
    """Result of checking a single configured tool."""

    name: str
    status: ToolStatus
    path: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        """Whether the tool can be invoked."""
        return self.status == ToolStatus.OK


def check_tool_path(name: str, raw_path: str, config_file: str = "the configuration file") -> ToolCheck:
    """Check one tool path.

    Args:
        name: Tool key, e.g. ``GOCRYPTFS``.
        raw_path: Configured value.
        config_file: Shown in hints.

    Returns:
        ToolCheck with the resolved path and a human-readable message.
    """
    resolution = resolve(raw_path)
    if resolution.kind == ResolutionKind.UNSET:
        return ToolCheck(
            name=name,
            status=ToolStatus.NOT_SET,
            message=(
                f"The variable {name} is not set in the configuration file. "
                f"Please check {config_file} and add the correct path for {name}."
            ),
        )
    if resolution.kind == ResolutionKind.FALLBACK:
        return ToolCheck(
            name=name,
            status=ToolStatus.UNRESOLVABLE,
            path=resolution.value,
            message=f"The path for {name} is invalid or not resolvable: {raw_path}",
        )

    path = Path(resolution.value)
    if not path.exists():
        return ToolCheck(
            name=name,
            status=ToolStatus.MISSING,
            path=resolution.value,
            message=(
                f"The tool {name} does not exist: {path}. "
                f"Please check {config_file} and adjust the path for {name}."
            ),
        )
    if not os.access(path, os.X_OK):
        return ToolCheck(
            name=name,
            status=ToolStatus.NOT_EXECUTABLE,
            path=resolution.value,
            message=f"No access or not executable: {path}. Please set the correct permissions or check the file.",
        )
    return ToolCheck(name=name, status=ToolStatus.OK, path=resolution.value)


def run_preflight(config: AppConfig) -> list[ToolCheck]:
    """Check every known tool key, logging a warning for each failure."""
    config_file = str(config.config_file) if config.config_file else "the configuration file"
    checks = []
    for key in TOOL_KEYS:
        check = check_tool_path(key, config.tool(key), config_file)
        if not check.ok:
            logger.warning(check.message)
        checks.append(check)
    return checks


def require_tool(config: AppConfig, key: str) -> str:
    """Return the usable path of a tool or raise.

    Raises:
        ToolUnavailableError: The tool is unset, missing or not executable.
    """
    check = check_tool_path(key, config.tool(key))
    if check.status == ToolStatus.NOT_SET:
        raise ToolUnavailableError(f"{key} path not set!")
    if not check.ok:
        raise ToolUnavailableError(check.message)
    return check.path
