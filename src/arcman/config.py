"""
Config file loading and discovery.

The config is a flat ``KEY=value`` text file. Lookups are "first matching
line wins" and an absent key reads as an empty string. Only lines that
start with ``KEY=`` at column 0 count; comments and indented lines are
ignored.

Search order:
  1) explicit ``-c/--config`` path
  2) ./archive-manager.conf
  3) $HOME/.local/share/archive-manager/archive-manager.conf
  4) /etc/archive-manager/archive-manager.conf
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional

from . import CONFIG_FILENAME
from .errors import ConfigurationError
from .models import AppConfig
from .paths import expand

logger = logging.getLogger("arcman.config")

# Tool path keys
KEEPASSXC = "KEEPASSXC"
CRYPTOMATOR = "CRYPTOMATOR"
CRYPTOMATOR_CLI = "CRYPTOMATOR_CLI"
GOCRYPTFS = "GOCRYPTFS"
ECRYPTFS = "ECRYPTFS"

TOOL_KEYS = (KEEPASSXC, CRYPTOMATOR, CRYPTOMATOR_CLI, GOCRYPTFS, ECRYPTFS)

DEFAULT_KEY_BYTES = 16

_LINE_RE = re.compile(r"^([^=\s#][^=]*)=(.*)$")


def default_config_candidates() -> list[Path]:
    """Config locations searched when no explicit file is given."""
    return [
        Path(".") / CONFIG_FILENAME,
        Path.home() / ".local" / "share" / "archive-manager" / CONFIG_FILENAME,
        Path("/etc/archive-manager") / CONFIG_FILENAME,
    ]


class ConfigSource:
    """Read-only view over the key/value lines of a config file."""

    def __init__(self, entries: list[tuple[str, str]], path: Optional[Path] = None):
        self._entries = entries
        self.path = path

    @classmethod
    def from_text(cls, text: str, path: Optional[Path] = None) -> "ConfigSource":
        entries: list[tuple[str, str]] = []
        for line in text.splitlines():
            match = _LINE_RE.match(line)
            if match:
                entries.append((match.group(1), match.group(2)))
        return cls(entries, path=path)

    @classmethod
    def load(cls, path: Path) -> "ConfigSource":
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
        return cls.from_text(text, path=path)

    def get(self, key: str) -> str:
        """Value of the first line defining ``key``, or ``""``."""
        for k, v in self._entries:
            if k == key:
                return v
        return ""

    def keys_matching(self, pattern: str) -> list[str]:
        """Keys matching ``pattern`` (regex, anchored at start), in file order."""
        regex = re.compile(pattern)
        return [k for k, _ in self._entries if regex.match(k)]


def find_config(path_arg: Optional[str] = None) -> Path:
    """Pick the config file from the CLI argument or the default locations.

    Raises:
        ConfigurationError: Explicit file missing, or no candidate exists.
    """
    if path_arg:
        p = Path(path_arg).expanduser()
        if not p.is_file():
            raise ConfigurationError(
                f"The specified configuration file was not found: {path_arg}"
            )
        return p

    candidates = default_config_candidates()
    for candidate in candidates:
        if candidate.is_file():
            return candidate

    searched = " ".join(str(c) for c in candidates)
    raise ConfigurationError(f"No configuration file found. Searched in: {searched}")


def _int_setting(source: ConfigSource, key: str, default: int) -> int:
    raw = source.get(key).strip() or os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s is not an integer (%r), using %d", key, raw, default)
        return default


def load_app_config(source: ConfigSource) -> AppConfig:
    """Build the immutable AppConfig from a loaded config source."""
    values: dict = {
        "config_file": source.path,
        "lockfile_suffix": source.get("LOCKFILE_SUFFIX").strip(),
        "tools": {key: source.get(key).strip() for key in TOOL_KEYS},
        "ecryptfs_key_bytes": _int_setting(source, "ECRYPTFS_KEY_BYTES", DEFAULT_KEY_BYTES),
    }

    mounter = source.get("CRYPTOMATOR_CLI_MOUNTER").strip()
    if mounter:
        values["cryptomator_cli_mounter"] = mounter

    log_file = source.get("LOG_FILE").strip()
    if log_file:
        values["log_file"] = Path(expand(log_file))

    log_dir = source.get("TOOL_LOG_DIR").strip()
    if log_dir:
        values["log_dir"] = Path(expand(log_dir))

    return AppConfig(**values)
