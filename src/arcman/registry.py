"""
Archive registry — typed records built from the config file.

Archives are discovered by their ``ARCHIVE_<ID>_TYPE`` key; blocks by
``ARCHIVE_BLOCK_<BLOCKID>=<description>``. Missing paths are not
errors here: listing has to work on a half-finished config so the
operator can see what is wrong.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from .config import ConfigSource
from .errors import ConfigurationError
from .models import ArchiveRecord, Block
from .paths import resolve

_TYPE_KEY_RE = re.compile(r"^ARCHIVE_([^_]+)_TYPE$")
_BLOCK_PREFIX = "ARCHIVE_BLOCK_"


def discover_archive_ids(source: ConfigSource) -> list[str]:
    """All archive IDs with a ``_TYPE`` key, deduplicated and sorted."""
    ids = {_TYPE_KEY_RE.match(k).group(1) for k in source.keys_matching(_TYPE_KEY_RE.pattern)}
    return sorted(ids)


def load_blocks(source: ConfigSource) -> list[Block]:
    """Blocks in declaration order; a repeated declaration is ignored."""
    blocks: list[Block] = []
    seen: set[str] = set()
    for key in source.keys_matching(re.escape(_BLOCK_PREFIX)):
        block_id = key[len(_BLOCK_PREFIX):]
        if not block_id or block_id in seen:
            continue
        seen.add(block_id)
        blocks.append(Block(id=block_id, description=source.get(key)))
    return blocks


def load_archive(source: ConfigSource, archive_id: str, cwd: Optional[Path] = None) -> ArchiveRecord:
    """Build the record for one archive ID (no existence check)."""
    prefix = f"ARCHIVE_{archive_id}_"
    return ArchiveRecord(
        id=archive_id,
        type=source.get(prefix + "TYPE").strip(),
        path=resolve(source.get(prefix + "PATH"), cwd=cwd),
        mount_point=resolve(source.get(prefix + "MOUNTPOINT"), cwd=cwd),
        description=source.get(prefix + "DESCRIPTION"),
        block_id=source.get(prefix + "BLOCK").strip(),
    )


class Registry:
    """All archives and blocks of one config file."""

    def __init__(self, archives: dict[str, ArchiveRecord], blocks: list[Block]) -> None:
        self.archives = archives
        self.blocks = blocks

    @classmethod
    def from_source(cls, source: ConfigSource, cwd: Optional[Path] = None) -> "Registry":
        archives = {
            archive_id: load_archive(source, archive_id, cwd=cwd)
            for archive_id in discover_archive_ids(source)
        }
        return cls(archives, load_blocks(source))

    @property
    def ids(self) -> list[str]:
        return sorted(self.archives)

    def get(self, archive_id: str) -> ArchiveRecord:
        """Look up a configured archive.

        Raises:
            ConfigurationError: No ``ARCHIVE_<ID>_TYPE`` entry exists.
        """
        try:
            return self.archives[archive_id]
        except KeyError:
            raise ConfigurationError(
                f"Archive ID {archive_id} not found (ARCHIVE_{archive_id}_TYPE is not set)."
            ) from None
