"""
Archive listing — per-archive status, block grouping, and rendering.

Status strings:
  - ``OK``                              the archive path can be listed
  - ``ARCHIVE_<ID>_PATH not set``       no path configured
  - the OS error text otherwise, e.g.  ``No such file or directory``

Grouping follows block declaration order. Archives without a block, or
with a block that was never declared, go to ``Uncategorized``, which is
appended last unless declared explicitly. Within a group archives are
sorted by ID. Both render modes are projections of the same statuses.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from rich.markup import escape

from .models import ArchiveRecord
from .registry import Registry

UNCATEGORIZED = "Uncategorized"
STATUS_OK = "OK"
DESCRIPTION_WIDTH = 20


def compute_status(record: ArchiveRecord) -> str:
    """Availability status of one archive. Never raises."""
    if not record.path.is_set:
        return f"{record.path_key} not set"
    path = record.path.value
    try:
        if os.path.isdir(path):
            os.listdir(path)
        else:
            os.stat(path)
    except OSError as exc:
        return exc.strerror or str(exc)
    return STATUS_OK


@dataclass
class ArchiveRow:
    record: ArchiveRecord
    status: str

    @property
    def level(self) -> str:
        """``error`` (no path), ``warning`` (not OK) or ``ok``."""
        if not self.record.path.is_set:
            return "error"
        if self.status != STATUS_OK:
            return "warning"
        return "ok"


@dataclass
class ArchiveGroup:
    block_id: str
    header: str
    rows: list[ArchiveRow] = field(default_factory=list)


def group_archives(registry: Registry, statuses: dict[str, str]) -> list[ArchiveGroup]:
    """Partition archives into ordered, non-empty groups."""
    declared = {block.id: block for block in registry.blocks}
    buckets: dict[str, list[str]] = {}
    for archive_id in registry.ids:
        block_id = registry.archives[archive_id].block_id
        if not block_id or block_id not in declared:
            block_id = UNCATEGORIZED
        buckets.setdefault(block_id, []).append(archive_id)

    order = [block.id for block in registry.blocks]
    if UNCATEGORIZED not in declared:
        order.append(UNCATEGORIZED)

    groups = []
    for block_id in order:
        ids = buckets.get(block_id)
        if not ids:
            continue
        if block_id == UNCATEGORIZED:
            header = UNCATEGORIZED
        else:
            header = declared[block_id].description or f"{UNCATEGORIZED} ({block_id})"
        rows = [ArchiveRow(registry.archives[i], statuses[i]) for i in sorted(ids)]
        groups.append(ArchiveGroup(block_id=block_id, header=header, rows=rows))
    return groups


def build_listing(registry: Registry) -> list[ArchiveGroup]:
    """Compute every status once, then group."""
    statuses = {archive_id: compute_status(record) for archive_id, record in registry.archives.items()}
    return group_archives(registry, statuses)


_LEVEL_STYLES = {"error": "red", "warning": "yellow", "ok": "green"}


def _styled(text: str, style: str, color: bool) -> str:
    return f"[{style}]{escape(text)}[/]" if color else text


def _plain(text: str) -> str:
    return text


def render_lines(groups: list[ArchiveGroup], long: bool = False, color: bool = True) -> list[str]:
    """Render groups as Rich markup lines (plain text when ``color`` is False)."""
    lines: list[str] = []
    esc = escape if color else _plain
    for group in groups:
        lines.append("")
        lines.append(_styled(f"### {group.header} ###", "bold blue", color))
        for row in group.rows:
            record = row.record
            style = _LEVEL_STYLES[row.level]
            archive_id = _styled(f"{record.id:<4}", style, color)
            status = _styled(row.status, style, color)
            if long:
                lines.append(
                    f"{archive_id} | {esc(f'{record.type:<20}')} | {esc(record.description)}"
                )
                lines.append(f"  | {esc(record.path.value)} | {status}")
            else:
                description = f"{record.description:<{DESCRIPTION_WIDTH}}"[:DESCRIPTION_WIDTH]
                lines.append(
                    f"{archive_id} | {esc(f'{record.type:<11}')} | {esc(description)} | "
                    f"{esc(record.path.value)} | {status}"
                )
    return lines


def listing_as_dict(groups: list[ArchiveGroup]) -> list[dict]:
    """JSON-friendly view of the listing."""
    return [
        {
            "block": group.block_id,
            "header": group.header,
            "archives": [
                {
                    "id": row.record.id,
                    "type": row.record.type,
                    "description": row.record.description,
                    "path": row.record.path.value,
                    "path_resolution": row.record.path.kind.value,
                    "mount_point": row.record.mount_point.value,
                    "status": row.status,
                }
                for row in group.rows
            ],
        }
        for group in groups
    ]
