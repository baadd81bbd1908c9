"""
Path resolution for configured archive, mount point, and tool paths.

Three outcomes, never collapsed into "path or error":

    UNSET     nothing configured (empty after trimming)
    RESOLVED  absolute path (given as such, or canonicalized)
    FALLBACK  relative path that could not be canonicalized; the
              expanded string is returned unchanged
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .models import PathResolution, ResolutionKind

logger = logging.getLogger("arcman.paths")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def expand(value: str) -> str:
    """Expand ``$VAR``, ``${VAR}`` and a leading ``~``."""
    return os.path.expanduser(os.path.expandvars(_strip_quotes(value)))


def resolve(raw: Optional[str], cwd: Optional[Path] = None) -> PathResolution:
    """Resolve a configured path.

    Args:
        raw: Value from the config file (may be empty or None).
        cwd: Directory relative paths are resolved against (default: CWD).

    Returns:
        PathResolution tagged UNSET, RESOLVED or FALLBACK.
    """
    value = (raw or "").strip()
    if not value:
        return PathResolution(kind=ResolutionKind.UNSET)

    value = expand(value).strip()
    if not value:
        return PathResolution(kind=ResolutionKind.UNSET)

    if value.startswith("/"):
        return PathResolution(kind=ResolutionKind.RESOLVED, value=value)

    base = cwd if cwd is not None else Path.cwd()
    try:
        absolute = (base / value).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        logger.debug("Cannot canonicalize %r: %s", value, exc)
        return PathResolution(kind=ResolutionKind.FALLBACK, value=value)

    return PathResolution(kind=ResolutionKind.RESOLVED, value=str(absolute))
