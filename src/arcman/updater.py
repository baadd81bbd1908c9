"""
Self-maintenance — check GitHub for a newer release.

Tags of the form ``vX.Y.Z`` are compared numerically with the installed
version. The installed package is never rewritten in place; a newer
release is reported with the pip command that installs it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from . import GITHUB_REPO, __version__

logger = logging.getLogger("arcman.updater")

_TAG_RE = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")


class UpdateCheckError(RuntimeError):
    """The release list could not be fetched."""


@dataclass
class UpdateInfo:
    current: str
    latest: str

    @property
    def update_available(self) -> bool:
        return parse_version(self.latest) > parse_version(self.current)

    @property
    def upgrade_command(self) -> str:
        return f"pip install --upgrade git+https://github.com/{GITHUB_REPO}@v{self.latest}"


def parse_version(version: str) -> tuple[int, ...]:
    """``"1.2.10"`` -> ``(1, 2, 10)``; non-numeric parts count as 0."""
    parts = []
    for piece in version.lstrip("v").split("."):
        parts.append(int(piece) if piece.isdigit() else 0)
    return tuple(parts)


def latest_tag(tags: list[dict]) -> Optional[str]:
    """Highest ``vX.Y.Z`` tag name from a GitHub tags API payload."""
    versions = [t.get("name", "") for t in tags if _TAG_RE.match(t.get("name", ""))]
    if not versions:
        return None
    return max(versions, key=parse_version)


def check_for_update(repo: str = GITHUB_REPO, timeout: int = 15) -> UpdateInfo:
    """Fetch tags from GitHub and compare with the installed version.

    Raises:
        UpdateCheckError: Network failure, bad response, or no version tag.
    """
    try:
        import requests
    except ImportError:
        raise UpdateCheckError("Update check requires 'requests': pip install requests")

    url = f"https://api.github.com/repos/{repo}/tags"
    logger.info("Fetching latest version from: %s", url)
    try:
        resp = requests.get(url, timeout=timeout, headers={"Accept": "application/vnd.github+json"})
    except requests.RequestException as exc:
        raise UpdateCheckError(f"Failed to fetch latest version from GitHub: {exc}") from exc

    if resp.status_code >= 400:
        raise UpdateCheckError(
            f"Failed to fetch latest version from GitHub: {resp.status_code} {resp.text[:200]}"
        )

    try:
        tag = latest_tag(resp.json())
    except (ValueError, AttributeError, TypeError) as exc:
        raise UpdateCheckError(f"Unexpected response from GitHub: {exc}") from exc
    if tag is None:
        raise UpdateCheckError("No version tag found on GitHub.")

    info = UpdateInfo(current=__version__, latest=tag.lstrip("v"))
    logger.info("Current version: %s", info.current)
    logger.info("Latest version: %s", info.latest)
    return info
