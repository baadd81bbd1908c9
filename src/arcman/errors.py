"""Exception hierarchy for archive operations.

Every fatal condition aborts the current command only. Advisory
conditions (stale lock marker, app-managed unmount) are never raised;
they travel back to the caller as notices on the driver results.
"""

from __future__ import annotations


class ArcmanError(Exception):
    """Base class for all fatal arcman errors."""


class ConfigurationError(ArcmanError):
    """Unset or unknown archive type, missing required path, bad config file."""


class ToolUnavailableError(ArcmanError):
    """An external tool is unset, missing, or not executable."""


class PrivilegeError(ArcmanError):
    """The operation needs root privileges."""


class ActivationError(ArcmanError):
    """The external tool failed to mount or died right after launch."""


class DeactivationError(ArcmanError):
    """The external tool failed to unmount."""
