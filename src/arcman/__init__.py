"""
arcman — Archive Manager.

Mount, unmount, and inventory encrypted archives handled by external
tools (Cryptomator, cryptomator-cli, gocryptfs, eCryptfs, KeePassXC).
One config file, several archives, several machines.
"""

__version__ = "1.2.1"
__author__ = "bsc7"

GITHUB_REPO = "bsc7/arcman"
CONFIG_FILENAME = "archive-manager.conf"
