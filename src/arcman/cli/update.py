"""Self-maintenance command: update."""

from __future__ import annotations

import click

from ._common import console, fail
from ..updater import UpdateCheckError, check_for_update


def register_update_commands(main: click.Group) -> None:
    """Register the update command."""

    @main.command("update")
    def update_cmd():
        """Check GitHub for a newer arcman release."""
        console.print("Checking for updates...")
        try:
            info = check_for_update()
        except UpdateCheckError as exc:
            fail(exc)

        console.print(f"Current version: {info.current}", highlight=False)
        console.print(f"Latest version:  {info.latest}", highlight=False)
        if not info.update_available:
            console.print("[green]You are already using the latest version.[/]")
            return
        console.print(
            f"[bold cyan]Version {info.latest} is available.[/] Upgrade with:\n"
            f"  {info.upgrade_command}",
            highlight=False,
            soft_wrap=True,
        )
