"""Archive commands: mount, unmount, list."""

from __future__ import annotations

import json
import os
import subprocess
from datetime import datetime
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from ._common import console, fail, load_context, usage, warn
from ..errors import ArcmanError
from ..listing import build_listing, listing_as_dict, render_lines
from ..manager import ArchiveManager


def _human_size(size: int) -> str:
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return str(size)


def show_contents(mount_point: Path) -> None:
    """Print the entries of a freshly mounted directory."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")

    try:
        entries = sorted(os.scandir(mount_point), key=lambda e: e.name)
    except OSError as exc:
        warn(f"Cannot list {mount_point}: {exc.strerror or exc}")
        return

    for entry in entries:
        try:
            st = entry.stat(follow_symlinks=False)
        except OSError:
            table.add_row(escape(entry.name), "?", "?")
            continue
        name = entry.name + ("/" if entry.is_dir(follow_symlinks=False) else "")
        modified = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M")
        table.add_row(escape(name), _human_size(st.st_size), modified)

    console.print(f"Contents of the mount point ({escape(str(mount_point))}):", highlight=False, soft_wrap=True)
    console.print(table)
    console.print()


def post_mount_action(mount_point: Path) -> None:
    """Show the mount point and offer an interactive shell inside it."""
    show_contents(mount_point)
    if not click.confirm("Do you want to switch to the directory?", default=False):
        return

    shell = os.environ.get("SHELL") or "bash"
    console.print(f"Starting an interactive shell in {escape(str(mount_point))} ...", highlight=False, soft_wrap=True)
    console.print("  Type 'exit' to return to the original shell.")
    try:
        subprocess.call([shell, "-i"], cwd=str(mount_point))
    except OSError as exc:
        warn(f"Could not start {shell}: {exc}")


def register_archive_commands(main: click.Group) -> None:
    """Register mount, unmount and list on the main CLI group."""

    @main.command("mount")
    @click.argument("archive_id", required=False)
    @click.option(
        "--no-shell",
        is_flag=True,
        default=False,
        help="Do not offer to open a shell in the mount point afterwards.",
    )
    @click.pass_context
    def mount_cmd(ctx: click.Context, archive_id: str, no_shell: bool):
        """Mount the specified archive.

        \b
        Examples:

            arcman mount my_archive

            arcman -c my_config.conf mount my_archive
        """
        if not archive_id:
            usage(ctx)

        app = load_context(ctx)
        manager = ArchiveManager(app.registry, app.config)
        try:
            outcome = manager.mount(archive_id)
        except ArcmanError as exc:
            fail(exc)

        for message in outcome.warnings:
            warn(message)

        if outcome.browsable:
            console.print(f"[green]Mounted[/] {escape(archive_id)} at {escape(str(outcome.mount_point))}", highlight=False, soft_wrap=True)
            if not no_shell:
                post_mount_action(outcome.mount_point)
        elif outcome.result.consistent:
            console.print(f"[green]Started[/] application for {escape(archive_id)}.", highlight=False, soft_wrap=True)

    @main.command("unmount")
    @click.argument("archive_id", required=False)
    @click.pass_context
    def unmount_cmd(ctx: click.Context, archive_id: str):
        """Unmount the specified archive.

        \b
        Example:

            arcman unmount my_archive
        """
        if not archive_id:
            usage(ctx)

        app = load_context(ctx)
        manager = ArchiveManager(app.registry, app.config)
        try:
            outcome = manager.unmount(archive_id)
        except ArcmanError as exc:
            fail(exc)

        for message in outcome.warnings:
            warn(message)

        if not outcome.was_mounted:
            console.print(f"Archive {escape(archive_id)} is not mounted.", highlight=False, soft_wrap=True)
        elif outcome.result is not None and outcome.result.performed:
            console.print(f"[green]Unmounted[/] {escape(archive_id)}.", highlight=False, soft_wrap=True)

    @main.command("list")
    @click.argument("mode", required=False)
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
    @click.pass_context
    def list_cmd(ctx: click.Context, mode: str, as_json: bool):
        """Show all configured archives (use 'long' for a detailed view).

        \b
        Examples:

            arcman list

            arcman list long
        """
        app = load_context(ctx, quiet=as_json)
        groups = build_listing(app.registry)

        if as_json:
            click.echo(json.dumps(listing_as_dict(groups), indent=2))
            return

        for line in render_lines(groups, long=(mode == "long")):
            console.print(line, highlight=False, soft_wrap=True)
