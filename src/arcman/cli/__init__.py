"""
arcman CLI — mount, unmount and list encrypted archives.

The main Click group is defined here and the subcommands are registered
from their own modules via register functions.

Entry point: arcman.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


class ArcmanGroup(click.Group):
    """Click group that answers unknown commands with the usage text.

    Like the missing-command case, this exits 0. Ctrl-C exits 130, also
    when pressed at a click prompt (which click reports as Abort).
    """

    def resolve_command(self, ctx, args):
        name = args[0] if args else None
        if name and not name.startswith("-") and self.get_command(ctx, name) is None:
            click.echo(ctx.get_help())
            ctx.exit(0)
        return super().resolve_command(ctx, args)

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except (KeyboardInterrupt, click.Abort):
            click.echo("\nInterrupted.", err=True)
            ctx.exit(130)


@click.group(
    cls=ArcmanGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=(
        "\b\nConfiguration file lookup order:\n"
        "  1. file given with -c/--config\n"
        "  2. ./archive-manager.conf\n"
        "  3. $HOME/.local/share/archive-manager/archive-manager.conf\n"
        "  4. /etc/archive-manager/archive-manager.conf"
    ),
)
@click.version_option(version=__version__, prog_name="arcman")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Custom configuration file (default locations are used otherwise).",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Archive Manager: mount, unmount and list encrypted archives.

    Cryptomator, cryptomator-cli, gocryptfs, eCryptfs and KeePassXC
    archives from one configuration file.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .archives import register_archive_commands
from .update import register_update_commands

register_archive_commands(main)
register_update_commands(main)
