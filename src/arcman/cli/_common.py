"""Shared utilities for all CLI command modules.

Provides the Rich console instance, warning/error printers, and the
lazily-built application context (config file, AppConfig, registry).
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape

from ..config import ConfigSource, find_config, load_app_config
from ..errors import ArcmanError
from ..logs import setup_logging
from ..models import AppConfig
from ..preflight import run_preflight
from ..registry import Registry

console = Console()


@dataclass
class AppContext:
    """Everything a command needs, built once per invocation."""

    source: ConfigSource
    config: AppConfig
    registry: Registry


def warn(message: str) -> None:
    console.print(f"[bold yellow]WARNING:[/] {escape(message)}", highlight=False, soft_wrap=True)


def fail(exc: Exception, code: int = 1) -> NoReturn:
    """Print an error and exit. Errors are logged to the log file too."""
    logger = logging.getLogger("arcman")
    if logger.handlers:
        logger.error("ERROR: %s", exc)
    console.print(f"[bold red]ERROR:[/] {escape(str(exc))}", highlight=False, soft_wrap=True)
    sys.exit(code)


def usage(ctx: click.Context) -> NoReturn:
    """Print the top-level usage and exit 0 (kept for scripts relying on it)."""
    root = ctx.find_root()
    click.echo(root.get_help())
    ctx.exit(0)


def load_context(ctx: click.Context, quiet: bool = False) -> AppContext:
    """Find and load the config file, set up logging, check tools.

    Tool problems are warnings only; a missing config file is fatal.
    With ``quiet`` nothing but errors reaches the terminal.
    """
    obj = ctx.ensure_object(dict)
    cached: Optional[AppContext] = obj.get("app")
    if cached is not None:
        return cached

    try:
        config_path = find_config(obj.get("config_path"))
        source = ConfigSource.load(config_path)
    except ArcmanError as exc:
        fail(exc)

    if not quiet:
        console.print(f"Configuration file set to: {escape(str(config_path))}", highlight=False, soft_wrap=True)
    config = load_app_config(source)
    setup_logging(config.log_file, verbose=obj.get("verbose", False))

    for check in run_preflight(config):
        if not check.ok and not quiet:
            warn(check.message)

    app = AppContext(
        source=source,
        config=config,
        registry=Registry.from_source(source),
    )
    obj["app"] = app
    return app
