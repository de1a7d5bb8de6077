"""
DevKit — CLI entrypoint.

Usage:
    python -m devkit.main --help
    devkit tools list
    devkit proxy enable npm git --url http://127.0.0.1:7890
    devkit npm precedence registry
"""

from __future__ import annotations

from pathlib import Path

import click

from devkit import __version__
from devkit.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="devkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devkit.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """DevKit — inspect and configure proxies, registries and caches of dev tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        flag_level = "DEBUG"
    elif verbose:
        flag_level = "INFO"
    elif quiet:
        flag_level = "ERROR"
    else:
        flag_level = None

    setup_logging(level=resolve_level(flag_level), quiet_third_party=not debug)


# ── Register sub-command groups from devkit/ui/cli/ ─────────────

from devkit.ui.cli.npm import npm  # noqa: E402
from devkit.ui.cli.proxy import cache, proxy, registry  # noqa: E402
from devkit.ui.cli.tools import tools  # noqa: E402

cli.add_command(tools)
cli.add_command(proxy)
cli.add_command(registry)
cli.add_command(cache)
cli.add_command(npm)


if __name__ == "__main__":
    cli()
