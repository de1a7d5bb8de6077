"""
CLI commands for npm configuration tiers.

Thin wrappers over the precedence operations in
``devkit.core.use_cases.tools``.
"""

from __future__ import annotations

import sys

import click

from devkit.core.models.results import PrecedenceSnapshot
from devkit.ui.cli.common import echo_batch, echo_json, echo_result, get_engine, run

_SOURCE_ICONS = {
    "env": ("🌍", "yellow"),
    "user": ("👤", "green"),
    "global": ("🏠", "yellow"),
    "default": ("📦", "white"),
}


def _echo_snapshot(snap: PrecedenceSnapshot) -> None:
    icon, color = _SOURCE_ICONS.get(snap.source, ("❔", "white"))
    click.secho(f"   {icon} {snap.key} = {snap.effective or '(unset)'}", fg=color, bold=True)
    click.echo(f"      source: {snap.source}")
    if snap.user:
        click.echo(f"      user:   {snap.user}")
    if snap.global_value:
        click.echo(f"      global: {snap.global_value}")
    for name, value in snap.env_vars.items():
        click.echo(f"      env:    {name}={value}")
    for message in snap.diagnostics:
        click.secho(f"      ⚠️  {message}", fg="yellow")


@click.group()
def npm() -> None:
    """npm — config precedence, tier-aware writes."""


@npm.command()
@click.argument("key", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def precedence(ctx: click.Context, key: str | None, as_json: bool) -> None:
    """Show which config tier wins (one key, or every watched key)."""
    engine = get_engine(ctx)
    if key:
        snaps = [run(engine.get_precedence_snapshot("npm", key))]
    else:
        snaps = run(engine.get_precedence_report("npm"))

    if as_json:
        echo_json([s.to_dict() for s in snaps])
    else:
        click.secho("📋 npm config precedence:", fg="cyan", bold=True)
        for snap in snaps:
            if not snap.ok:
                click.secho(f"   ❌ {snap.error}", fg="red")
                continue
            _echo_snapshot(snap)
        click.echo()

    if any(not s.ok for s in snaps):
        sys.exit(1)


@npm.command("set")
@click.argument("key")
@click.argument("value")
@click.option(
    "--location",
    type=click.Choice(["user", "global"]),
    default="user",
    show_default=True,
    help="Config tier to write.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def set_cmd(ctx: click.Context, key: str, value: str, location: str, as_json: bool) -> None:
    """Write KEY at one tier, removing it from the other."""
    engine = get_engine(ctx)
    result = run(engine.set_tiered_value("npm", key, value, location))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)


@npm.command("clear-global")
@click.argument("keys", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def clear_global(ctx: click.Context, keys: tuple[str, ...], as_json: bool) -> None:
    """Delete keys from the global npmrc (default: registry, proxies, cache)."""
    engine = get_engine(ctx)
    batch = run(engine.clear_global_config("npm", list(keys) or None))

    if as_json:
        echo_json(batch.to_dict())
    else:
        echo_batch(batch, "Clear global")
    if not batch.all_ok:
        sys.exit(1)
