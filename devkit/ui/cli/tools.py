"""
CLI commands for tool detection.

Thin wrappers over ``devkit.core.use_cases.tools``.
"""

from __future__ import annotations

import sys

import click

from devkit.ui.cli.common import echo_json, get_engine, run


@click.group()
def tools() -> None:
    """Tools — list, inspect, categories."""


@tools.command("list")
@click.option("--category", default=None, help="Only tools in this category.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, category: str | None, as_json: bool) -> None:
    """Detect every supported tool."""
    engine = get_engine(ctx)
    infos = run(engine.list_tools())
    if category:
        infos = [i for i in infos if i.category == category]

    if as_json:
        echo_json([i.to_dict() for i in infos])
        return

    click.secho("🧰 Tools:", fg="cyan", bold=True)
    for info in infos:
        if info.status == "error":
            click.secho(f"   ⚠️  {info.display_name}: {info.error}", fg="yellow")
            continue
        if not info.installed:
            click.secho(f"   ❌ {info.display_name} (not installed)", fg="bright_black")
            continue
        proxy = f"  🌐 {info.current_proxy}" if info.proxy_enabled else ""
        click.echo(f"   ✅ {info.display_name} {info.version or ''}{proxy}")
    click.echo()


@tools.command()
@click.argument("name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show the detected state of one tool."""
    engine = get_engine(ctx)
    result = run(engine.get_tool_info(name))

    if result is None:
        if as_json:
            echo_json({"error": f"Unknown tool: {name}"})
        else:
            click.secho(f"❌ Unknown tool: {name}", fg="red")
        sys.exit(1)

    if as_json:
        echo_json(result.to_dict())
        return

    click.secho(f"\n🧰 {result.display_name}", fg="cyan", bold=True)
    click.echo(f"   Status:    {result.status}")
    if result.version:
        click.echo(f"   Version:   {result.version}")
    click.echo(f"   Proxy:     {result.current_proxy or '(none)'}")
    if result.registry_url:
        click.echo(f"   Registry:  {result.registry_url}")
    if result.cache_dir:
        click.echo(f"   Cache dir: {result.cache_dir}")
    if result.mirrors:
        click.echo("   Mirrors:")
        for mirror in result.mirrors:
            where = f" ({mirror.location})" if mirror.location else ""
            click.echo(f"     • {mirror.name}: {mirror.url}{where}")
    click.echo()


@tools.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def categories(ctx: click.Context, as_json: bool) -> None:
    """List tool categories."""
    engine = get_engine(ctx)
    names = engine.list_categories()

    if as_json:
        echo_json(names)
        return

    for name in names:
        members = ", ".join(a.name for a in engine.registry.by_category(name))
        click.echo(f"   • {name}: {members}")
