"""
CLI commands for proxy, registry and cache settings.

Thin wrappers over ``devkit.core.use_cases.tools``.
"""

from __future__ import annotations

import sys

import click

from devkit.ui.cli.common import echo_batch, echo_json, echo_result, get_engine, run


def _proxy_tools(engine, names: tuple[str, ...]) -> list[str]:
    """Named tools, or every tool that supports proxy settings."""
    if names:
        return list(names)
    return [a.name for a in engine.registry.all() if a.descriptor.supports_proxy]


@click.group()
def proxy() -> None:
    """Proxy — enable, disable, test."""


@proxy.command()
@click.argument("tool_names", nargs=-1)
@click.option("--url", "proxy_url", default=None, help="Proxy URL (default: from devkit.yml).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def enable(ctx: click.Context, tool_names: tuple[str, ...], proxy_url: str | None, as_json: bool) -> None:
    """Set the proxy on the given tools (default: all that support it)."""
    engine = get_engine(ctx)
    proxy_url = proxy_url or engine.settings.default_proxy
    if not proxy_url:
        raise click.UsageError("No proxy URL: pass --url or set default_proxy in devkit.yml")

    batch = run(engine.enable_proxy_batch(_proxy_tools(engine, tool_names), proxy_url))

    if as_json:
        echo_json(batch.to_dict())
    else:
        echo_batch(batch, "Enable")
    if not batch.all_ok:
        sys.exit(1)


@proxy.command()
@click.argument("tool_names", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def disable(ctx: click.Context, tool_names: tuple[str, ...], as_json: bool) -> None:
    """Remove the proxy from the given tools (default: all that support it)."""
    engine = get_engine(ctx)
    batch = run(engine.disable_proxy_batch(_proxy_tools(engine, tool_names)))

    if as_json:
        echo_json(batch.to_dict())
    else:
        echo_batch(batch, "Disable")
    if not batch.all_ok:
        sys.exit(1)


@proxy.command("test")
@click.argument("proxy_url", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def test_cmd(ctx: click.Context, proxy_url: str | None, as_json: bool) -> None:
    """Check that a proxy answers (HEAD request through curl)."""
    engine = get_engine(ctx)
    proxy_url = proxy_url or engine.settings.default_proxy
    if not proxy_url:
        raise click.UsageError("No proxy URL: pass one or set default_proxy in devkit.yml")

    reachable = run(engine.test_proxy(proxy_url))

    if as_json:
        echo_json({"proxy": proxy_url, "reachable": reachable})
    elif reachable:
        click.secho(f"✅ {proxy_url} is reachable", fg="green")
    else:
        click.secho(f"❌ {proxy_url} is not reachable", fg="red")
    if not reachable:
        sys.exit(1)


# ── Registry / cache dir ────────────────────────────────────────


def _mirror_url(engine, tool_name: str, url_or_mirror: str) -> str:
    """Map a known mirror name to its URL; anything else is taken as a URL."""
    adapter = engine.registry.get(tool_name)
    if adapter is not None:
        for mirror in adapter.descriptor.mirrors:
            if mirror.name == url_or_mirror:
                return mirror.url
    return url_or_mirror


@click.group()
def registry() -> None:
    """Registry — point a tool at a registry or mirror."""


@registry.command("set")
@click.argument("tool_name")
@click.argument("url_or_mirror")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def registry_set(ctx: click.Context, tool_name: str, url_or_mirror: str, as_json: bool) -> None:
    """Set a tool's registry. Accepts a URL or a known mirror name."""
    engine = get_engine(ctx)
    url = _mirror_url(engine, tool_name, url_or_mirror)
    result = run(engine.set_registry(tool_name, url))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)


@registry.command("ping")
@click.argument("tool_name")
@click.argument("url_or_mirror", required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def registry_ping(
    ctx: click.Context, tool_name: str, url_or_mirror: str | None, as_json: bool,
) -> None:
    """Test a registry's reachability and latency (default: the current one)."""
    engine = get_engine(ctx)
    url = _mirror_url(engine, tool_name, url_or_mirror) if url_or_mirror else None
    result = run(engine.ping_registry(tool_name, url))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)


@click.group()
def cache() -> None:
    """Cache — manage a tool's download cache."""


@cache.command("set")
@click.argument("tool_name")
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cache_set(ctx: click.Context, tool_name: str, path: str, as_json: bool) -> None:
    """Set a tool's cache directory (created if missing)."""
    engine = get_engine(ctx)
    result = run(engine.set_cache_dir(tool_name, path))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)


@cache.command("info")
@click.argument("tool_name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cache_info(ctx: click.Context, tool_name: str, as_json: bool) -> None:
    """Show where a tool keeps its cache and how big it is."""
    engine = get_engine(ctx)
    result = run(engine.get_cache_info(tool_name))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)


@cache.command("clean")
@click.argument("tool_name")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cache_clean(ctx: click.Context, tool_name: str, as_json: bool) -> None:
    """Delete a tool's download cache."""
    engine = get_engine(ctx)
    result = run(engine.clean_cache(tool_name))

    if as_json:
        echo_json(result.to_dict())
    else:
        echo_result(result)
    if not result.success:
        sys.exit(1)
