"""Shared helpers for the CLI command groups."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from devkit.core.models.results import BatchOperationResult, ToolOperationResult

T = TypeVar("T")


def get_engine(ctx: click.Context):
    """Return the engine for this invocation, building it on first use."""
    from devkit.core.config.loader import ConfigError, load_settings
    from devkit.core.use_cases.tools import ToolEngine

    obj = ctx.ensure_object(dict)
    engine = obj.get("engine")
    if engine is None:
        try:
            settings = load_settings(obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)
        engine = obj["engine"] = ToolEngine(settings)
    return engine


def run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def echo_result(result: ToolOperationResult) -> None:
    if result.success:
        click.secho(f"✅ {result.tool_name}: {result.message}", fg="green")
    else:
        kind = f" [{result.error_kind.value}]" if result.error_kind else ""
        click.secho(f"❌ {result.tool_name}: {result.message}{kind}", fg="red")


def echo_batch(batch: BatchOperationResult, label: str) -> None:
    for result in batch.results:
        echo_result(result)
    color = "green" if batch.all_ok else ("yellow" if batch.success_count else "red")
    click.echo()
    click.secho(
        f"   {label}: {batch.success_count}/{batch.total_tools} succeeded",
        fg=color,
        bold=True,
    )
