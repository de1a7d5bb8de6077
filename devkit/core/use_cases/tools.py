"""
Tool use cases — the caller-facing operations of the engine.

``ToolEngine`` wires the runner, registry, orchestrator and precedence
resolver together from ``Settings``. The module-level coroutines
delegate to a lazily built default engine, so a caller can simply do:

    from devkit.core.use_cases import tools
    info = await tools.get_tool_info("npm")

Every operation returns plain models or primitives. Unknown tool ids
never raise: reads return None / False, writes return a ``not_found``
failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from devkit.adapters.registry import AdapterRegistry, build_default_registry
from devkit.core.config.loader import Settings, load_settings
from devkit.core.engine.runner import CommandRunner
from devkit.core.models.results import (
    BatchOperationResult,
    PrecedenceSnapshot,
    ToolInfo,
    ToolOperationResult,
)
from devkit.core.services.precedence import PrecedenceResolver
from devkit.core.services.proxy_ops import ProxyOrchestrator

logger = logging.getLogger(__name__)


class ToolEngine:
    """One configured instance of the engine."""

    def __init__(
        self,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
        registry: AdapterRegistry | None = None,
    ):
        self.settings = settings or Settings()
        s = self.settings
        self.runner = runner or CommandRunner(default_timeout_ms=s.command_timeout_ms)
        self.registry = registry or build_default_registry(
            self.runner,
            settle_delay_ms=s.settle_delay_ms,
            detect_timeout_ms=s.detect_timeout_ms,
            cache_ttl_ms=s.cache_ttl_ms,
        )
        self.orchestrator = ProxyOrchestrator(
            self.registry,
            self.runner,
            probe_url=s.probe_url,
            probe_timeout_ms=s.probe_timeout_ms,
        )
        self.resolver = PrecedenceResolver(
            self.registry, tiered_settle_delay_ms=s.tiered_settle_delay_ms,
        )

    # ── Detection ───────────────────────────────────────────────

    async def list_tools(self) -> list[ToolInfo]:
        """Snapshot every registered tool, concurrently."""
        return list(await asyncio.gather(*(a.get_info() for a in self.registry.all())))

    def list_categories(self) -> list[str]:
        return self.registry.categories()

    async def get_tool_info(self, tool_name: str) -> ToolInfo | None:
        adapter = self.registry.get(tool_name)
        if adapter is None:
            return None
        return await adapter.get_info()

    async def get_tools_info(self, tool_names: Sequence[str]) -> list[ToolInfo]:
        """Snapshots for the named tools, in input order. Unknown ids are skipped."""
        adapters = []
        for name in tool_names:
            adapter = self.registry.get(name)
            if adapter is None:
                logger.warning("Skipping unknown tool: %s", name)
                continue
            adapters.append(adapter)
        return list(await asyncio.gather(*(a.get_info() for a in adapters)))

    async def is_installed(self, tool_name: str) -> bool:
        adapter = self.registry.get(tool_name)
        return adapter is not None and await adapter.is_installed()

    async def get_version(self, tool_name: str) -> str | None:
        adapter = self.registry.get(tool_name)
        if adapter is None:
            return None
        return await adapter.get_version()

    # ── Mutations ───────────────────────────────────────────────

    async def enable_proxy(self, tool_name: str, proxy_url: str) -> ToolOperationResult:
        return await self.orchestrator.enable_proxy(tool_name, proxy_url)

    async def disable_proxy(self, tool_name: str) -> ToolOperationResult:
        return await self.orchestrator.disable_proxy(tool_name)

    async def enable_proxy_batch(
        self, tool_names: Sequence[str], proxy_url: str,
    ) -> BatchOperationResult:
        return await self.orchestrator.enable_proxy_batch(tool_names, proxy_url)

    async def disable_proxy_batch(self, tool_names: Sequence[str]) -> BatchOperationResult:
        return await self.orchestrator.disable_proxy_batch(tool_names)

    async def test_proxy(self, proxy_url: str) -> bool:
        return await self.orchestrator.test_proxy(proxy_url)

    async def set_registry(self, tool_name: str, registry_url: str) -> ToolOperationResult:
        return await self.orchestrator.set_registry(tool_name, registry_url)

    async def set_cache_dir(self, tool_name: str, cache_dir: str) -> ToolOperationResult:
        return await self.orchestrator.set_cache_dir(tool_name, cache_dir)

    # ── Maintenance ─────────────────────────────────────────────

    async def ping_registry(
        self, tool_name: str, registry_url: str | None = None,
    ) -> ToolOperationResult:
        return await self.orchestrator.ping_registry(tool_name, registry_url)

    async def get_cache_info(self, tool_name: str) -> ToolOperationResult:
        return await self.orchestrator.get_cache_info(tool_name)

    async def clean_cache(self, tool_name: str) -> ToolOperationResult:
        return await self.orchestrator.clean_cache(tool_name)

    # ── Precedence ──────────────────────────────────────────────

    async def get_precedence_snapshot(self, tool_name: str, key: str) -> PrecedenceSnapshot:
        return await self.resolver.snapshot(tool_name, key)

    async def get_precedence_report(self, tool_name: str) -> list[PrecedenceSnapshot]:
        return await self.resolver.report(tool_name)

    async def set_tiered_value(
        self, tool_name: str, key: str, value: str, location: str = "user",
    ) -> ToolOperationResult:
        return await self.resolver.set_value(tool_name, key, value, location)

    async def clear_global_config(
        self, tool_name: str, keys: Sequence[str] | None = None,
    ) -> BatchOperationResult:
        return await self.resolver.clear_global(tool_name, keys)


# ── Default engine ──────────────────────────────────────────────

_default_engine: ToolEngine | None = None


def configure(config_path: Path | None = None) -> ToolEngine:
    """(Re)build the default engine from a settings file.

    Raises:
        ConfigError: If the settings file is invalid.
    """
    global _default_engine
    _default_engine = ToolEngine(load_settings(config_path))
    return _default_engine


def get_engine() -> ToolEngine:
    """Return the default engine, building it on first use."""
    if _default_engine is None:
        return configure()
    return _default_engine


def reset_engine() -> None:
    """Drop the default engine (next call rebuilds it)."""
    global _default_engine
    _default_engine = None


async def list_tools() -> list[ToolInfo]:
    return await get_engine().list_tools()


async def list_categories() -> list[str]:
    return get_engine().list_categories()


async def get_tool_info(tool_name: str) -> ToolInfo | None:
    return await get_engine().get_tool_info(tool_name)


async def get_tools_info(tool_names: Sequence[str]) -> list[ToolInfo]:
    return await get_engine().get_tools_info(tool_names)


async def is_installed(tool_name: str) -> bool:
    return await get_engine().is_installed(tool_name)


async def get_version(tool_name: str) -> str | None:
    return await get_engine().get_version(tool_name)


async def enable_proxy(tool_name: str, proxy_url: str) -> ToolOperationResult:
    return await get_engine().enable_proxy(tool_name, proxy_url)


async def disable_proxy(tool_name: str) -> ToolOperationResult:
    return await get_engine().disable_proxy(tool_name)


async def enable_proxy_batch(tool_names: Sequence[str], proxy_url: str) -> BatchOperationResult:
    return await get_engine().enable_proxy_batch(tool_names, proxy_url)


async def disable_proxy_batch(tool_names: Sequence[str]) -> BatchOperationResult:
    return await get_engine().disable_proxy_batch(tool_names)


async def test_proxy(proxy_url: str) -> bool:
    return await get_engine().test_proxy(proxy_url)


async def set_registry(tool_name: str, registry_url: str) -> ToolOperationResult:
    return await get_engine().set_registry(tool_name, registry_url)


async def set_cache_dir(tool_name: str, cache_dir: str) -> ToolOperationResult:
    return await get_engine().set_cache_dir(tool_name, cache_dir)


async def ping_registry(tool_name: str, registry_url: str | None = None) -> ToolOperationResult:
    return await get_engine().ping_registry(tool_name, registry_url)


async def get_cache_info(tool_name: str) -> ToolOperationResult:
    return await get_engine().get_cache_info(tool_name)


async def clean_cache(tool_name: str) -> ToolOperationResult:
    return await get_engine().clean_cache(tool_name)


async def get_precedence_snapshot(tool_name: str, key: str) -> PrecedenceSnapshot:
    return await get_engine().get_precedence_snapshot(tool_name, key)


async def get_precedence_report(tool_name: str) -> list[PrecedenceSnapshot]:
    return await get_engine().get_precedence_report(tool_name)


async def set_tiered_value(
    tool_name: str, key: str, value: str, location: str = "user",
) -> ToolOperationResult:
    return await get_engine().set_tiered_value(tool_name, key, value, location)


async def clear_global_config(
    tool_name: str, keys: Sequence[str] | None = None,
) -> BatchOperationResult:
    return await get_engine().clear_global_config(tool_name, keys)
