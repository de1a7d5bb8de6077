"""
Proxy orchestration — single-tool and batch operations by tool name.

Resolves tool identifiers through the registry and delegates to the
adapter. Unknown identifiers become typed ``not_found`` failures.
Batches run sequentially in input order; one tool failing never stops
the rest.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable, Sequence

from devkit.adapters.base import ToolAdapter
from devkit.adapters.registry import AdapterRegistry
from devkit.core.engine.runner import CommandRunner
from devkit.core.models.results import (
    BatchOperationResult,
    ErrorKind,
    ToolOperationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_PROBE_URL = "https://www.google.com"
DEFAULT_PROBE_TIMEOUT_MS = 5000


def not_found(tool_name: str) -> ToolOperationResult:
    return ToolOperationResult.fail(
        tool_name, f"Unknown tool: {tool_name}", ErrorKind.NOT_FOUND,
    )


class ProxyOrchestrator:
    """Dispatch proxy, registry and cache operations to adapters."""

    def __init__(
        self,
        registry: AdapterRegistry,
        runner: CommandRunner,
        probe_url: str = DEFAULT_PROBE_URL,
        probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
    ):
        self.registry = registry
        self.runner = runner
        self.probe_url = probe_url
        self.probe_timeout_ms = probe_timeout_ms

    async def _dispatch(
        self,
        tool_name: str,
        op: Callable[[ToolAdapter], Awaitable[ToolOperationResult]],
    ) -> ToolOperationResult:
        adapter = self.registry.get(tool_name)
        if adapter is None:
            logger.warning("Unknown tool requested: %s", tool_name)
            return not_found(tool_name)
        return await op(adapter)

    async def enable_proxy(self, tool_name: str, proxy_url: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.enable_proxy(proxy_url))

    async def disable_proxy(self, tool_name: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.disable_proxy())

    async def set_registry(self, tool_name: str, registry_url: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.set_registry(registry_url))

    async def set_cache_dir(self, tool_name: str, cache_dir: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.set_cache_dir(cache_dir))

    async def ping_registry(
        self, tool_name: str, registry_url: str | None = None,
    ) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.ping_registry(registry_url))

    async def get_cache_info(self, tool_name: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.get_cache_info())

    async def clean_cache(self, tool_name: str) -> ToolOperationResult:
        return await self._dispatch(tool_name, lambda a: a.clean_cache())

    async def enable_proxy_batch(
        self, tool_names: Sequence[str], proxy_url: str,
    ) -> BatchOperationResult:
        """Enable the proxy on each tool in turn, in input order."""
        results = []
        for name in tool_names:
            results.append(await self.enable_proxy(name, proxy_url))
        batch = BatchOperationResult.from_results(results)
        logger.info(
            "Batch enable: %d/%d succeeded", batch.success_count, batch.total_tools,
        )
        return batch

    async def disable_proxy_batch(self, tool_names: Sequence[str]) -> BatchOperationResult:
        """Disable the proxy on each tool in turn, in input order."""
        results = []
        for name in tool_names:
            results.append(await self.disable_proxy(name))
        batch = BatchOperationResult.from_results(results)
        logger.info(
            "Batch disable: %d/%d succeeded", batch.success_count, batch.total_tools,
        )
        return batch

    async def test_proxy(self, proxy_url: str) -> bool:
        """Probe ``probe_url`` through the proxy with a HEAD request via curl.

        Any failure (curl missing, timeout, non-zero exit) means False.
        """
        if not proxy_url or not proxy_url.strip():
            return False
        argv = ["curl", "-x", proxy_url.strip(), "-I", "-s", "-o", os.devnull, self.probe_url]
        result = await self.runner.execute(argv, timeout_ms=self.probe_timeout_ms)
        if result.success:
            logger.info("Proxy %s reachable (%dms)", proxy_url, result.execution_time_ms)
        else:
            logger.info("Proxy %s unreachable: %s", proxy_url, result.outcome)
        return result.success
