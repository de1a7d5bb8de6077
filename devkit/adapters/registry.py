"""
Adapter registry — central lookup for all tool adapters.

The registry is the single point of adapter management. Callers never
construct adapters themselves: they resolve a tool identifier through
the registry, and unknown identifiers are rejected at that boundary.

The set of tools is closed. ``build_default_registry()`` registers the
built-in table in declaration order.
"""

from __future__ import annotations

import logging

from devkit.adapters.base import ToolAdapter
from devkit.adapters.languages import BUN, GRADLE, MAVEN, NPM, PIP, PNPM, YARN, YarnAdapter
from devkit.adapters.shell import CURL, WGET
from devkit.adapters.vcs import GIT
from devkit.core.engine.runner import CommandRunner
from devkit.core.models.tool import ToolCategory, ToolDescriptor

logger = logging.getLogger(__name__)

# Declaration order is the listing order.
BUILTIN_TOOLS: tuple[tuple[ToolDescriptor, type[ToolAdapter]], ...] = (
    (NPM, ToolAdapter),
    (YARN, YarnAdapter),
    (PNPM, ToolAdapter),
    (BUN, ToolAdapter),
    (PIP, ToolAdapter),
    (GIT, ToolAdapter),
    (MAVEN, ToolAdapter),
    (GRADLE, ToolAdapter),
    (CURL, ToolAdapter),
    (WGET, ToolAdapter),
)


class AdapterRegistry:
    """Name → adapter lookup, preserving registration order."""

    def __init__(self) -> None:
        self._adapters: dict[str, ToolAdapter] = {}

    def register(self, adapter: ToolAdapter) -> None:
        """Register an adapter.

        Args:
            adapter: The adapter instance to register.
        """
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def get(self, name: str) -> ToolAdapter | None:
        """Look up an adapter by name."""
        return self._adapters.get(name)

    def all(self) -> list[ToolAdapter]:
        return list(self._adapters.values())

    def list_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._adapters.keys())

    def by_category(self, category: ToolCategory | str) -> list[ToolAdapter]:
        return [a for a in self._adapters.values() if a.descriptor.category == category]

    def categories(self) -> list[str]:
        """Distinct categories, in first-seen order."""
        seen: list[str] = []
        for adapter in self._adapters.values():
            if adapter.descriptor.category not in seen:
                seen.append(adapter.descriptor.category)
        return seen

    def __contains__(self, name: str) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)


def build_default_registry(
    runner: CommandRunner | None = None,
    *,
    settle_delay_ms: int | None = None,
    detect_timeout_ms: int | None = None,
    cache_ttl_ms: int | None = None,
) -> AdapterRegistry:
    """Create a registry holding one adapter per built-in tool.

    All adapters share ``runner``. Timing overrides left as ``None``
    keep the adapter defaults.
    """
    runner = runner or CommandRunner()
    overrides = {
        k: v for k, v in (
            ("settle_delay_ms", settle_delay_ms),
            ("detect_timeout_ms", detect_timeout_ms),
            ("cache_ttl_ms", cache_ttl_ms),
        ) if v is not None
    }

    registry = AdapterRegistry()
    for descriptor, adapter_cls in BUILTIN_TOOLS:
        registry.register(adapter_cls(descriptor, runner, **overrides))
    logger.debug("Default registry built with %d adapters", len(registry))
    return registry
