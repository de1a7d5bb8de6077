"""Adapters — one binding per supported developer tool.

Public re-exports for convenient access.
"""

from devkit.adapters.base import ToolAdapter, filter_value
from devkit.adapters.registry import AdapterRegistry, build_default_registry

__all__ = [
    "AdapterRegistry",
    "ToolAdapter",
    "build_default_registry",
    "filter_value",
]
