"""DevKit — proxy, registry and cache configuration for developer CLI tools."""

__version__ = "0.1.0"
