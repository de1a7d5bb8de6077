"""Shell-level transfer tools."""

from devkit.adapters.shell.transfer import CURL, WGET

__all__ = ["CURL", "WGET"]
