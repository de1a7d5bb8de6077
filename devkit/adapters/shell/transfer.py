"""Transfer tools — curl, wget. Detection only (they read proxy env vars)."""

from __future__ import annotations

from devkit.core.models.tool import ToolDescriptor

CURL = ToolDescriptor(
    name="curl",
    display_name="cURL",
    category="dev_tool",
    description="Command-line data transfer tool",
    check_cmd=("curl", "--version"),
)

WGET = ToolDescriptor(
    name="wget",
    display_name="Wget",
    category="dev_tool",
    description="Network file downloader",
    check_cmd=("wget", "--version"),
)
