"""
Git — proxy settings in the user's global config (``~/.gitconfig``).

``git config --unset`` exits 5 when the key is already absent, and
``git config <key>`` exits 1 when it is unset; both are benign.
"""

from __future__ import annotations

from devkit.core.models.tool import ToolDescriptor

GIT = ToolDescriptor(
    name="git",
    display_name="Git",
    category="dev_tool",
    description="Distributed version control system",
    check_cmd=("git", "--version"),
    enable_cmds=(
        ("git", "config", "--global", "http.proxy", "{proxy}"),
        ("git", "config", "--global", "https.proxy", "{proxy}"),
    ),
    disable_cmds=(
        ("git", "config", "--global", "--unset", "http.proxy"),
        ("git", "config", "--global", "--unset", "https.proxy"),
    ),
    get_proxy_cmd=("git", "config", "--global", "http.proxy"),
    query_ok_codes=frozenset({1, 5}),
    unset_ok_codes=frozenset({5}),
)
