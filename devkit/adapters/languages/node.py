"""
Node.js package managers — npm, yarn, pnpm, bun.

npm additionally carries a tier table (user / global ``--location``
queries plus the ``npm_config_*`` environment convention) for the
precedence resolver.

Yarn 1 keeps its proxy in ``~/.yarnrc`` and ``yarn config get proxy``
is unreliable across versions, so ``YarnAdapter`` reads the resource
file directly.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from devkit.adapters.base import ToolAdapter, filter_value
from devkit.core.models.tool import Mirror, TieredConfig, ToolDescriptor

logger = logging.getLogger(__name__)

# Config queries exit non-zero for unknown / unset keys.
_CONFIG_QUERY_CODES = frozenset({1, 5})

NPMMIRROR = Mirror(
    name="npmmirror",
    display_name="Alibaba Cloud (npmmirror)",
    url="https://registry.npmmirror.com",
    location="China · Hangzhou",
    homepage="https://npmmirror.com",
)
TENCENT_NPM = Mirror(
    name="tencent",
    display_name="Tencent Cloud",
    url="https://mirrors.cloud.tencent.com/npm",
    location="China · Shenzhen",
)
HUAWEI_NPM = Mirror(
    name="huawei",
    display_name="Huawei Cloud",
    url="https://mirrors.huaweicloud.com/repository/npm",
    location="China",
)
NPMJS = Mirror(
    name="npmjs",
    display_name="npm official",
    url="https://registry.npmjs.org",
    location="United States",
    homepage="https://www.npmjs.com",
)
YARNPKG = Mirror(
    name="yarnpkg",
    display_name="Yarn official",
    url="https://registry.yarnpkg.com",
    location="United States",
)

NPM_TIERS = TieredConfig(
    effective_cmd=("npm", "config", "get", "{key}"),
    user_cmd=("npm", "config", "get", "{key}", "--location=user"),
    global_cmd=("npm", "config", "get", "{key}", "--location=global"),
    set_cmd=("npm", "config", "set", "{key}", "{value}", "--location", "{location}"),
    delete_cmd=("npm", "config", "delete", "{key}", "--location", "{location}"),
    env_prefix="npm_config_",
    watched_keys=("registry", "proxy", "https-proxy", "cache", "prefix"),
    defaults={
        "registry": frozenset({"https://registry.npmjs.org/", "https://registry.npmjs.org"}),
        "proxy": frozenset({"null", "", "undefined"}),
        "https-proxy": frozenset({"null", "", "undefined"}),
    },
)

NPM = ToolDescriptor(
    name="npm",
    display_name="npm",
    category="package_manager",
    description="Node.js package manager",
    check_cmd=("npm", "--version"),
    enable_cmds=(
        ("npm", "config", "set", "proxy", "{proxy}"),
        ("npm", "config", "set", "https-proxy", "{proxy}"),
    ),
    disable_cmds=(
        ("npm", "config", "delete", "proxy"),
        ("npm", "config", "delete", "https-proxy"),
    ),
    get_proxy_cmd=("npm", "config", "get", "proxy"),
    get_registry_cmd=("npm", "config", "get", "registry"),
    set_registry_cmd=("npm", "config", "set", "registry", "{registry}"),
    get_cache_dir_cmd=("npm", "config", "get", "cache"),
    set_cache_dir_cmd=("npm", "config", "set", "cache", "{cacheDir}"),
    ping_registry_cmd=("npm", "ping", "--registry", "{registry}"),
    clean_cache_cmds=(
        ("npm", "cache", "clean", "--force"),
        ("npm", "cache", "verify"),
    ),
    mirrors=(NPMMIRROR, TENCENT_NPM, HUAWEI_NPM, NPMJS),
    query_ok_codes=_CONFIG_QUERY_CODES,
    tiers=NPM_TIERS,
)

YARN = ToolDescriptor(
    name="yarn",
    display_name="Yarn",
    category="package_manager",
    description="Fast, reliable and secure Node.js package manager",
    check_cmd=("yarn", "--version"),
    enable_cmds=(
        ("yarn", "config", "set", "proxy", "{proxy}"),
        ("yarn", "config", "set", "https-proxy", "{proxy}"),
    ),
    disable_cmds=(
        ("yarn", "config", "delete", "proxy"),
        ("yarn", "config", "delete", "https-proxy"),
    ),
    get_proxy_cmd=("yarn", "config", "get", "proxy"),
    get_registry_cmd=("yarn", "config", "get", "registry"),
    set_registry_cmd=("yarn", "config", "set", "registry", "{registry}"),
    get_cache_dir_cmd=("yarn", "config", "get", "cache-folder"),
    set_cache_dir_cmd=("yarn", "config", "set", "cache-folder", "{cacheDir}"),
    cache_path_cmd=("yarn", "cache", "dir"),
    # Yarn 1 has no ping; a metadata fetch exercises the registry instead.
    ping_registry_cmd=("yarn", "info", "react", "version", "--registry", "{registry}"),
    clean_cache_cmds=(("yarn", "cache", "clean"),),
    mirrors=(NPMMIRROR, YARNPKG),
    query_ok_codes=_CONFIG_QUERY_CODES,
)

PNPM = ToolDescriptor(
    name="pnpm",
    display_name="pnpm",
    category="package_manager",
    description="Fast, disk-space efficient package manager",
    check_cmd=("pnpm", "--version"),
    enable_cmds=(
        ("pnpm", "config", "set", "proxy", "{proxy}"),
        ("pnpm", "config", "set", "https-proxy", "{proxy}"),
    ),
    disable_cmds=(
        ("pnpm", "config", "delete", "proxy"),
        ("pnpm", "config", "delete", "https-proxy"),
    ),
    get_proxy_cmd=("pnpm", "config", "get", "proxy"),
    get_registry_cmd=("pnpm", "config", "get", "registry"),
    set_registry_cmd=("pnpm", "config", "set", "registry", "{registry}"),
    get_cache_dir_cmd=("pnpm", "config", "get", "store-dir"),
    set_cache_dir_cmd=("pnpm", "config", "set", "store-dir", "{cacheDir}"),
    mirrors=(NPMMIRROR, TENCENT_NPM, NPMJS),
    query_ok_codes=_CONFIG_QUERY_CODES,
)

BUN = ToolDescriptor(
    name="bun",
    display_name="Bun",
    category="package_manager",
    description="All-in-one JavaScript runtime and package manager",
    check_cmd=("bun", "--version"),
    enable_cmds=(
        ("bun", "pm", "config", "set", "httpProxy", "{proxy}", "--global"),
        ("bun", "pm", "config", "set", "httpsProxy", "{proxy}", "--global"),
    ),
    disable_cmds=(
        ("bun", "pm", "config", "rm", "httpProxy", "--global"),
        ("bun", "pm", "config", "rm", "httpsProxy", "--global"),
    ),
    get_proxy_cmd=("bun", "pm", "config", "get", "httpProxy", "--global"),
    get_registry_cmd=("bun", "pm", "config", "get", "registry"),
    set_registry_cmd=("bun", "pm", "config", "set", "registry", "{registry}"),
    query_ok_codes=_CONFIG_QUERY_CODES,
)

# Matches `proxy "http://host:port"` lines in ~/.yarnrc.
_YARNRC_PROXY = re.compile(r'proxy\s+"([^"]+)"')


def yarnrc_path() -> Path:
    return Path.home() / ".yarnrc"


def parse_yarnrc_proxy(content: str) -> str | None:
    """Return the first usable proxy value found in .yarnrc text."""
    for line in content.splitlines():
        if "proxy" not in line:
            continue
        match = _YARNRC_PROXY.search(line)
        if match:
            value = filter_value(match.group(1))
            if value:
                return value
    return None


class YarnAdapter(ToolAdapter):
    """Yarn adapter: proxy state comes from ``~/.yarnrc``, not the CLI."""

    async def get_current_proxy(self, fresh: bool = False) -> str | None:
        path = yarnrc_path()
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", path, e)
            return None
        return parse_yarnrc_proxy(content)
