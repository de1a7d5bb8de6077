"""
Tool descriptor models — the static definition of one supported tool.

A ``ToolDescriptor`` is declarative: it lists the argv templates used to
check, query and mutate a tool's configuration. Adapters derive every
operation from these templates. Descriptors are built once at import
time from the fixed table in ``devkit.adapters`` and never mutated.

Placeholders substituted at call time:
    {proxy}     proxy URL (enable templates)
    {registry}  registry / mirror URL (set-registry and ping templates)
    {cacheDir}  cache directory (set-cache-dir template)
    {key}       configuration key (tier templates)
    {value}     configuration value (tier write template)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ToolCategory = Literal["package_manager", "dev_tool"]

def substitute(template: list[str] | tuple[str, ...], **values: str) -> list[str]:
    """Fill placeholder tokens in an argv template.

    Only whole arguments equal to a token are replaced, so argument
    boundaries survive values that contain spaces or shell characters.

    >>> substitute(["npm", "config", "set", "proxy", "{proxy}"], proxy="http://p:1")
    ['npm', 'config', 'set', 'proxy', 'http://p:1']
    """
    tokens = {"{" + name + "}": value for name, value in values.items()}
    return [tokens.get(part, part) for part in template]


class Mirror(BaseModel):
    """A known registry mirror for a tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    url: str
    location: str | None = None
    homepage: str | None = None


class TieredConfig(BaseModel):
    """Tier-aware configuration commands (npm-style ``--location``).

    Used by the precedence resolver to query the effective, user and
    global value of a key independently, and by tier-aware writes.
    """

    model_config = ConfigDict(frozen=True)

    effective_cmd: tuple[str, ...]
    user_cmd: tuple[str, ...]
    global_cmd: tuple[str, ...]
    set_cmd: tuple[str, ...]            # {key} {value} {location}
    delete_cmd: tuple[str, ...]         # {key} {location}
    env_prefix: str                     # e.g. "npm_config_"
    locations: tuple[str, ...] = ("user", "global")
    watched_keys: tuple[str, ...] = ()
    defaults: dict[str, frozenset[str]] = Field(default_factory=dict)

    def defaults_for(self, key: str) -> frozenset[str]:
        """Values that mean "tool default" for a key (never an override)."""
        return self.defaults.get(key, frozenset())

    def env_var_names(self, key: str) -> list[str]:
        """Environment variable spellings that shadow ``key``.

        Both the lower-case and upper-case conventions, with dashes in
        the key mapped to underscores (the dashed form is checked too,
        since some shells export it verbatim).
        """
        names: list[str] = []
        for variant in (key.replace("-", "_"), key):
            for name in (f"{self.env_prefix}{variant}".lower(),
                         f"{self.env_prefix}{variant}".upper()):
                if name not in names:
                    names.append(name)
        return names


class ToolDescriptor(BaseModel):
    """Immutable static definition of one supported tool."""

    model_config = ConfigDict(frozen=True)

    name: str                                   # identifier, unique
    display_name: str
    category: ToolCategory
    description: str = ""

    check_cmd: tuple[str, ...]
    enable_cmds: tuple[tuple[str, ...], ...] = ()
    disable_cmds: tuple[tuple[str, ...], ...] = ()

    get_proxy_cmd: tuple[str, ...] | None = None
    get_registry_cmd: tuple[str, ...] | None = None
    set_registry_cmd: tuple[str, ...] | None = None
    get_cache_dir_cmd: tuple[str, ...] | None = None
    set_cache_dir_cmd: tuple[str, ...] | None = None
    # Where the tool actually keeps its cache, when the config key may be unset.
    cache_path_cmd: tuple[str, ...] | None = None
    ping_registry_cmd: tuple[str, ...] | None = None    # {registry}
    clean_cache_cmds: tuple[tuple[str, ...], ...] = ()

    mirrors: tuple[Mirror, ...] = ()

    # Exit codes a config query returns to mean "key not set".
    query_ok_codes: frozenset[int] = frozenset()
    # Exit codes an unset/delete command returns to mean "already absent".
    unset_ok_codes: frozenset[int] = frozenset()

    tiers: TieredConfig | None = None

    @property
    def supports_proxy(self) -> bool:
        return bool(self.enable_cmds) and bool(self.disable_cmds)

    @property
    def can_set_registry(self) -> bool:
        return bool(self.set_registry_cmd)

    @property
    def can_set_cache_dir(self) -> bool:
        return bool(self.set_cache_dir_cmd)

    @property
    def can_ping_registry(self) -> bool:
        return bool(self.ping_registry_cmd)

    @property
    def can_clean_cache(self) -> bool:
        return bool(self.clean_cache_cmds)
