"""
Precedence resolution — which configuration tier wins for a key.

Tools like npm read the same key from several places, highest
priority first:

    process environment (npm_config_<key>)
      > user config file (~/.npmrc)
        > global config file ($PREFIX/etc/npmrc)
          > built-in default

A value written to the user file can be silently negated by a stale
global entry or an exported variable. The resolver queries each tier
independently, works out the winning source and produces actionable
diagnostics. It also owns the tier-aware writes that clean up the
competing tiers.

Only descriptors carrying a ``TieredConfig`` are supported.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence

from devkit.adapters.base import ToolAdapter
from devkit.adapters.registry import AdapterRegistry
from devkit.core.models.results import (
    BatchOperationResult,
    ConfigSource,
    ErrorKind,
    PrecedenceSnapshot,
    ToolOperationResult,
)
from devkit.core.models.tool import TieredConfig, substitute
from devkit.core.services.proxy_ops import not_found

logger = logging.getLogger(__name__)

DEFAULT_TIERED_SETTLE_DELAY_MS = 500

# Keys cleared from the global tier when the caller names none.
DEFAULT_CLEAR_KEYS = ("registry", "proxy", "https-proxy", "cache")


def tier_value(raw: str | None) -> str | None:
    """Normalise one tier query's output: "undefined" and empty mean absent."""
    if raw is None:
        return None
    value = raw.strip()
    if not value or value == "undefined":
        return None
    return value


def resolve_source(
    effective: str | None,
    user: str | None,
    has_global_override: bool,
    global_value: str | None,
    env_vars: Mapping[str, str],
) -> ConfigSource:
    """Pick the tier the effective value comes from."""
    if env_vars:
        return "env"
    if has_global_override and effective == global_value:
        return "global"
    if user is not None:
        return "user"
    if has_global_override:
        return "global"
    return "default"


def _strip_slash(value: str | None) -> str | None:
    return value.rstrip("/") if value is not None else None


class PrecedenceResolver:
    """Tier-aware reads and writes for tools with a tier table.

    Args:
        registry: Where tool identifiers are resolved.
        tiered_settle_delay_ms: Pause between a tier write and its read-back.
        environ: Environment to scan (default: ``os.environ`` at call time).
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        tiered_settle_delay_ms: int = DEFAULT_TIERED_SETTLE_DELAY_MS,
        environ: Mapping[str, str] | None = None,
    ):
        self.registry = registry
        self.tiered_settle_delay_ms = tiered_settle_delay_ms
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    def _resolve(self, tool_name: str) -> tuple[ToolAdapter | None, TieredConfig | None, ErrorKind | None]:
        adapter = self.registry.get(tool_name)
        if adapter is None:
            return None, None, ErrorKind.NOT_FOUND
        if adapter.descriptor.tiers is None:
            return adapter, None, ErrorKind.NOT_SUPPORTED
        return adapter, adapter.descriptor.tiers, None

    async def _query(
        self,
        adapter: ToolAdapter,
        template: Sequence[str],
        env: Mapping[str, str | None] | None = None,
        **tokens: str,
    ) -> str | None:
        result = await adapter.runner.execute(
            substitute(template, **tokens),
            adapter.detect_timeout_ms,
            env=env,
            ok_codes=adapter.descriptor.query_ok_codes,
        )
        if not result.success:
            return None
        return tier_value(result.stdout)

    def _shadowing_overlay(self, tiers: TieredConfig, key: str) -> dict[str, None]:
        """Environment overlay removing every variable that shadows a watched key."""
        keys = dict.fromkeys((*tiers.watched_keys, key))
        return {name: None for k in keys for name in tiers.env_var_names(k)}

    @staticmethod
    def _tier_cmd(tiers: TieredConfig, location: str) -> tuple[str, ...]:
        return tiers.user_cmd if location == "user" else tiers.global_cmd

    # ── Reads ───────────────────────────────────────────────────

    async def snapshot(self, tool_name: str, key: str) -> PrecedenceSnapshot:
        """Report the effective value of ``key`` and where it comes from."""
        adapter, tiers, error_kind = self._resolve(tool_name)
        if error_kind is not None:
            message = (
                f"Unknown tool: {tool_name}" if error_kind is ErrorKind.NOT_FOUND
                else f"{tool_name} has no tiered configuration"
            )
            return PrecedenceSnapshot(
                tool_name=tool_name, key=key, error=message, error_kind=error_kind,
            )

        effective, user, global_raw = await asyncio.gather(
            self._query(adapter, tiers.effective_cmd, key=key),
            self._query(adapter, tiers.user_cmd, key=key),
            self._query(adapter, tiers.global_cmd, key=key),
        )

        global_value = (
            global_raw if global_raw is not None and global_raw not in tiers.defaults_for(key)
            else None
        )
        has_global_override = global_value is not None and global_value != user

        environ = self.environ
        env_vars = {
            name: environ[name]
            for name in tiers.env_var_names(key)
            if name in environ
        }

        source = resolve_source(effective, user, has_global_override, global_value, env_vars)

        diagnostics: list[str] = []
        for name, value in env_vars.items():
            diagnostics.append(
                f"Environment variable {name}={value} overrides the config files; "
                f"unset {name} to use them"
            )
        if has_global_override:
            fix = " ".join(substitute(tiers.delete_cmd, key=key, location="global"))
            diagnostics.append(
                f"Global config sets {key}={global_value} over the user value; "
                f"remove it with `{fix}`"
            )
        if (
            not env_vars
            and not has_global_override
            and user is not None
            and _strip_slash(effective) != _strip_slash(user)
        ):
            diagnostics.append(
                f"Effective {key} ({effective or 'unset'}) differs from the user value "
                f"({user}); check the project config"
            )

        if diagnostics:
            logger.info("[%s] %s resolved from %s with %d warning(s)",
                        tool_name, key, source, len(diagnostics))

        return PrecedenceSnapshot(
            tool_name=tool_name,
            key=key,
            effective=effective,
            user=user,
            global_value=global_value,
            has_global_override=has_global_override,
            env_vars=env_vars,
            source=source,
            diagnostics=diagnostics,
        )

    async def report(self, tool_name: str) -> list[PrecedenceSnapshot]:
        """Snapshot every watched key of a tool."""
        _, tiers, error_kind = self._resolve(tool_name)
        if error_kind is not None:
            return [await self.snapshot(tool_name, "")]
        return list(await asyncio.gather(
            *(self.snapshot(tool_name, key) for key in tiers.watched_keys)
        ))

    # ── Writes ──────────────────────────────────────────────────

    async def set_value(
        self, tool_name: str, key: str, value: str, location: str = "user",
    ) -> ToolOperationResult:
        """Write ``key`` at one tier and make sure no other tier shadows it.

        Deletes the key at the other file tiers, writes it with the
        shadowing environment variables removed for the child, settles,
        then reads the tier back.
        """
        adapter, tiers, error_kind = self._resolve(tool_name)
        if error_kind is ErrorKind.NOT_FOUND:
            return not_found(tool_name)
        if error_kind is not None:
            return ToolOperationResult.fail(
                tool_name, f"{tool_name} has no tiered configuration", error_kind,
            )
        if location not in tiers.locations:
            return ToolOperationResult.fail(
                tool_name,
                f"Unknown location {location!r} (expected one of: {', '.join(tiers.locations)})",
                ErrorKind.INVALID_VALUE,
            )
        if not key or not value or not value.strip():
            return ToolOperationResult.fail(
                tool_name, "Key and value are required", ErrorKind.INVALID_VALUE,
            )
        value = value.strip()
        overlay = self._shadowing_overlay(tiers, key)

        for other in tiers.locations:
            if other == location:
                continue
            result = await adapter.runner.execute(
                substitute(tiers.delete_cmd, key=key, location=other),
                env=overlay,
                ok_codes=adapter.descriptor.unset_ok_codes,
            )
            if result.success:
                logger.debug("[%s] cleared %s at %s tier", tool_name, key, other)

        result = await adapter.runner.execute(
            substitute(tiers.set_cmd, key=key, value=value, location=location),
            env=overlay,
        )
        adapter.cache.clear()
        if not result.success:
            return ToolOperationResult.fail(
                tool_name,
                f"Failed to set {key}: {result.stderr.strip() or 'unknown error'}",
                result.error_kind or ErrorKind.COMMAND_FAILED,
                details=result,
            )

        await asyncio.sleep(self.tiered_settle_delay_ms / 1000)
        actual = await self._query(adapter, self._tier_cmd(tiers, location), env=overlay, key=key)
        if _strip_slash(actual) != _strip_slash(value):
            logger.warning("[%s] %s read back as %r, expected %r", tool_name, key, actual, value)
            return ToolOperationResult.fail(
                tool_name,
                f"Verification failed: expected {value}, got {actual or '(unset)'}",
                ErrorKind.VERIFICATION_FAILED,
                value=actual,
            )

        adapter.cache.clear()
        logger.info("[%s] %s set to %s (%s)", tool_name, key, actual, location)
        return ToolOperationResult.ok(
            tool_name, f"{key} set at {location} level", value=actual,
        )

    async def clear_global(
        self, tool_name: str, keys: Sequence[str] | None = None,
    ) -> BatchOperationResult:
        """Delete keys from the global tier, best-effort, one result per key.

        Deleting a key that is not set counts as success; only timeouts
        and spawn failures are reported as failures.
        """
        adapter, tiers, error_kind = self._resolve(tool_name)
        if error_kind is ErrorKind.NOT_FOUND:
            return BatchOperationResult.from_results([not_found(tool_name)])
        if error_kind is not None:
            return BatchOperationResult.from_results([ToolOperationResult.fail(
                tool_name, f"{tool_name} has no tiered configuration", error_kind,
            )])

        results = []
        for key in keys or DEFAULT_CLEAR_KEYS:
            result = await adapter.runner.execute(
                substitute(tiers.delete_cmd, key=key, location="global"),
                ok_codes=adapter.descriptor.unset_ok_codes,
            )
            if result.success:
                results.append(ToolOperationResult.ok(tool_name, f"Cleared global {key}"))
            elif result.outcome in ("timeout", "spawn_error"):
                results.append(ToolOperationResult.fail(
                    tool_name, f"Could not clear global {key}: {result.stderr.strip()}",
                    result.error_kind, details=result,
                ))
            else:
                results.append(ToolOperationResult.ok(
                    tool_name, f"{key} not set at global level",
                ))

        adapter.cache.clear()
        return BatchOperationResult.from_results(results)
