"""
Adapter base — the capability contract between the engine and tools.

Every supported tool is reached through a ``ToolAdapter``. The base
class derives all operations from the tool's declarative
``ToolDescriptor``; a subclass overrides a method only where a tool's
behaviour truly diverges (yarn reads its proxy from ``~/.yarnrc``).

Adapters NEVER raise. Every failure path resolves to a typed result.

Mutations follow one protocol:

    Idle → CommandsIssued → SettleWait → Verifying → Confirmed
                                                   ↘ VerificationFailed

The contract is "state is correct", not "commands ran": tools often
have several overlapping config sources that can silently negate a
write, so success is only reported after a read-back agrees.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from devkit.core.engine.runner import CommandRunner
from devkit.core.models.results import (
    CommandResult,
    ErrorKind,
    ToolInfo,
    ToolOperationResult,
)
from devkit.core.models.tool import ToolDescriptor, substitute
from devkit.core.services.detection_cache import DEFAULT_TTL_MS, DetectionCache
from devkit.core.services.disk_usage import directory_size, format_size

logger = logging.getLogger(__name__)

# Placeholder strings tools print for "not set".
IGNORED_VALUES = frozenset({"null", "undefined", "none", "noproxy"})

DEFAULT_SETTLE_DELAY_MS = 100
DEFAULT_DETECT_TIMEOUT_MS = 5000


def filter_value(value: str | None) -> str | None:
    """Sentinel filter: treat placeholder output as "value absent".

    >>> filter_value("  http://proxy:8080\\n")
    'http://proxy:8080'
    >>> filter_value("null") is None
    True
    """
    if not value:
        return None
    cleaned = value.strip()
    if not cleaned or cleaned.lower() in IGNORED_VALUES:
        return None
    return cleaned


def first_line(text: str) -> str:
    stripped = text.strip()
    return stripped.split("\n", 1)[0].strip() if stripped else ""


def _same_url(expected: str, actual: str | None) -> bool:
    return actual is not None and actual.rstrip("/") == expected.rstrip("/")


class ToolAdapter:
    """Descriptor-driven adapter for one tool.

    Args:
        descriptor: Static definition of the tool.
        runner: Process execution primitive (shared across adapters).
        settle_delay_ms: Pause between issuing mutations and verifying them.
        detect_timeout_ms: Timeout for read-only queries.
        cache_ttl_ms: TTL of this adapter's detection cache.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        runner: CommandRunner | None = None,
        settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS,
        detect_timeout_ms: int = DEFAULT_DETECT_TIMEOUT_MS,
        cache_ttl_ms: int = DEFAULT_TTL_MS,
    ):
        self.descriptor = descriptor
        self.runner = runner or CommandRunner()
        self.settle_delay_ms = settle_delay_ms
        self.detect_timeout_ms = detect_timeout_ms
        self.cache = DetectionCache(ttl_ms=cache_ttl_ms)

    @property
    def name(self) -> str:
        """The tool identifier (e.g. 'npm', 'git')."""
        return self.descriptor.name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

    # ── Reads ───────────────────────────────────────────────────

    async def _check(self) -> CommandResult:
        return await self.cache.get_cached(
            "check",
            lambda: self.runner.execute(self.descriptor.check_cmd, self.detect_timeout_ms),
        )

    async def _query(self, cmd: tuple[str, ...]) -> str | None:
        result = await self.runner.execute(
            cmd, self.detect_timeout_ms, ok_codes=self.descriptor.query_ok_codes,
        )
        if not result.success:
            return None
        return filter_value(result.stdout)

    async def _read(self, key: str, cmd: tuple[str, ...] | None, fresh: bool) -> str | None:
        if not cmd:
            return None
        if fresh:
            return await self._query(cmd)
        return await self.cache.get_cached(key, lambda: self._query(cmd))

    async def is_installed(self) -> bool:
        """Whether the check command succeeds. The sole install signal."""
        return (await self._check()).success

    async def get_version(self) -> str | None:
        """First line of the check command's output, sentinel-filtered."""
        result = await self._check()
        if not result.success:
            return None
        return filter_value(first_line(result.stdout))

    async def get_current_proxy(self, fresh: bool = False) -> str | None:
        return await self._read("proxy", self.descriptor.get_proxy_cmd, fresh)

    async def get_current_registry(self, fresh: bool = False) -> str | None:
        return await self._read("registry", self.descriptor.get_registry_cmd, fresh)

    async def get_current_cache_dir(self, fresh: bool = False) -> str | None:
        return await self._read("cache_dir", self.descriptor.get_cache_dir_cmd, fresh)

    async def is_proxy_enabled(self, fresh: bool = False) -> bool:
        proxy = await self.get_current_proxy(fresh=fresh)
        return bool(proxy)

    # ── Mutations ───────────────────────────────────────────────

    async def _settle(self) -> None:
        await asyncio.sleep(self.settle_delay_ms / 1000)

    async def enable_proxy(self, proxy_url: str) -> ToolOperationResult:
        """Run every enable template in order, then verify.

        Aborts at the first failing command.
        """
        d = self.descriptor
        if not d.enable_cmds:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} does not support proxy settings",
                ErrorKind.NOT_SUPPORTED,
            )
        if not proxy_url or not proxy_url.strip():
            return ToolOperationResult.fail(
                self.name, "Proxy URL is empty", ErrorKind.INVALID_VALUE,
            )
        proxy_url = proxy_url.strip()

        try:
            for template in d.enable_cmds:
                cmd = substitute(template, proxy=proxy_url)
                result = await self.runner.execute(cmd)
                if not result.success:
                    return ToolOperationResult.fail(
                        self.name,
                        f"Failed to enable proxy: {result.stderr.strip() or 'unknown error'}",
                        result.error_kind or ErrorKind.COMMAND_FAILED,
                        details=result,
                    )
        finally:
            # Even a partial run may have changed state.
            self.cache.clear()

        await self._settle()
        if not await self.is_proxy_enabled(fresh=True):
            logger.warning("[%s] proxy enable not confirmed by read-back", self.name)
            return ToolOperationResult.fail(
                self.name,
                "Proxy was set but verification failed",
                ErrorKind.VERIFICATION_FAILED,
            )

        self.cache.clear()
        logger.info("[%s] proxy enabled: %s", self.name, proxy_url)
        return ToolOperationResult.ok(
            self.name, f"Proxy enabled for {d.display_name}", value=proxy_url,
        )

    async def disable_proxy(self) -> ToolOperationResult:
        """Run every disable template (best-effort), then verify.

        A failing command does not abort the sequence: deleting a key
        that is already absent is expected to "fail" harmlessly.
        """
        d = self.descriptor
        if not d.disable_cmds:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} does not support proxy settings",
                ErrorKind.NOT_SUPPORTED,
            )

        for template in d.disable_cmds:
            cmd = list(template)
            result = await self.runner.execute(cmd, ok_codes=d.unset_ok_codes)
            if not result.success and result.return_code not in d.unset_ok_codes:
                logger.warning("[%s] disable command failed: %s", self.name, result.command)
        self.cache.clear()

        await self._settle()
        if await self.is_proxy_enabled(fresh=True):
            logger.warning("[%s] proxy still set after disable", self.name)
            return ToolOperationResult.fail(
                self.name,
                "Proxy is still configured; verification failed",
                ErrorKind.VERIFICATION_FAILED,
            )

        self.cache.clear()
        logger.info("[%s] proxy disabled", self.name)
        return ToolOperationResult.ok(self.name, f"Proxy disabled for {d.display_name}")

    async def _set_and_verify(
        self,
        label: str,
        template: tuple[str, ...] | None,
        read_cmd: tuple[str, ...] | None,
        value: str,
        **tokens: str,
    ) -> ToolOperationResult:
        d = self.descriptor
        if not template:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} does not support setting the {label}",
                ErrorKind.NOT_SUPPORTED,
            )

        result = await self.runner.execute(substitute(template, **tokens))
        self.cache.clear()
        if not result.success:
            return ToolOperationResult.fail(
                self.name,
                f"Failed to set {label}: {result.stderr.strip() or 'unknown error'}",
                result.error_kind or ErrorKind.COMMAND_FAILED,
                details=result,
            )

        if read_cmd:
            await self._settle()
            actual = await self._query(read_cmd)
            if not _same_url(value, actual):
                return ToolOperationResult.fail(
                    self.name,
                    f"Verification failed: expected {value}, got {actual or '(unset)'}",
                    ErrorKind.VERIFICATION_FAILED,
                    value=actual,
                )
            value = actual or value

        self.cache.clear()
        logger.info("[%s] %s set to %s", self.name, label, value)
        return ToolOperationResult.ok(self.name, f"{label.capitalize()} set", value=value)

    async def set_registry(self, registry_url: str) -> ToolOperationResult:
        """Point the tool at a registry / mirror URL and verify it took."""
        if not registry_url or not registry_url.strip():
            return ToolOperationResult.fail(self.name, "Registry URL is empty", ErrorKind.INVALID_VALUE)
        registry_url = registry_url.strip()
        return await self._set_and_verify(
            "registry",
            self.descriptor.set_registry_cmd,
            self.descriptor.get_registry_cmd,
            registry_url,
            registry=registry_url,
        )

    async def set_cache_dir(self, cache_dir: str) -> ToolOperationResult:
        """Point the tool at a cache directory (created if missing)."""
        if not cache_dir or not cache_dir.strip():
            return ToolOperationResult.fail(self.name, "Cache directory is empty", ErrorKind.INVALID_VALUE)
        if not self.descriptor.set_cache_dir_cmd:
            return await self._set_and_verify("cache directory", None, None, cache_dir)

        path = Path(cache_dir.strip()).expanduser()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ToolOperationResult.fail(
                self.name, f"Cannot create {path}: {e}", ErrorKind.INVALID_VALUE,
            )
        return await self._set_and_verify(
            "cache directory",
            self.descriptor.set_cache_dir_cmd,
            self.descriptor.get_cache_dir_cmd,
            str(path),
            cacheDir=str(path),
        )

    # ── Maintenance ─────────────────────────────────────────────

    async def ping_registry(self, registry_url: str | None = None) -> ToolOperationResult:
        """Check that a registry answers, and how fast.

        Without a URL the tool's currently configured registry is pinged.
        """
        d = self.descriptor
        if not d.ping_registry_cmd:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} cannot test a registry",
                ErrorKind.NOT_SUPPORTED,
            )
        url = (registry_url or "").strip() or await self.get_current_registry(fresh=True)
        if not url:
            return ToolOperationResult.fail(
                self.name, "No registry URL given or configured", ErrorKind.INVALID_VALUE,
            )

        result = await self.runner.execute(substitute(d.ping_registry_cmd, registry=url))
        if not result.success:
            logger.info("[%s] registry %s unreachable: %s", self.name, url, result.outcome)
            return ToolOperationResult.fail(
                self.name,
                f"Registry {url} unreachable: {result.stderr.strip() or result.outcome}",
                result.error_kind or ErrorKind.COMMAND_FAILED,
                value=url,
                details=result,
            )

        logger.info("[%s] registry %s answered in %dms", self.name, url, result.execution_time_ms)
        return ToolOperationResult.ok(
            self.name,
            f"Registry {url} reachable ({result.execution_time_ms}ms)",
            value=url,
            duration_ms=result.execution_time_ms,
        )

    async def get_cache_info(self) -> ToolOperationResult:
        """Report the cache directory in use and its size on disk."""
        d = self.descriptor
        cmd = d.cache_path_cmd or d.get_cache_dir_cmd
        if not cmd:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} has no cache directory",
                ErrorKind.NOT_SUPPORTED,
            )
        path = await self._query(cmd)
        if not path:
            return ToolOperationResult.fail(
                self.name, "Cannot determine the cache directory", ErrorKind.COMMAND_FAILED,
            )

        size = await asyncio.to_thread(directory_size, Path(path).expanduser())
        return ToolOperationResult.ok(
            self.name, f"{path} ({format_size(size)})", value=path, size_bytes=size,
        )

    async def clean_cache(self) -> ToolOperationResult:
        """Run the tool's cache clean commands in order.

        Aborts at the first failing command.
        """
        d = self.descriptor
        if not d.clean_cache_cmds:
            return ToolOperationResult.fail(
                self.name, f"{d.display_name} does not support cleaning its cache",
                ErrorKind.NOT_SUPPORTED,
            )

        try:
            for template in d.clean_cache_cmds:
                result = await self.runner.execute(template)
                if not result.success:
                    return ToolOperationResult.fail(
                        self.name,
                        f"Cache clean failed: {result.stderr.strip() or 'unknown error'}",
                        result.error_kind or ErrorKind.COMMAND_FAILED,
                        details=result,
                    )
        finally:
            self.cache.clear()

        logger.info("[%s] cache cleaned", self.name)
        return ToolOperationResult.ok(self.name, f"{d.display_name} cache cleaned")

    # ── Snapshot ────────────────────────────────────────────────

    async def get_info(self) -> ToolInfo:
        """Build one atomic snapshot of the tool's state.

        Uninstalled tools are not queried any further. For installed
        tools the proxy, registry and cache-dir reads run concurrently.
        """
        d = self.descriptor
        info = ToolInfo(
            name=d.name,
            display_name=d.display_name,
            category=d.category,
            mirrors=list(d.mirrors),
            can_set_registry=d.can_set_registry,
            can_set_cache_dir=d.can_set_cache_dir,
        )
        try:
            check = await self._check()
            if not check.success:
                logger.debug("[%s] not installed (%s)", self.name, check.outcome)
                return info

            proxy, registry, cache_dir = await asyncio.gather(
                self.get_current_proxy(),
                self.get_current_registry(),
                self.get_current_cache_dir(),
            )
        except Exception as e:
            logger.exception("[%s] detection failed", self.name)
            return info.model_copy(update={"status": "error", "error": str(e)})

        return info.model_copy(update={
            "status": "installed",
            "version": filter_value(first_line(check.stdout)),
            "proxy_enabled": bool(proxy),
            "current_proxy": proxy,
            "registry_url": registry,
            "cache_dir": cache_dir,
        })
