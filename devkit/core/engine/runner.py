"""
Command runner — the SINGLE PLACE where tool CLIs are spawned.

Executes an argv vector as a child process and turns whatever happens
into a ``CommandResult``. Never raises: timeouts, signals, non-zero
exits and spawn failures are all classified and returned as data.

Classification (priority order):
    killed by signal / timeout  → outcome "timeout",     rc -1
    exit 0                      → outcome "ok"
    exit in ``ok_codes``        → outcome "not_set"      (benign empty query)
    other non-zero exit         → outcome "failed"
    cannot spawn                → outcome "spawn_error", rc -3
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import subprocess
import sys
import time
from collections.abc import Collection, Mapping, Sequence

from devkit.core.models.results import RC_SPAWN_ERROR, RC_TIMEOUT, CommandResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10_000
MAX_OUTPUT_BYTES = 10 * 1024 * 1024  # 10 MiB per stream

_CHUNK = 64 * 1024
_REAP_TIMEOUT_S = 2.0


def build_env(overlay: Mapping[str, str | None] | None) -> dict[str, str] | None:
    """Build the child environment for one call.

    ``None`` means "inherit the parent environment as-is" (no copy).
    Otherwise the overlay is merged on top of ``os.environ``; a value of
    ``None`` removes that variable for this call only. ``os.environ``
    itself is never modified.
    """
    if not overlay:
        return None
    env = dict(os.environ)
    for key, value in overlay.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


def _resolve_argv(argv: Sequence[str]) -> list[str]:
    """Resolve the executable on Windows, where CLIs are often .cmd shims."""
    args = list(argv)
    if sys.platform == "win32" and args:
        resolved = shutil.which(args[0])
        if resolved:
            args[0] = resolved
    return args


def _spawn_options() -> dict:
    """Put the child in its own process group so a timeout kills its descendants too."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


async def _read_bounded(stream: asyncio.StreamReader | None, limit: int) -> bytes:
    """Read a stream to EOF, keeping at most ``limit`` bytes.

    The rest is drained and dropped so the child never blocks on a
    full pipe.
    """
    if stream is None:
        return b""
    kept = bytearray()
    while True:
        chunk = await stream.read(_CHUNK)
        if not chunk:
            break
        room = limit - len(kept)
        if room > 0:
            kept.extend(chunk[:room])
    return bytes(kept)


class CommandRunner:
    """Spawn tool CLIs with a timeout and classify the outcome.

    Args:
        default_timeout_ms: Timeout used when a call doesn't pass one.
        max_output_bytes: Capture bound for each of stdout and stderr.
    """

    def __init__(
        self,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
    ):
        self.default_timeout_ms = default_timeout_ms
        self.max_output_bytes = max_output_bytes
        logger.debug("CommandRunner ready (default timeout %dms)", default_timeout_ms)

    async def execute(
        self,
        argv: Sequence[str],
        timeout_ms: int | None = None,
        env: Mapping[str, str | None] | None = None,
        ok_codes: Collection[int] = (),
    ) -> CommandResult:
        """Run ``argv`` and return its classified result.

        Args:
            argv: Binary followed by its arguments. No shell is involved.
            timeout_ms: Per-call timeout (default: ``default_timeout_ms``).
            env: Request-scoped environment overlay (see ``build_env``).
            ok_codes: Non-zero exit codes that mean "nothing set" for
                this particular command (logged quietly, still unsuccessful).
        """
        timeout_ms = timeout_ms or self.default_timeout_ms
        command = " ".join(argv)
        logger.debug("Executing: %s", command)
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *_resolve_argv(argv),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_env(env),
                **_spawn_options(),
            )
        except (OSError, ValueError) as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("Cannot spawn %s: %s", command, e)
            return CommandResult(
                success=False,
                return_code=RC_SPAWN_ERROR,
                outcome="spawn_error",
                stderr=str(e),
                command=command,
                execution_time_ms=elapsed_ms,
            )

        reader = asyncio.gather(
            _read_bounded(process.stdout, self.max_output_bytes),
            _read_bounded(process.stderr, self.max_output_bytes),
            process.wait(),
        )
        timed_out = False
        stdout_b = stderr_b = b""
        try:
            stdout_b, stderr_b, _ = await asyncio.wait_for(reader, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            await self._kill(process)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = stdout_b.decode("utf-8", errors="replace")
        stderr = stderr_b.decode("utf-8", errors="replace")
        return_code = process.returncode

        # Killed by a signal without an exit code of its own.
        if timed_out or return_code is None or return_code < 0:
            logger.warning("Command timed out: %s (>%dms)", command, timeout_ms)
            return CommandResult(
                success=False,
                return_code=RC_TIMEOUT,
                outcome="timeout",
                stdout=stdout,
                stderr=f"Command timed out (>{timeout_ms}ms)",
                command=command,
                execution_time_ms=elapsed_ms,
            )

        if return_code == 0:
            logger.debug("✓ %s (%dms)", command, elapsed_ms)
            return CommandResult(
                success=True,
                return_code=0,
                outcome="ok",
                stdout=stdout,
                stderr=stderr,
                command=command,
                execution_time_ms=elapsed_ms,
            )

        if return_code in ok_codes:
            logger.debug("Query returned nothing: %s (exit %d)", command, return_code)
            outcome = "not_set"
        else:
            logger.warning(
                "✗ %s exited %d: %s", command, return_code, stderr.strip()[:200],
            )
            outcome = "failed"

        return CommandResult(
            success=False,
            return_code=return_code,
            outcome=outcome,
            stdout=stdout,
            stderr=stderr,
            command=command,
            execution_time_ms=elapsed_ms,
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill a hung child and its process tree, then reap it.

        ``process.wait()`` only resolves once every pipe is closed, so a
        descendant still holding stdout can stall it. The reap is bounded;
        past the bound the pipe transports are closed and we move on.
        """
        try:
            if sys.platform == "win32":
                killer = await asyncio.create_subprocess_exec(
                    "taskkill", "/T", "/F", "/PID", str(process.pid),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                await asyncio.wait_for(killer.wait(), timeout=_REAP_TIMEOUT_S)
            else:
                os.killpg(process.pid, signal.SIGKILL)
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Process tree kill failed for pid %d: %s", process.pid, e)
        try:
            process.kill()
        except (ProcessLookupError, PermissionError):
            pass  # already gone

        try:
            await asyncio.wait_for(process.wait(), timeout=_REAP_TIMEOUT_S)
        except asyncio.TimeoutError:
            logger.warning("Pipes of pid %d still open after kill, closing them", process.pid)
            transport = getattr(process, "_transport", None)
            if transport is not None:
                transport.close()
