"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from devkit.adapters.base import ToolAdapter
from devkit.adapters.registry import build_default_registry
from devkit.core.config.loader import Settings
from devkit.core.models.results import RC_SPAWN_ERROR, RC_TIMEOUT, CommandResult
from devkit.core.models.tool import ToolDescriptor
from devkit.core.use_cases.tools import ToolEngine

Scripted = tuple[int, str, str]


class FakeRunner:
    """Test double for ``CommandRunner``.

    Records every argv (and env overlay) it receives and replays
    scripted results. Scripts registered for the same argv are consumed
    in order, the last one repeating. A ``handler`` callable, when set,
    is consulted first. Anything unscripted behaves like a binary that
    is not installed.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict | None] = []
        self.handler: Callable[[list[str], dict | None], Scripted | None] | None = None
        self._scripts: dict[tuple[str, ...], list[Scripted]] = {}

    def on(self, *argv: str, rc: int = 0, stdout: str = "", stderr: str = "") -> FakeRunner:
        self._scripts.setdefault(tuple(argv), []).append((rc, stdout, stderr))
        return self

    def count(self, *argv: str) -> int:
        return sum(1 for call in self.calls if tuple(call) == argv)

    async def execute(self, argv, timeout_ms=None, env=None, ok_codes=()) -> CommandResult:
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(dict(env) if env is not None else None)
        command = " ".join(argv)

        scripted = self.handler(argv, env) if self.handler else None
        if scripted is None:
            queue = self._scripts.get(tuple(argv))
            if queue:
                scripted = queue.pop(0) if len(queue) > 1 else queue[0]
        if scripted is None:
            return CommandResult(
                success=False,
                return_code=RC_SPAWN_ERROR,
                outcome="spawn_error",
                stderr=f"[Errno 2] No such file or directory: '{argv[0]}'",
                command=command,
            )

        rc, stdout, stderr = scripted
        if rc == 0:
            outcome = "ok"
        elif rc == RC_TIMEOUT:
            outcome, stderr = "timeout", f"Command timed out (>{timeout_ms}ms)"
        elif rc in ok_codes:
            outcome = "not_set"
        else:
            outcome = "failed"
        return CommandResult(
            success=rc == 0,
            return_code=rc,
            outcome=outcome,
            stdout=stdout,
            stderr=stderr,
            command=command,
        )


class NpmSim:
    """In-memory npm config with user / global tiers and env shadowing.

    Install with ``runner.handler = sim``.
    """

    DEFAULTS = {
        "registry": "https://registry.npmjs.org/",
        "proxy": "null",
        "https-proxy": "null",
        "cache": "/home/dev/.npm",
        "prefix": "/usr/local",
    }

    def __init__(self, version: str = "10.2.4") -> None:
        self.version = version
        self.tiers: dict[str, dict[str, str]] = {"user": {}, "global": {}}
        # npm_config_* variables the child sees unless the overlay removes them
        self.env: dict[str, str] = {}
        # keys whose writes silently do not stick
        self.sticky: set[str] = set()

    def _env_for(self, key: str, overlay: dict | None) -> str | None:
        if key not in self.env:
            return None
        name = "npm_config_" + key.replace("-", "_")
        if overlay is not None and name in overlay and overlay[name] is None:
            return None
        return self.env[key]

    def effective(self, key: str, overlay: dict | None = None) -> str:
        env_value = self._env_for(key, overlay)
        if env_value is not None:
            return env_value
        for tier in ("user", "global"):
            if key in self.tiers[tier]:
                return self.tiers[tier][key]
        return self.DEFAULTS.get(key, "undefined")

    def __call__(self, argv: list[str], env: dict | None) -> Scripted | None:
        if not argv or argv[0] != "npm":
            return None
        args = argv[1:]
        if args == ["--version"]:
            return (0, f"{self.version}\n", "")
        if len(args) < 3 or args[0] != "config":
            return (1, "", "npm ERR! unknown command")

        op, key, rest = args[1], args[2], args[3:]
        location = None
        if rest and rest[-1].startswith("--location="):
            location = rest[-1].split("=", 1)[1]
            rest = rest[:-1]
        elif len(rest) >= 2 and rest[-2] == "--location":
            location = rest[-1]
            rest = rest[:-2]

        if op == "get":
            if location is None:
                return (0, self.effective(key, env) + "\n", "")
            return (0, self.tiers[location].get(key, "undefined") + "\n", "")
        if op == "set":
            if key not in self.sticky:
                self.tiers[location or "user"][key] = rest[0]
            return (0, "", "")
        if op == "delete":
            self.tiers[location or "user"].pop(key, None)
            return (0, "", "")
        return (1, "", f"npm ERR! unknown config op {op}")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def npm_sim(fake_runner: FakeRunner) -> NpmSim:
    sim = NpmSim()
    fake_runner.handler = sim
    return sim


@pytest.fixture
def make_adapter(fake_runner: FakeRunner) -> Callable[..., ToolAdapter]:
    """Build an adapter on the fake runner with no settle delay."""

    def _make(descriptor: ToolDescriptor, cls: type[ToolAdapter] = ToolAdapter, **kwargs) -> ToolAdapter:
        kwargs.setdefault("settle_delay_ms", 0)
        return cls(descriptor, fake_runner, **kwargs)

    return _make


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(settle_delay_ms=0, tiered_settle_delay_ms=0)


@pytest.fixture
def engine(fake_runner: FakeRunner, fast_settings: Settings) -> ToolEngine:
    """An engine whose every tool talks to the fake runner."""
    registry = build_default_registry(fake_runner, settle_delay_ms=0)
    return ToolEngine(fast_settings, runner=fake_runner, registry=registry)
