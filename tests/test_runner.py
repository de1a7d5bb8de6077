"""
Tests for the command runner — real child processes via the current interpreter.
"""

import os
import sys
import time

import pytest

from devkit.core.engine.runner import CommandRunner, build_env
from devkit.core.models.results import RC_SPAWN_ERROR, RC_TIMEOUT, ErrorKind

PY = sys.executable


class TestBuildEnv:
    def test_none_inherits(self):
        assert build_env(None) is None

    def test_empty_overlay_inherits(self):
        assert build_env({}) is None

    def test_overlay_adds_and_removes(self, monkeypatch):
        monkeypatch.setenv("DEVKIT_TEST_DROP", "1")
        env = build_env({"DEVKIT_TEST_ADD": "yes", "DEVKIT_TEST_DROP": None})
        assert env["DEVKIT_TEST_ADD"] == "yes"
        assert "DEVKIT_TEST_DROP" not in env
        # parent environment untouched
        assert os.environ["DEVKIT_TEST_DROP"] == "1"
        assert "DEVKIT_TEST_ADD" not in os.environ


class TestExecute:
    @pytest.mark.asyncio
    async def test_success(self):
        result = await CommandRunner().execute([PY, "-c", "print('hello')"])
        assert result.success
        assert result.outcome == "ok"
        assert result.return_code == 0
        assert result.stdout.strip() == "hello"
        assert result.error_kind is None

    @pytest.mark.asyncio
    async def test_nonzero_exit_fails(self):
        result = await CommandRunner().execute(
            [PY, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
        )
        assert not result.success
        assert result.outcome == "failed"
        assert result.return_code == 3
        assert "boom" in result.stderr
        assert result.error_kind is ErrorKind.COMMAND_FAILED

    @pytest.mark.asyncio
    async def test_ok_codes_mark_not_set(self):
        result = await CommandRunner().execute(
            [PY, "-c", "import sys; sys.exit(5)"], ok_codes={1, 5},
        )
        assert not result.success
        assert result.outcome == "not_set"
        assert result.return_code == 5

    @pytest.mark.asyncio
    async def test_timeout_kills_child(self):
        result = await CommandRunner().execute(
            [PY, "-c", "import time; time.sleep(30)"], timeout_ms=300,
        )
        assert not result.success
        assert result.outcome == "timeout"
        assert result.return_code == RC_TIMEOUT
        assert "300ms" in result.stderr
        assert result.execution_time_ms < 10_000

    @pytest.mark.asyncio
    async def test_timeout_kills_grandchild_holding_pipes(self):
        # the grandchild inherits stdout/stderr and outlives the direct child's kill
        script = (
            "import subprocess, sys, time; "
            "subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)']); "
            "time.sleep(30)"
        )
        start = time.monotonic()
        result = await CommandRunner().execute([PY, "-c", script], timeout_ms=500)
        elapsed = time.monotonic() - start
        assert result.outcome == "timeout"
        assert elapsed < 5

    @pytest.mark.asyncio
    async def test_default_timeout_used(self):
        runner = CommandRunner(default_timeout_ms=300)
        result = await runner.execute([PY, "-c", "import time; time.sleep(30)"])
        assert result.outcome == "timeout"

    @pytest.mark.asyncio
    async def test_missing_binary_is_spawn_error(self):
        result = await CommandRunner().execute(["devkit-no-such-binary-xyz", "--version"])
        assert not result.success
        assert result.outcome == "spawn_error"
        assert result.return_code == RC_SPAWN_ERROR
        assert result.stderr
        assert result.error_kind is ErrorKind.SPAWN_ERROR

    @pytest.mark.asyncio
    async def test_arguments_are_not_shell_split(self):
        result = await CommandRunner().execute(
            [PY, "-c", "import sys; print(sys.argv[1])", "a b; echo c"],
        )
        assert result.stdout.strip() == "a b; echo c"

    @pytest.mark.asyncio
    async def test_command_is_joined_argv(self):
        result = await CommandRunner().execute([PY, "-c", "pass"])
        assert result.command == f"{PY} -c pass"

    @pytest.mark.asyncio
    async def test_output_is_bounded(self):
        runner = CommandRunner(max_output_bytes=100)
        result = await runner.execute([PY, "-c", "print('x' * 500000)"])
        assert result.success
        assert len(result.stdout) == 100


class TestEnvOverlay:
    SCRIPT = "import os; print(os.environ.get('DEVKIT_TEST_VAR', '<unset>'))"

    @pytest.mark.asyncio
    async def test_inherits_by_default(self, monkeypatch):
        monkeypatch.setenv("DEVKIT_TEST_VAR", "inherited")
        result = await CommandRunner().execute([PY, "-c", self.SCRIPT])
        assert result.stdout.strip() == "inherited"

    @pytest.mark.asyncio
    async def test_overlay_removes_variable_for_one_call(self, monkeypatch):
        monkeypatch.setenv("DEVKIT_TEST_VAR", "inherited")
        runner = CommandRunner()
        removed = await runner.execute([PY, "-c", self.SCRIPT], env={"DEVKIT_TEST_VAR": None})
        assert removed.stdout.strip() == "<unset>"

        again = await runner.execute([PY, "-c", self.SCRIPT])
        assert again.stdout.strip() == "inherited"
        assert os.environ["DEVKIT_TEST_VAR"] == "inherited"

    @pytest.mark.asyncio
    async def test_overlay_sets_variable(self, monkeypatch):
        monkeypatch.delenv("DEVKIT_TEST_VAR", raising=False)
        result = await CommandRunner().execute(
            [PY, "-c", self.SCRIPT], env={"DEVKIT_TEST_VAR": "overlay"},
        )
        assert result.stdout.strip() == "overlay"
        assert "DEVKIT_TEST_VAR" not in os.environ
