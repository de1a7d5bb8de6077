"""
Tests for the adapter base and the yarn override.
"""

import asyncio

import pytest

from devkit.adapters.base import ToolAdapter, filter_value, first_line
from devkit.adapters.languages import node
from devkit.adapters.languages.node import NPM, YARN, YarnAdapter, parse_yarnrc_proxy
from devkit.adapters.languages.python import PIP
from devkit.adapters.shell.transfer import CURL
from devkit.adapters.vcs.git import GIT
from devkit.core.models.results import ErrorKind

PROXY = "http://127.0.0.1:7890"


class TestFilterValue:
    @pytest.mark.parametrize("raw", [None, "", "   ", "null", "undefined", "none", "noproxy",
                                     "NULL\n", "  Undefined  ", "NoProxy"])
    def test_sentinels_are_absent(self, raw):
        assert filter_value(raw) is None

    def test_keeps_trimmed_original_text(self):
        assert filter_value("  HTTP://Proxy:8080\n") == "HTTP://Proxy:8080"

    def test_first_line(self):
        assert first_line("git version 2.43.0\nextra\n") == "git version 2.43.0"
        assert first_line("   \n") == ""


class TestDetection:
    @pytest.mark.asyncio
    async def test_missing_binary_not_installed(self, make_adapter):
        adapter = make_adapter(GIT)
        assert await adapter.is_installed() is False
        assert await adapter.get_version() is None

    @pytest.mark.asyncio
    async def test_version_is_first_line(self, fake_runner, make_adapter):
        fake_runner.on("mvn", "--version", stdout="Apache Maven 3.9.6\nMaven home: /opt\n")
        from devkit.adapters.languages.jvm import MAVEN

        adapter = make_adapter(MAVEN)
        assert await adapter.is_installed()
        assert await adapter.get_version() == "Apache Maven 3.9.6"

    @pytest.mark.asyncio
    async def test_version_never_a_sentinel(self, fake_runner, make_adapter):
        fake_runner.on("curl", "--version", stdout="undefined\n")
        adapter = make_adapter(CURL)
        assert await adapter.is_installed()
        assert await adapter.get_version() is None

    @pytest.mark.asyncio
    async def test_check_is_cached(self, fake_runner, make_adapter):
        fake_runner.on("git", "--version", stdout="git version 2.43.0\n")
        adapter = make_adapter(GIT)
        await adapter.is_installed()
        await adapter.get_version()
        await adapter.is_installed()
        assert fake_runner.count("git", "--version") == 1

    @pytest.mark.asyncio
    async def test_proxy_sentinel_filtered(self, fake_runner, make_adapter):
        fake_runner.on("npm", "config", "get", "proxy", stdout="null\n")
        adapter = make_adapter(NPM)
        assert await adapter.get_current_proxy() is None
        assert await adapter.is_proxy_enabled() is False

    @pytest.mark.asyncio
    async def test_unset_git_key_is_no_proxy(self, fake_runner, make_adapter):
        fake_runner.on("git", "config", "--global", "http.proxy", rc=1)
        adapter = make_adapter(GIT)
        assert await adapter.get_current_proxy() is None

    @pytest.mark.asyncio
    async def test_tool_without_query_has_no_proxy(self, make_adapter, fake_runner):
        adapter = make_adapter(CURL)
        assert await adapter.get_current_proxy() is None
        assert await adapter.get_current_registry() is None
        assert fake_runner.calls == []


class TestEnableProxy:
    @pytest.mark.asyncio
    async def test_commands_run_in_order_with_substitution(self, fake_runner, npm_sim, make_adapter):
        adapter = make_adapter(NPM)
        result = await adapter.enable_proxy(PROXY)

        assert result.success
        assert result.value == PROXY
        assert fake_runner.calls[0] == ["npm", "config", "set", "proxy", PROXY]
        assert fake_runner.calls[1] == ["npm", "config", "set", "https-proxy", PROXY]
        assert await adapter.is_proxy_enabled()

    @pytest.mark.asyncio
    async def test_aborts_on_first_failure(self, fake_runner, make_adapter):
        fake_runner.on("git", "config", "--global", "http.proxy", PROXY, rc=255, stderr="locked")
        adapter = make_adapter(GIT)
        result = await adapter.enable_proxy(PROXY)

        assert not result.success
        assert result.error_kind is ErrorKind.COMMAND_FAILED
        assert "locked" in result.message
        assert result.details.return_code == 255
        assert fake_runner.count("git", "config", "--global", "https.proxy", PROXY) == 0

    @pytest.mark.asyncio
    async def test_timeout_reported_as_timeout(self, fake_runner, make_adapter):
        fake_runner.on("pip", "config", "set", "global.proxy", PROXY, rc=-1)
        result = await make_adapter(PIP).enable_proxy(PROXY)
        assert result.error_kind is ErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_verification_failure_despite_exit_zero(self, fake_runner, npm_sim, make_adapter):
        npm_sim.sticky = {"proxy", "https-proxy"}
        result = await make_adapter(NPM).enable_proxy(PROXY)

        assert not result.success
        assert result.error_kind is ErrorKind.VERIFICATION_FAILED

    @pytest.mark.asyncio
    async def test_not_supported(self, make_adapter, fake_runner):
        result = await make_adapter(CURL).enable_proxy(PROXY)
        assert result.error_kind is ErrorKind.NOT_SUPPORTED
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_empty_url_rejected(self, make_adapter):
        result = await make_adapter(NPM).enable_proxy("  ")
        assert result.error_kind is ErrorKind.INVALID_VALUE

    @pytest.mark.asyncio
    async def test_no_stale_read_after_enable(self, npm_sim, make_adapter):
        adapter = make_adapter(NPM)
        assert await adapter.get_current_proxy() is None  # now cached

        result = await adapter.enable_proxy(PROXY)
        assert result.success
        assert await adapter.get_current_proxy() == PROXY


class TestDisableProxy:
    @pytest.mark.asyncio
    async def test_git_exit_5_is_benign(self, fake_runner, make_adapter):
        fake_runner.on("git", "config", "--global", "--unset", "http.proxy", rc=5)
        fake_runner.on("git", "config", "--global", "--unset", "https.proxy", rc=5)
        fake_runner.on("git", "config", "--global", "http.proxy", rc=1)

        result = await make_adapter(GIT).disable_proxy()
        assert result.success

    @pytest.mark.asyncio
    async def test_failures_do_not_abort(self, fake_runner, make_adapter):
        fake_runner.on("pip", "config", "unset", "global.proxy", rc=2, stderr="weird")
        fake_runner.on("pip", "config", "get", "global.proxy", rc=1)

        result = await make_adapter(PIP).disable_proxy()
        assert result.success

    @pytest.mark.asyncio
    async def test_every_command_attempted(self, fake_runner, make_adapter):
        fake_runner.on("npm", "config", "delete", "proxy", rc=1)
        fake_runner.on("npm", "config", "delete", "https-proxy")
        fake_runner.on("npm", "config", "get", "proxy", stdout="null\n")

        result = await make_adapter(NPM).disable_proxy()
        assert result.success
        assert fake_runner.count("npm", "config", "delete", "https-proxy") == 1

    @pytest.mark.asyncio
    async def test_still_set_is_verification_failure(self, fake_runner, make_adapter):
        fake_runner.on("npm", "config", "delete", "proxy")
        fake_runner.on("npm", "config", "delete", "https-proxy")
        fake_runner.on("npm", "config", "get", "proxy", stdout=f"{PROXY}\n")

        result = await make_adapter(NPM).disable_proxy()
        assert not result.success
        assert result.error_kind is ErrorKind.VERIFICATION_FAILED

    @pytest.mark.asyncio
    async def test_roundtrip_with_simulated_npm(self, npm_sim, make_adapter):
        adapter = make_adapter(NPM)
        assert (await adapter.enable_proxy(PROXY)).success
        assert (await adapter.disable_proxy()).success
        assert await adapter.is_proxy_enabled() is False
        assert npm_sim.tiers["user"] == {}

    @pytest.mark.asyncio
    async def test_not_supported(self, make_adapter):
        result = await make_adapter(CURL).disable_proxy()
        assert result.error_kind is ErrorKind.NOT_SUPPORTED


class TestRegistryAndCacheDir:
    @pytest.mark.asyncio
    async def test_set_registry_ignores_trailing_slash(self, fake_runner, make_adapter):
        url = "https://registry.npmmirror.com"
        fake_runner.on("npm", "config", "set", "registry", url)
        fake_runner.on("npm", "config", "get", "registry", stdout=url + "/\n")

        result = await make_adapter(NPM).set_registry(url)
        assert result.success
        assert result.value == url + "/"

    @pytest.mark.asyncio
    async def test_set_registry_mismatch(self, fake_runner, make_adapter):
        fake_runner.on("pip", "config", "set", "global.index-url", "https://a/simple")
        fake_runner.on("pip", "config", "get", "global.index-url", stdout="https://b/simple\n")

        result = await make_adapter(PIP).set_registry("https://a/simple")
        assert not result.success
        assert result.error_kind is ErrorKind.VERIFICATION_FAILED
        assert result.value == "https://b/simple"

    @pytest.mark.asyncio
    async def test_set_registry_not_supported(self, make_adapter):
        result = await make_adapter(GIT).set_registry("https://example.com")
        assert result.error_kind is ErrorKind.NOT_SUPPORTED

    @pytest.mark.asyncio
    async def test_set_registry_clears_cache(self, fake_runner, make_adapter):
        old, new = "https://registry.npmjs.org/", "https://registry.npmmirror.com"
        fake_runner.on("npm", "config", "get", "registry", stdout=old)
        fake_runner.on("npm", "config", "get", "registry", stdout=new)
        fake_runner.on("npm", "config", "set", "registry", new)
        adapter = make_adapter(NPM)

        assert await adapter.get_current_registry() == old
        assert (await adapter.set_registry(new)).success
        assert await adapter.get_current_registry() == new

    @pytest.mark.asyncio
    async def test_set_cache_dir_creates_directory(self, fake_runner, make_adapter, tmp_path):
        target = tmp_path / "npm cache"
        fake_runner.on("npm", "config", "set", "cache", str(target))
        fake_runner.on("npm", "config", "get", "cache", stdout=f"{target}\n")

        result = await make_adapter(NPM).set_cache_dir(str(target))
        assert result.success
        assert target.is_dir()

    @pytest.mark.asyncio
    async def test_set_cache_dir_not_supported(self, make_adapter):
        result = await make_adapter(GIT).set_cache_dir("/tmp/x")
        assert result.error_kind is ErrorKind.NOT_SUPPORTED


class TestMaintenance:
    MIRROR = "https://registry.npmmirror.com"

    @pytest.mark.asyncio
    async def test_ping_given_registry(self, fake_runner, make_adapter):
        fake_runner.on("npm", "ping", "--registry", self.MIRROR, stdout="PONG 120ms\n")
        result = await make_adapter(NPM).ping_registry(self.MIRROR)

        assert result.success
        assert result.value == self.MIRROR
        assert result.duration_ms == 0
        assert fake_runner.calls == [["npm", "ping", "--registry", self.MIRROR]]

    @pytest.mark.asyncio
    async def test_ping_defaults_to_current_registry(self, fake_runner, make_adapter):
        fake_runner.on("yarn", "config", "get", "registry", stdout=self.MIRROR + "\n")
        fake_runner.on("yarn", "info", "react", "version", "--registry", self.MIRROR, stdout="18.3.1\n")

        result = await make_adapter(YARN, YarnAdapter).ping_registry()
        assert result.success
        assert result.value == self.MIRROR

    @pytest.mark.asyncio
    async def test_ping_unreachable(self, fake_runner, make_adapter):
        fake_runner.on("npm", "ping", "--registry", self.MIRROR, rc=1, stderr="ECONNREFUSED")
        result = await make_adapter(NPM).ping_registry(self.MIRROR)

        assert not result.success
        assert result.error_kind is ErrorKind.COMMAND_FAILED
        assert "ECONNREFUSED" in result.message
        assert result.duration_ms is None

    @pytest.mark.asyncio
    async def test_ping_without_any_registry(self, fake_runner, make_adapter):
        fake_runner.on("npm", "config", "get", "registry", stdout="undefined\n")
        result = await make_adapter(NPM).ping_registry()
        assert result.error_kind is ErrorKind.INVALID_VALUE

    @pytest.mark.asyncio
    async def test_ping_not_supported(self, make_adapter, fake_runner):
        result = await make_adapter(PIP).ping_registry("https://pypi.org/simple")
        assert result.error_kind is ErrorKind.NOT_SUPPORTED
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_cache_info_reports_path_and_size(self, fake_runner, make_adapter, tmp_path):
        cache_dir = tmp_path / "npm-cache"
        (cache_dir / "_cacache").mkdir(parents=True)
        (cache_dir / "_cacache" / "blob").write_bytes(b"x" * 2048)
        (cache_dir / "index").write_bytes(b"y" * 100)
        fake_runner.on("npm", "config", "get", "cache", stdout=f"{cache_dir}\n")

        result = await make_adapter(NPM).get_cache_info()
        assert result.success
        assert result.value == str(cache_dir)
        assert result.size_bytes == 2148
        assert "2.1 KB" in result.message

    @pytest.mark.asyncio
    async def test_cache_info_uses_cache_path_command(self, fake_runner, make_adapter, tmp_path):
        fake_runner.on("yarn", "cache", "dir", stdout=f"{tmp_path}\n")
        result = await make_adapter(YARN, YarnAdapter).get_cache_info()

        assert result.success
        assert result.size_bytes == 0
        assert ["yarn", "config", "get", "cache-folder"] not in fake_runner.calls

    @pytest.mark.asyncio
    async def test_cache_info_missing_directory_is_empty(self, fake_runner, make_adapter, tmp_path):
        fake_runner.on("npm", "config", "get", "cache", stdout=f"{tmp_path / 'gone'}\n")
        result = await make_adapter(NPM).get_cache_info()
        assert result.success
        assert result.size_bytes == 0

    @pytest.mark.asyncio
    async def test_cache_info_unknown_location(self, make_adapter):
        result = await make_adapter(NPM).get_cache_info()
        assert result.error_kind is ErrorKind.COMMAND_FAILED

    @pytest.mark.asyncio
    async def test_cache_info_not_supported(self, make_adapter):
        result = await make_adapter(GIT).get_cache_info()
        assert result.error_kind is ErrorKind.NOT_SUPPORTED

    @pytest.mark.asyncio
    async def test_clean_cache_runs_clean_then_verify(self, fake_runner, make_adapter):
        fake_runner.on("npm", "cache", "clean", "--force")
        fake_runner.on("npm", "cache", "verify", stdout="Cache verified and compressed\n")

        result = await make_adapter(NPM).clean_cache()
        assert result.success
        assert fake_runner.calls == [
            ["npm", "cache", "clean", "--force"],
            ["npm", "cache", "verify"],
        ]

    @pytest.mark.asyncio
    async def test_clean_cache_aborts_on_failure(self, fake_runner, make_adapter):
        fake_runner.on("npm", "cache", "clean", "--force", rc=1, stderr="EPERM")

        result = await make_adapter(NPM).clean_cache()
        assert not result.success
        assert "EPERM" in result.message
        assert fake_runner.count("npm", "cache", "verify") == 0

    @pytest.mark.asyncio
    async def test_clean_cache_not_supported(self, make_adapter, fake_runner):
        result = await make_adapter(PIP).clean_cache()
        assert result.error_kind is ErrorKind.NOT_SUPPORTED
        assert fake_runner.calls == []


class TestGetInfo:
    @pytest.mark.asyncio
    async def test_not_installed_short_circuits(self, fake_runner, make_adapter):
        info = await make_adapter(NPM).get_info()
        assert info.status == "not_installed"
        assert info.version is None
        assert info.mirrors  # static data still reported
        assert fake_runner.calls == [["npm", "--version"]]

    @pytest.mark.asyncio
    async def test_installed_snapshot(self, npm_sim, make_adapter):
        npm_sim.tiers["user"]["proxy"] = PROXY
        info = await make_adapter(NPM).get_info()

        assert info.installed
        assert info.version == "10.2.4"
        assert info.proxy_enabled
        assert info.current_proxy == PROXY
        assert info.registry_url == "https://registry.npmjs.org/"
        assert info.cache_dir == "/home/dev/.npm"
        assert info.can_set_registry and info.can_set_cache_dir

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_status(self):
        class ExplodingRunner:
            async def execute(self, *args, **kwargs):
                raise RuntimeError("kaboom")

        adapter = ToolAdapter(NPM, ExplodingRunner(), settle_delay_ms=0)
        info = await adapter.get_info()
        assert info.status == "error"
        assert "kaboom" in info.error


class TestYarnAdapter:
    def test_parse_yarnrc(self):
        content = '# yarn lockfile v1\nregistry "https://r"\nproxy "http://p:1"\n'
        assert parse_yarnrc_proxy(content) == "http://p:1"

    def test_parse_yarnrc_filters_sentinels(self):
        assert parse_yarnrc_proxy('proxy "null"\n') is None
        assert parse_yarnrc_proxy("registry \"https://r\"\n") is None

    @pytest.mark.asyncio
    async def test_reads_dotfile_without_runner(self, tmp_path, monkeypatch, fake_runner, make_adapter):
        rc = tmp_path / ".yarnrc"
        rc.write_text(f'proxy "{PROXY}"\n', encoding="utf-8")
        monkeypatch.setattr(node, "yarnrc_path", lambda: rc)

        adapter = make_adapter(YARN, YarnAdapter)
        assert await adapter.get_current_proxy() == PROXY
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_dotfile_read_runs_in_worker_thread(self, tmp_path, monkeypatch, make_adapter):
        rc = tmp_path / ".yarnrc"
        rc.write_text(f'proxy "{PROXY}"\n', encoding="utf-8")
        monkeypatch.setattr(node, "yarnrc_path", lambda: rc)

        offloaded = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func)
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(node.asyncio, "to_thread", recording_to_thread)
        assert await make_adapter(YARN, YarnAdapter).get_current_proxy() == PROXY
        assert offloaded == [rc.read_text]

    @pytest.mark.asyncio
    async def test_missing_dotfile_means_no_proxy(self, tmp_path, monkeypatch, make_adapter):
        monkeypatch.setattr(node, "yarnrc_path", lambda: tmp_path / ".yarnrc")
        adapter = make_adapter(YARN, YarnAdapter)
        assert await adapter.get_current_proxy() is None
        assert await adapter.is_proxy_enabled() is False

    @pytest.mark.asyncio
    async def test_enable_verifies_against_dotfile(self, tmp_path, monkeypatch, fake_runner, make_adapter):
        rc = tmp_path / ".yarnrc"
        monkeypatch.setattr(node, "yarnrc_path", lambda: rc)

        def yarn(argv, env):
            if argv[:3] == ["yarn", "config", "set"] and argv[3] == "proxy":
                rc.write_text(f'proxy "{argv[4]}"\n', encoding="utf-8")
            return (0, "", "") if argv[0] == "yarn" else None

        fake_runner.handler = yarn
        result = await make_adapter(YARN, YarnAdapter).enable_proxy(PROXY)
        assert result.success
