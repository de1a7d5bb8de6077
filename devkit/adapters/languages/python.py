"""
Python packaging — pip.

pip keeps its settings in pip.conf / pip.ini; ``pip config`` reads and
writes the ``global`` section of the user file.
"""

from __future__ import annotations

from devkit.core.models.tool import Mirror, ToolDescriptor

PIP_MIRRORS = (
    Mirror(
        name="tuna",
        display_name="Tsinghua TUNA",
        url="https://pypi.tuna.tsinghua.edu.cn/simple",
        location="China · Beijing",
        homepage="https://mirrors.tuna.tsinghua.edu.cn",
    ),
    Mirror(
        name="aliyun",
        display_name="Alibaba Cloud",
        url="https://mirrors.aliyun.com/pypi/simple",
        location="China · Hangzhou",
    ),
    Mirror(
        name="tencent",
        display_name="Tencent Cloud",
        url="https://mirrors.cloud.tencent.com/pypi/simple",
        location="China · Shenzhen",
    ),
    Mirror(
        name="douban",
        display_name="Douban",
        url="https://pypi.doubanio.com/simple",
        location="China · Beijing",
    ),
    Mirror(
        name="pypi",
        display_name="PyPI official",
        url="https://pypi.org/simple",
        location="United States",
        homepage="https://pypi.org",
    ),
)

PIP = ToolDescriptor(
    name="pip",
    display_name="pip",
    category="package_manager",
    description="The Python package installer",
    check_cmd=("pip", "--version"),
    enable_cmds=(("pip", "config", "set", "global.proxy", "{proxy}"),),
    disable_cmds=(("pip", "config", "unset", "global.proxy"),),
    get_proxy_cmd=("pip", "config", "get", "global.proxy"),
    get_registry_cmd=("pip", "config", "get", "global.index-url"),
    set_registry_cmd=("pip", "config", "set", "global.index-url", "{registry}"),
    get_cache_dir_cmd=("pip", "config", "get", "global.cache-dir"),
    set_cache_dir_cmd=("pip", "config", "set", "global.cache-dir", "{cacheDir}"),
    mirrors=PIP_MIRRORS,
    # `pip config get/unset` exit 1 with "No such key" when unset.
    query_ok_codes=frozenset({1, 5}),
    unset_ok_codes=frozenset({1}),
)
