"""JVM build tools — Maven, Gradle. Detection and mirror lists only."""

from __future__ import annotations

from devkit.core.models.tool import Mirror, ToolDescriptor

MAVEN = ToolDescriptor(
    name="maven",
    display_name="Maven",
    category="dev_tool",
    description="Java project management and build tool",
    check_cmd=("mvn", "--version"),
    mirrors=(
        Mirror(
            name="aliyun",
            display_name="Alibaba Cloud",
            url="https://maven.aliyun.com/repository/public",
            location="China · Hangzhou",
        ),
        Mirror(
            name="tencent",
            display_name="Tencent Cloud",
            url="https://mirrors.cloud.tencent.com/nexus/repository/maven-public",
            location="China · Shenzhen",
        ),
        Mirror(
            name="huawei",
            display_name="Huawei Cloud",
            url="https://mirrors.huaweicloud.com/repository/maven",
            location="China",
        ),
        Mirror(
            name="central",
            display_name="Maven Central",
            url="https://repo.maven.apache.org/maven2",
            location="United States",
        ),
    ),
)

GRADLE = ToolDescriptor(
    name="gradle",
    display_name="Gradle",
    category="dev_tool",
    description="Build automation for the JVM",
    check_cmd=("gradle", "--version"),
    mirrors=(
        Mirror(
            name="aliyun",
            display_name="Alibaba Cloud",
            url="https://maven.aliyun.com/repository/public",
            location="China · Hangzhou",
        ),
        Mirror(
            name="gradle",
            display_name="Gradle official",
            url="https://services.gradle.org/distributions",
            location="United States",
        ),
    ),
)
