"""Language toolchains — node, python, jvm."""

from devkit.adapters.languages.jvm import GRADLE, MAVEN
from devkit.adapters.languages.node import BUN, NPM, PNPM, YARN, YarnAdapter
from devkit.adapters.languages.python import PIP

__all__ = ["BUN", "GRADLE", "MAVEN", "NPM", "PIP", "PNPM", "YARN", "YarnAdapter"]
