"""Version control tools."""

from devkit.adapters.vcs.git import GIT

__all__ = ["GIT"]
