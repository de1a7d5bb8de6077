"""
Disk usage — size of a tool's cache directory.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

logger = logging.getLogger(__name__)


def directory_size(path: Path) -> int:
    """Total size in bytes of the regular files under ``path``.

    Symlinks are not followed. Entries that vanish or can't be read
    mid-walk are skipped. A missing directory has size 0.
    """
    total = 0
    for root, _dirs, files in os.walk(path, onerror=lambda e: logger.debug("walk: %s", e)):
        for name in files:
            try:
                st = os.lstat(os.path.join(root, name))
            except OSError:
                continue
            if stat.S_ISREG(st.st_mode):
                total += st.st_size
    return total


def format_size(size_bytes: int) -> str:
    """Format bytes into a human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
