"""
Domain models — Pydantic types for the engine.

All models are re-exported here for convenient access:

    from devkit.core.models import ToolDescriptor, ToolInfo, CommandResult
"""

from devkit.core.models.results import (
    RC_SPAWN_ERROR,
    RC_TIMEOUT,
    BatchOperationResult,
    CommandResult,
    ErrorKind,
    PrecedenceSnapshot,
    ToolInfo,
    ToolOperationResult,
)
from devkit.core.models.tool import Mirror, TieredConfig, ToolDescriptor, substitute

__all__ = [
    # results.py
    "BatchOperationResult",
    "CommandResult",
    "ErrorKind",
    # tool.py
    "Mirror",
    "PrecedenceSnapshot",
    "RC_SPAWN_ERROR",
    "RC_TIMEOUT",
    "TieredConfig",
    "ToolDescriptor",
    "ToolInfo",
    "ToolOperationResult",
    "substitute",
]
