"""
Result models — the engine's output contract.

Every public operation returns one of these. Failures are carried as
data (``success=False`` plus an ``ErrorKind``), never as exceptions
crossing the component boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from devkit.core.models.tool import Mirror, ToolCategory

# Sentinel return codes for outcomes without a real exit status.
RC_TIMEOUT = -1
RC_SPAWN_ERROR = -3

CommandOutcome = Literal["ok", "not_set", "failed", "timeout", "spawn_error"]
ToolStatus = Literal["installed", "not_installed", "error"]
ConfigSource = Literal["env", "user", "global", "default"]


class ErrorKind(str, Enum):
    """Why an operation failed."""

    NOT_SUPPORTED = "not_supported"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    SPAWN_ERROR = "spawn_error"
    COMMAND_FAILED = "command_failed"
    VERIFICATION_FAILED = "verification_failed"
    INVALID_VALUE = "invalid_value"


class CommandResult(BaseModel):
    """Outcome of one child-process execution."""

    model_config = ConfigDict(frozen=True)

    success: bool
    return_code: int
    outcome: CommandOutcome
    stdout: str = ""
    stderr: str = ""
    command: str = ""
    execution_time_ms: int = 0

    @property
    def error_kind(self) -> ErrorKind | None:
        """Map the outcome to the error taxonomy (None on success)."""
        if self.outcome == "ok":
            return None
        if self.outcome == "timeout":
            return ErrorKind.TIMEOUT
        if self.outcome == "spawn_error":
            return ErrorKind.SPAWN_ERROR
        return ErrorKind.COMMAND_FAILED


class ToolInfo(BaseModel):
    """Point-in-time snapshot of one tool's state."""

    name: str
    display_name: str
    category: ToolCategory
    status: ToolStatus = "not_installed"
    version: str | None = None
    proxy_enabled: bool = False
    current_proxy: str | None = None
    registry_url: str | None = None
    cache_dir: str | None = None
    mirrors: list[Mirror] = Field(default_factory=list)
    can_set_registry: bool = False
    can_set_cache_dir: bool = False
    error: str | None = None

    @property
    def installed(self) -> bool:
        return self.status == "installed"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ToolOperationResult(BaseModel):
    """Outcome of one state-changing operation on one tool."""

    tool_name: str
    success: bool
    message: str
    error_kind: ErrorKind | None = None
    value: str | None = None
    duration_ms: int | None = None      # registry ping round trip
    size_bytes: int | None = None       # cache directory size
    details: CommandResult | None = None

    @classmethod
    def ok(cls, tool_name: str, message: str, **kwargs: Any) -> ToolOperationResult:
        """Create a success result."""
        return cls(tool_name=tool_name, success=True, message=message, **kwargs)

    @classmethod
    def fail(
        cls,
        tool_name: str,
        message: str,
        error_kind: ErrorKind,
        **kwargs: Any,
    ) -> ToolOperationResult:
        """Create a failure result."""
        return cls(
            tool_name=tool_name,
            success=False,
            message=message,
            error_kind=error_kind,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class BatchOperationResult(BaseModel):
    """Aggregate over several single-tool operations, in input order."""

    total_tools: int = 0
    success_count: int = 0
    failure_count: int = 0
    results: list[ToolOperationResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[ToolOperationResult]) -> BatchOperationResult:
        success_count = sum(1 for r in results if r.success)
        return cls(
            total_tools=len(results),
            success_count=success_count,
            failure_count=len(results) - success_count,
            results=list(results),
        )

    @property
    def all_ok(self) -> bool:
        return self.failure_count == 0

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PrecedenceSnapshot(BaseModel):
    """Which configuration tier is in effect for one key."""

    tool_name: str
    key: str
    effective: str | None = None
    user: str | None = None
    global_value: str | None = None
    has_global_override: bool = False
    env_vars: dict[str, str] = Field(default_factory=dict)
    source: ConfigSource = "default"
    diagnostics: list[str] = Field(default_factory=list)
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def has_env_override(self) -> bool:
        return bool(self.env_vars)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
