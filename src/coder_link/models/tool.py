"""Pydantic models for tool capabilities and detection results."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from coder_link.models.provider import Plan


class ToolId(str, Enum):
    """External coding tools coder-link can configure."""

    CLAUDE_CODE = "claude-code"
    OPENCODE = "opencode"
    CRUSH = "crush"
    FACTORY_DROID = "factory-droid"
    KIMI = "kimi"
    AMP = "amp"
    PI = "pi"
    CODEX = "codex"
    MASTRA = "mastra"

    def __str__(self) -> str:
        return self.value


class ToolCapabilities(BaseModel):
    """Static capability record for one tool."""

    model_config = ConfigDict(frozen=True)

    supports_provider_config: bool = False
    supports_mcp: bool = False
    supports_model_selection: bool = False
    supported_plans: frozenset[Plan] = frozenset()


DetectionStatus = Literal["configured", "unconfigured", "unreadable"]


class DetectedConfig(BaseModel):
    """What a tool's own config file says about the managed provider.

    ``plan`` and ``api_key`` are both set only when ``status`` is
    ``configured``; a missing block and an unreadable file both surface
    as ``None, None`` and differ only in ``status``.
    """

    plan: Plan | None = None
    api_key: str | None = None
    model: str | None = None
    status: DetectionStatus = "unconfigured"
    error: str | None = None

    @classmethod
    def found(cls, plan: Plan | None, api_key: str | None, model: str | None = None) -> DetectedConfig:
        """Build a result, collapsing to unconfigured when plan or key is missing."""
        api_key = api_key.strip() if isinstance(api_key, str) else None
        if plan is None or not api_key:
            return cls(model=model or None)
        return cls(plan=plan, api_key=api_key, model=model or None, status="configured")

    @classmethod
    def unreadable(cls, error: str) -> DetectedConfig:
        """Result for a config file that exists but could not be read or parsed."""
        return cls(status="unreadable", error=error)

    @property
    def is_configured(self) -> bool:
        """True when both a plan and a usable credential were found."""
        return self.status == "configured"


class BulkInstallResult(BaseModel):
    """Tally of a fan-out MCP install across tools."""

    service_id: str
    attempted: int = 0
    succeeded: int = 0
    installed: list[str] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)  # tool id -> error message
