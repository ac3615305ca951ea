"""Pydantic models for provider plans and resolved provider settings."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Plan(str, Enum):
    """Credential/endpoint profile identifiers.

    Values are persisted in coder-link's own config and used for detection,
    so they never change once shipped.
    """

    GLM_GLOBAL = "glm_coding_plan_global"
    GLM_CHINA = "glm_coding_plan_china"
    KIMI = "kimi"
    OPENROUTER = "openrouter"
    NVIDIA = "nvidia"
    LMSTUDIO = "lmstudio"
    ALIBABA = "alibaba"
    ALIBABA_API = "alibaba_api"
    ZENMUX = "zenmux"

    def __str__(self) -> str:
        return self.value


class Protocol(str, Enum):
    """Wire dialect a tool speaks to an LLM backend."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    def __str__(self) -> str:
        return self.value


class ProviderDescriptor(BaseModel):
    """Static registry entry for a plan."""

    model_config = ConfigDict(frozen=True)

    plan: Plan
    display_name: str
    short_name: str
    openai_base_url: str
    anthropic_base_url: str | None = None
    default_model: str
    default_anthropic_model: str | None = None
    common_models: tuple[str, ...] = ()
    detection_patterns: tuple[str, ...] = ()
    source: str
    supports_thinking: bool = False
    max_context_size: int = 128000
    max_output_tokens: int = 32768
    requires_health_check: bool = False
    default_ports: tuple[int, ...] = ()


class ProviderSettings(BaseModel):
    """Provider settings resolved for a single invocation. Never persisted."""

    base_url: str
    anthropic_base_url: str | None = None
    model: str
    anthropic_model: str | None = None
    provider_id: str | None = None
    source: str = ""
    max_context_size: int = 128000


class ProviderOverrides(BaseModel):
    """Per-call overrides layered over the stored provider settings."""

    base_url: str | None = None
    anthropic_base_url: str | None = None
    model: str | None = None
    anthropic_model: str | None = None
    provider_id: str | None = None
    max_context_size: int | None = None

    def is_empty(self) -> bool:
        """Return True when no override is set."""
        return not self.model_dump(exclude_none=True)


class HealthCheckResult(BaseModel):
    """Advisory reachability status of a provider endpoint."""

    reachable: bool
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
