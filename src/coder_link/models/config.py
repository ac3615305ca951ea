"""Pydantic models for coder-link's own credential store."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coder_link.models.provider import Plan

DEFAULT_LANG = "en_US"
SUPPORTED_LANGS = ("en_US", "zh_CN")


class ProviderProfile(BaseModel):
    """Stored per-plan credential and endpoint overrides."""

    model_config = ConfigDict(extra="allow")

    api_key: str | None = None
    base_url: str | None = None
    anthropic_base_url: str | None = None
    model: str | None = None
    anthropic_model: str | None = None
    provider_id: str | None = None
    max_context_size: int | None = None


class GlmProfiles(BaseModel):
    """GLM plans share one ``glm`` block split by region."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    global_: ProviderProfile | None = Field(default=None, alias="global")
    china: ProviderProfile | None = None


class ProvidersSection(BaseModel):
    """Per-plan profiles."""

    model_config = ConfigDict(extra="allow")

    glm: GlmProfiles | None = None
    kimi: ProviderProfile | None = None
    openrouter: ProviderProfile | None = None
    nvidia: ProviderProfile | None = None
    lmstudio: ProviderProfile | None = None
    alibaba: ProviderProfile | None = None
    alibaba_api: ProviderProfile | None = None
    zenmux: ProviderProfile | None = None


class FeatureToggles(BaseModel):
    """Enabled plans and tools. ``None`` means everything is enabled."""

    model_config = ConfigDict(extra="allow")

    enabled_providers: list[str] | None = None
    enabled_tools: list[str] | None = None

    @field_validator("enabled_providers", "enabled_tools", mode="before")
    @classmethod
    def _drop_invalid_lists(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [str(item) for item in value]


class FactoryDroidSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    factory_api_key: str | None = None


class ToolsSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    factory_droid: FactoryDroidSettings | None = None


class CoderLinkConfig(BaseModel):
    """Root of ``~/.coder-link/config.yaml``.

    Unknown keys are kept so that hand edits survive a save.
    """

    model_config = ConfigDict(extra="allow")

    lang: str = DEFAULT_LANG
    plan: str | None = None
    last_used_tool: str | None = None
    api_key: str | None = None  # Legacy single key, removed by migration
    tools: ToolsSection | None = None
    features: FeatureToggles | None = None
    providers: ProvidersSection | None = None

    def get_profile(self, plan: Plan) -> ProviderProfile | None:
        """Return the stored profile for a plan, if any."""
        if self.providers is None:
            return None
        if plan in (Plan.GLM_GLOBAL, Plan.GLM_CHINA):
            glm = self.providers.glm
            if glm is None:
                return None
            return glm.global_ if plan == Plan.GLM_GLOBAL else glm.china
        return getattr(self.providers, plan.value)

    def ensure_profile(self, plan: Plan) -> ProviderProfile:
        """Return the profile for a plan, creating empty containers as needed."""
        if self.providers is None:
            self.providers = ProvidersSection()
        target: BaseModel = self.providers
        attr = plan.value
        if plan in (Plan.GLM_GLOBAL, Plan.GLM_CHINA):
            if self.providers.glm is None:
                self.providers.glm = GlmProfiles()
            target = self.providers.glm
            attr = "global_" if plan == Plan.GLM_GLOBAL else "china"
        profile = getattr(target, attr)
        if profile is None:
            profile = ProviderProfile()
            setattr(target, attr, profile)
        return profile

    def iter_profiles(self) -> list[ProviderProfile]:
        """All stored profiles, in plan order."""
        profiles = [self.get_profile(plan) for plan in Plan]
        return [profile for profile in profiles if profile is not None]
