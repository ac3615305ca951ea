"""YAML-backed store for coder-link's own credentials and preferences."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coder_link.logging import get_logger
from coder_link.migrations import MIGRATIONS
from coder_link.models.config import (
    DEFAULT_LANG,
    SUPPORTED_LANGS,
    CoderLinkConfig,
    FactoryDroidSettings,
    FeatureToggles,
    ToolsSection,
)
from coder_link.models.provider import Plan, ProviderSettings
from coder_link.models.tool import ToolId
from coder_link.providers import provider_registry
from coder_link.settings import settings
from coder_link.storage import ConfigWriteError, YamlConfigFile

logger = get_logger(__name__)

PROFILE_FIELDS = (
    "api_key",
    "base_url",
    "anthropic_base_url",
    "model",
    "anthropic_model",
    "provider_id",
    "max_context_size",
)


class ConfigManagerError(Exception):
    """Invalid input to, or invalid content in, the credential store."""


def _rejected(message: str) -> ConfigManagerError:
    logger.warning("Rejected config operation", scope="coder-link", error=message)
    return ConfigManagerError(message)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _coerce_plan(plan: Plan | str) -> Plan:
    try:
        return Plan(plan)
    except ValueError as e:
        raise _rejected(f"Unknown plan: {plan}") from e


class ConfigManager:
    """Credential store at ``~/.coder-link/config.yaml``.

    Every setter writes through immediately. Call :meth:`load` once before
    using the getters; it also runs the migrations for older layouts.
    """

    def __init__(self, config_file: Path | None = None, legacy_config_file: Path | None = None) -> None:
        """Initialize the manager.

        Args:
            config_file: Path of the YAML file. Defaults to the settings value.
            legacy_config_file: Older location read when ``config_file`` is absent.
        """
        self.config_file = Path(config_file or settings.config_file).expanduser()
        self.legacy_config_file = Path(legacy_config_file or settings.legacy_config_file).expanduser()
        self._store = YamlConfigFile(self.config_file, scope="coder-link")
        self._data: CoderLinkConfig | None = None

    @property
    def data(self) -> CoderLinkConfig:
        if self._data is None:
            raise _rejected("Config not loaded; call load() first")
        return self._data

    async def load(self) -> CoderLinkConfig:
        """Load the store, migrating older files and layouts in place.

        Returns:
            The validated config.

        Raises:
            ConfigParseError: If the file exists but is not valid YAML.
            ConfigManagerError: If the content does not fit the config schema.
        """
        raw = await self._read_raw()

        for migration in MIGRATIONS:
            if migration(raw):
                await self._store.write(raw)

        try:
            self._data = CoderLinkConfig.model_validate(raw)
        except ValidationError as e:
            logger.error("Invalid config content", scope="coder-link", path=str(self.config_file), error=str(e))
            raise ConfigManagerError(f"Invalid config at {self.config_file}: {e}") from e

        logger.debug("Loaded config", path=str(self.config_file), plan=self._data.plan)
        return self._data

    async def _read_raw(self) -> dict[str, Any]:
        if self._store.exists():
            return dict(await self._store.read())

        legacy = YamlConfigFile(self.legacy_config_file, scope="coder-link")
        if legacy.exists():
            raw = dict(await legacy.read())
            try:
                await self._store.write(raw)
                logger.info(
                    "Copied legacy config",
                    source=str(self.legacy_config_file),
                    target=str(self.config_file),
                )
            except ConfigWriteError as e:
                logger.warning("Could not copy legacy config", scope="coder-link", error=str(e))
            return raw

        raw = {"lang": DEFAULT_LANG}
        await self._store.write(raw)
        logger.info("Created config", path=str(self.config_file))
        return raw

    async def save(self) -> None:
        """Write the in-memory config back to disk."""
        await self._store.write(self.data.model_dump(mode="json", by_alias=True, exclude_none=True))

    # Language

    def get_lang(self) -> str:
        return self.data.lang

    async def set_lang(self, lang: str) -> None:
        if lang not in SUPPORTED_LANGS:
            raise _rejected(f"Unsupported language: {lang}")
        self.data.lang = lang
        await self.save()

    # Active plan and credentials

    def get_auth(self) -> tuple[Plan | None, str | None]:
        """Return the active plan and its stored API key."""
        plan_value = self.data.plan
        if not plan_value:
            return None, None
        try:
            plan = Plan(plan_value)
        except ValueError:
            logger.warning("Ignoring unknown stored plan", scope="coder-link", plan=plan_value)
            return None, None
        return plan, self.get_api_key_for(plan)

    async def set_auth(self, plan: Plan | str, api_key: str) -> None:
        """Make ``plan`` active and store its key."""
        plan = _coerce_plan(plan)
        key = _clean(api_key)
        if not key:
            raise _rejected("API key must not be empty")
        self.data.plan = plan.value
        self.data.api_key = None
        self.data.ensure_profile(plan).api_key = key
        await self.save()
        logger.info("Stored credentials", plan=plan.value)

    def get_api_key_for(self, plan: Plan | str) -> str | None:
        profile = self.data.get_profile(_coerce_plan(plan))
        return _clean(profile.api_key) if profile else None

    async def set_api_key_for(self, plan: Plan | str, api_key: str) -> None:
        key = _clean(api_key)
        if not key:
            raise _rejected("API key must not be empty")
        self.data.ensure_profile(_coerce_plan(plan)).api_key = key
        await self.save()

    async def revoke_auth(self, plan: Plan | str | None = None) -> None:
        """Forget a plan's key. Without ``plan``, forget the active plan."""
        target = _coerce_plan(plan) if plan else self.get_auth()[0]
        if target is not None:
            profile = self.data.get_profile(target)
            if profile is not None:
                profile.api_key = None
            if self.data.plan == target.value:
                self.data.plan = None
        self.data.api_key = None
        await self.save()
        logger.info("Revoked credentials", plan=target.value if target else None)

    # Provider profiles

    def get_provider_settings(self, plan: Plan | str | None = None) -> ProviderSettings:
        """Resolve a plan's settings: stored profile over registry defaults.

        A stored ``base_url`` with no stored ``anthropic_base_url`` leaves the
        Anthropic URL unset so adapters derive it from ``base_url``.

        Raises:
            ConfigManagerError: If no plan is given and none is active.
        """
        if plan is None:
            plan = self.get_auth()[0]
            if plan is None:
                raise _rejected("No active plan configured")
        plan = _coerce_plan(plan)
        defaults = provider_registry.default_provider_settings(plan)
        profile = self.data.get_profile(plan)
        if profile is None:
            return defaults

        base_url = _clean(profile.base_url)
        anthropic_base_url = _clean(profile.anthropic_base_url)
        if base_url and not anthropic_base_url:
            resolved_anthropic = None
        else:
            resolved_anthropic = anthropic_base_url or defaults.anthropic_base_url
        model = _clean(profile.model)

        return ProviderSettings(
            base_url=base_url or defaults.base_url,
            anthropic_base_url=resolved_anthropic,
            model=model or defaults.model,
            anthropic_model=_clean(profile.anthropic_model) or model or defaults.anthropic_model,
            provider_id=_clean(profile.provider_id),
            source=defaults.source,
            max_context_size=profile.max_context_size or defaults.max_context_size,
        )

    async def set_provider_profile(self, plan: Plan | str, **fields: Any) -> None:
        """Update stored profile fields. ``None`` or blank clears a field.

        Raises:
            ConfigManagerError: On an unknown field name.
        """
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise _rejected(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        profile = self.data.ensure_profile(_coerce_plan(plan))
        for name, value in fields.items():
            if isinstance(value, str):
                value = _clean(value)
            setattr(profile, name, value)
        await self.save()

    # Feature toggles

    def _features(self) -> FeatureToggles:
        if self.data.features is None:
            self.data.features = FeatureToggles()
        return self.data.features

    def get_enabled_providers(self) -> list[Plan] | None:
        """Enabled plans, or None when every plan is enabled."""
        values = self.data.features.enabled_providers if self.data.features else None
        if not values:
            return None
        plans = [Plan(value) for value in values if value in Plan._value2member_map_]
        return plans or None

    async def set_enabled_providers(self, plans: list[Plan | str] | None) -> None:
        """Restrict enabled plans. None enables all; an empty list is rejected."""
        if plans is not None and not plans:
            raise _rejected("At least one provider must stay enabled")
        self._features().enabled_providers = (
            None if plans is None else [_coerce_plan(plan).value for plan in plans]
        )
        await self.save()

    def is_provider_enabled(self, plan: Plan | str) -> bool:
        enabled = self.get_enabled_providers()
        return enabled is None or _coerce_plan(plan) in enabled

    def get_enabled_tools(self) -> list[ToolId] | None:
        """Enabled tools, or None when every tool is enabled."""
        values = self.data.features.enabled_tools if self.data.features else None
        if not values:
            return None
        tools = [ToolId(value) for value in values if value in ToolId._value2member_map_]
        return tools or None

    async def set_enabled_tools(self, tools: list[ToolId | str] | None) -> None:
        if tools is not None and not tools:
            raise _rejected("At least one tool must stay enabled")
        try:
            values = None if tools is None else [ToolId(tool).value for tool in tools]
        except ValueError as e:
            raise _rejected(str(e)) from e
        self._features().enabled_tools = values
        await self.save()

    def is_tool_enabled(self, tool: ToolId | str) -> bool:
        enabled = self.get_enabled_tools()
        if enabled is None:
            return True
        try:
            return ToolId(tool) in enabled
        except ValueError:
            return False

    # Misc preferences

    def get_last_used_tool(self) -> str | None:
        return self.data.last_used_tool

    async def set_last_used_tool(self, tool: ToolId | str) -> None:
        self.data.last_used_tool = str(tool)
        await self.save()

    def get_factory_api_key(self) -> str | None:
        tools = self.data.tools
        if tools is None or tools.factory_droid is None:
            return None
        return _clean(tools.factory_droid.factory_api_key)

    async def set_factory_api_key(self, api_key: str | None) -> None:
        """Store (or clear, with None) the Factory Droid account key."""
        if self.data.tools is None:
            self.data.tools = ToolsSection()
        if self.data.tools.factory_droid is None:
            self.data.tools.factory_droid = FactoryDroidSettings()
        self.data.tools.factory_droid.factory_api_key = _clean(api_key)
        await self.save()
