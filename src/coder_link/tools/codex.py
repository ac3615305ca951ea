"""Codex CLI adapter (``~/.codex/config.toml``).

Each plan gets its own ``model_providers`` entry keyed by the plan's
short name; ``model_provider`` and ``model`` select it.
"""

from __future__ import annotations

import os
from pathlib import Path

from coder_link.logging import get_logger
from coder_link.models.provider import Plan, Protocol, ProviderSettings
from coder_link.models.tool import DetectedConfig, ToolId
from coder_link.providers import provider_registry
from coder_link.storage import TomlConfigFile
from coder_link.tools.base import (
    Document,
    ToolAdapter,
    ensure_table,
    get_table,
    prune_empty,
    require_api_key,
)

logger = get_logger(__name__)

PROVIDER_PREFIX = "CoderLink_"
LEGACY_PROVIDER_ID = "CoderLink_Managed"
FIXED_PROVIDER_IDS: dict[Plan, str] = {
    Plan.ALIBABA: "Model_Studio_Coding_Plan",
    Plan.ALIBABA_API: "DashScope_API_Singapore",
}


def provider_id_for(plan: Plan) -> str:
    """``model_providers`` key for a plan."""
    return FIXED_PROVIDER_IDS.get(plan) or f"{PROVIDER_PREFIX}{provider_registry.get_short_name(plan)}"


def managed_provider_ids() -> dict[str, Plan | None]:
    """Every provider key this adapter owns, mapped to its plan."""
    ids: dict[str, Plan | None] = {provider_id_for(plan): plan for plan in provider_registry.get_all_plans()}
    ids[LEGACY_PROVIDER_ID] = None
    return ids


class CodexAdapter(ToolAdapter):
    tool_id = ToolId.CODEX
    display_name = "Codex CLI"

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.config_file = TomlConfigFile(self.home / ".codex" / "config.toml", scope="codex")

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        provider_id = provider_id_for(plan)

        doc["model_provider"] = provider_id
        doc["model"] = options.model

        providers = ensure_table(doc, "model_providers")
        for managed in managed_provider_ids():
            if managed != provider_id and managed in providers:
                del providers[managed]
        providers[provider_id] = {
            "name": provider_registry.get_short_name(plan),
            "base_url": self.base_url_for(plan, Protocol.OPENAI, options),
            "wire_api": "chat",
            "experimental_bearer_token": api_key,
        }
        return doc

    def remove_provider(self, doc: Document) -> Document:
        managed = managed_provider_ids()
        providers = get_table(doc, "model_providers")
        if providers is not None:
            for key in list(providers.keys()):
                if key in managed:
                    del providers[key]
            prune_empty(doc, "model_providers")

        if doc.get("model_provider") in managed:
            del doc["model_provider"]
            doc.pop("model", None)
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.config_file.read()
        providers = get_table(doc, "model_providers")
        if providers is None:
            return DetectedConfig()

        managed = managed_provider_ids()
        selected = doc.get("model_provider")
        if selected in managed and selected in providers:
            provider_id = str(selected)
        else:
            provider_id = next((str(key) for key in providers if key in managed), None)
        if provider_id is None:
            return DetectedConfig()

        entry = get_table(providers, provider_id) or {}
        plan = managed[provider_id]
        if plan is None:
            base_url = entry.get("base_url")
            plan = provider_registry.detect_plan_from_url(str(base_url)) if isinstance(base_url, str) else None

        api_key = entry.get("experimental_bearer_token")
        env_key = entry.get("env_key")
        if not api_key and isinstance(env_key, str):
            api_key = os.environ.get(str(env_key))

        model = doc.get("model") if selected == provider_id else None
        return DetectedConfig.found(
            plan,
            str(api_key) if isinstance(api_key, str) else None,
            str(model) if isinstance(model, str) else None,
        )

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        options = self.provider_settings(plan, options)

        doc = await self.config_file.read()
        await self.config_file.write(self.apply_provider(doc, plan, api_key, options))

        logger.info("Configured Codex CLI", plan=plan.value, provider=provider_id_for(plan), model=options.model)

    async def unload_config(self) -> None:
        if not self.config_file.exists():
            return
        doc = await self.config_file.read()
        await self.config_file.write(self.remove_provider(doc))
        logger.info("Removed Codex CLI provider config")
