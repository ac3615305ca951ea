"""OpenCode adapter (``~/.config/opencode/opencode.json``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from coder_link.logging import get_logger
from coder_link.models.mcp import MCPService
from coder_link.models.provider import Plan, Protocol, ProviderSettings
from coder_link.models.tool import DetectedConfig, ToolId
from coder_link.providers import provider_registry
from coder_link.storage import ConfigFile, JsonConfigFile
from coder_link.tools.base import (
    Document,
    ToolAdapter,
    ensure_table,
    get_table,
    prune_empty,
    require_api_key,
)

logger = get_logger(__name__)

OPENCODE_SCHEMA = "https://opencode.ai/config.json"
OPENAI_COMPATIBLE_NPM = "@ai-sdk/openai-compatible"

# Plans OpenCode knows natively
BUILTIN_PROVIDER_IDS: dict[Plan, str] = {
    Plan.GLM_GLOBAL: "zai-coding-plan",
    Plan.GLM_CHINA: "zhipuai-coding-plan",
    Plan.KIMI: "moonshot-ai-coding",
}

# Kimi served from a non-Moonshot host needs a full custom block
KIMI_CUSTOM_ID = "kimi-custom"

MODEL_POINTERS = ("model", "small_model")


def managed_provider_ids() -> dict[str, Plan | None]:
    """Every provider key this adapter owns, mapped to its plan when fixed."""
    ids: dict[str, Plan | None] = {key: plan for plan, key in BUILTIN_PROVIDER_IDS.items()}
    ids[KIMI_CUSTOM_ID] = None
    for plan in provider_registry.get_all_plans():
        if plan not in BUILTIN_PROVIDER_IDS:
            ids[plan.value] = plan
    return ids


class OpenCodeAdapter(ToolAdapter):
    """OpenCode keeps one entry per provider under ``provider``."""

    tool_id = ToolId.OPENCODE
    display_name = "OpenCode"
    mcp_transports = frozenset({"stdio", "streamable-http"})
    mcp_table_path = ("mcp",)
    backfill_mcp_env = True

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.config_file = JsonConfigFile(
            self.home / ".config" / "opencode" / "opencode.json", scope="opencode", indent=4
        )

    def _mcp_file(self) -> ConfigFile:
        return self.config_file

    def provider_key(self, plan: Plan, base_url: str) -> str:
        """Provider key used in ``opencode.json`` for a plan."""
        if plan == Plan.KIMI and base_url.rstrip("/") != provider_registry.get_base_url(Plan.KIMI):
            return KIMI_CUSTOM_ID
        return BUILTIN_PROVIDER_IDS.get(plan, plan.value)

    def _render_provider(self, plan: Plan, key: str, api_key: str, base_url: str, model: str) -> dict[str, Any]:
        if key in BUILTIN_PROVIDER_IDS.values():
            options: dict[str, Any] = {"apiKey": api_key}
            if base_url != provider_registry.get_base_url(plan):
                options["baseURL"] = base_url
            return {"options": options}
        return {
            "npm": OPENAI_COMPATIBLE_NPM,
            "name": provider_registry.get_display_name(plan),
            "options": {"apiKey": api_key, "baseURL": base_url},
            "models": {model: {"name": model}},
        }

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        """Replace the managed provider entry and point the model selectors at it."""
        base_url = self.base_url_for(plan, Protocol.OPENAI, options)
        key = self.provider_key(plan, base_url)

        doc.setdefault("$schema", OPENCODE_SCHEMA)
        providers = ensure_table(doc, "provider")
        for managed in managed_provider_ids():
            if managed != key:
                providers.pop(managed, None)
        providers[key] = self._render_provider(plan, key, api_key, base_url, options.model)

        for pointer in MODEL_POINTERS:
            doc[pointer] = f"{key}/{options.model}"
        return doc

    def remove_provider(self, doc: Document) -> Document:
        """Drop managed provider entries and model selectors that reference them."""
        managed = managed_provider_ids()
        providers = get_table(doc, "provider")
        if providers is not None:
            for key in managed:
                providers.pop(key, None)
            prune_empty(doc, "provider")

        for pointer in MODEL_POINTERS:
            value = doc.get(pointer)
            if isinstance(value, str) and value.split("/", 1)[0] in managed:
                del doc[pointer]
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.config_file.read()
        providers = get_table(doc, "provider")
        if providers is None:
            return DetectedConfig()

        managed = managed_provider_ids()
        selected = doc.get("model")
        selected_key = selected.split("/", 1)[0] if isinstance(selected, str) and "/" in selected else None

        candidates = [key for key in providers if key in managed]
        if selected_key in candidates:
            candidates.remove(selected_key)
            candidates.insert(0, selected_key)
        if not candidates:
            return DetectedConfig()

        key = candidates[0]
        entry = providers[key]
        entry_options = get_table(entry, "options") or {}
        api_key = entry_options.get("apiKey")
        plan = managed[key]
        if plan is None:
            plan = provider_registry.detect_plan_from_url(entry_options.get("baseURL"))

        model = None
        if key == selected_key:
            model = selected.split("/", 1)[1]
        return DetectedConfig.found(plan, api_key if isinstance(api_key, str) else None, model)

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        options = self.provider_settings(plan, options)

        doc = await self.config_file.read()
        await self.config_file.write(self.apply_provider(doc, plan, api_key, options))

        logger.info("Configured OpenCode", plan=plan.value, model=options.model)

    async def unload_config(self) -> None:
        if not self.config_file.exists():
            return
        doc = await self.config_file.read()
        await self.config_file.write(self.remove_provider(doc))
        logger.info("Removed OpenCode provider config")

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        if service.protocol == "stdio":
            return {
                "type": "local",
                "command": [service.command_for(), *service.args],
                "environment": self.stdio_env(service, api_key, plan),
            }
        return {
            "type": "remote",
            "url": service.url_for(plan.value),
            "headers": self.http_headers(service, api_key),
        }
