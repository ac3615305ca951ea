"""Crush adapter (``~/.config/crush/crush.json``).

Crush gets a single provider slot with a fixed id; every plan is written
into it as an OpenAI-compatible provider.
"""

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

CRUSH_PROVIDER_ID = "zai"


class CrushAdapter(ToolAdapter):
    tool_id = ToolId.CRUSH
    display_name = "Crush"
    mcp_transports = frozenset({"stdio", "sse", "streamable-http"})
    mcp_table_path = ("mcp",)

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.config_file = JsonConfigFile(self.home / ".config" / "crush" / "crush.json", scope="crush")

    def _mcp_file(self) -> ConfigFile:
        return self.config_file

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        providers = ensure_table(doc, "providers")
        providers[CRUSH_PROVIDER_ID] = {
            "id": CRUSH_PROVIDER_ID,
            "name": provider_registry.get_display_name(plan),
            "type": "openai",
            "base_url": self.base_url_for(plan, Protocol.OPENAI, options),
            "api_key": api_key,
            "models": [
                {
                    "id": options.model,
                    "name": options.model,
                    "context_window": options.max_context_size,
                    "default_max_tokens": provider_registry.get_max_output_tokens(plan, options.model),
                }
            ],
        }
        return doc

    def remove_provider(self, doc: Document) -> Document:
        providers = get_table(doc, "providers")
        if providers is not None:
            providers.pop(CRUSH_PROVIDER_ID, None)
            prune_empty(doc, "providers")
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.config_file.read()
        provider = get_table(doc, "providers", CRUSH_PROVIDER_ID)
        if provider is None:
            return DetectedConfig()

        base_url = provider.get("base_url")
        api_key = provider.get("api_key")
        models = provider.get("models")
        model = None
        if isinstance(models, list) and models and isinstance(models[0], dict):
            model = models[0].get("id")

        plan = provider_registry.detect_plan_from_url(base_url) if isinstance(base_url, str) else None
        return DetectedConfig.found(plan, api_key if isinstance(api_key, str) else None, model)

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        options = self.provider_settings(plan, options)

        doc = await self.config_file.read()
        await self.config_file.write(self.apply_provider(doc, plan, api_key, options))

        logger.info("Configured Crush", plan=plan.value, model=options.model)

    async def unload_config(self) -> None:
        if not self.config_file.exists():
            return
        doc = await self.config_file.read()
        if get_table(doc, "providers", CRUSH_PROVIDER_ID) is None:
            return
        await self.config_file.write(self.remove_provider(doc))
        logger.info("Removed Crush provider config")

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        if service.protocol == "stdio":
            return {
                "type": "stdio",
                "command": service.command_for(),
                "args": list(service.args),
                "env": self.stdio_env(service, api_key, plan),
            }
        return {
            "type": "sse" if service.protocol == "sse" else "http",
            "url": service.url_for(plan.value),
            "headers": self.http_headers(service, api_key),
        }
