"""Kimi CLI adapter (``~/.kimi/config.toml``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from coder_link.logging import get_logger
from coder_link.models.mcp import MCPService
from coder_link.models.provider import Plan, Protocol, ProviderSettings
from coder_link.models.tool import DetectedConfig, ToolId
from coder_link.providers import provider_registry
from coder_link.storage import ConfigFile, TomlConfigFile
from coder_link.tools.base import (
    Document,
    ToolAdapter,
    ensure_table,
    get_table,
    require_api_key,
)

logger = get_logger(__name__)

DEFAULT_PROVIDER_ID = "managed:moonshot-ai"
PROVIDER_TYPE = "openai_legacy"
DEFAULT_TOOL_CALL_TIMEOUT_MS = 60000


class KimiAdapter(ToolAdapter):
    """Kimi CLI keeps providers and models in separate TOML tables.

    Unloading blanks the managed provider's key instead of deleting the
    provider, since the Kimi CLI may refer to it from its own models.
    """

    tool_id = ToolId.KIMI
    display_name = "Kimi CLI"
    mcp_transports = frozenset({"stdio", "sse", "streamable-http"})
    mcp_table_path = ("mcp", "servers")
    backfill_mcp_env = True

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.config_file = TomlConfigFile(self.home / ".kimi" / "config.toml", scope="kimi")

    def _mcp_file(self) -> ConfigFile:
        return self.config_file

    def _managed_provider_id(self, doc: Document) -> str:
        default_model = doc.get("default_model")
        if isinstance(default_model, str):
            entry = get_table(doc, "models", default_model)
            if entry is not None and isinstance(entry.get("provider"), str):
                return str(entry["provider"])
        return DEFAULT_PROVIDER_ID

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        provider_id = options.provider_id or DEFAULT_PROVIDER_ID
        model = options.model

        doc["default_model"] = model
        providers = ensure_table(doc, "providers")
        providers[provider_id] = {
            "type": PROVIDER_TYPE,
            "base_url": self.base_url_for(plan, Protocol.OPENAI, options),
            "api_key": api_key,
        }
        models = ensure_table(doc, "models")
        models[model] = {
            "provider": provider_id,
            "model": model,
            "max_context_size": options.max_context_size,
        }
        return doc

    def remove_provider(self, doc: Document) -> Document:
        provider = get_table(doc, "providers", self._managed_provider_id(doc))
        if provider is not None:
            provider["api_key"] = ""
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.config_file.read()
        provider_id = self._managed_provider_id(doc)
        provider = get_table(doc, "providers", provider_id)
        if provider is None:
            return DetectedConfig()

        base_url = provider.get("base_url")
        api_key = provider.get("api_key")
        plan = provider_registry.detect_plan_from_url(str(base_url)) if isinstance(base_url, str) else None

        model = None
        default_model = doc.get("default_model")
        if isinstance(default_model, str):
            entry = get_table(doc, "models", default_model)
            model = str(entry.get("model", default_model)) if entry is not None else str(default_model)
        return DetectedConfig.found(plan, str(api_key) if isinstance(api_key, str) else None, model)

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        options = self.provider_settings(plan, options)

        doc = await self.config_file.read()
        await self.config_file.write(self.apply_provider(doc, plan, api_key, options))

        logger.info("Configured Kimi CLI", plan=plan.value, model=options.model)

    async def unload_config(self) -> None:
        if not self.config_file.exists():
            return
        doc = await self.config_file.read()
        if get_table(doc, "providers", self._managed_provider_id(doc)) is None:
            return
        await self.config_file.write(self.remove_provider(doc))
        logger.info("Cleared Kimi CLI provider key")

    def _before_mcp_write(self, doc: Document) -> None:
        client = ensure_table(ensure_table(doc, "mcp"), "client")
        if "tool_call_timeout_ms" not in client:
            client["tool_call_timeout_ms"] = DEFAULT_TOOL_CALL_TIMEOUT_MS

        # npx chatter on stdout breaks the stdio handshake
        servers = get_table(doc, "mcp", "servers") or {}
        for entry in servers.values():
            if not isinstance(entry, dict) or entry.get("command") != "npx":
                continue
            args = entry.get("args")
            if isinstance(args, list) and "--silent" not in args:
                entry["args"] = ["--silent", *[str(arg) for arg in args]]

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        if service.protocol == "stdio":
            return {
                "command": service.command_for(),
                "args": list(service.args),
                "env": self.stdio_env(service, api_key, plan),
            }
        return {
            "url": service.url_for(plan.value),
            "transport": "sse" if service.protocol == "sse" else "http",
            "headers": self.http_headers(service, api_key),
        }
