"""Factory Droid adapter.

Droid keeps user-defined models in the ``customModels`` array of
``~/.factory/settings.json``. Entries written here are recognised by their
display name, ``"<provider> - <model> [OpenAI]"`` or ``[Anthropic]``, since
array positions shift whenever the user edits the list. Plans with an
Anthropic endpoint get one entry per protocol.
"""

from __future__ import annotations

import re
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
    get_table,
    prune_empty,
    require_api_key,
)

logger = get_logger(__name__)

OPENAI_PROVIDER = "generic-chat-completion-api"
ANTHROPIC_PROVIDER = "anthropic"
PROTOCOL_TAGS = {Protocol.OPENAI: "[OpenAI]", Protocol.ANTHROPIC: "[Anthropic]"}
CUSTOM_MODEL_POINTER = "custom-model"


def display_name_for(plan: Plan, model: str, protocol: Protocol) -> str:
    return f"{provider_registry.get_display_name(plan)} - {model} {PROTOCOL_TAGS[protocol]}"


def is_managed_entry(entry: Any) -> bool:
    """True for ``customModels`` entries this adapter wrote."""
    if not isinstance(entry, dict):
        return False
    name = entry.get("displayName")
    if not isinstance(name, str) or not name.endswith(tuple(PROTOCOL_TAGS.values())):
        return False
    return any(name.startswith(f"{d.display_name} - ") for d in provider_registry.get_all())


def custom_model_id(display_name: str, index: int) -> str:
    """Identifier Droid assigns to a custom model at a list position."""
    slug = re.sub(r"\s", "-", display_name.strip())
    return f"custom:{slug}-{index}"


class FactoryDroidAdapter(ToolAdapter):
    tool_id = ToolId.FACTORY_DROID
    display_name = "Factory Droid"
    mcp_transports = frozenset({"stdio", "streamable-http"})
    backfill_mcp_env = True

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.settings_file = JsonConfigFile(self.home / ".factory" / "settings.json", scope="factory-droid")
        self.mcp_file = JsonConfigFile(self.home / ".factory" / "mcp.json", scope="factory-droid")

    def _mcp_file(self) -> ConfigFile:
        return self.mcp_file

    def _model_entry(
        self,
        plan: Plan,
        protocol: Protocol,
        api_key: str,
        model: str,
        options: ProviderSettings,
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "displayName": display_name_for(plan, model, protocol),
            "model": model,
            "baseUrl": self.base_url_for(plan, protocol, options),
            "apiKey": api_key,
            "provider": ANTHROPIC_PROVIDER if protocol == Protocol.ANTHROPIC else OPENAI_PROVIDER,
            "maxOutputTokens": provider_registry.get_max_output_tokens(plan, model),
        }
        if protocol == Protocol.OPENAI:
            entry["maxContextSize"] = options.max_context_size
            if not provider_registry.supports_thinking(plan, options.source):
                entry["reasoning"] = False
        return entry

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        """Filter out previous managed entries, then append fresh ones."""
        existing = doc.get("customModels")
        kept = [entry for entry in existing if not is_managed_entry(entry)] if isinstance(existing, list) else []

        entries = []
        if provider_registry.supports_protocol(plan, Protocol.ANTHROPIC):
            anthropic_model = options.anthropic_model or options.model
            entries.append(self._model_entry(plan, Protocol.ANTHROPIC, api_key, anthropic_model, options))
        entries.append(self._model_entry(plan, Protocol.OPENAI, api_key, options.model, options))

        models = [*kept, *entries]
        doc["customModels"] = models
        doc["model"] = CUSTOM_MODEL_POINTER

        session = doc.get("sessionDefaultSettings")
        if not isinstance(session, dict):
            session = {}
            doc["sessionDefaultSettings"] = session
        openai_index = len(models) - 1
        session["model"] = custom_model_id(models[openai_index]["displayName"], openai_index)
        return doc

    def remove_provider(self, doc: Document) -> Document:
        existing = doc.get("customModels")
        if not isinstance(existing, list):
            return doc

        removed_ids = {
            custom_model_id(entry["displayName"], index)
            for index, entry in enumerate(existing)
            if is_managed_entry(entry)
        }
        kept = [entry for entry in existing if not is_managed_entry(entry)]
        if kept:
            doc["customModels"] = kept
        else:
            del doc["customModels"]
            if doc.get("model") == CUSTOM_MODEL_POINTER:
                del doc["model"]

        session = get_table(doc, "sessionDefaultSettings")
        if session is not None and session.get("model") in removed_ids:
            del session["model"]
            prune_empty(doc, "sessionDefaultSettings")
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.settings_file.read()
        models = doc.get("customModels")
        if not isinstance(models, list):
            return DetectedConfig()

        managed = [entry for entry in models if is_managed_entry(entry)]
        if not managed:
            return DetectedConfig()

        entry = next((m for m in managed if m.get("provider") == OPENAI_PROVIDER), managed[0])
        base_url = entry.get("baseUrl")
        plan = provider_registry.detect_plan_from_url(base_url) if isinstance(base_url, str) else None
        api_key = entry.get("apiKey")
        model = entry.get("model")
        return DetectedConfig.found(
            plan,
            api_key if isinstance(api_key, str) else None,
            model if isinstance(model, str) else None,
        )

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        options = self.provider_settings(plan, options)

        doc = await self.settings_file.read()
        await self.settings_file.write(self.apply_provider(doc, plan, api_key, options))

        logger.info("Configured Factory Droid", plan=plan.value, model=options.model)

    async def unload_config(self) -> None:
        if not self.settings_file.exists():
            return
        doc = await self.settings_file.read()
        await self.settings_file.write(self.remove_provider(doc))
        logger.info("Removed Factory Droid custom models")

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        if service.protocol == "stdio":
            command = service.command_for()
            args = list(service.args)
            if command == "npx" and "--silent" not in args:
                args.insert(0, "--silent")
            return {
                "type": "stdio",
                "command": command,
                "args": args,
                "env": self.stdio_env(service, api_key, plan),
                "disabled": False,
            }
        return {
            "type": "http",
            "url": service.url_for(plan.value),
            "headers": self.http_headers(service, api_key),
            "disabled": False,
        }
