"""Pi coding agent adapter (``~/.pi/agent/models.json``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from coder_link.logging import get_logger
from coder_link.models.provider import Plan, Protocol, ProviderSettings
from coder_link.models.tool import DetectedConfig, ToolId
from coder_link.providers import provider_registry
from coder_link.storage import JsonConfigFile
from coder_link.tools.base import (
    Document,
    ToolAdapter,
    ensure_table,
    get_table,
    prune_empty,
    require_api_key,
)

logger = get_logger(__name__)

PI_PROVIDER_ID = "moonshot"

# Pi's name for OpenAI Chat Completions
PI_API_MODE = "openai-completions"


class PiAdapter(ToolAdapter):
    tool_id = ToolId.PI
    display_name = "Pi"

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.config_file = JsonConfigFile(self.home / ".pi" / "agent" / "models.json", scope="pi")

    def _model_list(self, existing: Any, plan: Plan, options: ProviderSettings) -> list[Any]:
        """Put the selected model first, keeping metadata of entries already present."""
        reasoning = provider_registry.supports_thinking(plan, options.source)
        models = [m for m in existing if isinstance(m, dict)] if isinstance(existing, list) else []

        for index, entry in enumerate(models):
            if entry.get("id") == options.model:
                selected = {**entry, "reasoning": reasoning}
                return [selected, *models[:index], *models[index + 1 :]]

        if models:
            first = models[0]
            name = first.get("name") if isinstance(first.get("name"), str) and first["name"].strip() else None
            return [
                {**first, "id": options.model, "name": name or options.model, "reasoning": reasoning},
                *models[1:],
            ]

        return [
            {
                "id": options.model,
                "name": f"{options.model} ({provider_registry.get_display_name(plan)})",
                "reasoning": reasoning,
                "input": ["text"],
                "contextWindow": options.max_context_size,
                "maxTokens": provider_registry.get_max_output_tokens(plan, options.model),
                "cost": {"input": 0, "output": 0, "cacheRead": 0, "cacheWrite": 0},
            }
        ]

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        providers = ensure_table(doc, "providers")
        existing = providers.get(PI_PROVIDER_ID)
        existing = existing if isinstance(existing, dict) else {}
        providers[PI_PROVIDER_ID] = {
            **existing,
            "baseUrl": self.base_url_for(plan, Protocol.OPENAI, options),
            "api": PI_API_MODE,
            "apiKey": api_key,
            "authHeader": True,
            "models": self._model_list(existing.get("models"), plan, options),
        }
        return doc

    def remove_provider(self, doc: Document) -> Document:
        providers = get_table(doc, "providers")
        if providers is not None:
            providers.pop(PI_PROVIDER_ID, None)
            prune_empty(doc, "providers")
        return doc

    async def _inspect(self) -> DetectedConfig:
        doc = await self.config_file.read()
        provider = get_table(doc, "providers", PI_PROVIDER_ID)
        if provider is None:
            return DetectedConfig()

        base_url = provider.get("baseUrl")
        api_key = provider.get("apiKey")
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

        logger.info("Configured Pi", plan=plan.value, model=options.model)

    async def unload_config(self) -> None:
        if not self.config_file.exists():
            return
        doc = await self.config_file.read()
        if get_table(doc, "providers", PI_PROVIDER_ID) is None:
            return
        await self.config_file.write(self.remove_provider(doc))
        logger.info("Removed Pi provider config")
