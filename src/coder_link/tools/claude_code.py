"""Claude Code adapter.

Provider settings live in the ``env`` block of ``~/.claude/settings.json``;
MCP servers and the onboarding flag live in ``~/.claude.json``.
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
    UnsupportedPlanError,
    ensure_table,
    get_table,
    prune_empty,
    require_api_key,
)

logger = get_logger(__name__)

AUTH_TOKEN_KEY = "ANTHROPIC_AUTH_TOKEN"
BASE_URL_KEY = "ANTHROPIC_BASE_URL"
MODEL_KEY = "ANTHROPIC_MODEL"

MANAGED_ENV_KEYS = (
    AUTH_TOKEN_KEY,
    BASE_URL_KEY,
    MODEL_KEY,
    "API_TIMEOUT_MS",
    "CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC",
)

# Claude Code prefers ANTHROPIC_API_KEY over the auth token when both exist
CONFLICTING_ENV_KEYS = ("ANTHROPIC_API_KEY",)

API_TIMEOUT_MS = "3000000"


class ClaudeCodeAdapter(ToolAdapter):
    """Claude Code speaks only the Anthropic protocol."""

    tool_id = ToolId.CLAUDE_CODE
    display_name = "Claude Code"
    mcp_transports = frozenset({"stdio", "sse", "streamable-http"})

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.settings_file = JsonConfigFile(self.home / ".claude" / "settings.json", scope="claude-code")
        self.state_file = JsonConfigFile(self.home / ".claude.json", scope="claude-code")

    def _mcp_file(self) -> ConfigFile:
        return self.state_file

    async def _inspect(self) -> DetectedConfig:
        doc = await self.settings_file.read()
        env = get_table(doc, "env")
        if env is None:
            return DetectedConfig()

        base_url = env.get(BASE_URL_KEY)
        token = env.get(AUTH_TOKEN_KEY)
        model = env.get(MODEL_KEY)
        plan = provider_registry.detect_plan_from_url(base_url) if isinstance(base_url, str) else None
        return DetectedConfig.found(
            plan,
            token if isinstance(token, str) else None,
            model if isinstance(model, str) else None,
        )

    def apply_provider(self, doc: Document, plan: Plan, api_key: str, options: ProviderSettings) -> Document:
        """Write the managed env keys into a settings document."""
        env = ensure_table(doc, "env")
        for key in CONFLICTING_ENV_KEYS:
            env.pop(key, None)
        env[AUTH_TOKEN_KEY] = api_key
        env[BASE_URL_KEY] = self.base_url_for(plan, Protocol.ANTHROPIC, options)
        env[MODEL_KEY] = options.anthropic_model or options.model
        env["API_TIMEOUT_MS"] = API_TIMEOUT_MS
        env["CLAUDE_CODE_DISABLE_NONESSENTIAL_TRAFFIC"] = 1
        return doc

    def remove_provider(self, doc: Document) -> Document:
        """Drop the managed env keys, and ``env`` itself when nothing else is left."""
        env = get_table(doc, "env")
        if env is None:
            return doc
        for key in MANAGED_ENV_KEYS:
            env.pop(key, None)
        prune_empty(doc, "env")
        return doc

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        plan = Plan(plan)
        api_key = require_api_key(api_key, self.tool_id.value)
        if not provider_registry.supports_protocol(plan, Protocol.ANTHROPIC):
            raise self.rejected(
                UnsupportedPlanError(
                    self.tool_id.value,
                    plan.value,
                    f"{provider_registry.get_display_name(plan)} has no Anthropic-compatible endpoint",
                )
            )
        options = self.provider_settings(plan, options)

        doc = await self.settings_file.read()
        await self.settings_file.write(self.apply_provider(doc, plan, api_key, options))
        await self._mark_onboarding_complete()

        logger.info("Configured Claude Code", plan=plan.value, model=options.anthropic_model or options.model)

    async def unload_config(self) -> None:
        if not self.settings_file.exists():
            return
        doc = await self.settings_file.read()
        if get_table(doc, "env") is None:
            return
        await self.settings_file.write(self.remove_provider(doc))
        logger.info("Removed Claude Code provider config")

    async def _mark_onboarding_complete(self) -> None:
        state = await self.state_file.read()
        if state.get("hasCompletedOnboarding") is True:
            return
        state["hasCompletedOnboarding"] = True
        await self.state_file.write(state)

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
