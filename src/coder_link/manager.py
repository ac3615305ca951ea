"""Tool manager: capability gating in front of the tool adapters."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from coder_link.logging import get_logger
from coder_link.models.mcp import MCPService
from coder_link.models.provider import Plan, ProviderOverrides, ProviderSettings
from coder_link.models.tool import BulkInstallResult, DetectedConfig, ToolCapabilities, ToolId
from coder_link.providers import provider_registry
from coder_link.tools import (
    CapabilityError,
    ToolAdapter,
    ToolAdapterRegistry,
    UnsupportedOperationError,
    UnsupportedPlanError,
    UnsupportedToolError,
    tool_registry,
)

if TYPE_CHECKING:
    from coder_link.config_manager import ConfigManager

logger = get_logger(__name__)

ALL_PLANS = frozenset(Plan)


def _provider_tool(plans: frozenset[Plan] = ALL_PLANS, mcp: bool = False) -> ToolCapabilities:
    return ToolCapabilities(
        supports_provider_config=True,
        supports_mcp=mcp,
        supports_model_selection=True,
        supported_plans=plans,
    )


TOOL_CAPABILITIES: dict[ToolId, ToolCapabilities] = {
    ToolId.CLAUDE_CODE: _provider_tool(provider_registry.anthropic_plans(), mcp=True),
    ToolId.OPENCODE: _provider_tool(mcp=True),
    ToolId.CRUSH: _provider_tool(mcp=True),
    ToolId.FACTORY_DROID: _provider_tool(mcp=True),
    ToolId.KIMI: _provider_tool(mcp=True),
    ToolId.AMP: ToolCapabilities(),
    ToolId.PI: _provider_tool(),
    ToolId.CODEX: _provider_tool(),
    ToolId.MASTRA: ToolCapabilities(supports_mcp=True),
}


def merge_overrides(base: ProviderSettings, overrides: ProviderOverrides | None) -> ProviderSettings:
    """Layer per-call overrides over resolved provider settings.

    A model override also becomes the Anthropic model unless one is given
    explicitly. A base URL override without an Anthropic URL clears the
    Anthropic URL so it is derived from the new base URL.
    """
    if overrides is None or overrides.is_empty():
        return base

    update: dict[str, Any] = {}
    if overrides.model:
        update["model"] = overrides.model
        update["anthropic_model"] = overrides.anthropic_model or overrides.model
    elif overrides.anthropic_model:
        update["anthropic_model"] = overrides.anthropic_model
    if overrides.base_url:
        update["base_url"] = overrides.base_url
        update["anthropic_base_url"] = overrides.anthropic_base_url
    elif overrides.anthropic_base_url:
        update["anthropic_base_url"] = overrides.anthropic_base_url
    if overrides.provider_id:
        update["provider_id"] = overrides.provider_id
    if overrides.max_context_size:
        update["max_context_size"] = overrides.max_context_size
    return base.model_copy(update=update)


class ToolManager:
    """Front door for configuring tools.

    Every write is checked against :data:`TOOL_CAPABILITIES` before any file
    is touched. Adapter errors are re-raised as they are.
    """

    def __init__(
        self,
        config_manager: ConfigManager | None = None,
        *,
        home: Path | None = None,
        registry: ToolAdapterRegistry = tool_registry,
    ) -> None:
        """Initialize the manager.

        Args:
            config_manager: Loaded credential store, used to resolve provider settings.
            home: Root for tool config paths, passed to every adapter.
            registry: Adapter registry to instantiate tools from.
        """
        self.config_manager = config_manager
        self.home = home
        self.registry = registry
        self._adapters: dict[ToolId, ToolAdapter] = {}

    # Lookups

    def get_supported_tools(self) -> list[ToolId]:
        return [tool_id for tool_id in self.registry.get_tool_ids() if tool_id in TOOL_CAPABILITIES]

    def is_supported_tool(self, tool: ToolId | str) -> bool:
        try:
            return ToolId(tool) in TOOL_CAPABILITIES and self.registry.is_registered(tool)
        except ValueError:
            return False

    def get_capabilities(self, tool: ToolId | str) -> ToolCapabilities:
        return TOOL_CAPABILITIES[self._coerce_tool(tool)]

    def is_plan_supported(self, tool: ToolId | str, plan: Plan | str) -> bool:
        capabilities = self.get_capabilities(tool)
        try:
            return capabilities.supports_provider_config and Plan(plan) in capabilities.supported_plans
        except ValueError:
            return False

    def _rejected(self, error: CapabilityError) -> CapabilityError:
        logger.warning("Rejected tool operation", scope="manager", tool=error.tool_id, error=str(error))
        return error

    def _coerce_tool(self, tool: ToolId | str) -> ToolId:
        try:
            tool_id = ToolId(tool)
        except ValueError as e:
            raise self._rejected(UnsupportedToolError(str(tool))) from e
        if tool_id not in TOOL_CAPABILITIES or not self.registry.is_registered(tool_id):
            raise self._rejected(UnsupportedToolError(tool_id.value))
        return tool_id

    def _coerce_plan(self, tool_id: ToolId, plan: Plan | str) -> Plan:
        try:
            return Plan(plan)
        except ValueError as e:
            raise self._rejected(UnsupportedPlanError(tool_id.value, str(plan), "unknown plan")) from e

    def _get_adapter(self, tool_id: ToolId) -> ToolAdapter:
        adapter = self._adapters.get(tool_id)
        if adapter is None:
            adapter = self.registry.create(tool_id, home=self.home)
            if adapter is None:
                raise self._rejected(UnsupportedToolError(tool_id.value))
            self._adapters[tool_id] = adapter
        return adapter

    def _require_provider_config(self, tool_id: ToolId) -> None:
        if not TOOL_CAPABILITIES[tool_id].supports_provider_config:
            raise self._rejected(UnsupportedOperationError(tool_id.value, "provider configuration is not supported"))

    def _require_mcp(self, tool_id: ToolId) -> None:
        if not TOOL_CAPABILITIES[tool_id].supports_mcp:
            raise self._rejected(UnsupportedOperationError(tool_id.value, "MCP servers are not supported"))

    # Provider configuration

    def resolve_provider_settings(self, plan: Plan) -> ProviderSettings:
        """Stored settings for a plan, or registry defaults without a store."""
        if self.config_manager is not None:
            return self.config_manager.get_provider_settings(plan)
        return provider_registry.default_provider_settings(plan)

    async def load_config(
        self,
        tool: ToolId | str,
        plan: Plan | str,
        api_key: str,
        overrides: ProviderOverrides | None = None,
        options: ProviderSettings | None = None,
    ) -> None:
        """Point a tool at a plan.

        Args:
            tool: Tool to configure.
            plan: Provider plan.
            api_key: Credential for the plan.
            overrides: Per-call changes layered over the resolved settings.
            options: Resolved settings to use instead of the credential store.

        Raises:
            CapabilityError: If the tool or plan is unsupported. Raised before any I/O.
        """
        tool_id = self._coerce_tool(tool)
        plan = self._coerce_plan(tool_id, plan)
        self._require_provider_config(tool_id)
        if plan not in TOOL_CAPABILITIES[tool_id].supported_plans:
            raise self._rejected(UnsupportedPlanError(tool_id.value, plan.value))

        resolved = merge_overrides(options or self.resolve_provider_settings(plan), overrides)
        await self._get_adapter(tool_id).load_config(plan, api_key, resolved)
        logger.info("Loaded tool config", tool=tool_id.value, plan=plan.value, model=resolved.model)

    async def unload_config(self, tool: ToolId | str) -> None:
        """Remove the managed provider block from a tool."""
        tool_id = self._coerce_tool(tool)
        self._require_provider_config(tool_id)
        await self._get_adapter(tool_id).unload_config()
        logger.info("Unloaded tool config", tool=tool_id.value)

    async def detect_current_config(self, tool: ToolId | str) -> DetectedConfig:
        tool_id = self._coerce_tool(tool)
        if not TOOL_CAPABILITIES[tool_id].supports_provider_config:
            return DetectedConfig()
        return await self._get_adapter(tool_id).detect_current_config()

    async def is_configured(self, tool: ToolId | str) -> bool:
        return (await self.detect_current_config(tool)).is_configured

    # MCP servers

    async def install_mcp(self, tool: ToolId | str, service: MCPService, api_key: str, plan: Plan | str) -> None:
        tool_id = self._coerce_tool(tool)
        self._require_mcp(tool_id)
        await self._get_adapter(tool_id).install_mcp(service, api_key, self._coerce_plan(tool_id, plan))

    async def uninstall_mcp(self, tool: ToolId | str, mcp_id: str) -> None:
        tool_id = self._coerce_tool(tool)
        self._require_mcp(tool_id)
        await self._get_adapter(tool_id).uninstall_mcp(mcp_id)

    async def is_mcp_installed(self, tool: ToolId | str, mcp_id: str) -> bool:
        tool_id = self._coerce_tool(tool)
        if not TOOL_CAPABILITIES[tool_id].supports_mcp:
            return False
        return await self._get_adapter(tool_id).is_mcp_installed(mcp_id)

    async def get_installed_mcps(self, tool: ToolId | str) -> list[str]:
        tool_id = self._coerce_tool(tool)
        if not TOOL_CAPABILITIES[tool_id].supports_mcp:
            return []
        return await self._get_adapter(tool_id).get_installed_mcps()

    async def get_all_mcp_servers(self, tool: ToolId | str) -> dict[str, Any]:
        tool_id = self._coerce_tool(tool)
        if not TOOL_CAPABILITIES[tool_id].supports_mcp:
            return {}
        return await self._get_adapter(tool_id).get_all_mcp_servers()

    async def get_other_mcps(self, tool: ToolId | str, builtin_ids: Iterable[str]) -> dict[str, Any]:
        tool_id = self._coerce_tool(tool)
        if not TOOL_CAPABILITIES[tool_id].supports_mcp:
            return {}
        return await self._get_adapter(tool_id).get_other_mcps(builtin_ids)

    async def get_mcp_status(self, tool: ToolId | str, services: Iterable[MCPService | str]) -> dict[str, bool]:
        """Map each service id to whether the tool has it installed."""
        installed = set(await self.get_installed_mcps(tool))
        ids = [service.id if isinstance(service, MCPService) else service for service in services]
        return {service_id: service_id in installed for service_id in ids}

    async def install_mcp_to_all(
        self,
        service: MCPService,
        api_key: str,
        plan: Plan | str,
        tools: Iterable[ToolId | str] | None = None,
    ) -> BulkInstallResult:
        """Install one service into every MCP-capable tool, one at a time.

        A failing tool is recorded and skipped; the rest still run.

        Args:
            service: Service to install.
            api_key: Credential injected when the service requires auth.
            plan: Plan used to pick templated env and URLs.
            tools: Restrict to these tools. Defaults to every MCP-capable tool.

        Returns:
            Attempted and succeeded counts plus per-tool failures.
        """
        if tools is None:
            targets = [tool_id for tool_id in self.get_supported_tools() if TOOL_CAPABILITIES[tool_id].supports_mcp]
        else:
            targets = list(tools)

        result = BulkInstallResult(service_id=service.id)
        for tool in targets:
            result.attempted += 1
            try:
                await self.install_mcp(tool, service, api_key, plan)
            except Exception as e:
                logger.error("MCP install failed", scope="manager", tool=str(tool), mcp=service.id, error=str(e))
                result.failures[str(tool)] = str(e)
                continue
            result.succeeded += 1
            result.installed.append(str(tool))

        logger.info(
            "Bulk MCP install finished",
            mcp=service.id,
            attempted=result.attempted,
            succeeded=result.succeeded,
        )
        return result
