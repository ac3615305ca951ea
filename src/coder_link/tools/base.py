"""Abstract base class for tool adapters."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Iterable, MutableMapping
from pathlib import Path
from typing import Any

from coder_link.logging import get_logger
from coder_link.models.mcp import DEFAULT_AUTH_ENV_VAR, MCPService, MCPServiceError
from coder_link.models.provider import Plan, Protocol, ProviderSettings
from coder_link.models.tool import DetectedConfig, ToolId
from coder_link.providers import provider_registry, resolve_provider_base_url
from coder_link.settings import settings
from coder_link.storage import ConfigFile, ConfigStoreError

logger = get_logger(__name__)

Document = MutableMapping[str, Any]


class CapabilityError(Exception):
    """Operation or plan not supported by a tool."""

    def __init__(self, tool_id: str, message: str) -> None:
        self.tool_id = tool_id
        super().__init__(f"{tool_id}: {message}")


class UnsupportedToolError(CapabilityError):
    """Tool identifier is unknown."""

    def __init__(self, tool_id: str) -> None:
        super().__init__(tool_id, "unsupported tool")


class UnsupportedPlanError(CapabilityError):
    """Plan is not in the tool's supported set."""

    def __init__(self, tool_id: str, plan: str, reason: str | None = None) -> None:
        self.plan = plan
        message = f"plan {plan} is not supported"
        super().__init__(tool_id, f"{message} ({reason})" if reason else message)


class UnsupportedOperationError(CapabilityError):
    """Tool has no capability for the requested operation."""


class ToolConfigError(Exception):
    """Invalid input for a tool's provider configuration."""


def ensure_table(container: Document, key: str) -> Document:
    """Return ``container[key]`` as a mapping, replacing non-mapping values."""
    value = container.get(key)
    if not isinstance(value, MutableMapping):
        container[key] = {}
        value = container[key]
    return value


def get_table(container: Any, *path: str) -> Document | None:
    """Walk a key path, returning None when any step is missing or not a mapping."""
    current = container
    for key in path:
        if not isinstance(current, MutableMapping):
            return None
        current = current.get(key)
    return current if isinstance(current, MutableMapping) else None


def prune_empty(doc: Document, *path: str) -> None:
    """Delete empty mappings along a key path, deepest first."""
    for depth in range(len(path), 0, -1):
        parent = get_table(doc, *path[: depth - 1]) if depth > 1 else doc
        if parent is None:
            continue
        key = path[depth - 1]
        value = parent.get(key)
        if isinstance(value, MutableMapping) and not value:
            del parent[key]


def plain(value: Any) -> Any:
    """Convert tomlkit containers into plain Python values."""
    unwrap = getattr(value, "unwrap", None)
    return unwrap() if callable(unwrap) else value


def require_api_key(api_key: str | None, scope: str) -> str:
    if not api_key or not api_key.strip():
        logger.warning("Rejected provider config", scope=scope, error="API key cannot be empty")
        raise ToolConfigError("API key cannot be empty")
    return api_key.strip()


class ToolAdapter(ABC):
    """Abstract base class for tool adapters.

    Each adapter maps a plan + credential + model onto one external tool's
    own config file, can read that mapping back, and manages the tool's
    MCP server table. Writes touch only the adapter's managed block.
    """

    # Tool identifier
    tool_id: ToolId

    # Human-readable name
    display_name: str

    # MCP transports this tool accepts; empty means no MCP management
    mcp_transports: frozenset[str] = frozenset()

    # Key path of the MCP server table inside the MCP file
    mcp_table_path: tuple[str, ...] = ("mcpServers",)

    # Fill blank templated env values from the current process environment
    backfill_mcp_env: bool = False

    def __init__(self, home: Path | None = None) -> None:
        """Initialize the adapter.

        Args:
            home: Root for the tool's config paths; defaults to the configured home.
        """
        self.home = Path(home) if home is not None else settings.home_dir

    # Provider configuration

    async def detect_current_config(self) -> DetectedConfig:
        """Read back the managed provider block.

        Returns:
            The detection result; an unreadable file is reported as not configured.
        """
        try:
            return await self._inspect()
        except ConfigStoreError as e:
            logger.warning("Could not read tool config", scope=self.tool_id.value, error=str(e))
            return DetectedConfig.unreadable(str(e))

    @abstractmethod
    async def _inspect(self) -> DetectedConfig:
        """Parse the tool's config and locate the managed block.

        Raises:
            ConfigStoreError: If the tool's config cannot be read.
        """

    @abstractmethod
    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        """Write or replace the managed provider block.

        Args:
            plan: Provider plan.
            api_key: Credential for the plan.
            options: Resolved provider settings; registry defaults when omitted.

        Raises:
            ToolConfigError: If the input is unusable for this tool.
            ConfigStoreError: If the tool's config cannot be read or written.
        """

    @abstractmethod
    async def unload_config(self) -> None:
        """Remove or blank the managed provider block."""

    def provider_settings(self, plan: Plan, options: ProviderSettings | None) -> ProviderSettings:
        """Return the given settings, or registry defaults for the plan."""
        return options if options is not None else provider_registry.default_provider_settings(plan)

    def base_url_for(self, plan: Plan, protocol: Protocol, options: ProviderSettings) -> str:
        """Resolve the URL this tool should use for a protocol."""
        return resolve_provider_base_url(
            plan,
            protocol,
            base_url=options.base_url,
            anthropic_base_url=options.anthropic_base_url,
        )

    # MCP management

    @property
    def supports_mcp(self) -> bool:
        return bool(self.mcp_transports)

    def _mcp_file(self) -> ConfigFile | None:
        """File holding the MCP server table, or None when unsupported."""
        return None

    def _before_mcp_write(self, doc: Document) -> None:
        """Adjust the MCP document after an entry was added. No-op by default."""

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        """Translate a service into this tool's MCP entry schema."""
        raise self.rejected(UnsupportedOperationError(self.tool_id.value, "MCP servers are not supported"))

    def _require_mcp_file(self) -> ConfigFile:
        mcp_file = self._mcp_file()
        if mcp_file is None or not self.supports_mcp:
            raise self.rejected(UnsupportedOperationError(self.tool_id.value, "MCP servers are not supported"))
        return mcp_file

    def rejected(self, error: Exception) -> Exception:
        """Log a refused operation under this tool's scope and return the error to raise."""
        logger.warning("Rejected tool operation", scope=self.tool_id.value, error=str(error))
        return error

    def check_transport(self, service: MCPService) -> None:
        """Raise if this tool cannot express the service's transport."""
        if service.protocol not in self.mcp_transports:
            raise MCPServiceError(
                service.id,
                f"{self.display_name} does not support {service.protocol} MCP servers",
            )

    def stdio_env(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, str]:
        """Environment for a stdio service, with the credential injected when required."""
        env = service.env_for(plan.value)
        if self.backfill_mcp_env:
            for name, value in env.items():
                if not value:
                    env[name] = os.environ.get(name, "")
        if service.requires_auth and api_key:
            env[service.auth_env_var or DEFAULT_AUTH_ENV_VAR] = api_key
        return env

    def http_headers(self, service: MCPService, api_key: str) -> dict[str, str]:
        """Headers for an http-like service, with the credential injected when required."""
        headers = dict(service.headers)
        if service.requires_auth and api_key:
            name, value = service.auth_header_for(api_key)
            headers[name] = value
        return headers

    async def _read_mcp_table(self) -> Document:
        mcp_file = self._mcp_file()
        if mcp_file is None or not self.supports_mcp:
            return {}
        doc = await mcp_file.read()
        return get_table(doc, *self.mcp_table_path) or {}

    async def is_mcp_installed(self, mcp_id: str) -> bool:
        """Check whether an MCP server id is present."""
        return mcp_id in await self._read_mcp_table()

    async def install_mcp(self, service: MCPService, api_key: str, plan: Plan) -> None:
        """Add or replace an MCP server entry.

        Raises:
            UnsupportedOperationError: If the tool has no MCP support.
            MCPServiceError: If the service cannot be expressed for this tool.
        """
        mcp_file = self._require_mcp_file()
        try:
            self.check_transport(service)
            entry = self._render_mcp_entry(service, api_key, plan)
        except MCPServiceError as e:
            logger.warning("Rejected MCP service", scope=self.tool_id.value, mcp=service.id, error=str(e))
            raise

        doc = await mcp_file.read()
        table = doc
        for key in self.mcp_table_path:
            table = ensure_table(table, key)
        table[service.id] = entry
        self._before_mcp_write(doc)
        await mcp_file.write(doc)

        logger.info("Installed MCP server", tool=self.tool_id.value, mcp=service.id, plan=plan.value)

    async def uninstall_mcp(self, mcp_id: str) -> None:
        """Remove an MCP server entry; empty parent tables are removed too."""
        mcp_file = self._require_mcp_file()
        doc = await mcp_file.read()
        table = get_table(doc, *self.mcp_table_path)
        if table is None or mcp_id not in table:
            return

        del table[mcp_id]
        prune_empty(doc, *self.mcp_table_path)
        await mcp_file.write(doc)

        logger.info("Uninstalled MCP server", tool=self.tool_id.value, mcp=mcp_id)

    async def get_installed_mcps(self) -> list[str]:
        """Ids of every MCP server configured in the tool."""
        return list((await self._read_mcp_table()).keys())

    async def get_all_mcp_servers(self) -> dict[str, Any]:
        """Every MCP server entry, keyed by id."""
        return {key: plain(value) for key, value in (await self._read_mcp_table()).items()}

    async def get_other_mcps(self, builtin_ids: Iterable[str]) -> dict[str, Any]:
        """MCP server entries the user added outside the built-in catalog."""
        known = set(builtin_ids)
        servers = await self.get_all_mcp_servers()
        return {key: value for key, value in servers.items() if key not in known}


class NoProviderConfigMixin:
    """Provider-config methods for tools coder-link cannot configure.

    Detection reports nothing, loading raises and unloading is a no-op.
    """

    tool_id: ToolId
    display_name: str

    async def _inspect(self) -> DetectedConfig:
        return DetectedConfig()

    async def load_config(self, plan: Plan, api_key: str, options: ProviderSettings | None = None) -> None:
        error = UnsupportedOperationError(
            self.tool_id.value, f"{self.display_name} does not accept managed provider config"
        )
        logger.warning("Rejected tool operation", scope=self.tool_id.value, error=str(error))
        raise error

    async def unload_config(self) -> None:
        return None
