"""Mastra Code adapter. MCP servers only (``~/.mastracode/mcp.json``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from coder_link.models.mcp import MCPService
from coder_link.models.provider import Plan
from coder_link.models.tool import ToolId
from coder_link.storage import ConfigFile, JsonConfigFile
from coder_link.tools.base import NoProviderConfigMixin, ToolAdapter


class MastraAdapter(NoProviderConfigMixin, ToolAdapter):
    tool_id = ToolId.MASTRA
    display_name = "Mastra Code"
    mcp_transports = frozenset({"stdio"})
    backfill_mcp_env = True

    def __init__(self, home: Path | None = None) -> None:
        super().__init__(home)
        self.mcp_file = JsonConfigFile(self.home / ".mastracode" / "mcp.json", scope="mastra")

    def _mcp_file(self) -> ConfigFile:
        return self.mcp_file

    def _render_mcp_entry(self, service: MCPService, api_key: str, plan: Plan) -> dict[str, Any]:
        return {
            "command": service.command_for(),
            "args": list(service.args),
            "env": self.stdio_env(service, api_key, plan),
        }
