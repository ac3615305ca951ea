"""Built-in MCP service catalog."""

from __future__ import annotations

from coder_link.models.mcp import MCPService
from coder_link.models.provider import Plan


def _same_env_for_all(env: dict[str, str], plans: tuple[Plan, ...] = tuple(Plan)) -> dict[str, dict[str, str]]:
    return {plan.value: dict(env) for plan in plans}


GLM_PLANS = (Plan.GLM_GLOBAL, Plan.GLM_CHINA)

BUILTIN_MCP_SERVICES: list[MCPService] = [
    MCPService(
        id="filesystem",
        name="Filesystem",
        description="File system operations",
        protocol="stdio",
        command="npx",
        args=["--silent", "-y", "@modelcontextprotocol/server-filesystem", "/"],
    ),
    MCPService(
        id="github",
        name="GitHub",
        description="GitHub integration (uses GITHUB_TOKEN from your environment)",
        protocol="stdio",
        command="npx",
        args=["--silent", "-y", "@modelcontextprotocol/server-github"],
        env_template=_same_env_for_all({"GITHUB_TOKEN": ""}),
    ),
    MCPService(
        id="coolify-mcp",
        name="Coolify",
        description="Coolify server management (uses COOLIFY_BASE_URL and COOLIFY_TOKEN)",
        protocol="stdio",
        command="npx",
        args=["-y", "coolify-mcp-server"],
        env_template=_same_env_for_all({"COOLIFY_BASE_URL": "", "COOLIFY_TOKEN": ""}),
    ),
    MCPService(
        id="zai-mcp-server",
        name="Z AI MCP Server",
        description="Z AI unified MCP server with multiple tools",
        protocol="stdio",
        command="npx",
        args=["-y", "@z_ai/mcp-server"],
        requires_auth=True,
        env_template=_same_env_for_all({"Z_AI_MODE": "ZAI", "Z_AI_API_KEY": ""}, GLM_PLANS),
    ),
    MCPService(
        id="web-search-prime",
        name="Web Search Prime",
        description="Z AI web search service",
        protocol="streamable-http",
        url_template={
            Plan.GLM_GLOBAL.value: "https://api.z.ai/api/mcp/web_search_prime/mcp",
            Plan.GLM_CHINA.value: "https://open.bigmodel.cn/api/mcp/web_search_prime/mcp",
        },
        requires_auth=True,
    ),
    MCPService(
        id="web-reader",
        name="Web Reader",
        description="Z AI web content reader service",
        protocol="streamable-http",
        url_template={
            Plan.GLM_GLOBAL.value: "https://api.z.ai/api/mcp/web_reader/mcp",
            Plan.GLM_CHINA.value: "https://open.bigmodel.cn/api/mcp/web_reader/mcp",
        },
        requires_auth=True,
    ),
    MCPService(
        id="zread",
        name="Z Read",
        description="Z AI reading assistant service",
        protocol="streamable-http",
        url_template={
            Plan.GLM_GLOBAL.value: "https://api.z.ai/api/mcp/zread/mcp",
            Plan.GLM_CHINA.value: "https://open.bigmodel.cn/api/mcp/zread/mcp",
        },
        requires_auth=True,
    ),
]


def get_builtin_service(service_id: str) -> MCPService | None:
    """Look up a built-in service by id."""
    return next((service for service in BUILTIN_MCP_SERVICES if service.id == service_id), None)


def builtin_service_ids() -> list[str]:
    return [service.id for service in BUILTIN_MCP_SERVICES]
