"""Pydantic models for MCP service descriptors."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

MCPTransport = Literal["stdio", "sse", "streamable-http"]

DEFAULT_AUTH_ENV_VAR = "Z_AI_API_KEY"
DEFAULT_AUTH_HEADER = "Authorization"
DEFAULT_AUTH_SCHEME = "Bearer"


class MCPServiceError(Exception):
    """MCP service descriptor cannot be written for the requested tool."""

    def __init__(self, service_id: str, message: str) -> None:
        self.service_id = service_id
        super().__init__(f"{service_id}: {message}")


class MCPService(BaseModel):
    """Transport-neutral MCP service definition.

    stdio services carry a command, args and an env template; http-like
    services carry a URL (or per-plan URL template) and headers.
    """

    id: str
    name: str
    description: str = ""
    protocol: MCPTransport = "stdio"

    # stdio
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    env_template: dict[str, dict[str, str]] = Field(default_factory=dict)  # plan -> env

    # sse / streamable-http
    url: str | None = None
    url_template: dict[str, str] = Field(default_factory=dict)  # plan -> url
    headers: dict[str, str] = Field(default_factory=dict)

    # Credential injection
    requires_auth: bool = False
    auth_env_var: str | None = None
    auth_header: str | None = None
    auth_scheme: str | None = None

    @model_validator(mode="after")
    def _check_transport_shape(self) -> MCPService:
        if self.protocol != "stdio" and not self.url and not self.url_template:
            raise ValueError(f"{self.protocol} service {self.id!r} needs url or url_template")
        return self

    @property
    def is_http(self) -> bool:
        """True for sse and streamable-http services."""
        return self.protocol != "stdio"

    def command_for(self) -> str:
        """Command used to launch a stdio service."""
        return self.command or "npx"

    def env_for(self, plan: str) -> dict[str, str]:
        """Environment for a plan, preferring the per-plan template."""
        if self.env_template and plan in self.env_template:
            return dict(self.env_template[plan])
        return dict(self.env)

    def url_for(self, plan: str) -> str:
        """Resolve the endpoint URL for a plan.

        Raises:
            MCPServiceError: If neither a template entry nor a static URL exists.
        """
        url = self.url_template.get(plan) or self.url
        if not url:
            raise MCPServiceError(self.id, f"no URL configured for plan {plan}")
        return url

    def auth_header_for(self, api_key: str) -> tuple[str, str]:
        """Header name and value used to pass the API key."""
        header = self.auth_header or DEFAULT_AUTH_HEADER
        scheme = DEFAULT_AUTH_SCHEME if self.auth_scheme is None else self.auth_scheme
        value = f"{scheme} {api_key}" if scheme else api_key
        return header, value
