"""Pydantic models for coder-link."""

from coder_link.models.config import (
    CoderLinkConfig,
    FactoryDroidSettings,
    FeatureToggles,
    GlmProfiles,
    ProviderProfile,
    ProvidersSection,
    ToolsSection,
)
from coder_link.models.mcp import MCPService, MCPServiceError, MCPTransport
from coder_link.models.provider import (
    HealthCheckResult,
    Plan,
    Protocol,
    ProviderDescriptor,
    ProviderOverrides,
    ProviderSettings,
)
from coder_link.models.tool import (
    BulkInstallResult,
    DetectedConfig,
    ToolCapabilities,
    ToolId,
)

__all__ = [
    # Provider models
    "Plan",
    "Protocol",
    "ProviderDescriptor",
    "ProviderSettings",
    "ProviderOverrides",
    "HealthCheckResult",
    # Tool models
    "ToolId",
    "ToolCapabilities",
    "DetectedConfig",
    "BulkInstallResult",
    # MCP models
    "MCPService",
    "MCPServiceError",
    "MCPTransport",
    # Credential store models
    "CoderLinkConfig",
    "ProviderProfile",
    "GlmProfiles",
    "ProvidersSection",
    "FeatureToggles",
    "FactoryDroidSettings",
    "ToolsSection",
]
