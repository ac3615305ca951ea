"""Tool adapters: one per external coding tool."""

from coder_link.tools.base import (
    CapabilityError,
    NoProviderConfigMixin,
    ToolAdapter,
    ToolConfigError,
    UnsupportedOperationError,
    UnsupportedPlanError,
    UnsupportedToolError,
)
from coder_link.tools.registry import ToolAdapterRegistry, tool_registry

# Import adapters to trigger registration
from coder_link.tools.amp import AmpAdapter
from coder_link.tools.claude_code import ClaudeCodeAdapter
from coder_link.tools.codex import CodexAdapter
from coder_link.tools.crush import CrushAdapter
from coder_link.tools.factory_droid import FactoryDroidAdapter
from coder_link.tools.kimi import KimiAdapter
from coder_link.tools.mastra import MastraAdapter
from coder_link.tools.opencode import OpenCodeAdapter
from coder_link.tools.pi import PiAdapter

# Register all adapters
tool_registry.register(ClaudeCodeAdapter)
tool_registry.register(OpenCodeAdapter)
tool_registry.register(CrushAdapter)
tool_registry.register(FactoryDroidAdapter)
tool_registry.register(KimiAdapter)
tool_registry.register(AmpAdapter)
tool_registry.register(PiAdapter)
tool_registry.register(CodexAdapter)
tool_registry.register(MastraAdapter)

__all__ = [
    "ToolAdapter",
    "NoProviderConfigMixin",
    "CapabilityError",
    "UnsupportedToolError",
    "UnsupportedPlanError",
    "UnsupportedOperationError",
    "ToolConfigError",
    "ToolAdapterRegistry",
    "tool_registry",
    "ClaudeCodeAdapter",
    "OpenCodeAdapter",
    "CrushAdapter",
    "FactoryDroidAdapter",
    "KimiAdapter",
    "AmpAdapter",
    "PiAdapter",
    "CodexAdapter",
    "MastraAdapter",
]
