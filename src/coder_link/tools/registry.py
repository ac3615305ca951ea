"""Registry for tool adapters."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from coder_link.logging import get_logger
from coder_link.models.tool import ToolId

if TYPE_CHECKING:
    from coder_link.tools.base import ToolAdapter

logger = get_logger(__name__)


class ToolAdapterRegistry:
    """Registry mapping tool ids to adapter classes.

    Holds classes, not instances; the tool manager decides when to
    instantiate and how long to keep an adapter.
    """

    def __init__(self) -> None:
        """Initialize the registry."""
        self._adapter_classes: dict[ToolId, type[ToolAdapter]] = {}

    def register(self, adapter_class: type[ToolAdapter]) -> type[ToolAdapter]:
        """Register an adapter class.

        Can be used as a decorator:
            @tool_registry.register
            class CrushAdapter(ToolAdapter):
                ...

        Args:
            adapter_class: The adapter class to register.

        Returns:
            The adapter class (for decorator use).
        """
        tool_id = adapter_class.tool_id
        self._adapter_classes[tool_id] = adapter_class
        logger.debug("Registered tool adapter", tool=tool_id.value)
        return adapter_class

    def create(self, tool_id: ToolId | str, home: Path | None = None) -> ToolAdapter | None:
        """Create an adapter instance by tool id.

        Args:
            tool_id: Tool identifier.
            home: Root directory for the tool's config files.

        Returns:
            A new adapter, or None if the tool is not registered.
        """
        try:
            adapter_class = self._adapter_classes.get(ToolId(tool_id))
        except ValueError:
            return None
        if adapter_class is None:
            return None
        return adapter_class(home=home)

    def get_tool_ids(self) -> list[ToolId]:
        """Get all registered tool ids, in registration order."""
        return list(self._adapter_classes.keys())

    def is_registered(self, tool_id: ToolId | str) -> bool:
        try:
            return ToolId(tool_id) in self._adapter_classes
        except ValueError:
            return False


# Global registry instance
tool_registry = ToolAdapterRegistry()
