"""Amp adapter.

Amp only talks to its own hosted backend, so there is nothing to write.
Every method exists so the manager can treat all tools alike.
"""

from __future__ import annotations

from coder_link.models.tool import ToolId
from coder_link.tools.base import NoProviderConfigMixin, ToolAdapter


class AmpAdapter(NoProviderConfigMixin, ToolAdapter):
    tool_id = ToolId.AMP
    display_name = "Amp"
