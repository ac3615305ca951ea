"""Registry of provider plans."""

from __future__ import annotations

from coder_link.logging import get_logger
from coder_link.models.provider import Plan, Protocol, ProviderDescriptor, ProviderSettings

logger = get_logger(__name__)


class ProviderRegistry:
    """Registry of canonical provider metadata.

    Registration order matters: URL detection tests descriptors in the
    order they were registered and the first match wins.
    """

    def __init__(self) -> None:
        """Initialize the registry."""
        self._descriptors: dict[Plan, ProviderDescriptor] = {}

    def register(self, descriptor: ProviderDescriptor) -> ProviderDescriptor:
        """Register a provider descriptor.

        Args:
            descriptor: The descriptor to register.

        Returns:
            The descriptor, unchanged.
        """
        self._descriptors[descriptor.plan] = descriptor
        logger.debug("Registered provider", plan=descriptor.plan.value)
        return descriptor

    def get(self, plan: Plan | str) -> ProviderDescriptor:
        """Get the descriptor for a plan.

        Raises:
            KeyError: If the plan is not registered.
        """
        return self._descriptors[Plan(plan)]

    def get_all(self) -> list[ProviderDescriptor]:
        """Get every descriptor in registration order."""
        return list(self._descriptors.values())

    def get_all_plans(self) -> list[Plan]:
        """Get every registered plan in registration order."""
        return list(self._descriptors.keys())

    def get_display_name(self, plan: Plan | str) -> str:
        return self.get(plan).display_name

    def get_short_name(self, plan: Plan | str) -> str:
        return self.get(plan).short_name

    def supports_protocol(self, plan: Plan | str, protocol: Protocol | str) -> bool:
        """Check whether a plan exposes an endpoint for a protocol."""
        descriptor = self.get(plan)
        if Protocol(protocol) == Protocol.ANTHROPIC:
            return descriptor.anthropic_base_url is not None
        return True

    def get_base_url(self, plan: Plan | str, protocol: Protocol | str = Protocol.OPENAI) -> str:
        """Get the registry default base URL.

        Plans without an Anthropic endpoint fall back to the OpenAI one.
        """
        descriptor = self.get(plan)
        if Protocol(protocol) == Protocol.ANTHROPIC and descriptor.anthropic_base_url:
            return descriptor.anthropic_base_url
        return descriptor.openai_base_url

    def get_default_model(self, plan: Plan | str) -> str:
        return self.get(plan).default_model

    def get_max_context_size(self, plan: Plan | str) -> int:
        return self.get(plan).max_context_size

    def get_max_output_tokens(self, plan: Plan | str, model: str | None = None) -> int:
        """Get the output token limit, allowing per-model exceptions."""
        if model and "qwen3-max" in model.lower():
            return 65536
        return self.get(plan).max_output_tokens

    def supports_thinking(self, plan: Plan | str, source: str | None = None) -> bool:
        """Check whether extended thinking should be advertised.

        Kimi models only think when served by the native Moonshot API.
        """
        plan = Plan(plan)
        if plan == Plan.KIMI:
            normalized = (source or "").strip().lower()
            return normalized in ("", "moonshot")
        return self.get(plan).supports_thinking

    def anthropic_plans(self) -> frozenset[Plan]:
        """Plans that expose an Anthropic-protocol endpoint."""
        return frozenset(
            descriptor.plan for descriptor in self._descriptors.values() if descriptor.anthropic_base_url
        )

    def detect_plan_from_url(self, url: str | None) -> Plan | None:
        """Reverse-map a base URL to its plan.

        Args:
            url: A base URL as stored in some tool's config.

        Returns:
            The first plan whose detection pattern occurs in the URL, or None.
        """
        if not url or not url.strip():
            return None
        normalized = url.strip().lower().rstrip("/")
        for descriptor in self._descriptors.values():
            if any(pattern in normalized for pattern in descriptor.detection_patterns):
                return descriptor.plan
        return None

    def default_provider_settings(self, plan: Plan | str) -> ProviderSettings:
        """Build provider settings from registry defaults alone."""
        descriptor = self.get(plan)
        return ProviderSettings(
            base_url=descriptor.openai_base_url,
            anthropic_base_url=descriptor.anthropic_base_url,
            model=descriptor.default_model,
            anthropic_model=descriptor.default_anthropic_model or descriptor.default_model,
            source=descriptor.source,
            max_context_size=descriptor.max_context_size,
        )


# Global registry instance
provider_registry = ProviderRegistry()
