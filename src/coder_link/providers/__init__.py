"""Provider registry: canonical endpoints, URL math and health probes."""

from coder_link.providers.registry import ProviderRegistry, provider_registry

# Register the built-in plans before anything resolves URLs
from coder_link.providers.catalog import BUILTIN_PROVIDERS

for _descriptor in BUILTIN_PROVIDERS:
    provider_registry.register(_descriptor)

from coder_link.providers.health import (  # noqa: E402
    check_lmstudio_status,
    check_provider_health,
    fetch_loaded_model,
)
from coder_link.providers.urls import (  # noqa: E402
    normalize_lmstudio_url,
    normalize_provider_url,
    resolve_provider_base_url,
)

detect_plan_from_url = provider_registry.detect_plan_from_url

__all__ = [
    "ProviderRegistry",
    "provider_registry",
    "BUILTIN_PROVIDERS",
    "check_provider_health",
    "check_lmstudio_status",
    "fetch_loaded_model",
    "normalize_provider_url",
    "normalize_lmstudio_url",
    "resolve_provider_base_url",
    "detect_plan_from_url",
]
