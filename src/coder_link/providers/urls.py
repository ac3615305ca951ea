"""Protocol-aware base URL resolution and normalization.

Every rewrite here is a projection: feeding a normalized URL back in
returns it unchanged.
"""

from __future__ import annotations

from coder_link.models.provider import Plan, Protocol
from coder_link.providers.registry import provider_registry


def _strip_trailing_slashes(url: str) -> str:
    return url.strip().rstrip("/")


def _strip_v1(url: str) -> str:
    while url.lower().endswith("/v1"):
        url = url[: -len("/v1")]
    return url


def _replace_suffix(url: str, suffix: str, replacement: str) -> str:
    return url[: -len(suffix)] + replacement


def _normalize_glm(url: str, plan: Plan) -> str:
    lower = url.lower()
    if lower.endswith("/api/anthropic"):
        return url
    if lower.endswith("/api/coding/paas/v4"):
        return _replace_suffix(url, "/api/coding/paas/v4", "/api/anthropic")
    return provider_registry.get_base_url(plan, Protocol.ANTHROPIC)


def _normalize_openrouter(url: str) -> str:
    url = _strip_v1(url)
    lower = url.lower()
    if lower.endswith("/api"):
        return url
    if "openrouter.ai" in lower:
        return f"{url}/api"
    return url


def _normalize_alibaba(url: str, plan: Plan) -> str:
    lower = url.lower()
    if "/apps/anthropic" in lower:
        return url
    if lower.endswith("/compatible-mode/v1"):
        return _replace_suffix(url, "/compatible-mode/v1", "/apps/anthropic")
    if lower.endswith("/v1"):
        return _replace_suffix(url, "/v1", "/apps/anthropic")
    return provider_registry.get_base_url(plan, Protocol.ANTHROPIC)


def _normalize_zenmux(url: str, plan: Plan) -> str:
    lower = url.lower()
    if lower.endswith("/api/anthropic"):
        return url
    if lower.endswith("/api/v1"):
        return _replace_suffix(url, "/api/v1", "/api/anthropic")
    if lower.endswith("/v1"):
        return _replace_suffix(url, "/v1", "/api/anthropic")
    return provider_registry.get_base_url(plan, Protocol.ANTHROPIC)


def normalize_lmstudio_url(url: str, protocol: Protocol | str) -> str:
    """Ensure ``/v1`` is present for OpenAI and absent for Anthropic."""
    url = _strip_v1(_strip_trailing_slashes(url))
    if Protocol(protocol) == Protocol.OPENAI:
        return f"{url}/v1"
    return url


def normalize_provider_url(url: str, plan: Plan | str, protocol: Protocol | str) -> str:
    """Rewrite a user-supplied URL to the path convention of a protocol.

    Args:
        url: The URL to normalize.
        plan: The plan the URL belongs to; selects the family rules.
        protocol: Target wire protocol.

    Returns:
        The normalized URL. Blank input is returned stripped.
    """
    plan = Plan(plan)
    protocol = Protocol(protocol)
    normalized = _strip_trailing_slashes(url)
    if not normalized:
        return normalized

    if plan == Plan.LMSTUDIO:
        return normalize_lmstudio_url(normalized, protocol)

    if protocol != Protocol.ANTHROPIC:
        return normalized

    if plan in (Plan.GLM_GLOBAL, Plan.GLM_CHINA):
        return _normalize_glm(normalized, plan)
    if plan == Plan.OPENROUTER:
        return _normalize_openrouter(normalized)
    if plan in (Plan.ALIBABA, Plan.ALIBABA_API):
        return _normalize_alibaba(normalized, plan)
    if plan == Plan.ZENMUX:
        return _normalize_zenmux(normalized, plan)
    return normalized


def resolve_provider_base_url(
    plan: Plan | str,
    protocol: Protocol | str,
    *,
    base_url: str | None = None,
    anthropic_base_url: str | None = None,
) -> str:
    """Pick the base URL a tool should use for a plan and protocol.

    Priority: protocol-specific override, then generic override, then the
    registry default. Overrides are normalized for the target protocol.

    Args:
        plan: Provider plan.
        protocol: Wire protocol the tool speaks.
        base_url: Generic (OpenAI-style) base URL override.
        anthropic_base_url: Anthropic-specific override.

    Returns:
        The resolved base URL.
    """
    plan = Plan(plan)
    protocol = Protocol(protocol)

    if protocol == Protocol.ANTHROPIC and anthropic_base_url and anthropic_base_url.strip():
        return normalize_provider_url(anthropic_base_url, plan, protocol)
    if base_url and base_url.strip():
        return normalize_provider_url(base_url, plan, protocol)
    return provider_registry.get_base_url(plan, protocol)
