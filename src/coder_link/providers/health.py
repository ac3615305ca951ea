"""Best-effort reachability probe for local providers."""

from __future__ import annotations

from typing import Any

import httpx

from coder_link.logging import get_logger
from coder_link.models.provider import HealthCheckResult, Plan
from coder_link.providers.registry import provider_registry
from coder_link.providers.urls import normalize_lmstudio_url
from coder_link.settings import settings

logger = get_logger(__name__)


def _timeout_seconds(timeout_ms: int | None) -> float:
    return (timeout_ms if timeout_ms is not None else settings.health_check_timeout_ms) / 1000


def _candidate_urls(plan: Plan, base_url: str | None) -> list[str]:
    if base_url and base_url.strip():
        return [base_url.strip().rstrip("/")]
    descriptor = provider_registry.get(plan)
    return [f"http://localhost:{port}" for port in descriptor.default_ports]


async def _probe(client: httpx.AsyncClient, url: str) -> HealthCheckResult:
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        logger.debug("Health probe failed", url=url, error=str(e))
        return HealthCheckResult(reachable=False, url=url, error=str(e))

    if not response.is_success:
        return HealthCheckResult(reachable=False, url=url, error=f"HTTP {response.status_code}")

    metadata: dict[str, Any] = {}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("version"):
        metadata["version"] = str(body["version"])
    return HealthCheckResult(reachable=True, url=url, metadata=metadata)


async def check_provider_health(
    plan: Plan | str,
    base_url: str | None = None,
    timeout_ms: int | None = None,
    client: httpx.AsyncClient | None = None,
) -> HealthCheckResult:
    """Check whether a provider endpoint answers.

    Plans that do not require a health check are reported reachable
    without any network traffic. Local servers are probed on the given
    URL, or on each default port in turn; the first 2xx response wins.
    Failures are reported in the result, never raised.

    Args:
        plan: Provider plan.
        base_url: Explicit server URL to probe.
        timeout_ms: Per-request timeout; defaults to the configured value.
        client: Optional HTTP client (used by tests).

    Returns:
        The advisory health status.
    """
    plan = Plan(plan)
    descriptor = provider_registry.get(plan)
    if not descriptor.requires_health_check:
        return HealthCheckResult(reachable=True, url=base_url or descriptor.openai_base_url)

    candidates = _candidate_urls(plan, base_url)
    last = HealthCheckResult(reachable=False)

    if client is not None:
        for url in candidates:
            last = await _probe(client, url)
            if last.reachable:
                return last
    else:
        async with httpx.AsyncClient(timeout=_timeout_seconds(timeout_ms)) as owned:
            for url in candidates:
                last = await _probe(owned, url)
                if last.reachable:
                    return last

    logger.info("Local provider not reachable", plan=plan.value, candidates=candidates)
    return HealthCheckResult(reachable=False, url=candidates[-1] if candidates else None, error=last.error)


async def _first_model(client: httpx.AsyncClient, url: str) -> str | None:
    try:
        response = await client.get(url)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("Could not fetch loaded model", url=url, error=str(e))
        return None

    models = data.get("data") if isinstance(data, dict) else None
    if isinstance(models, list) and models and isinstance(models[0], dict):
        model_id = models[0].get("id")
        if isinstance(model_id, str) and model_id.strip():
            return model_id.strip()
    return None


async def fetch_loaded_model(
    base_url: str | None = None,
    timeout_ms: int | None = None,
    client: httpx.AsyncClient | None = None,
) -> str | None:
    """Ask a local OpenAI-compatible server which model is loaded.

    Without ``base_url`` each of LM Studio's default ports is tried in
    turn; the first server listing a model wins.

    Args:
        base_url: Server URL with or without ``/v1``.
        timeout_ms: Request timeout.
        client: Optional HTTP client (used by tests).

    Returns:
        The first model id listed by ``/v1/models``, or None.
    """
    urls = [
        f"{normalize_lmstudio_url(root, 'openai')}/models" for root in _candidate_urls(Plan.LMSTUDIO, base_url)
    ]

    if client is not None:
        for url in urls:
            model = await _first_model(client, url)
            if model:
                return model
        return None

    async with httpx.AsyncClient(timeout=_timeout_seconds(timeout_ms)) as owned:
        for url in urls:
            model = await _first_model(owned, url)
            if model:
                return model
    return None


async def check_lmstudio_status(
    base_url: str | None = None,
    timeout_ms: int | None = None,
    client: httpx.AsyncClient | None = None,
) -> HealthCheckResult:
    """Probe LM Studio and, when it answers, add the loaded model to the metadata."""
    result = await check_provider_health(Plan.LMSTUDIO, base_url=base_url, timeout_ms=timeout_ms, client=client)
    if result.reachable:
        model = await fetch_loaded_model(result.url, timeout_ms=timeout_ms, client=client)
        if model:
            result.metadata["model"] = model
    return result
