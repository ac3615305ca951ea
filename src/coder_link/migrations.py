"""In-place migrations for older layouts of coder-link's config file.

Each migration takes the raw document, rewrites it in place and returns
True when something changed. Every migration is a no-op on a document it
already migrated.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from coder_link.logging import get_logger
from coder_link.models.provider import Plan
from coder_link.providers import provider_registry

logger = get_logger(__name__)

RawConfig = dict[str, Any]

# Sources of the old single "kimi" block that now have plans of their own
SPLIT_SOURCES = {"openrouter": Plan.OPENROUTER, "nvidia": Plan.NVIDIA}

ALIBABA_CODING_KEY_PREFIX = "sk-sp-"
ALIBABA_CODING_HOST = "coding-intl.dashscope.aliyuncs.com"
ALIBABA_COMPATIBLE_PATHS = (
    "dashscope-intl.aliyuncs.com/compatible-mode/v1",
    "dashscope.aliyuncs.com/compatible-mode/v1",
)

AlibabaProfileKind = Literal["coding", "api"]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _mapping(container: dict[str, Any], key: str) -> dict[str, Any]:
    value = container.get(key)
    if not isinstance(value, dict):
        value = {}
        container[key] = value
    return value


def _fill(target: dict[str, Any], key: str, value: Any) -> None:
    if not target.get(key) and value:
        target[key] = value


def _child(container: dict[str, Any] | None, key: str) -> dict[str, Any] | None:
    value = container.get(key) if container is not None else None
    return value if isinstance(value, dict) else None


def _plan_for_source(source: str) -> Plan:
    return SPLIT_SOURCES.get(source, Plan.KIMI)


def migrate_kimi_source_block(raw: RawConfig) -> bool:
    """Split the old source-tagged ``providers.kimi`` block into per-plan blocks."""
    providers = raw.get("providers")
    if not isinstance(providers, dict):
        return False
    kimi = providers.get("kimi")
    if not isinstance(kimi, dict) or not kimi.get("source"):
        return False

    source = str(kimi["source"]).strip()
    old_keys = kimi.get("api_keys") if isinstance(kimi.get("api_keys"), dict) else {}
    old_models = kimi.get("models") if isinstance(kimi.get("models"), dict) else {}
    default_model = old_models.get("default")
    target_plan = _plan_for_source(source)

    target = _mapping(providers, target_plan.value)
    _fill(target, "api_key", old_keys.get(source))
    _fill(target, "base_url", kimi.get("base_url"))
    _fill(target, "model", default_model)
    _fill(target, "provider_id", kimi.get("provider_id"))

    for other_source, key in old_keys.items():
        if not key or other_source == source:
            continue
        _fill(_mapping(providers, _plan_for_source(other_source).value), "api_key", key)

    if raw.get("plan") == Plan.KIMI.value and target_plan != Plan.KIMI:
        raw["plan"] = target_plan.value

    kimi = providers["kimi"]
    for stale in ("source", "api_keys", "models"):
        kimi.pop(stale, None)
    if target_plan != Plan.KIMI:
        # These described the other source's endpoint
        kimi.pop("base_url", None)
        kimi.pop("provider_id", None)
    if not kimi:
        del providers["kimi"]

    logger.info("Migrated legacy Kimi source block", source=source, plan=target_plan.value)
    return True


def migrate_legacy_api_key(raw: RawConfig) -> bool:
    """Fan the legacy top-level ``api_key`` out into the active plan's profile."""
    legacy_key = _text(raw.get("api_key"))
    plan_value = raw.get("plan")
    if not legacy_key or not plan_value:
        return False

    try:
        plan = Plan(plan_value)
    except ValueError:
        plan = None

    if plan is not None:
        providers = _mapping(raw, "providers")
        if plan in (Plan.GLM_GLOBAL, Plan.GLM_CHINA):
            glm = _mapping(providers, "glm")
            profile = _mapping(glm, "global" if plan == Plan.GLM_GLOBAL else "china")
        else:
            profile = _mapping(providers, plan.value)
        _fill(profile, "api_key", legacy_key)

    del raw["api_key"]
    logger.info("Migrated legacy API key", plan=str(plan_value))
    return True


def migrate_kimi_model_ids(raw: RawConfig) -> bool:
    """Rewrite ``moonshot-ai/`` model ids to the ``moonshotai/`` form aggregators use."""
    providers = raw.get("providers")
    if not isinstance(providers, dict):
        return False

    changed = False
    for plan in (Plan.OPENROUTER, Plan.NVIDIA):
        profile = providers.get(plan.value)
        if not isinstance(profile, dict):
            continue
        model = profile.get("model")
        if isinstance(model, str) and model.startswith("moonshot-ai/"):
            profile["model"] = "moonshotai/" + model[len("moonshot-ai/") :]
            changed = True
            logger.info("Migrated Kimi model id", plan=plan.value, model=profile["model"])
    return changed


def migrate_factory_droid_api_key(raw: RawConfig) -> bool:
    """Move a Factory API key from any legacy location to ``tools.factory_droid.factory_api_key``."""
    tools = raw.get("tools") if isinstance(raw.get("tools"), dict) else None
    underscore = _child(tools, "factory_droid")
    dashed = _child(tools, "factory-droid")

    candidates: list[tuple[dict[str, Any] | None, str]] = [
        (underscore, "api_key"),
        (underscore, "apiKey"),
        (dashed, "factory_api_key"),
        (dashed, "api_key"),
        (tools, "factory_api_key"),
        (raw, "factory_api_key"),
    ]
    found = next(
        ((container, key) for container, key in candidates if container is not None and _text(container.get(key))),
        None,
    )
    if found is None:
        return False

    container, key = found
    legacy_key = _text(container.pop(key))
    factory = _mapping(_mapping(raw, "tools"), "factory_droid")
    _fill(factory, "factory_api_key", legacy_key)

    tools = raw["tools"]
    if isinstance(tools.get("factory-droid"), dict) and not tools["factory-droid"]:
        del tools["factory-droid"]

    logger.info("Migrated legacy Factory Droid API key", source=key)
    return True


def classify_alibaba_profile(api_key: str | None, base_url: str | None) -> AlibabaProfileKind | None:
    """Decide which Alibaba plan a stored ``alibaba`` profile really belongs to.

    Coding Plan keys start with ``sk-sp-``. Without a key the base URL
    decides. Any other key, or a compatible-mode URL, indicates a Model
    Studio API profile.

    Returns:
        ``"coding"``, ``"api"``, or None when there is nothing to go on.
    """
    key = (api_key or "").strip()
    base = (base_url or "").strip().lower()
    is_coding_base = ALIBABA_CODING_HOST in base
    is_compatible_base = any(path in base for path in ALIBABA_COMPATIBLE_PATHS)

    if key.startswith(ALIBABA_CODING_KEY_PREFIX) or (not key and is_coding_base):
        return "coding"
    if is_compatible_base or key or is_coding_base:
        return "api"
    return None


def migrate_alibaba_profiles(raw: RawConfig) -> bool:
    """Repair Coding Plan profiles and move Model Studio API profiles to ``alibaba_api``."""
    providers = raw.get("providers")
    if not isinstance(providers, dict):
        return False
    coding = providers.get(Plan.ALIBABA.value)
    if not isinstance(coding, dict):
        return False

    key = _text(coding.get("api_key"))
    base_url = _text(coding.get("base_url"))
    kind = classify_alibaba_profile(key, base_url)
    coding_defaults = provider_registry.get(Plan.ALIBABA)

    if kind == "coding":
        changed = False
        if not base_url or any(path in base_url.lower() for path in ALIBABA_COMPATIBLE_PATHS):
            coding["base_url"] = coding_defaults.openai_base_url
            changed = True
        anthropic_base = _text(coding.get("anthropic_base_url")).lower().rstrip("/")
        if not anthropic_base or anthropic_base.endswith("dashscope-intl.aliyuncs.com/apps/anthropic"):
            if coding.get("anthropic_base_url") != coding_defaults.anthropic_base_url:
                coding["anthropic_base_url"] = coding_defaults.anthropic_base_url
                changed = True
        for field in ("model", "anthropic_model"):
            if not coding.get(field):
                coding[field] = coding_defaults.default_model
                changed = True
        if changed:
            logger.info("Repaired Alibaba Coding Plan profile")
        return changed

    if kind == "api":
        api_defaults = provider_registry.get(Plan.ALIBABA_API)
        target = _mapping(providers, Plan.ALIBABA_API.value)
        _fill(target, "api_key", key)
        _fill(target, "base_url", base_url or api_defaults.openai_base_url)
        old_model = _text(coding.get("model"))
        if not target.get("model"):
            keep_model = old_model and old_model != coding_defaults.default_model
            target["model"] = old_model if keep_model else api_defaults.default_model
        del providers[Plan.ALIBABA.value]
        if raw.get("plan") == Plan.ALIBABA.value:
            raw["plan"] = Plan.ALIBABA_API.value
        logger.info("Moved Alibaba profile to Model Studio API plan")
        return True

    return False


MIGRATIONS: list[Callable[[RawConfig], bool]] = [
    migrate_kimi_source_block,
    migrate_legacy_api_key,
    migrate_kimi_model_ids,
    migrate_factory_droid_api_key,
    migrate_alibaba_profiles,
]
