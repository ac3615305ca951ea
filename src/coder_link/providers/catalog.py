"""Canonical provider descriptors.

Order here is detection order. Detection patterns of one plan must not
occur in another plan's canonical URLs.
"""

from __future__ import annotations

from coder_link.models.provider import Plan, ProviderDescriptor

GLM_MODELS = ("glm-5", "glm-4.7", "glm-4.7-flash", "glm-4.7-flashx")

GLM_GLOBAL = ProviderDescriptor(
    plan=Plan.GLM_GLOBAL,
    display_name="GLM Coding Plan (Global)",
    short_name="GLM_Global",
    openai_base_url="https://api.z.ai/api/coding/paas/v4",
    anthropic_base_url="https://api.z.ai/api/anthropic",
    default_model="glm-5",
    common_models=GLM_MODELS,
    detection_patterns=("api.z.ai",),
    source="glm-global",
    supports_thinking=True,
    max_context_size=128000,
    max_output_tokens=131072,
)

GLM_CHINA = ProviderDescriptor(
    plan=Plan.GLM_CHINA,
    display_name="GLM Coding Plan (China)",
    short_name="GLM_China",
    openai_base_url="https://open.bigmodel.cn/api/coding/paas/v4",
    anthropic_base_url="https://open.bigmodel.cn/api/anthropic",
    default_model="glm-5",
    common_models=GLM_MODELS,
    detection_patterns=("open.bigmodel.cn",),
    source="glm-china",
    supports_thinking=True,
    max_context_size=128000,
    max_output_tokens=131072,
)

KIMI = ProviderDescriptor(
    plan=Plan.KIMI,
    display_name="Kimi (Moonshot)",
    short_name="Kimi",
    openai_base_url="https://api.moonshot.ai/v1",
    default_model="moonshot-ai/kimi-k2.5",
    common_models=("moonshot-ai/kimi-k2.5", "moonshot-ai/kimi-k2-thinking"),
    detection_patterns=("api.moonshot.ai", "moonshot"),
    source="moonshot",
    supports_thinking=True,
    max_context_size=262144,
    max_output_tokens=131072,
)

OPENROUTER = ProviderDescriptor(
    plan=Plan.OPENROUTER,
    display_name="OpenRouter",
    short_name="OpenRouter",
    openai_base_url="https://openrouter.ai/api/v1",
    anthropic_base_url="https://openrouter.ai/api",
    default_model="moonshotai/kimi-k2.5",
    default_anthropic_model="anthropic/claude-sonnet-4.6",
    common_models=("moonshotai/kimi-k2.5", "anthropic/claude-opus-4.6", "qwen/qwen3-coder-next"),
    detection_patterns=("openrouter.ai",),
    source="openrouter",
    supports_thinking=False,
    max_context_size=16384,
    max_output_tokens=131072,
)

NVIDIA = ProviderDescriptor(
    plan=Plan.NVIDIA,
    display_name="NVIDIA NIM",
    short_name="NVIDIA",
    openai_base_url="https://integrate.api.nvidia.com/v1",
    default_model="moonshotai/kimi-k2.5",
    common_models=(
        "moonshotai/kimi-k2.5",
        "deepseek-ai/deepseek-v3.2",
        "meta/llama-3.3-70b-instruct",
        "meta/llama-4-maverick-17b-128e-instruct",
        "qwen/qwen3-coder-480b-a35b-instruct",
        "z-ai/glm4.7",
        "nvidia/llama-3.3-nemotron-super-49b-v1.5",
    ),
    detection_patterns=("integrate.api.nvidia.com", "nvidia.com"),
    source="nvidia",
    supports_thinking=False,
    max_context_size=4096,
    max_output_tokens=131072,
)

LMSTUDIO = ProviderDescriptor(
    plan=Plan.LMSTUDIO,
    display_name="LM Studio (Local)",
    short_name="LM_Studio",
    openai_base_url="http://localhost:1234/v1",
    anthropic_base_url="http://localhost:1234",
    default_model="lmstudio-community",
    common_models=("lmstudio-community", "qwen2.5-coder-7b", "mistral-7b-instruct"),
    detection_patterns=("localhost:1234", "localhost:1235", "127.0.0.1:1234", "127.0.0.1:1235"),
    source="lmstudio",
    supports_thinking=False,
    max_context_size=262144,
    max_output_tokens=131072,
    requires_health_check=True,
    default_ports=(1234, 1235, 8766),
)

ALIBABA = ProviderDescriptor(
    plan=Plan.ALIBABA,
    display_name="Alibaba Coding Plan",
    short_name="Alibaba_Coding",
    openai_base_url="https://coding-intl.dashscope.aliyuncs.com/v1",
    anthropic_base_url="https://coding-intl.dashscope.aliyuncs.com/apps/anthropic",
    default_model="qwen3-coder-plus",
    default_anthropic_model="qwen3-coder-plus",
    common_models=("qwen3-coder-plus", "qwen3-max", "qwen-plus", "qwen3-coder-flash"),
    detection_patterns=("coding-intl.dashscope.aliyuncs.com",),
    source="alibaba",
    supports_thinking=False,
    max_context_size=262144,
    max_output_tokens=131072,
)

ALIBABA_API = ProviderDescriptor(
    plan=Plan.ALIBABA_API,
    display_name="Alibaba Model Studio API (Singapore)",
    short_name="Alibaba_API",
    openai_base_url="https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
    anthropic_base_url="https://dashscope-intl.aliyuncs.com/apps/anthropic",
    default_model="qwen3-max-2026-01-23",
    default_anthropic_model="qwen3-coder-plus",
    common_models=("qwen3-max-2026-01-23", "qwen3-max", "qwen-plus", "qwen-turbo", "qwen3-coder-plus"),
    detection_patterns=("dashscope-intl.aliyuncs.com", "dashscope.aliyuncs.com/compatible-mode"),
    source="alibaba-api-sg",
    supports_thinking=False,
    max_context_size=262144,
    max_output_tokens=65536,
)

ZENMUX = ProviderDescriptor(
    plan=Plan.ZENMUX,
    display_name="ZenMux",
    short_name="ZenMux",
    openai_base_url="https://zenmux.ai/api/v1",
    anthropic_base_url="https://zenmux.ai/api/anthropic",
    default_model="volcengine/doubao-seed-2.0-code",
    common_models=("volcengine/doubao-seed-2.0-code", "moonshotai/kimi-k2.5", "z-ai/glm-5"),
    detection_patterns=("zenmux.ai",),
    source="zenmux",
    supports_thinking=True,
    max_context_size=256000,
    max_output_tokens=32000,
)

BUILTIN_PROVIDERS = (
    GLM_GLOBAL,
    GLM_CHINA,
    KIMI,
    OPENROUTER,
    NVIDIA,
    LMSTUDIO,
    ALIBABA,
    ALIBABA_API,
    ZENMUX,
)
