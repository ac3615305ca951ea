"""Tests for the per-tool adapters."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import tomlkit

from coder_link.mcp_services import get_builtin_service
from coder_link.models.mcp import MCPService, MCPServiceError
from coder_link.models.provider import Plan, ProviderSettings
from coder_link.models.tool import ToolId
from coder_link.providers import provider_registry
from coder_link.tools import (
    ClaudeCodeAdapter,
    CodexAdapter,
    CrushAdapter,
    FactoryDroidAdapter,
    KimiAdapter,
    OpenCodeAdapter,
    PiAdapter,
    ToolAdapter,
    ToolConfigError,
    UnsupportedOperationError,
    UnsupportedPlanError,
    tool_registry,
)

API_KEY = "sk-test-123"

ALL_PLAN_TOOLS = [
    ToolId.OPENCODE,
    ToolId.CRUSH,
    ToolId.FACTORY_DROID,
    ToolId.KIMI,
    ToolId.PI,
    ToolId.CODEX,
]

ROUND_TRIP_CASES = [(tool, plan) for tool in ALL_PLAN_TOOLS for plan in Plan] + [
    (ToolId.CLAUDE_CODE, plan) for plan in Plan if plan in provider_registry.anthropic_plans()
]

# Each tool's provider config file, relative to home
PROVIDER_FILES = {
    ToolId.CLAUDE_CODE: ".claude/settings.json",
    ToolId.OPENCODE: ".config/opencode/opencode.json",
    ToolId.CRUSH: ".config/crush/crush.json",
    ToolId.FACTORY_DROID: ".factory/settings.json",
    ToolId.KIMI: ".kimi/config.toml",
    ToolId.PI: ".pi/agent/models.json",
    ToolId.CODEX: ".codex/config.toml",
}

# A hand-written key the user added, per tool: (seed document, path to the key)
USER_SEEDS: dict[ToolId, tuple[dict[str, Any], tuple[str, ...]]] = {
    ToolId.CLAUDE_CODE: ({"env": {"MY_VAR": "1"}, "permissions": {"allow": ["Bash"]}}, ("env", "MY_VAR")),
    ToolId.OPENCODE: (
        {"theme": "dark", "provider": {"ollama": {"options": {"baseURL": "http://localhost:11434/v1"}}}},
        ("provider", "ollama"),
    ),
    ToolId.CRUSH: (
        {"providers": {"ollama": {"type": "openai", "base_url": "http://localhost:11434"}}},
        ("providers", "ollama"),
    ),
    ToolId.FACTORY_DROID: ({"customModels": [{"displayName": "My Model", "model": "m"}]}, ("customModels",)),
    ToolId.KIMI: ({"providers": {"local": {"type": "openai_legacy", "base_url": "http://x"}}}, ("providers", "local")),
    ToolId.PI: ({"providers": {"ollama": {"baseUrl": "http://localhost:11434/v1"}}}, ("providers", "ollama")),
    ToolId.CODEX: (
        {"approval_policy": "never", "model_providers": {"ollama": {"base_url": "http://x"}}},
        ("model_providers", "ollama"),
    ),
}


def files_under(root: Path) -> list[Path]:
    return sorted(path for path in root.rglob("*") if path.is_file())


def make_adapter(tool: ToolId, home: Path) -> ToolAdapter:
    adapter = tool_registry.create(tool, home=home)
    assert adapter is not None
    return adapter


def read_doc(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        return tomlkit.parse(path.read_text()).unwrap()
    return json.loads(path.read_text())


def write_doc(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".toml":
        path.write_text(tomlkit.dumps(data))
    else:
        path.write_text(json.dumps(data))


def dig(doc: dict[str, Any], path: tuple[str, ...]) -> Any:
    for key in path:
        doc = doc[key]
    return doc


def stdio_service(**kwargs: Any) -> MCPService:
    defaults: dict[str, Any] = {
        "id": "test-stdio",
        "name": "Test stdio",
        "protocol": "stdio",
        "command": "npx",
        "args": ["-y", "test-mcp"],
        "requires_auth": True,
    }
    return MCPService(**{**defaults, **kwargs})


def http_service(protocol: str = "streamable-http", **kwargs: Any) -> MCPService:
    defaults: dict[str, Any] = {
        "id": "test-http",
        "name": "Test http",
        "protocol": protocol,
        "url": "https://mcp.example.com/mcp",
        "requires_auth": True,
    }
    return MCPService(**{**defaults, **kwargs})


class TestProviderRoundTrip:
    """Tests for load, detect and unload across tools."""

    @pytest.mark.parametrize(("tool", "plan"), ROUND_TRIP_CASES)
    async def test_load_then_detect(self, home: Path, tool: ToolId, plan: Plan) -> None:
        """Test detection reads back the plan and key that were loaded."""
        adapter = make_adapter(tool, home)
        await adapter.load_config(plan, API_KEY)

        detected = await adapter.detect_current_config()

        assert detected.status == "configured"
        assert detected.plan == plan
        assert detected.api_key == API_KEY

    @pytest.mark.parametrize(("tool", "plan"), ROUND_TRIP_CASES)
    async def test_load_is_idempotent(self, home: Path, tool: ToolId, plan: Plan) -> None:
        """Test a repeated load produces the same document."""
        adapter = make_adapter(tool, home)
        path = home / PROVIDER_FILES[tool]

        await adapter.load_config(plan, API_KEY)
        first = read_doc(path)
        await adapter.load_config(plan, API_KEY)

        assert read_doc(path) == first

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_user_keys_survive(self, home: Path, tool: ToolId) -> None:
        """Test load followed by unload leaves hand-written keys unchanged."""
        seed, key_path = USER_SEEDS[tool]
        path = home / PROVIDER_FILES[tool]
        write_doc(path, seed)
        expected = dig(read_doc(path), key_path)

        adapter = make_adapter(tool, home)
        await adapter.load_config(Plan.GLM_GLOBAL, API_KEY)
        await adapter.unload_config()

        assert dig(read_doc(path), key_path) == expected
        assert not (await adapter.detect_current_config()).is_configured

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_detect_without_file(self, home: Path, tool: ToolId) -> None:
        """Test a missing file reads as unconfigured."""
        detected = await make_adapter(tool, home).detect_current_config()

        assert detected.status == "unconfigured"
        assert detected.plan is None
        assert detected.api_key is None

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_unload_without_file_writes_nothing(self, home: Path, tool: ToolId) -> None:
        """Test unloading an unconfigured tool creates no files."""
        await make_adapter(tool, home).unload_config()
        assert files_under(home) == []

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_detect_corrupt_file(self, home: Path, tool: ToolId) -> None:
        """Test an unparsable file is reported as unreadable, not raised."""
        path = home / PROVIDER_FILES[tool]
        path.parent.mkdir(parents=True)
        path.write_text("{[ not valid ]")

        detected = await make_adapter(tool, home).detect_current_config()

        assert detected.status == "unreadable"
        assert detected.plan is None
        assert detected.api_key is None
        assert detected.error

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_detect_unopenable_file(self, home: Path, tool: ToolId) -> None:
        """Test a config path that cannot be opened is reported as unreadable."""
        (home / PROVIDER_FILES[tool]).mkdir(parents=True)

        detected = await make_adapter(tool, home).detect_current_config()

        assert detected.status == "unreadable"
        assert detected.plan is None
        assert "Failed to read config" in (detected.error or "")

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_load_over_corrupt_file_fails(self, home: Path, tool: ToolId) -> None:
        """Test a corrupt file is never replaced with a fresh document."""
        from coder_link.storage import ConfigParseError

        path = home / PROVIDER_FILES[tool]
        path.parent.mkdir(parents=True)
        path.write_text("{[ not valid ]")

        with pytest.raises(ConfigParseError):
            await make_adapter(tool, home).load_config(Plan.GLM_GLOBAL, API_KEY)

        assert path.read_text() == "{[ not valid ]"

    @pytest.mark.parametrize("tool", list(PROVIDER_FILES))
    async def test_empty_api_key_rejected(self, home: Path, tool: ToolId) -> None:
        """Test a blank key is rejected before anything is written."""
        with pytest.raises(ToolConfigError):
            await make_adapter(tool, home).load_config(Plan.GLM_GLOBAL, "   ")
        assert files_under(home) == []

    @pytest.mark.parametrize(
        ("tool", "parent"),
        [
            (ToolId.OPENCODE, "provider"),
            (ToolId.CRUSH, "providers"),
            (ToolId.PI, "providers"),
            (ToolId.CODEX, "model_providers"),
        ],
    )
    async def test_unload_removes_empty_parent(self, home: Path, tool: ToolId, parent: str) -> None:
        """Test the provider container goes away with its only entry."""
        adapter = make_adapter(tool, home)
        await adapter.load_config(Plan.OPENROUTER, API_KEY)
        await adapter.unload_config()

        assert parent not in read_doc(home / PROVIDER_FILES[tool])


class TestClaudeCodeAdapter:
    """Tests for the Claude Code adapter."""

    async def test_writes_anthropic_env(self, home: Path) -> None:
        """Test the managed env keys and the onboarding flag."""
        settings_path = home / ".claude" / "settings.json"
        write_doc(settings_path, {"env": {"ANTHROPIC_API_KEY": "old"}})

        await ClaudeCodeAdapter(home).load_config(Plan.OPENROUTER, API_KEY)

        env = read_doc(settings_path)["env"]
        assert env["ANTHROPIC_AUTH_TOKEN"] == API_KEY
        assert env["ANTHROPIC_BASE_URL"] == "https://openrouter.ai/api"
        assert env["ANTHROPIC_MODEL"] == "anthropic/claude-sonnet-4.6"
        assert env["API_TIMEOUT_MS"] == "3000000"
        assert "ANTHROPIC_API_KEY" not in env
        assert read_doc(home / ".claude.json")["hasCompletedOnboarding"] is True

    async def test_rejects_openai_only_plan(self, home: Path) -> None:
        """Test a plan without an Anthropic endpoint is refused before I/O."""
        with pytest.raises(UnsupportedPlanError):
            await ClaudeCodeAdapter(home).load_config(Plan.KIMI, API_KEY)
        assert files_under(home) == []

    async def test_base_url_override_is_normalized(self, home: Path) -> None:
        """Test a generic URL override becomes the Anthropic endpoint."""
        options = ProviderSettings(base_url="https://open.bigmodel.cn/api/coding/paas/v4", model="glm-4.7")

        await ClaudeCodeAdapter(home).load_config(Plan.GLM_CHINA, API_KEY, options)

        env = read_doc(home / ".claude" / "settings.json")["env"]
        assert env["ANTHROPIC_BASE_URL"] == "https://open.bigmodel.cn/api/anthropic"
        assert env["ANTHROPIC_MODEL"] == "glm-4.7"


class TestOpenCodeAdapter:
    """Tests for the OpenCode adapter."""

    async def test_builtin_provider(self, home: Path) -> None:
        """Test GLM uses OpenCode's own provider id."""
        await OpenCodeAdapter(home).load_config(Plan.GLM_GLOBAL, API_KEY)

        doc = read_doc(home / ".config" / "opencode" / "opencode.json")
        assert doc["provider"]["zai-coding-plan"] == {"options": {"apiKey": API_KEY}}
        assert doc["model"] == "zai-coding-plan/glm-5"
        assert doc["small_model"] == "zai-coding-plan/glm-5"

    async def test_switching_plans_replaces_provider(self, home: Path) -> None:
        """Test only one managed provider is kept."""
        adapter = OpenCodeAdapter(home)
        await adapter.load_config(Plan.GLM_GLOBAL, API_KEY)
        await adapter.load_config(Plan.ZENMUX, "zen-key")

        doc = read_doc(home / ".config" / "opencode" / "opencode.json")
        assert list(doc["provider"]) == ["zenmux"]
        assert doc["provider"]["zenmux"]["npm"] == "@ai-sdk/openai-compatible"
        assert (await adapter.detect_current_config()).plan == Plan.ZENMUX

    async def test_custom_kimi_host(self, home: Path) -> None:
        """Test a non-canonical Kimi URL gets a custom provider block."""
        adapter = OpenCodeAdapter(home)
        options = ProviderSettings(base_url="https://api.moonshot.cn/v1", model="kimi-k2.5")
        await adapter.load_config(Plan.KIMI, API_KEY, options)

        doc = read_doc(home / ".config" / "opencode" / "opencode.json")
        assert doc["provider"]["kimi-custom"]["options"]["baseURL"] == "https://api.moonshot.cn/v1"
        detected = await adapter.detect_current_config()
        assert detected.plan == Plan.KIMI
        assert detected.model == "kimi-k2.5"


class TestCrushAdapter:
    """Tests for the Crush adapter."""

    async def test_single_provider_slot(self, home: Path) -> None:
        """Test every plan is written into the fixed provider slot."""
        adapter = CrushAdapter(home)
        await adapter.load_config(Plan.NVIDIA, API_KEY)

        provider = read_doc(home / ".config" / "crush" / "crush.json")["providers"]["zai"]
        assert provider["base_url"] == "https://integrate.api.nvidia.com/v1"
        assert provider["models"][0]["id"] == "moonshotai/kimi-k2.5"
        assert provider["models"][0]["context_window"] == 4096


class TestFactoryDroidAdapter:
    """Tests for the Factory Droid adapter."""

    async def test_two_entries_for_anthropic_plan(self, home: Path) -> None:
        """Test a plan with both endpoints gets one entry per protocol."""
        await FactoryDroidAdapter(home).load_config(Plan.GLM_GLOBAL, API_KEY)

        doc = read_doc(home / ".factory" / "settings.json")
        names = [entry["displayName"] for entry in doc["customModels"]]
        assert names == [
            "GLM Coding Plan (Global) - glm-5 [Anthropic]",
            "GLM Coding Plan (Global) - glm-5 [OpenAI]",
        ]
        assert doc["model"] == "custom-model"
        assert doc["sessionDefaultSettings"]["model"] == "custom:GLM-Coding-Plan-(Global)---glm-5-[OpenAI]-1"

    async def test_openai_only_plan(self, home: Path) -> None:
        """Test an OpenAI-only plan gets a single entry without reasoning."""
        await FactoryDroidAdapter(home).load_config(Plan.NVIDIA, API_KEY)

        models = read_doc(home / ".factory" / "settings.json")["customModels"]
        assert len(models) == 1
        assert models[0]["provider"] == "generic-chat-completion-api"
        assert models[0]["reasoning"] is False

    async def test_refresh_keeps_user_entries(self, home: Path) -> None:
        """Test managed entries are replaced while user entries stay in place."""
        path = home / ".factory" / "settings.json"
        write_doc(path, {"customModels": [{"displayName": "Mine", "model": "m"}]})
        adapter = FactoryDroidAdapter(home)

        await adapter.load_config(Plan.GLM_GLOBAL, API_KEY)
        await adapter.load_config(Plan.ZENMUX, API_KEY)

        models = read_doc(path)["customModels"]
        assert models[0] == {"displayName": "Mine", "model": "m"}
        assert len(models) == 3
        assert all(entry["displayName"].startswith("ZenMux") for entry in models[1:])


class TestKimiAdapter:
    """Tests for the Kimi CLI adapter."""

    async def test_unload_blanks_key(self, home: Path) -> None:
        """Test unloading keeps the provider but clears its key."""
        adapter = KimiAdapter(home)
        await adapter.load_config(Plan.KIMI, API_KEY)
        await adapter.unload_config()

        doc = read_doc(home / ".kimi" / "config.toml")
        assert doc["providers"]["managed:moonshot-ai"]["api_key"] == ""
        assert doc["default_model"] == "moonshot-ai/kimi-k2.5"
        assert not (await adapter.detect_current_config()).is_configured

    async def test_keeps_comments(self, home: Path) -> None:
        """Test the user's TOML comments survive a load."""
        path = home / ".kimi" / "config.toml"
        path.parent.mkdir(parents=True)
        path.write_text("# Kimi settings\n[loop_control]\nmax_steps = 50\n")

        await KimiAdapter(home).load_config(Plan.KIMI, API_KEY)

        text = path.read_text()
        assert "# Kimi settings" in text
        assert read_doc(path)["loop_control"] == {"max_steps": 50}


class TestPiAdapter:
    """Tests for the Pi adapter."""

    async def test_selected_model_first(self, home: Path) -> None:
        """Test the chosen model moves to the front, keeping its metadata."""
        path = home / ".pi" / "agent" / "models.json"
        write_doc(
            path,
            {
                "providers": {
                    "moonshot": {
                        "models": [
                            {"id": "a", "name": "A", "contextWindow": 1000},
                            {"id": "b", "name": "B", "contextWindow": 2000},
                        ]
                    }
                }
            },
        )
        options = ProviderSettings(base_url="https://api.moonshot.ai/v1", model="b")

        await PiAdapter(home).load_config(Plan.KIMI, API_KEY, options)

        provider = read_doc(path)["providers"]["moonshot"]
        assert [m["id"] for m in provider["models"]] == ["b", "a"]
        assert provider["models"][0]["contextWindow"] == 2000
        assert provider["apiKey"] == API_KEY
        assert provider["api"] == "openai-completions"


class TestCodexAdapter:
    """Tests for the Codex CLI adapter."""

    async def test_provider_per_plan(self, home: Path) -> None:
        """Test switching plans swaps the managed provider table."""
        adapter = CodexAdapter(home)
        await adapter.load_config(Plan.GLM_GLOBAL, API_KEY)
        await adapter.load_config(Plan.ALIBABA, API_KEY)

        doc = read_doc(home / ".codex" / "config.toml")
        assert doc["model_provider"] == "Model_Studio_Coding_Plan"
        assert list(doc["model_providers"]) == ["Model_Studio_Coding_Plan"]
        assert doc["model_providers"]["Model_Studio_Coding_Plan"]["wire_api"] == "chat"

    async def test_detect_env_key(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a provider that names an env var is read through it."""
        monkeypatch.setenv("MY_KIMI_KEY", "from-env")
        write_doc(
            home / ".codex" / "config.toml",
            {
                "model_provider": "CoderLink_Kimi",
                "model": "kimi-k2.5",
                "model_providers": {
                    "CoderLink_Kimi": {"base_url": "https://api.moonshot.ai/v1", "env_key": "MY_KIMI_KEY"}
                },
            },
        )

        detected = await CodexAdapter(home).detect_current_config()

        assert detected.plan == Plan.KIMI
        assert detected.api_key == "from-env"
        assert detected.model == "kimi-k2.5"


class TestMCPManagement:
    """Tests for MCP server tables."""

    async def test_default_auth_env_var(self, home: Path) -> None:
        """Test a stdio service gets the key under the default env var."""
        adapter = ClaudeCodeAdapter(home)
        await adapter.install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)

        entry = read_doc(home / ".claude.json")["mcpServers"]["test-stdio"]
        assert entry["type"] == "stdio"
        assert entry["env"]["Z_AI_API_KEY"] == API_KEY

    async def test_custom_auth_env_var(self, home: Path) -> None:
        """Test the configured env var name is used."""
        adapter = CrushAdapter(home)
        await adapter.install_mcp(stdio_service(auth_env_var="MY_TOKEN"), API_KEY, Plan.GLM_GLOBAL)

        env = read_doc(home / ".config" / "crush" / "crush.json")["mcp"]["test-stdio"]["env"]
        assert env == {"MY_TOKEN": API_KEY}

    async def test_no_auth_no_key(self, home: Path) -> None:
        """Test the key is not injected when auth is not required."""
        adapter = ClaudeCodeAdapter(home)
        await adapter.install_mcp(stdio_service(requires_auth=False), API_KEY, Plan.GLM_GLOBAL)

        assert read_doc(home / ".claude.json")["mcpServers"]["test-stdio"]["env"] == {}

    async def test_http_headers(self, home: Path) -> None:
        """Test an http service gets the key as a bearer header."""
        adapter = ClaudeCodeAdapter(home)
        await adapter.install_mcp(http_service(), API_KEY, Plan.GLM_GLOBAL)

        entry = read_doc(home / ".claude.json")["mcpServers"]["test-http"]
        assert entry == {
            "type": "http",
            "url": "https://mcp.example.com/mcp",
            "headers": {"Authorization": f"Bearer {API_KEY}"},
        }

    async def test_url_template_per_plan(self, home: Path) -> None:
        """Test a templated URL follows the plan."""
        service = get_builtin_service("web-reader")
        assert service is not None
        await OpenCodeAdapter(home).install_mcp(service, API_KEY, Plan.GLM_CHINA)

        entry = read_doc(home / ".config" / "opencode" / "opencode.json")["mcp"]["web-reader"]
        assert entry["type"] == "remote"
        assert entry["url"] == "https://open.bigmodel.cn/api/mcp/web_reader/mcp"

    async def test_url_template_missing_plan(self, home: Path) -> None:
        """Test a service without a URL for the plan raises before writing."""
        service = get_builtin_service("zread")
        assert service is not None

        with pytest.raises(MCPServiceError):
            await ClaudeCodeAdapter(home).install_mcp(service, API_KEY, Plan.KIMI)
        assert files_under(home) == []

    @pytest.mark.parametrize(
        ("adapter_class", "protocol"),
        [(FactoryDroidAdapter, "sse"), (OpenCodeAdapter, "sse")],
    )
    async def test_unsupported_transport(self, home: Path, adapter_class: type[ToolAdapter], protocol: str) -> None:
        """Test a transport the tool cannot express raises without writing."""
        with pytest.raises(MCPServiceError):
            await adapter_class(home).install_mcp(http_service(protocol), API_KEY, Plan.GLM_GLOBAL)
        assert files_under(home) == []

    async def test_mastra_stdio_only(self, home: Path) -> None:
        """Test Mastra refuses remote services."""
        adapter = make_adapter(ToolId.MASTRA, home)
        with pytest.raises(MCPServiceError):
            await adapter.install_mcp(http_service(), API_KEY, Plan.GLM_GLOBAL)

        await adapter.install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)
        entry = read_doc(home / ".mastracode" / "mcp.json")["mcpServers"]["test-stdio"]
        assert entry["command"] == "npx"

    async def test_tool_without_mcp(self, home: Path) -> None:
        """Test a tool without MCP support raises a capability error."""
        with pytest.raises(UnsupportedOperationError):
            await PiAdapter(home).install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)
        assert await PiAdapter(home).get_installed_mcps() == []

    async def test_env_backfill(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test blank templated env values are filled from the environment."""
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        service = get_builtin_service("github")
        assert service is not None

        await OpenCodeAdapter(home).install_mcp(service, API_KEY, Plan.GLM_GLOBAL)
        await ClaudeCodeAdapter(home).install_mcp(service, API_KEY, Plan.GLM_GLOBAL)

        opencode_entry = read_doc(home / ".config" / "opencode" / "opencode.json")["mcp"]["github"]
        assert opencode_entry["environment"] == {"GITHUB_TOKEN": "ghp_test"}
        claude_entry = read_doc(home / ".claude.json")["mcpServers"]["github"]
        assert claude_entry["env"] == {"GITHUB_TOKEN": ""}

    async def test_kimi_env_backfill_keeps_set_values(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test Kimi fills blank template values from the environment and keeps set ones."""
        monkeypatch.setenv("COOLIFY_BASE_URL", "https://coolify.from-env.example")
        monkeypatch.setenv("COOLIFY_TOKEN", "token-from-env")
        service = stdio_service(
            id="coolify",
            requires_auth=False,
            env_template={
                Plan.KIMI.value: {"COOLIFY_BASE_URL": "", "COOLIFY_TOKEN": "token-from-template"},
            },
        )

        await KimiAdapter(home).install_mcp(service, API_KEY, Plan.KIMI)

        entry = read_doc(home / ".kimi" / "config.toml")["mcp"]["servers"]["coolify"]
        assert entry["env"] == {
            "COOLIFY_BASE_URL": "https://coolify.from-env.example",
            "COOLIFY_TOKEN": "token-from-template",
        }

    async def test_kimi_env_backfill_without_environment(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a blank template value stays blank when the variable is unset."""
        monkeypatch.delenv("COOLIFY_BASE_URL", raising=False)
        service = stdio_service(
            id="coolify", requires_auth=False, env_template={Plan.KIMI.value: {"COOLIFY_BASE_URL": ""}}
        )

        await KimiAdapter(home).install_mcp(service, API_KEY, Plan.KIMI)

        entry = read_doc(home / ".kimi" / "config.toml")["mcp"]["servers"]["coolify"]
        assert entry["env"] == {"COOLIFY_BASE_URL": ""}

    async def test_factory_droid_silences_npx(self, home: Path) -> None:
        """Test npx servers get --silent in Droid's MCP file."""
        await FactoryDroidAdapter(home).install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)

        entry = read_doc(home / ".factory" / "mcp.json")["mcpServers"]["test-stdio"]
        assert entry["args"] == ["--silent", "-y", "test-mcp"]
        assert entry["disabled"] is False

    async def test_kimi_mcp_table(self, home: Path) -> None:
        """Test Kimi stores servers under mcp.servers with a client timeout."""
        adapter = KimiAdapter(home)
        await adapter.install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)

        doc = read_doc(home / ".kimi" / "config.toml")
        assert doc["mcp"]["client"]["tool_call_timeout_ms"] == 60000
        assert doc["mcp"]["servers"]["test-stdio"]["args"] == ["--silent", "-y", "test-mcp"]
        assert await adapter.is_mcp_installed("test-stdio")

    async def test_uninstall_prunes_table(self, home: Path) -> None:
        """Test removing the last server removes the server table."""
        path = home / ".config" / "opencode" / "opencode.json"
        write_doc(path, {"theme": "dark"})
        adapter = OpenCodeAdapter(home)

        await adapter.install_mcp(stdio_service(), API_KEY, Plan.GLM_GLOBAL)
        await adapter.uninstall_mcp("test-stdio")

        assert read_doc(path) == {"theme": "dark"}

    async def test_uninstall_missing_is_noop(self, home: Path) -> None:
        """Test uninstalling an absent server writes nothing."""
        await ClaudeCodeAdapter(home).uninstall_mcp("nope")
        assert files_under(home) == []

    async def test_listing(self, home: Path) -> None:
        """Test installed, all and user-added server listings."""
        path = home / ".claude.json"
        write_doc(path, {"mcpServers": {"mine": {"command": "my-server"}}})
        adapter = ClaudeCodeAdapter(home)
        await adapter.install_mcp(stdio_service(id="filesystem"), API_KEY, Plan.GLM_GLOBAL)

        assert await adapter.get_installed_mcps() == ["mine", "filesystem"]
        assert set(await adapter.get_all_mcp_servers()) == {"mine", "filesystem"}
        assert await adapter.get_other_mcps(["filesystem"]) == {"mine": {"command": "my-server"}}
