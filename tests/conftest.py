"""Shared test fixtures for coder-link."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from coder_link.config_manager import ConfigManager
    from coder_link.manager import ToolManager


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Sandboxed home directory for tool config files."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def config_paths(tmp_path: Path) -> tuple[Path, Path]:
    """Current and legacy credential store locations."""
    return tmp_path / "coder-link" / "config.yaml", tmp_path / "chelper" / "config.yaml"


@pytest.fixture
async def config_manager(config_paths: tuple[Path, Path]) -> ConfigManager:
    """Create a loaded config manager on a fresh store."""
    from coder_link.config_manager import ConfigManager

    config_file, legacy_file = config_paths
    manager = ConfigManager(config_file=config_file, legacy_config_file=legacy_file)
    await manager.load()
    return manager


@pytest.fixture
def tool_manager(config_manager: ConfigManager, home: Path) -> ToolManager:
    """Create a tool manager writing into the sandboxed home."""
    from coder_link.manager import ToolManager

    return ToolManager(config_manager, home=home)
