"""Application settings using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the coder-link core.

    All settings can be overridden via environment variables with the
    CODER_LINK_ prefix (e.g. CODER_LINK_HOME_DIR=/tmp/sandbox).
    """

    model_config = SettingsConfigDict(
        env_prefix="CODER_LINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Root for every external tool's config path (~/.claude, ~/.codex, ...)
    home_dir: Path = Path.home()

    # coder-link's own store
    config_dir: Path = Path.home() / ".coder-link"
    legacy_config_dir: Path = Path.home() / ".chelper"

    # Local provider probe
    health_check_timeout_ms: int = 3000

    # Logging
    log_level: str = "WARNING"
    json_logs: bool = False
    log_file: Path | None = None

    @property
    def config_file(self) -> Path:
        """Path of the YAML credential store."""
        return self.config_dir / "config.yaml"

    @property
    def legacy_config_file(self) -> Path:
        """Path of the pre-rename credential store."""
        return self.legacy_config_dir / "config.yaml"


settings = Settings()
