"""Durable config file primitives shared by every tool adapter.

Reads tolerate missing and blank files. A file that cannot be parsed is
copied to ``<path>.corrupt-<epoch-ms>.bak`` and reported, never replaced
with an empty default. Writes go to a temp file first and are renamed
into place.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
import tomlkit
import tomlkit.exceptions
import yaml

from coder_link.logging import get_logger

logger = get_logger(__name__)


class ConfigStoreError(Exception):
    """Base exception for config store errors."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)


class ConfigParseError(ConfigStoreError):
    """Config file exists but is not a valid document."""

    def __init__(self, path: Path, format_name: str, backup_path: Path | None) -> None:
        self.backup_path = backup_path
        if backup_path is not None:
            msg = f"Invalid {format_name} config at {path}. A backup was saved to: {backup_path}"
        else:
            msg = f"Invalid {format_name} config at {path}. The file was left untouched."
        super().__init__(path, msg)


class ConfigReadError(ConfigStoreError):
    """Config file exists but could not be opened or read."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(path, f"Failed to read config: {path} ({reason})")


class ConfigWriteError(ConfigStoreError):
    """Config file could not be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(path, f"Failed to write config: {path} ({reason})")


class ConfigFile(ABC):
    """A single structured config file on disk.

    Subclasses supply the codec; this class owns existence checks,
    corruption backups and atomic writes.
    """

    format_name: str = ""
    parse_errors: tuple[type[Exception], ...] = (ValueError,)

    def __init__(self, path: Path, scope: str = "config") -> None:
        """Initialize the file handle.

        Args:
            path: Location of the config file.
            scope: Context tag used in log records (usually the owning tool).
        """
        self.path = Path(path).expanduser()
        self.scope = scope

    def exists(self) -> bool:
        """Check whether the file is present."""
        return self.path.exists()

    @abstractmethod
    def _parse(self, text: str) -> Any:
        """Decode file content."""

    @abstractmethod
    def _dump(self, data: Mapping[str, Any]) -> str:
        """Encode a document."""

    @abstractmethod
    def _empty(self) -> MutableMapping[str, Any]:
        """Document returned for a missing or blank file."""

    async def read(self) -> MutableMapping[str, Any]:
        """Read and parse the file.

        Returns:
            The parsed document, or an empty one if the file is missing or blank.

        Raises:
            ConfigReadError: If the file exists but cannot be opened or read.
            ConfigParseError: If the content is not a valid mapping document.
        """
        if not self.path.exists():
            return self._empty()

        try:
            async with aiofiles.open(self.path, "rb") as f:
                raw = await f.read()
        except OSError as e:
            logger.error("Failed to read config", scope=self.scope, path=str(self.path), error=str(e))
            raise ConfigReadError(self.path, str(e)) from e

        try:
            text = raw.decode("utf-8")
            if not text.strip():
                return self._empty()
            data = self._parse(text)
            if data is None:
                return self._empty()
            if not isinstance(data, MutableMapping):
                raise ValueError(f"expected a mapping at the document root, got {type(data).__name__}")
            return data
        except self.parse_errors as e:
            backup_path = await self._backup_corrupt(raw)
            logger.error(
                "Invalid config file",
                scope=self.scope,
                path=str(self.path),
                backup=str(backup_path) if backup_path else None,
                error=str(e),
            )
            raise ConfigParseError(self.path, self.format_name, backup_path) from e

    async def write(self, data: Mapping[str, Any]) -> None:
        """Write a document, creating parent directories as needed.

        Uses atomic writes by writing to a temp file first, then renaming.

        Raises:
            ConfigWriteError: If serialization or any filesystem step fails.
        """
        temp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            content = self._dump(data)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(content)

            await aiofiles.os.replace(temp_path, self.path)
        except Exception as e:
            if temp_path.exists():
                await aiofiles.os.remove(temp_path)
            logger.error("Failed to write config", scope=self.scope, path=str(self.path), error=str(e))
            raise ConfigWriteError(self.path, str(e)) from e

        logger.debug("Wrote config", scope=self.scope, path=str(self.path))

    async def _backup_corrupt(self, raw: bytes) -> Path | None:
        """Copy unreadable content next to the original. Best-effort."""
        backup_path = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time() * 1000)}.bak")
        try:
            async with aiofiles.open(backup_path, "wb") as f:
                await f.write(raw)
        except OSError as e:
            logger.warning("Failed to back up corrupt config", scope=self.scope, path=str(self.path), error=str(e))
            return None
        return backup_path


class JsonConfigFile(ConfigFile):
    """JSON config file."""

    format_name = "JSON"
    parse_errors = (json.JSONDecodeError, ValueError)

    def __init__(self, path: Path, scope: str = "config", indent: int = 2) -> None:
        super().__init__(path, scope)
        self.indent = indent

    def _parse(self, text: str) -> Any:
        return json.loads(text)

    def _dump(self, data: Mapping[str, Any]) -> str:
        return json.dumps(data, indent=self.indent, ensure_ascii=False)

    def _empty(self) -> MutableMapping[str, Any]:
        return {}


class YamlConfigFile(ConfigFile):
    """YAML config file."""

    format_name = "YAML"
    parse_errors = (yaml.YAMLError, ValueError)

    def __init__(self, path: Path, scope: str = "config", width: int = 120) -> None:
        super().__init__(path, scope)
        self.width = width

    def _parse(self, text: str) -> Any:
        return yaml.safe_load(text)

    def _dump(self, data: Mapping[str, Any]) -> str:
        return yaml.safe_dump(
            dict(data),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=self.width,
        )

    def _empty(self) -> MutableMapping[str, Any]:
        return {}


class TomlConfigFile(ConfigFile):
    """TOML config file.

    Documents are ``tomlkit`` documents, so comments and ordering in the
    user's file survive a read-modify-write cycle.
    """

    format_name = "TOML"
    parse_errors = (tomlkit.exceptions.TOMLKitError, ValueError)

    def _parse(self, text: str) -> Any:
        return tomlkit.parse(text)

    def _dump(self, data: Mapping[str, Any]) -> str:
        return tomlkit.dumps(data)

    def _empty(self) -> MutableMapping[str, Any]:
        return tomlkit.document()


async def read_json_config(path: Path, scope: str = "config") -> MutableMapping[str, Any]:
    """Read a JSON config file. See ``ConfigFile.read``."""
    return await JsonConfigFile(path, scope).read()


async def write_json_config(
    path: Path,
    data: Mapping[str, Any],
    scope: str = "config",
    indent: int = 2,
) -> None:
    """Write a JSON config file. See ``ConfigFile.write``."""
    await JsonConfigFile(path, scope, indent=indent).write(data)
