"""Plain-text ``key = value`` settings files, readable from sync or async code."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles

from .logging_utils import get_module_logger

logger = get_module_logger("ConfigManager")

QUOTE_CHARS = ('"', "'")


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")
        self.lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _stringify_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    @classmethod
    def _format_value(cls, value: Any) -> str:
        """Render ``value`` for the file, quoting strings that would not read back verbatim."""
        text = cls._stringify_value(value)
        if '#' in text or text != text.strip() or text[:1] in QUOTE_CHARS:
            return f'"{text}"'
        return text

    @staticmethod
    def _parse_value(raw: str) -> str:
        value = raw.strip()
        quote = value[:1]
        if quote in QUOTE_CHARS:
            end = value.rfind(quote)
            if end > 0:
                return value[1:end]
        if '#' in value:
            value = value.split('#', 1)[0].strip()
        return value

    def _parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            config[key.strip()] = self._parse_value(value)

        return config

    def _merge_lines(
        self,
        lines: list[str],
        updates: Dict[str, Any],
        remove_keys: Iterable[str],
    ) -> list[str]:
        removed = set(remove_keys)
        updated_keys = set()
        merged: list[str] = []

        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith('#') or '=' not in stripped:
                merged.append(line)
                continue

            key = stripped.split('=')[0].strip()
            if key in removed:
                continue
            if key in updates:
                value_str = self._format_value(updates[key])
                indent = len(line) - len(line.lstrip())
                merged.append(' ' * indent + f"{key} = {value_str}\n")
                updated_keys.add(key)
                continue
            merged.append(line if line.endswith("\n") else line + "\n")

        for key, value in updates.items():
            if key not in updated_keys and key not in removed:
                value_str = self._format_value(value)
                merged.append(f"{key} = {value_str}\n")
                logger.debug("Added new config key: %s = %s", key, value_str)

        return merged

    # ------------------------------------------------------------------
    # Reading

    def read_config(self, config_path: Path) -> Dict[str, str]:
        if not config_path.exists():
            return {}
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return self._parse_config_lines(f)
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    # ------------------------------------------------------------------
    # Writing

    def write_config(
        self,
        config_path: Path,
        updates: Dict[str, Any],
        *,
        remove_keys: Optional[Iterable[str]] = None,
    ) -> bool:
        try:
            lines: list[str] = []
            if config_path.exists():
                with open(config_path, 'r', encoding='utf-8') as f:
                    lines = f.readlines()

            merged = self._merge_lines(lines, updates, remove_keys or ())

            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, 'w', encoding='utf-8') as f:
                f.writelines(merged)
            return True

        except OSError as e:
            logger.error("Failed to write config %s: %s", config_path, e, exc_info=True)
            return False

    async def write_config_async(
        self,
        config_path: Path,
        updates: Dict[str, Any],
        *,
        remove_keys: Optional[Iterable[str]] = None,
    ) -> bool:
        async with self.lock:
            try:
                lines: list[str] = []
                if await asyncio.to_thread(config_path.exists):
                    async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                        lines = await f.readlines()

                merged = self._merge_lines(lines, updates, remove_keys or ())

                await asyncio.to_thread(config_path.parent.mkdir, parents=True, exist_ok=True)
                async with aiofiles.open(config_path, 'w', encoding='utf-8') as f:
                    await f.writelines(merged)
                return True

            except OSError as e:
                logger.error("Failed to write config %s: %s", config_path, e, exc_info=True)
                return False

    # ------------------------------------------------------------------
    # Typed accessors

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default

        value = config[key].lower()
        return value in ('true', '1', 'yes', 'on')


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
