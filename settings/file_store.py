# -*- coding: utf-8 -*-
"""
settings/file_store.py

本地JSON文件设置存储 (未登录用户)
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict

import orjson

from settings.base import SettingsStore, UserSettings, encode_updates

logger = logging.getLogger(__name__)


class JsonFileSettingsStore(SettingsStore):

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = self.path.read_bytes()
        if not raw.strip():
            return {}
        data = orjson.loads(raw)
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        os.replace(tmp_path, self.path)

    async def load(self) -> UserSettings:
        try:
            data = await asyncio.to_thread(self._read)
            return UserSettings.from_dict(data)
        except (OSError, orjson.JSONDecodeError, TypeError, ValueError) as e:
            logger.error(f"[SETTINGS] 读取本地设置失败 {self.path}: {e}")
            return UserSettings()

    async def save(self, updates: Dict[str, Any]) -> bool:
        try:
            data = await asyncio.to_thread(self._read)
            data.update(encode_updates(updates))
            await asyncio.to_thread(self._write, data)
            return True
        except (OSError, orjson.JSONDecodeError, TypeError) as e:
            logger.error(f"[SETTINGS] 保存本地设置失败 {self.path}: {e}")
            return False
