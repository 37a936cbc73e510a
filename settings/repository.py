# -*- coding: utf-8 -*-
"""
settings/repository.py

设置仓库 - 持有已确认的设置缓存和 dirty 标记

只有写入成功的变更才会合并进缓存; 内存状态已经变化但写入失败时,
调用方用 mark_unconfirmed() 明确标记
"""

import logging
from dataclasses import replace
from typing import Any, Dict

from settings.base import SettingsStore, UserSettings

logger = logging.getLogger(__name__)


class SettingsRepository:

    def __init__(self, store: SettingsStore):
        self.store = store
        self._settings = UserSettings()
        self.dirty = False
        self.unconfirmed: Dict[str, Any] = {}

    @property
    def settings(self) -> UserSettings:
        return replace(self._settings)

    async def load(self) -> UserSettings:
        try:
            self._settings = await self.store.load()
        except Exception as e:
            logger.error(f"[SETTINGS] 加载设置失败, 使用默认设置: {e}", exc_info=True)
            self._settings = UserSettings()
        self.dirty = False
        self.unconfirmed = {}
        return self.settings

    async def update(self, **updates) -> bool:
        """写入存储, 成功后才更新缓存"""
        try:
            ok = await self.store.save(updates)
        except Exception as e:
            logger.error(f"[SETTINGS] 保存设置异常 {list(updates)}: {e}", exc_info=True)
            ok = False

        if not ok:
            logger.warning(f"[SETTINGS] 设置未保存: {updates}")
            return False

        self._settings = replace(self._settings, **updates)
        for key in updates:
            self.unconfirmed.pop(key, None)
        self.dirty = bool(self.unconfirmed)
        return True

    def mark_unconfirmed(self, **updates):
        """内存中已生效但未能持久化的变更"""
        self.unconfirmed.update(updates)
        self.dirty = True
        logger.warning(f"[SETTINGS] 内存状态与存储不一致, 未确认: {self.unconfirmed}")
