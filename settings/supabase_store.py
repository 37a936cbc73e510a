# -*- coding: utf-8 -*-
"""
settings/supabase_store.py

Supabase (PostgREST) 用户设置存储, 每个用户一行 user_settings
"""

import logging
from typing import Any, Dict, Optional

import httpx
import orjson

from config.system_config import SystemConfig
from settings.base import SettingsStore, UserSettings, encode_updates

logger = logging.getLogger(__name__)


def supabase_headers(config: SystemConfig) -> Dict[str, str]:
    return {
        "apikey": config.SUPABASE_KEY,
        "Authorization": f"Bearer {config.SUPABASE_KEY}",
        "Content-Type": "application/json",
    }


class SupabaseSettingsStore(SettingsStore):

    TABLE = "user_settings"

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.config.SUPABASE_URL,
                timeout=httpx.Timeout(self.config.HTTP_TIMEOUT),
                headers=supabase_headers(self.config),
                limits=httpx.Limits(max_connections=self.config.MAX_CONNECTIONS),
            )
        return self.http_client

    @property
    def _path(self) -> str:
        return f"/rest/v1/{self.TABLE}"

    @property
    def _filter(self) -> Dict[str, str]:
        return {"user_id": f"eq.{self.config.USER_ID}"}

    async def load(self) -> UserSettings:
        client = self._ensure_client()
        try:
            response = await client.get(self._path, params={**self._filter, "select": "*"})
            if response.status_code != 200:
                logger.error(f"[SETTINGS] 读取用户设置失败: HTTP {response.status_code} {response.text}")
                return UserSettings()

            rows = orjson.loads(response.content)
            if rows:
                return UserSettings.from_dict(rows[0])

            # 没有设置记录时创建默认设置
            return await self._create_default()

        except (httpx.HTTPError, orjson.JSONDecodeError, TypeError, ValueError) as e:
            logger.error(f"[SETTINGS] 读取用户设置异常: {e}")
            return UserSettings()

    async def _create_default(self) -> UserSettings:
        client = self._ensure_client()
        defaults = UserSettings()
        payload = {**defaults.to_dict(), "user_id": self.config.USER_ID}
        response = await client.post(
            self._path,
            content=orjson.dumps(payload),
            headers={"Prefer": "return=representation"},
        )
        if response.status_code not in (200, 201):
            logger.error(f"[SETTINGS] 创建默认设置失败: HTTP {response.status_code} {response.text}")
            return defaults

        rows = orjson.loads(response.content)
        logger.info(f"[SETTINGS] 已为用户 {self.config.USER_ID} 创建默认设置")
        return UserSettings.from_dict(rows[0]) if rows else defaults

    async def save(self, updates: Dict[str, Any]) -> bool:
        client = self._ensure_client()
        try:
            response = await client.patch(
                self._path,
                params=self._filter,
                content=orjson.dumps(encode_updates(updates)),
                headers={"Prefer": "return=representation"},
            )
        except httpx.HTTPError as e:
            logger.error(f"[SETTINGS] 保存用户设置异常: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"[SETTINGS] 保存用户设置失败: HTTP {response.status_code} {response.text}")
            return False

        # 没有匹配的设置记录时 PATCH 不会更新任何行
        try:
            rows = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            logger.error(f"[SETTINGS] 保存结果解析失败: {e}")
            return False
        if not rows:
            logger.error(f"[SETTINGS] 用户 {self.config.USER_ID} 没有设置记录，保存未生效")
            return False
        return True

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
