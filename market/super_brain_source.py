# -*- coding: utf-8 -*-
"""
super_brain_source.py - 最强大脑分析信号源 (Supabase Edge Function)
"""

import logging
from typing import List, Optional

import httpx
import orjson

from config.system_config import SystemConfig
from market.base import SignalSource, SignalSourceError
from models.trading_models import TradingSignal
from settings.supabase_store import supabase_headers
from utils.signal_converter import convert_payloads

logger = logging.getLogger(__name__)


class SuperBrainSignalSource(SignalSource):

    FUNCTION_PATH = "/functions/v1/super-brain-analysis"

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client
        self.request_count = 0

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.config.SUPABASE_URL,
                timeout=httpx.Timeout(self.config.HTTP_TIMEOUT),
                headers=supabase_headers(self.config),
            )
        return self.http_client

    async def fetch_signals(self, symbols: List[str], analysis_types: List[str]) -> List[TradingSignal]:
        client = self._ensure_client()
        payload = {"symbols": list(symbols), "analysisTypes": list(analysis_types)}
        self.request_count += 1

        try:
            response = await client.post(self.FUNCTION_PATH, content=orjson.dumps(payload))
        except httpx.HTTPError as e:
            raise SignalSourceError(f"分析请求异常: {e}") from e

        if response.status_code != 200:
            raise SignalSourceError(f"分析请求失败: HTTP {response.status_code} {response.text[:200]}")

        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise SignalSourceError(f"分析结果解析失败: {e}") from e

        signals = convert_payloads(data)
        logger.debug(f"[POLL] 分析返回 {len(signals)} 个信号")
        return signals

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
