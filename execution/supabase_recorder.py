# -*- coding: utf-8 -*-
"""
supabase_recorder.py - 把虚拟交易写入 Supabase virtual_trades 表
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import orjson

from config.system_config import SystemConfig
from execution.base import TradeRecorder
from models.enums import StrategyKind
from models.trading_models import Position, TradingSignal
from settings.supabase_store import supabase_headers

logger = logging.getLogger(__name__)


class SupabaseTradeRecorder(TradeRecorder):

    TABLE = "virtual_trades"

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client
        # position.id -> 数据库行id
        self.trade_ids: Dict[str, Any] = {}

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.config.SUPABASE_URL,
                timeout=httpx.Timeout(self.config.HTTP_TIMEOUT),
                headers=supabase_headers(self.config),
            )
        return self.http_client

    async def record_open(self, position: Position, signal: TradingSignal, strategy: StrategyKind) -> bool:
        payload = {
            "user_id": self.config.USER_ID,
            "symbol": position.symbol,
            "action": signal.action.value,
            "entry_price": position.entry_price,
            "stop_loss": position.stop_loss,
            "take_profit": position.take_profit,
            "position_size": position.size,
            "confidence": position.confidence,
            "strategy": strategy.value,
            "reasoning": signal.reasoning,
            "status": "open",
        }
        try:
            response = await self._ensure_client().post(
                f"/rest/v1/{self.TABLE}",
                content=orjson.dumps(payload),
                headers={"Prefer": "return=representation"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"[RECORDER] 开仓记录写入异常 {position.symbol}: {e}")
            return False

        if response.status_code not in (200, 201):
            logger.warning(f"[RECORDER] 开仓记录写入失败 {position.symbol}: HTTP {response.status_code}")
            return False

        try:
            rows = orjson.loads(response.content)
            if rows and "id" in rows[0]:
                self.trade_ids[position.id] = rows[0]["id"]
        except (orjson.JSONDecodeError, TypeError, IndexError, KeyError):
            pass
        return True

    async def record_close(self, position: Position, exit_price: float, pnl: float) -> bool:
        trade_id = self.trade_ids.pop(position.id, None)
        if trade_id is None:
            logger.debug(f"[RECORDER] {position.symbol} 没有对应的开仓记录，跳过平仓记录")
            return False

        payload = {
            "status": "closed",
            "exit_price": exit_price,
            "pnl": pnl,
            "closed_at": datetime.now().isoformat(),
        }
        try:
            response = await self._ensure_client().patch(
                f"/rest/v1/{self.TABLE}",
                params={"id": f"eq.{trade_id}"},
                content=orjson.dumps(payload),
            )
        except httpx.HTTPError as e:
            logger.warning(f"[RECORDER] 平仓记录写入异常 {position.symbol}: {e}")
            return False

        if response.status_code not in (200, 204):
            logger.warning(f"[RECORDER] 平仓记录写入失败 {position.symbol}: HTTP {response.status_code}")
            return False
        return True

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
