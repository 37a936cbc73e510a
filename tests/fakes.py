# -*- coding: utf-8 -*-
"""
测试用的假存储, 假信号源和假价格源
"""

import asyncio
from typing import Any, Dict, List, Optional

from engine.auto_trading_engine import AutoTradingEngine
from execution.base import TradeRecorder
from market.base import PriceSource, PriceSourceError, SignalSource, SignalSourceError
from models.enums import SignalAction
from models.trading_models import TradingSignal
from settings.base import UserSettings
from settings.memory_store import InMemorySettingsStore


def make_signal(symbol="ETH", action="buy", confidence=90, entry=2000.0, stop_loss=None, take_profit=None):
    action = SignalAction(action)
    if stop_loss is None:
        stop_loss = entry * 0.95 if action == SignalAction.BUY else entry * 1.05
    if take_profit is None:
        take_profit = entry * 1.10 if action == SignalAction.BUY else entry * 0.90
    return TradingSignal(
        symbol=symbol,
        action=action,
        confidence=confidence,
        entry=entry,
        stop_loss=stop_loss,
        take_profit=take_profit,
        reasoning="test",
    )


class FlakyStore(InMemorySettingsStore):
    """可以模拟写入失败的内存存储"""

    def __init__(self, initial: Optional[UserSettings] = None):
        super().__init__(initial)
        self.fail = False
        # 字段名 -> 依次用于后续写入的延迟秒数
        self.delays: Dict[str, List[float]] = {}
        self.saved: List[Dict[str, Any]] = []

    async def save(self, updates: Dict[str, Any]) -> bool:
        for key in updates:
            pending = self.delays.get(key)
            if pending:
                await asyncio.sleep(pending.pop(0))
        if self.fail:
            return False
        self.saved.append(dict(updates))
        return await super().save(updates)


class FakeSignalSource(SignalSource):

    def __init__(self, signals: Optional[List[TradingSignal]] = None):
        self.signals = list(signals or [])
        self.calls = 0
        self.error = False
        self.gate: Optional[asyncio.Event] = None

    async def fetch_signals(self, symbols, analysis_types):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise SignalSourceError("fake failure")
        return list(self.signals)


class FakePriceSource(PriceSource):
    """prices 中没有的币种视为请求失败"""

    def __init__(self, prices: Optional[Dict[str, float]] = None):
        self.prices = dict(prices or {})
        self.calls = 0
        self.hang: set = set()

    async def get_price(self, symbol: str) -> float:
        self.calls += 1
        if symbol in self.hang:
            await asyncio.Event().wait()
        if symbol not in self.prices:
            raise PriceSourceError(f"no price for {symbol}")
        return self.prices[symbol]


class FakeRecorder(TradeRecorder):

    def __init__(self, fail: bool = False):
        self.opened = []
        self.closed = []
        self.fail = fail

    async def record_open(self, position, signal, strategy):
        if self.fail:
            raise RuntimeError("recorder down")
        self.opened.append((position.symbol, strategy))
        return True

    async def record_close(self, position, exit_price, pnl):
        if self.fail:
            raise RuntimeError("recorder down")
        self.closed.append((position.symbol, exit_price, pnl))
        return True


async def started_engine(store=None, strategy="conservative", **kwargs) -> AutoTradingEngine:
    """已加载设置, 检测器活跃并已启用的引擎"""
    store = store or FlakyStore(UserSettings(trading_strategy=strategy))
    engine = AutoTradingEngine(store, **kwargs)
    await engine.load()
    await engine.set_detector_active(True)
    ok, msg = await engine.enable()
    assert ok, msg
    return engine
