# -*- coding: utf-8 -*-
"""
controller.py

自动交易开关状态机 (DISABLED / ENABLED)

- 启用前提: 最强大脑监测处于活跃状态
- 检测器停止时强制关闭 (不是用户错误)
- 状态变化通过 ENGINE_STATE_CHANGED 广播, 信号通道由订阅者启停
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional, Set, Tuple

from engine.detector import DetectorFlag
from engine.strategy_selector import StrategySelector
from engine.trading_history import TradingHistoryLog
from models.enums import EngineState
from settings.repository import SettingsRepository
from utils.events import Event, EventBus, EventTypes

logger = logging.getLogger(__name__)


class EngineController:

    def __init__(
        self,
        detector: DetectorFlag,
        repository: SettingsRepository,
        selector: StrategySelector,
        history: TradingHistoryLog,
        bus: EventBus,
    ):
        self.detector = detector
        self.repository = repository
        self.selector = selector
        self.history = history
        self.bus = bus
        self.state = EngineState.DISABLED
        self._pending: Set[asyncio.Task] = set()

        bus.subscribe(EventTypes.DETECTOR_STATE_CHANGED, self._on_detector_changed)

    @property
    def is_enabled(self) -> bool:
        return self.state == EngineState.ENABLED

    def _set_state(self, state: EngineState, reason: str = ""):
        if state == self.state:
            return
        self.state = state
        logger.info(f"[ENGINE] 自动交易状态 -> {state.name}" + (f" ({reason})" if reason else ""))
        self.bus.publish(
            EventTypes.ENGINE_STATE_CHANGED,
            {"enabled": state == EngineState.ENABLED, "reason": reason},
            source="EngineController",
        )

    async def enable(self) -> Tuple[bool, str]:
        if self.is_enabled:
            return True, "AI自动交易已在运行"

        if not self.detector.active:
            logger.warning("[ENGINE] 无法启用: 最强大脑监测未启用")
            return False, "无法启用：请先启用最强大脑监测"

        if not await self.repository.update(auto_trading_enabled=True):
            return False, "设置保存失败，AI自动交易未启动"

        # 并发的 enable 已经完成
        if self.is_enabled:
            return True, "AI自动交易已在运行"

        # 保存期间检测器可能已经停止
        if not self.detector.active:
            await self._persist_disabled()
            return False, "无法启用：最强大脑监测已停止"

        self._set_state(EngineState.ENABLED, "user")
        self.history.record("trader_started", "", strategy_name=self.selector.active.name)
        return True, "AI自动交易已启动"

    async def disable(self) -> Tuple[bool, str]:
        if not self.is_enabled:
            return True, "AI自动交易已停止"

        if not await self.repository.update(auto_trading_enabled=False):
            return False, "设置保存失败，AI自动交易仍在运行"

        if not self.is_enabled:
            return True, "AI自动交易已停止"

        self._set_state(EngineState.DISABLED, "user")
        self.history.record("trader_stopped", "")
        return True, "AI自动交易已停止"

    def restore(self, enabled: bool) -> bool:
        """按持久化设置恢复状态; 检测器未活跃时保持关闭"""
        if enabled and self.detector.active:
            self._set_state(EngineState.ENABLED, "restored")
        else:
            if enabled:
                logger.warning("[ENGINE] 设置为已启用，但最强大脑监测未启用，保持关闭")
            self._set_state(EngineState.DISABLED, "restored")
        return self.is_enabled

    def _on_detector_changed(self, event: Event):
        if event.data.get("active") or not self.is_enabled:
            return

        # 强制关闭立即生效, 持久化在后台完成
        self._set_state(EngineState.DISABLED, "detector_inactive")
        self.history.record("trader_stopped", "", reason="最强大脑监测已停止")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.repository.mark_unconfirmed(auto_trading_enabled=False)
            return

        task = loop.create_task(self._persist_disabled())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist_disabled(self):
        if not await self.repository.update(auto_trading_enabled=False):
            self.repository.mark_unconfirmed(auto_trading_enabled=False)

    async def wait_pending(self, timeout: Optional[float] = None):
        if self._pending:
            await asyncio.wait(set(self._pending), timeout=timeout)
