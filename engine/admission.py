# -*- coding: utf-8 -*-
"""
admission.py

信号准入过滤 - 决定一个信号是否开仓

按顺序检查, 第一个失败即停止:
1. 引擎已启用且检测器活跃, 否则静默忽略 (不记录历史)
2. 胜率 >= 当前策略最低胜率 (包含等于)
3. 同币种没有持仓 (不加仓, 不摊平)
4. 交给 PositionManager 开仓并记录
"""

from __future__ import annotations
import logging
from typing import Optional

from engine.controller import EngineController
from engine.detector import DetectorFlag
from engine.position_manager import PositionManager
from engine.strategy_selector import StrategySelector
from engine.trading_history import TradingHistoryLog
from models.enums import AdmissionResult
from models.trading_models import TradingSignal
from strategy.catalog import TradingStrategy, list_strategies
from utils.events import EventBus, EventTypes
from utils.math_utils import calculate_risk_reward
from utils.signal_converter import validate_signal

logger = logging.getLogger(__name__)


def _loosest_admitting(confidence: float) -> Optional[TradingStrategy]:
    candidates = [s for s in list_strategies() if s.admits(confidence)]
    return min(candidates, key=lambda s: s.min_confidence) if candidates else None


class SignalAdmissionFilter:

    def __init__(
        self,
        controller: EngineController,
        detector: DetectorFlag,
        selector: StrategySelector,
        position_manager: PositionManager,
        history: TradingHistoryLog,
        bus: EventBus,
    ):
        self.controller = controller
        self.detector = detector
        self.selector = selector
        self.position_manager = position_manager
        self.history = history
        self.bus = bus

        self.stats = {result: 0 for result in AdmissionResult}

    def is_listening(self) -> bool:
        return self.controller.is_enabled and self.detector.active

    async def evaluate(self, signal: TradingSignal) -> AdmissionResult:
        result = await self._evaluate(signal)
        self.stats[result] += 1
        return result

    async def _evaluate(self, signal: TradingSignal) -> AdmissionResult:
        if not self.is_listening():
            logger.debug(f"[ADMISSION] 未在监听，忽略 {signal.symbol} 信号")
            return AdmissionResult.IGNORED

        action = signal.action.value
        self.bus.publish(
            EventTypes.SIGNAL_RECEIVED,
            {"symbol": signal.symbol, "action": action, "confidence": signal.confidence},
            source="SignalAdmissionFilter",
        )
        self.history.record("signal_received", signal.symbol, action, confidence=signal.confidence)

        # 使用处理时刻的策略, 不使用快照
        strategy = self.selector.active
        if not strategy.admits(signal.confidence):
            hint = _loosest_admitting(signal.confidence)
            logger.info(
                f"[ADMISSION] 拒绝 {signal.symbol}: 胜率{signal.confidence}% < "
                f"{strategy.name}要求{strategy.min_confidence}%"
            )
            self.history.record(
                "signal_ignored", signal.symbol, action,
                confidence=signal.confidence,
                strategy_name=strategy.name,
                min_confidence=strategy.min_confidence,
                hint_name=hint.name if hint else None,
                hint_min_confidence=hint.min_confidence if hint else None,
            )
            return AdmissionResult.REJECTED_CONFIDENCE

        if self.position_manager.has_position(signal.symbol):
            logger.info(f"[ADMISSION] {signal.symbol} 已有持仓，跳过")
            self.history.record("duplicate_position", signal.symbol, action)
            return AdmissionResult.REJECTED_DUPLICATE

        if not validate_signal(signal):
            logger.warning(f"[ADMISSION] 信号参数无效: {signal}")
            self.history.record("signal_invalid", signal.symbol, action, reason="价格参数无效")
            return AdmissionResult.REJECTED_INVALID

        position = await self.position_manager.open(signal, strategy)
        if position is None:
            return AdmissionResult.REJECTED_INVALID

        self.history.record(
            "trade_executed", signal.symbol, action,
            entry=signal.entry,
            strategy_name=strategy.name,
            confidence=signal.confidence,
            position_size=position.size,
            stop_loss=signal.stop_loss,
            take_profit=signal.take_profit,
            risk_reward=calculate_risk_reward(signal.entry, signal.stop_loss, signal.take_profit, signal.action),
        )
        return AdmissionResult.EXECUTED
