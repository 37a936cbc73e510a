# -*- coding: utf-8 -*-
"""
auto_trading_engine.py - 虚拟自动交易引擎

组装账本, 持仓管理, 策略选择, 开关状态机和信号通道;
展示组件通过 bus 订阅事件, 通过 get_status() 读取快照
"""

from __future__ import annotations
import logging
import math
from typing import Any, Dict, List, Optional, Tuple, Union

from config.trading_config import TradingConfig
from engine.admission import SignalAdmissionFilter
from engine.controller import EngineController
from engine.detector import DetectorFlag
from engine.ledger import VirtualAccountLedger
from engine.position_manager import PositionManager
from engine.signal_intake import SignalIntake
from engine.strategy_selector import StrategySelector
from engine.trading_history import TradingHistoryLog
from execution.base import TradeRecorder
from market.base import PriceSource, SignalSource
from models.enums import AdmissionResult, StrategyKind
from models.trading_models import TradingSignal, VirtualAccount
from settings.base import SettingsStore
from settings.repository import SettingsRepository
from strategy.catalog import TradingStrategy
from utils.events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class AutoTradingEngine:
    """虚拟自动交易引擎"""

    def __init__(
        self,
        store: SettingsStore,
        signal_source: Optional[SignalSource] = None,
        price_source: Optional[PriceSource] = None,
        recorder: Optional[TradeRecorder] = None,
        config: Optional[TradingConfig] = None,
        symbols: Optional[List[str]] = None,
        bus: Optional[EventBus] = None,
    ):
        self.cfg = config or TradingConfig()
        self.bus = bus or EventBus()
        self.signal_source = signal_source
        self.price_source = price_source
        self.recorder = recorder

        self.repository = SettingsRepository(store)
        self.history = TradingHistoryLog(
            max_items=self.cfg.MAX_HISTORY_ITEMS,
            on_append=lambda lines: self.bus.publish(
                EventTypes.HISTORY_APPENDED, {"lines": lines}, source="TradingHistoryLog"
            ),
        )
        self.ledger = VirtualAccountLedger(balance=self.cfg.DEFAULT_BALANCE)
        self.detector = DetectorFlag(self.bus)
        self.selector = StrategySelector(self.repository, self.bus)
        self.position_manager = PositionManager(
            ledger=self.ledger,
            repository=self.repository,
            bus=self.bus,
            history=self.history,
            risk_fraction=self.cfg.risk_fraction,
            recorder=recorder,
        )
        self.controller = EngineController(
            detector=self.detector,
            repository=self.repository,
            selector=self.selector,
            history=self.history,
            bus=self.bus,
        )
        self.admission = SignalAdmissionFilter(
            controller=self.controller,
            detector=self.detector,
            selector=self.selector,
            position_manager=self.position_manager,
            history=self.history,
            bus=self.bus,
        )
        self.intake = SignalIntake(
            admission=self.admission,
            position_manager=self.position_manager,
            bus=self.bus,
            signal_source=signal_source,
            price_source=price_source,
            symbols=symbols,
            analysis_types=self.cfg.ANALYSIS_TYPES,
            poll_interval=self.cfg.POLL_INTERVAL_SECONDS,
            reprice_interval=self.cfg.REPRICE_INTERVAL_SECONDS,
        )

        logger.info("[ENGINE] 虚拟自动交易引擎已初始化")

    # ------------------------------------------------------------------
    # 会话
    # ------------------------------------------------------------------

    async def load(self) -> Dict[str, Any]:
        """从持久化设置恢复状态 (需要在事件循环内调用)"""
        settings = await self.repository.load()

        balance = settings.virtual_balance
        if not math.isfinite(balance) or balance < 0:
            logger.warning(f"[ENGINE] 持久化余额无效 {balance}，使用默认余额")
            balance = self.cfg.DEFAULT_BALANCE

        self.position_manager.reset(balance)
        self.selector.restore(settings.trading_strategy)
        self.detector.set_active(settings.super_brain_monitoring, source="settings")
        self.controller.restore(settings.auto_trading_enabled)

        logger.info(
            f"[ENGINE] 已加载设置: 余额={balance:.2f}, 策略={self.selector.active.name}, "
            f"自动交易={'开启' if self.controller.is_enabled else '关闭'}"
        )
        return self.state_snapshot()

    def state_snapshot(self) -> Dict[str, Any]:
        """需要在重新加载后保持一致的状态"""
        return {
            "balance": self.ledger.balance,
            "strategy": self.selector.active.kind.value,
            "enabled": self.controller.is_enabled,
            "detector_active": self.detector.active,
        }

    async def shutdown(self):
        await self.intake.shutdown()
        await self.controller.wait_pending(timeout=5.0)
        for client in (self.signal_source, self.price_source, self.recorder, self.repository.store):
            if client is None:
                continue
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"[ENGINE] 关闭客户端失败 {type(client).__name__}: {e}")
        logger.info("[ENGINE] 引擎已关闭")

    # ------------------------------------------------------------------
    # 开关与检测器
    # ------------------------------------------------------------------

    @property
    def is_enabled(self) -> bool:
        return self.controller.is_enabled

    async def enable(self) -> Tuple[bool, str]:
        return await self.controller.enable()

    async def disable(self) -> Tuple[bool, str]:
        return await self.controller.disable()

    async def set_detector_active(self, active: bool) -> bool:
        """检测器状态是外部事实, 总是生效; 持久化失败时标记未确认"""
        changed = self.detector.set_active(active, source="engine")
        if changed and not await self.repository.update(super_brain_monitoring=bool(active)):
            self.repository.mark_unconfirmed(super_brain_monitoring=bool(active))
        return changed

    # ------------------------------------------------------------------
    # 策略
    # ------------------------------------------------------------------

    @property
    def active_strategy(self) -> TradingStrategy:
        return self.selector.active

    def select_strategy(self, kind: Union[StrategyKind, str]) -> TradingStrategy:
        return self.selector.select_strategy(kind)

    async def confirm_strategy(self) -> bool:
        return await self.selector.confirm_strategy()

    def cancel_strategy_change(self) -> TradingStrategy:
        return self.selector.cancel_strategy_change()

    # ------------------------------------------------------------------
    # 信号
    # ------------------------------------------------------------------

    def push_signal(self, signal: TradingSignal) -> bool:
        return self.intake.push(signal)

    async def process_signal(self, signal: TradingSignal) -> AdmissionResult:
        return await self.admission.evaluate(signal)

    async def poll_once(self) -> List[AdmissionResult]:
        return await self.intake.poll_once()

    # ------------------------------------------------------------------
    # 持仓
    # ------------------------------------------------------------------

    async def close_position(self, position_id: str, exit_price: Optional[float] = None) -> Optional[float]:
        return await self.position_manager.close(position_id, exit_price)

    async def close_triggered_positions(self):
        return await self.position_manager.close_triggered_positions()

    async def refresh_prices(self) -> int:
        if self.price_source is None:
            return 0
        return await self.position_manager.refresh_prices(self.price_source)

    # ------------------------------------------------------------------
    # 账户
    # ------------------------------------------------------------------

    @property
    def account(self) -> VirtualAccount:
        return self.ledger.snapshot()

    async def update_balance(self, value: Any) -> Tuple[bool, str]:
        """设置虚拟余额; 先持久化, 成功后才修改账本"""
        min_balance = self.cfg.MIN_BALANCE
        message = f"请输入有效的余额金额（最低{min_balance:.0f} USDT）"
        try:
            balance = float(value)
        except (TypeError, ValueError):
            return False, message
        if not math.isfinite(balance) or balance < min_balance:
            logger.warning(f"[ENGINE] 余额设置被拒绝: {value}")
            return False, message

        async with self.position_manager.balance_lock:
            if not await self.repository.update(virtual_balance=balance):
                return False, "余额设置失败：无法保存设置"
            self.position_manager.set_balance(balance)

        logger.info(f"[ENGINE] 虚拟账户余额已设置为 {balance:,.2f} USDT")
        return True, f"虚拟账户余额已设置为 {balance:,.2f} USDT"

    async def reset_account(self) -> bool:
        """重置为默认余额, 清空持仓和统计"""
        balance = self.cfg.DEFAULT_BALANCE
        async with self.position_manager.balance_lock:
            if not await self.repository.update(virtual_balance=balance):
                return False
            self.position_manager.reset(balance)
        self.history.clear()
        return True

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": self.controller.is_enabled,
            "detector_active": self.detector.active,
            "strategy": {
                "active": self.selector.active.kind.value,
                "staged": self.selector.staged.kind.value,
                "min_confidence": self.selector.active.min_confidence,
                "pending_change": self.selector.has_pending_change,
            },
            "account": self.ledger.snapshot().to_dict(),
            "positions": [p.to_dict() for p in self.position_manager.positions],
            "history": self.history.entries(),
            "settings_confirmed": not self.repository.dirty,
            "admission_stats": {r.name: n for r, n in self.admission.stats.items()},
            "poll_count": self.intake.poll_count,
        }
