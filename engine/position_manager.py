# -*- coding: utf-8 -*-
"""
position_manager.py

持仓管理器 - 持仓生命周期和账户结算

账本和持仓集合只在这里修改; 检查和修改之间没有 await,
因此同一事件循环内不会出现交错修改
"""

from __future__ import annotations
import asyncio
import logging
import math
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from engine.ledger import VirtualAccountLedger
from engine.trading_history import TradingHistoryLog
from execution.base import TradeRecorder
from market.base import PriceSource
from models.enums import PositionSide
from models.trading_models import Position, TradingSignal
from settings.repository import SettingsRepository
from strategy.catalog import TradingStrategy
from utils.events import EventBus, EventTypes
from utils.math_utils import calculate_pnl, calculate_pnl_percent, is_valid_price

logger = logging.getLogger(__name__)


class PositionManager:
    """持仓管理器"""

    def __init__(
        self,
        ledger: VirtualAccountLedger,
        repository: SettingsRepository,
        bus: EventBus,
        history: TradingHistoryLog,
        risk_fraction: float = 0.02,
        recorder: Optional[TradeRecorder] = None,
        price_timeout: float = 5.0,
    ):
        self.ledger = ledger
        self.repository = repository
        self.bus = bus
        self.history = history
        self.risk_fraction = risk_fraction
        self.recorder = recorder
        self.price_timeout = price_timeout

        self._positions: Dict[str, Position] = {}
        # 余额写入按顺序执行, 每次写入账本当前余额
        self.balance_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # 只读视图
    # ------------------------------------------------------------------

    @property
    def positions(self) -> List[Position]:
        return list(self._positions.values())

    def get(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    def position_for_symbol(self, symbol: str) -> Optional[Position]:
        for position in self._positions.values():
            if position.symbol == symbol:
                return position
        return None

    def has_position(self, symbol: str) -> bool:
        return self.position_for_symbol(symbol) is not None

    def invariant_holds(self) -> bool:
        return self.ledger.active_positions == len(self._positions)

    def _check_invariant(self):
        if not self.invariant_holds():
            logger.error(
                f"[POSITION] 持仓计数不一致: ledger={self.ledger.active_positions}, "
                f"open={len(self._positions)}"
            )

    # ------------------------------------------------------------------
    # 开仓
    # ------------------------------------------------------------------

    def _reject(self, signal: TradingSignal, reason: str) -> None:
        logger.warning(f"[POSITION] 拒绝开仓 {signal.symbol}: {reason}")
        self.history.record("signal_invalid", signal.symbol, signal.action.value, reason=reason)

    async def open(self, signal: TradingSignal, strategy: TradingStrategy) -> Optional[Position]:
        """按当前余额的固定比例开仓, 成功返回新持仓"""
        # 开仓前立即重新检查同币种持仓
        if self.has_position(signal.symbol):
            logger.warning(f"[POSITION] {signal.symbol} 已有持仓，不开新仓")
            return None

        if not is_valid_price(signal.entry):
            self._reject(signal, f"入场价无效 {signal.entry}")
            return None

        risk_amount = self.ledger.balance * self.risk_fraction
        size = risk_amount / signal.entry
        if not math.isfinite(size) or size <= 0:
            self._reject(signal, f"仓位计算无效 size={size}")
            return None

        position = Position(
            id=uuid.uuid4().hex,
            symbol=signal.symbol,
            side=signal.side,
            entry_price=signal.entry,
            current_price=signal.entry,
            size=size,
            confidence=signal.confidence,
            strategy=strategy.kind,
            opened_at=datetime.now(),
            stop_loss=signal.stop_loss,
            take_profit=signal.take_profit,
        )

        self.ledger.debit_for_open(risk_amount)
        self._positions[position.id] = position
        self._check_invariant()

        logger.info(
            f"[POSITION] 开仓 {position.symbol} {position.side.value} "
            f"size={size:.6f} @ {signal.entry:.2f}, 风险金额={risk_amount:.2f}, "
            f"余额={self.ledger.balance:.2f}"
        )
        self.bus.publish(EventTypes.POSITION_OPENED, position.to_dict(), source="PositionManager")
        self._publish_account()

        await self._persist_balance()
        if self.recorder:
            await self._record(self.recorder.record_open(position, signal, strategy.kind))

        return position

    # ------------------------------------------------------------------
    # 价格刷新
    # ------------------------------------------------------------------

    def reprice(self, position_id: str, new_price: Optional[float]) -> bool:
        """重新计算未实现盈亏, 价格无效时保持上一价格并标记为过期"""
        position = self._positions.get(position_id)
        if position is None:
            return False

        if is_valid_price(new_price):
            position.current_price = float(new_price)
            position.stale = False
        else:
            position.stale = True

        pnl = calculate_pnl(position.side, position.entry_price, position.current_price, position.size)
        position.unrealized_pnl = pnl
        position.unrealized_pnl_percent = calculate_pnl_percent(pnl, position.entry_price, position.size)
        return not position.stale

    async def _fetch_and_reprice(self, position: Position, price_source: PriceSource) -> bool:
        try:
            price = await asyncio.wait_for(price_source.get_price(position.symbol), self.price_timeout)
        except asyncio.TimeoutError:
            logger.debug(f"[PRICE] {position.symbol} 获取价格超时, 保持上一价格")
            price = None
        except Exception as e:
            logger.debug(f"[PRICE] {position.symbol} 获取价格失败, 保持上一价格: {e}")
            price = None

        # 等待期间可能已经平仓
        return self.reprice(position.id, price)

    async def refresh_prices(self, price_source: PriceSource) -> int:
        """并发刷新所有持仓, 单个持仓失败不影响其他持仓; 返回成功刷新数"""
        positions = self.positions
        if not positions:
            return 0

        results = await asyncio.gather(*(self._fetch_and_reprice(p, price_source) for p in positions))
        refreshed = sum(1 for ok in results if ok)

        self.bus.publish(
            EventTypes.POSITIONS_REPRICED,
            {
                "refreshed": refreshed,
                "total": len(positions),
                "unrealized_pnl": sum(p.unrealized_pnl for p in self._positions.values()),
            },
            source="PositionManager",
        )
        return refreshed

    # ------------------------------------------------------------------
    # 平仓
    # ------------------------------------------------------------------

    async def close(self, position_id: str, exit_price: Optional[float] = None) -> Optional[float]:
        """平仓并结算, 返回实现盈亏; 已平仓或不存在的持仓返回 None"""
        position = self._positions.pop(position_id, None)
        if position is None:
            logger.warning(f"[POSITION] 持仓不存在或已平仓: {position_id}")
            return None

        price = float(exit_price) if is_valid_price(exit_price) else position.current_price
        pnl = calculate_pnl(position.side, position.entry_price, price, position.size)
        position.current_price = price
        position.unrealized_pnl = 0.0
        position.unrealized_pnl_percent = 0.0

        self.ledger.settle_close(position.principal, pnl)
        self._check_invariant()

        logger.info(f"[POSITION] 平仓 {position.symbol} @ {price:.2f}, pnl={pnl:.2f}")
        self.history.record("position_closed", position.symbol, exit_price=price, pnl=pnl)
        self.bus.publish(
            EventTypes.POSITION_CLOSED,
            {**position.to_dict(), "exit_price": price, "pnl": pnl},
            source="PositionManager",
        )
        self._publish_account()

        await self._persist_balance()
        if self.recorder:
            await self._record(self.recorder.record_close(position, price, pnl))

        return pnl

    @staticmethod
    def triggered_exit(position: Position) -> Optional[str]:
        """止损/止盈是否被触及 (仅供参考, 不会自动平仓)"""
        price = position.current_price
        if position.side == PositionSide.LONG:
            if price <= position.stop_loss:
                return "stop_loss"
            if price >= position.take_profit:
                return "take_profit"
        else:
            if price >= position.stop_loss:
                return "stop_loss"
            if price <= position.take_profit:
                return "take_profit"
        return None

    async def close_triggered_positions(self) -> List[Tuple[str, str, float]]:
        """显式调用时, 平掉已触及止损或止盈的持仓"""
        closed = []
        for position in self.positions:
            reason = self.triggered_exit(position)
            if reason is None:
                continue
            pnl = await self.close(position.id)
            if pnl is not None:
                logger.info(f"[POSITION] {position.symbol} 触发{reason}")
                closed.append((position.id, reason, pnl))
        return closed

    # ------------------------------------------------------------------
    # 账户维护
    # ------------------------------------------------------------------

    def set_balance(self, balance: float):
        self.ledger.set_balance(balance)
        self._publish_account()

    def reset(self, balance: float):
        self._positions.clear()
        self.ledger.reset(balance)
        self._publish_account()

    def _publish_account(self):
        self.bus.publish(EventTypes.ACCOUNT_UPDATED, self.ledger.snapshot().to_dict(), source="PositionManager")

    async def _persist_balance(self):
        async with self.balance_lock:
            balance = self.ledger.balance
            if not await self.repository.update(virtual_balance=balance):
                self.repository.mark_unconfirmed(virtual_balance=balance)

    async def _record(self, coro):
        try:
            await coro
        except Exception as e:
            logger.warning(f"[POSITION] 交易记录写入失败: {e}")
