# -*- coding: utf-8 -*-
"""
ledger.py

虚拟账户账本 - 只由 PositionManager 调用修改, 其他组件只读快照
"""

from __future__ import annotations
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from models.trading_models import VirtualAccount

logger = logging.getLogger(__name__)


class VirtualAccountLedger:
    """虚拟账户账本"""

    def __init__(self, balance: float, today: Optional[date] = None):
        self._account = VirtualAccount(balance=balance)
        self.last_trade_date = today or datetime.now().date()

    @property
    def balance(self) -> float:
        return self._account.balance

    @property
    def active_positions(self) -> int:
        return self._account.active_positions

    def snapshot(self) -> VirtualAccount:
        return replace(self._account)

    def debit_for_open(self, risk_amount: float):
        """开仓: 扣除风险金额"""
        acct = self._account
        acct.balance -= risk_amount
        acct.total_trades += 1
        acct.active_positions += 1

    def settle_close(self, principal: float, pnl: float):
        """平仓: 返还本金并实现盈亏, 按已平仓笔数更新胜率"""
        acct = self._account
        acct.balance += principal + pnl
        acct.total_pnl += pnl
        acct.daily_pnl += pnl
        acct.active_positions -= 1

        closed_before = acct.closed_trades
        wins_before = acct.win_rate / 100 * closed_before
        acct.closed_trades = closed_before + 1
        acct.win_rate = (wins_before + (1 if pnl > 0 else 0)) / acct.closed_trades * 100

        logger.info(
            f"[LEDGER] 实现盈亏={pnl:.2f}, 累计={acct.total_pnl:.2f}, "
            f"余额={acct.balance:.2f}, 胜率={acct.win_rate:.1f}%"
        )

    def set_balance(self, balance: float):
        self._account.balance = balance

    def reset(self, balance: float):
        self._account = VirtualAccount(balance=balance)
        logger.info(f"[LEDGER] 账户已重置, 余额={balance:.2f}")

    def reset_daily_stats(self, today: Optional[date] = None) -> bool:
        """日期变化时重置当日盈亏"""
        today = today or datetime.now().date()
        if today == self.last_trade_date:
            return False
        self._account.daily_pnl = 0.0
        self.last_trade_date = today
        logger.info("[LEDGER] 新交易日开始，当日盈亏已重置")
        return True
