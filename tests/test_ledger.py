#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试虚拟账户账本
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date

import pytest

from engine.ledger import VirtualAccountLedger


def test_debit_and_settle():
    ledger = VirtualAccountLedger(balance=1000)
    ledger.debit_for_open(20)
    account = ledger.snapshot()
    assert account.balance == 980
    assert account.total_trades == 1
    assert account.active_positions == 1

    ledger.settle_close(20, -5)
    account = ledger.snapshot()
    assert account.balance == pytest.approx(995)
    assert account.total_pnl == pytest.approx(-5)
    assert account.active_positions == 0
    assert account.closed_trades == 1
    assert account.win_rate == 0


def test_snapshot_is_read_only_copy():
    """修改快照不影响账本"""
    ledger = VirtualAccountLedger(balance=1000)
    snapshot = ledger.snapshot()
    snapshot.balance = 0
    assert ledger.balance == 1000


def test_win_rate_running_average():
    ledger = VirtualAccountLedger(balance=1000)
    for pnl in (5, -1, 3, 0):
        ledger.debit_for_open(10)
        ledger.settle_close(10, pnl)
    # 盈亏为0不算盈利
    assert ledger.snapshot().win_rate == pytest.approx(50)


def test_daily_rollover():
    """日期变化时当日盈亏清零, 累计盈亏保留"""
    ledger = VirtualAccountLedger(balance=1000, today=date(2024, 1, 1))
    ledger.debit_for_open(20)
    ledger.settle_close(20, 4)

    assert not ledger.reset_daily_stats(date(2024, 1, 1))
    assert ledger.snapshot().daily_pnl == pytest.approx(4)

    assert ledger.reset_daily_stats(date(2024, 1, 2))
    account = ledger.snapshot()
    assert account.daily_pnl == 0
    assert account.total_pnl == pytest.approx(4)


def test_reset():
    ledger = VirtualAccountLedger(balance=1000)
    ledger.debit_for_open(20)
    ledger.reset(5000)
    account = ledger.snapshot()
    assert account.balance == 5000
    assert account.total_trades == 0
    assert account.active_positions == 0
