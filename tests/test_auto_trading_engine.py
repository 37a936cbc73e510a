#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试虚拟自动交易引擎整体流程
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import pytest

from engine.auto_trading_engine import AutoTradingEngine
from models.enums import AdmissionResult, StrategyKind
from settings.base import UserSettings
from utils.events import EventTypes

from fakes import FakeRecorder, FlakyStore, make_signal, started_engine


def test_eth_aggressive_scenario():
    """激进型策略, 余额1000, ETH 75% 买入 @2000"""
    async def run():
        engine = await started_engine(strategy="aggressive")
        result = await engine.process_signal(
            make_signal("ETH", "buy", confidence=75, entry=2000, stop_loss=1900, take_profit=2200)
        )
        assert result == AdmissionResult.EXECUTED

        position = engine.position_manager.position_for_symbol("ETH")
        assert position.size == pytest.approx(0.01)
        account = engine.account
        assert account.balance == pytest.approx(980)
        assert account.total_trades == 1
        assert account.active_positions == 1
        assert account.active_positions == len(engine.position_manager.positions)
        await engine.shutdown()

    asyncio.run(run())
    print("✓ ETH 激进型场景")


def test_full_round_trip_with_recorder():
    async def run():
        recorder = FakeRecorder()
        engine = await started_engine(recorder=recorder)
        await engine.process_signal(make_signal("BTC", confidence=90, entry=50000))
        position = engine.position_manager.position_for_symbol("BTC")

        pnl = await engine.close_position(position.id, 51000)
        assert pnl == pytest.approx(20 / 50000 * 1000)
        assert engine.account.win_rate == 100
        assert recorder.opened and recorder.closed
        assert engine.position_manager.invariant_holds()
        await engine.shutdown()

    asyncio.run(run())


def test_update_balance_validation():
    """余额必须是有限数且不低于1000"""
    async def run():
        store = FlakyStore()
        engine = AutoTradingEngine(store)
        await engine.load()

        for bad in ("abc", None, float("nan"), float("inf"), 999):
            ok, msg = await engine.update_balance(bad)
            assert not ok
            assert msg == "请输入有效的余额金额（最低1000 USDT）"
        assert engine.account.balance == 1000
        assert store.save_count == 0

        ok, _ = await engine.update_balance("5000")
        assert ok
        assert engine.account.balance == 5000
        assert store.raw["virtual_balance"] == 5000
        await engine.shutdown()

    asyncio.run(run())


def test_update_balance_persistence_failure():
    async def run():
        store = FlakyStore()
        engine = AutoTradingEngine(store)
        await engine.load()
        store.fail = True

        ok, _ = await engine.update_balance(2000)
        assert not ok
        assert engine.account.balance == 1000
        await engine.shutdown()

    asyncio.run(run())


def test_new_balance_changes_risk_amount():
    async def run():
        engine = await started_engine()
        await engine.update_balance(10000)
        await engine.process_signal(make_signal("ETH", confidence=90, entry=2000))
        assert engine.position_manager.position_for_symbol("ETH").size == pytest.approx(0.1)
        await engine.shutdown()

    asyncio.run(run())


def test_reset_account():
    async def run():
        store = FlakyStore()
        engine = await started_engine(store)
        await engine.update_balance(3000)
        await engine.process_signal(make_signal("ETH", confidence=90, entry=2000))

        assert await engine.reset_account()
        account = engine.account
        assert account.balance == 1000
        assert account.total_trades == 0
        assert engine.position_manager.positions == []
        assert len(engine.history) == 0
        assert store.raw["virtual_balance"] == 1000
        await engine.shutdown()

    asyncio.run(run())


def test_load_with_invalid_balance_uses_default():
    async def run():
        engine = AutoTradingEngine(FlakyStore(UserSettings(virtual_balance=float("nan"))))
        state = await engine.load()
        assert state["balance"] == 1000
        await engine.shutdown()

    asyncio.run(run())


def test_history_published_on_bus():
    async def run():
        engine = AutoTradingEngine(FlakyStore())
        published = []
        engine.bus.subscribe(EventTypes.HISTORY_APPENDED, published.append)
        await engine.load()
        await engine.set_detector_active(True)
        await engine.enable()
        assert "AI自动交易启动" in published[0].data["lines"][0]
        await engine.shutdown()

    asyncio.run(run())


def test_get_status():
    async def run():
        engine = await started_engine()
        await engine.process_signal(make_signal("ETH", confidence=90, entry=2000))
        engine.select_strategy("aggressive")

        status = engine.get_status()
        assert status["enabled"] and status["detector_active"]
        assert status["strategy"] == {
            "active": "conservative",
            "staged": "aggressive",
            "min_confidence": 85,
            "pending_change": True,
        }
        assert status["account"]["active_positions"] == 1
        assert status["positions"][0]["symbol"] == "ETH"
        assert status["settings_confirmed"]
        assert status["admission_stats"]["EXECUTED"] == 1
        await engine.shutdown()

    asyncio.run(run())


def test_overlapping_trades_persist_latest_balance():
    """先开的仓余额写入较慢时, 存储中最终保存的仍是最新余额"""
    async def run():
        store = FlakyStore(UserSettings(trading_strategy=StrategyKind.AGGRESSIVE))
        engine = await started_engine(store)
        store.delays["virtual_balance"] = [0.05]

        results = await asyncio.gather(
            engine.process_signal(make_signal("BTC", confidence=75, entry=50000)),
            engine.process_signal(make_signal("ETH", confidence=75, entry=2000)),
        )
        assert results == [AdmissionResult.EXECUTED, AdmissionResult.EXECUTED]
        assert engine.account.balance == pytest.approx(960.4)
        assert store.raw["virtual_balance"] == pytest.approx(engine.account.balance)
        assert not engine.repository.dirty
        await engine.shutdown()

        reloaded = AutoTradingEngine(store)
        state = await reloaded.load()
        assert state["balance"] == pytest.approx(960.4)
        await reloaded.shutdown()

    asyncio.run(run())
    print("✓ 并发开仓后余额写入一致")


def test_balance_edit_waits_for_pending_trade_write():
    async def run():
        store = FlakyStore()
        engine = await started_engine(store)
        store.delays["virtual_balance"] = [0.05]

        await asyncio.gather(
            engine.process_signal(make_signal("BTC", confidence=90, entry=50000)),
            engine.update_balance(5000),
        )
        assert engine.account.balance == 5000
        assert store.raw["virtual_balance"] == 5000
        await engine.shutdown()

    asyncio.run(run())
