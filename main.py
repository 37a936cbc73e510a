#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
main.py - 虚拟自动交易引擎

只做模拟交易，不会下真实订单

配置通过 AUTOTRADER_* 环境变量提供 (见 config/system_config.example.py):
- 配置了 Supabase 时使用云端用户设置和交易记录
- 否则使用本地 JSON 设置文件
"""

import asyncio
import logging
from datetime import datetime

from config.system_config import SystemConfig
from config.trading_config import TradingConfig
from engine.auto_trading_engine import AutoTradingEngine
from execution.supabase_recorder import SupabaseTradeRecorder
from market.binance_price_source import BinancePriceSource
from market.signal_stream import SignalStream
from market.super_brain_source import SuperBrainSignalSource
from settings.file_store import JsonFileSettingsStore
from settings.supabase_store import SupabaseSettingsStore

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    handlers=[
        logging.FileHandler(f'autotrader_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

STATUS_INTERVAL_SECONDS = 60


def print_status(engine: AutoTradingEngine):
    status = engine.get_status()
    account = status["account"]

    print(f"\n{'=' * 60}")
    print(f"时间: {datetime.now().strftime('%H:%M:%S')}  |  "
          f"自动交易: {'运行中' if status['enabled'] else '已停止'}  |  "
          f"最强大脑: {'监测中' if status['detector_active'] else '未启用'}")
    print(f"策略: {engine.active_strategy.name} (最低胜率{status['strategy']['min_confidence']}%)")
    print(f"余额: {account['balance']:,.2f} USDT  |  累计盈亏: {account['total_pnl']:+.2f}  |  "
          f"当日盈亏: {account['daily_pnl']:+.2f}")
    print(f"交易次数: {account['total_trades']}  |  胜率: {account['win_rate']:.1f}%  |  "
          f"持仓: {account['active_positions']}")
    for position in status["positions"]:
        print(f"  {position['symbol']:<6} {position['side']:<5} size={position['size']:.6f} "
              f"entry={position['entry_price']:.2f} now={position['current_price']:.2f} "
              f"pnl={position['unrealized_pnl']:+.2f} ({position['unrealized_pnl_percent']:+.2f}%)"
              + (" [价格过期]" if position['stale'] else ""))
    if not status["settings_confirmed"]:
        print("⚠️  部分设置未能保存")
    print(f"{'=' * 60}")


async def main():
    """虚拟自动交易主函数"""

    system_config = SystemConfig.from_env()
    trading_config = TradingConfig()

    print("\n" + "=" * 60)
    print("🤖 虚拟自动交易引擎")
    print("=" * 60)
    print(f"监测币种: {system_config.SYMBOLS}")
    print(f"初始余额: {trading_config.DEFAULT_BALANCE:,.0f} USDT  |  单笔风险: {trading_config.RISK_PERCENTAGE}%")
    print(f"设置存储: {'Supabase' if system_config.use_supabase else system_config.SETTINGS_FILE}")
    print("=" * 60)

    if system_config.use_supabase:
        store = SupabaseSettingsStore(system_config)
        signal_source = SuperBrainSignalSource(system_config)
        recorder = SupabaseTradeRecorder(system_config)
    else:
        store = JsonFileSettingsStore(system_config.SETTINGS_FILE)
        signal_source = None
        recorder = None
        logger.info("未配置 Supabase，只使用推送通道")

    engine = AutoTradingEngine(
        store=store,
        signal_source=signal_source,
        price_source=BinancePriceSource(system_config),
        recorder=recorder,
        config=trading_config,
        symbols=system_config.SYMBOLS,
    )
    stream = SignalStream(system_config, on_signal=engine.push_signal)

    try:
        await engine.load()

        # 本地运行时由本进程充当检测器
        if not system_config.use_supabase:
            await engine.set_detector_active(True)

        if not engine.is_enabled:
            ok, msg = await engine.enable()
            print(f"\n{'✓' if ok else '✗'} {msg}")

        stream.start()

        while True:
            await asyncio.sleep(STATUS_INTERVAL_SECONDS)
            print_status(engine)

    except (KeyboardInterrupt, asyncio.CancelledError):
        print("\n\n收到中断信号，正在安全退出...")
    except Exception as e:
        logger.error(f"系统错误: {e}", exc_info=True)
    finally:
        await stream.stop()
        await engine.shutdown()
        print("\n\n" + "=" * 60)
        print("交易引擎已停止")
        print("=" * 60)
        print_status(engine)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
