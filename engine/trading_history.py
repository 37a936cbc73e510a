# -*- coding: utf-8 -*-
"""
trading_history.py

交易历史记录 - 最新在前, 最多保留20条, 仅用于展示
"""

from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, List, Optional


def _action_text(action: str) -> str:
    return "买入" if action == "buy" else "卖出"


def format_trading_history(kind: str, symbol: str, action: str = "", **details: Any) -> List[str]:
    """生成一条历史事件的文本行 (按时间顺序)"""
    ts = datetime.now().strftime("%H:%M:%S")

    if kind == "signal_received":
        return [f"📡 [{ts}] 收到{symbol}信号：{_action_text(action)}，胜率{details['confidence']}%"]

    if kind == "signal_ignored":
        lines = [
            f"⚠️ [{ts}] {symbol} 信号胜率{details['confidence']}%低于"
            f"{details['strategy_name']}策略要求{details['min_confidence']}%，已忽略"
        ]
        if details.get("hint_min_confidence") is not None:
            lines.append(
                f"💡 提示：切换到{details['hint_name']}策略({details['hint_min_confidence']}%门槛)可执行此信号"
            )
        return lines

    if kind == "signal_invalid":
        return [f"❌ [{ts}] {symbol} 信号无效：{details.get('reason', '价格参数错误')}，已拒绝"]

    if kind == "trade_executed":
        return [
            f"✅ [{ts}] 自动执行：{symbol} {_action_text(action)} ${details['entry']:,.2f}",
            f"📊 {details['strategy_name']}策略 | 胜率{details['confidence']}% | "
            f"仓位{details['position_size']:.4f} | 风险收益比{details.get('risk_reward', 0):.2f}",
            f"🎯 止损${details['stop_loss']:,.2f} | 止盈${details['take_profit']:,.2f}",
        ]

    if kind == "duplicate_position":
        return [f"💰 [{ts}] {symbol} 已有持仓，跳过重复交易"]

    if kind == "position_closed":
        pnl = details["pnl"]
        return [f"🏁 [{ts}] 平仓：{symbol} @ ${details['exit_price']:,.2f}，盈亏{'+' if pnl >= 0 else ''}{pnl:.2f} USDT"]

    if kind == "trader_started":
        return [f"🤖 [{ts}] AI自动交易启动 - {details['strategy_name']}策略"]

    if kind == "trader_stopped":
        reason = details.get("reason")
        return [f"⏹️ [{ts}] AI自动交易停止" + (f" - {reason}" if reason else "")]

    return [f"📝 [{ts}] {kind}: {symbol}"]


class TradingHistoryLog:
    """有界历史, 超过上限时丢弃最旧条目"""

    def __init__(self, max_items: int = 20, on_append: Optional[Callable[[List[str]], None]] = None):
        self._entries: Deque[str] = deque(maxlen=max_items)
        self._on_append = on_append

    def append(self, lines: List[str]):
        # 多行事件按原顺序显示在最前
        for line in reversed(lines):
            self._entries.appendleft(line)
        if self._on_append:
            self._on_append(lines)

    def record(self, kind: str, symbol: str, action: str = "", **details: Any) -> List[str]:
        lines = format_trading_history(kind, symbol, action, **details)
        self.append(lines)
        return lines

    def entries(self) -> List[str]:
        return list(self._entries)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
