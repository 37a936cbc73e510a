# -*- coding: utf-8 -*-
"""
signal_converter.py

把信号源的原始数据转换为 TradingSignal

支持两种格式:
- 扁平信号: {symbol, action, confidence, entry, stopLoss, takeProfit, reasoning}
- 提醒格式: {symbol, signal, confidence, price, tradingDetails: {entry, stopLoss, takeProfit, reasoning}}
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.enums import SignalAction
from models.trading_models import TradingSignal
from utils.math_utils import is_valid_price

logger = logging.getLogger(__name__)


def _first(data: Dict[str, Any], details: Dict[str, Any], *keys):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
        if details.get(key) is not None:
            return details[key]
    return None


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # 毫秒时间戳
        return datetime.fromtimestamp(value / 1000 if value > 1e11 else value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now()


def convert_payload_to_signal(data: Any) -> Optional[TradingSignal]:
    """转换单条信号, 字段缺失或类型错误时返回 None"""
    if not isinstance(data, dict):
        logger.debug(f"[SIGNAL] 丢弃原因: 数据类型错误 {type(data)}")
        return None

    details = data.get("tradingDetails") or {}
    if not isinstance(details, dict):
        details = {}

    symbol = data.get("symbol")
    action = _first(data, details, "action", "signal")
    if not symbol or not action:
        logger.debug(f"[SIGNAL] 丢弃原因: 缺少symbol或action {data}")
        return None

    try:
        signal = TradingSignal(
            symbol=str(symbol).upper(),
            action=SignalAction(str(action).lower()),
            confidence=float(data.get("confidence", 0)),
            entry=float(_first(data, details, "entry", "price") or 0),
            stop_loss=float(_first(data, details, "stopLoss", "stop_loss") or 0),
            take_profit=float(_first(data, details, "takeProfit", "take_profit") or 0),
            reasoning=str(_first(data, details, "reasoning") or ""),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )
    except (TypeError, ValueError) as e:
        logger.debug(f"[SIGNAL] 信号转换失败: {e} - {data}")
        return None

    return signal


def convert_payloads(data: Any) -> List[TradingSignal]:
    """信号源可能返回单条信号, 信号列表或 {signals: [...]}"""
    if isinstance(data, dict) and isinstance(data.get("signals"), list):
        data = data["signals"]
    if isinstance(data, list):
        items = data
    elif data:
        items = [data]
    else:
        items = []

    signals = []
    for item in items:
        signal = convert_payload_to_signal(item)
        if signal is not None:
            signals.append(signal)
    return signals


def validate_signal(signal: TradingSignal) -> bool:
    """信号有效性: 有币种, 胜率大于0, 入场/止损/止盈价格都为正"""
    return bool(
        signal.symbol
        and signal.action
        and signal.confidence > 0
        and is_valid_price(signal.entry)
        and is_valid_price(signal.stop_loss)
        and is_valid_price(signal.take_profit)
    )
