import math

from models.enums import PositionSide, SignalAction


def is_valid_price(price) -> bool:
    return isinstance(price, (int, float)) and math.isfinite(price) and price > 0


def calculate_pnl(side: PositionSide, entry_price: float, price: float, size: float) -> float:
    if side == PositionSide.LONG:
        return (price - entry_price) * size
    return (entry_price - price) * size


def calculate_pnl_percent(pnl: float, entry_price: float, size: float) -> float:
    principal = entry_price * size
    if principal <= 0:
        return 0.0
    return pnl / principal * 100


def calculate_risk_reward(entry: float, stop_loss: float, take_profit: float, action: SignalAction) -> float:
    if action == SignalAction.BUY:
        risk = entry - stop_loss
        reward = take_profit - entry
    else:
        risk = stop_loss - entry
        reward = entry - take_profit
    if risk <= 0:
        return 0.0
    return reward / risk
