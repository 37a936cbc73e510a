from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from models.enums import PositionSide, SignalAction, StrategyKind


@dataclass(slots=True, frozen=True)
class TradingSignal:
    symbol: str
    action: SignalAction
    confidence: float
    entry: float
    stop_loss: float
    take_profit: float
    reasoning: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def side(self) -> PositionSide:
        return PositionSide.LONG if self.action == SignalAction.BUY else PositionSide.SHORT


@dataclass(slots=True)
class Position:
    id: str
    symbol: str
    side: PositionSide
    entry_price: float
    current_price: float
    size: float
    confidence: float
    strategy: StrategyKind
    opened_at: datetime
    stop_loss: float
    take_profit: float
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0
    stale: bool = False

    @property
    def principal(self) -> float:
        return self.entry_price * self.size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "current_price": self.current_price,
            "size": self.size,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_percent": self.unrealized_pnl_percent,
            "confidence": self.confidence,
            "strategy": self.strategy.value,
            "opened_at": self.opened_at.isoformat(),
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "stale": self.stale,
        }


@dataclass(slots=True)
class VirtualAccount:
    balance: float
    total_pnl: float = 0.0
    daily_pnl: float = 0.0
    total_trades: int = 0
    closed_trades: int = 0
    win_rate: float = 0.0
    active_positions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balance": self.balance,
            "total_pnl": self.total_pnl,
            "daily_pnl": self.daily_pnl,
            "total_trades": self.total_trades,
            "closed_trades": self.closed_trades,
            "win_rate": self.win_rate,
            "active_positions": self.active_positions,
        }
