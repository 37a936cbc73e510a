from abc import ABC, abstractmethod

from models.enums import StrategyKind
from models.trading_models import Position, TradingSignal


class TradeRecorder(ABC):
    """虚拟交易记录 (只做记录, 失败不影响引擎)"""

    @abstractmethod
    async def record_open(self, position: Position, signal: TradingSignal, strategy: StrategyKind) -> bool:
        pass

    @abstractmethod
    async def record_close(self, position: Position, exit_price: float, pnl: float) -> bool:
        pass

    async def close(self):
        pass
