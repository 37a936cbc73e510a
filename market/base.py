from abc import ABC, abstractmethod
from typing import List

from models.trading_models import TradingSignal


class SignalSourceError(Exception):
    """信号源请求失败"""


class PriceSourceError(Exception):
    """价格源请求失败"""


class SignalSource(ABC):
    """外部信号源 (轮询通道)"""

    @abstractmethod
    async def fetch_signals(self, symbols: List[str], analysis_types: List[str]) -> List[TradingSignal]:
        """请求一次分析, 失败时抛出 SignalSourceError"""
        pass

    async def close(self):
        pass


class PriceSource(ABC):
    """行情价格源"""

    @abstractmethod
    async def get_price(self, symbol: str) -> float:
        """获取最新价格, 失败时抛出 PriceSourceError"""
        pass

    async def close(self):
        pass
