# -*- coding: utf-8 -*-
"""
strategy/catalog.py

风险策略目录 - 每个策略只由最低胜率门槛定义
"""

from dataclasses import dataclass
from typing import Dict, List, Union

from models.enums import StrategyKind


@dataclass(frozen=True, slots=True)
class TradingStrategy:
    """风险策略 (启动时定义, 不可变)"""
    kind: StrategyKind
    name: str
    description: str
    min_confidence: int

    def admits(self, confidence: float) -> bool:
        """门槛包含等于"""
        return confidence >= self.min_confidence


CONSERVATIVE = TradingStrategy(
    kind=StrategyKind.CONSERVATIVE,
    name="稳健型",
    description="胜率大于85%才进行交易，追求稳定收益",
    min_confidence=85,
)

AGGRESSIVE = TradingStrategy(
    kind=StrategyKind.AGGRESSIVE,
    name="激进型",
    description="胜率达到70%就进行交易，追求更多机会",
    min_confidence=70,
)

TRADING_STRATEGIES: Dict[StrategyKind, TradingStrategy] = {
    CONSERVATIVE.kind: CONSERVATIVE,
    AGGRESSIVE.kind: AGGRESSIVE,
}

DEFAULT_STRATEGY = StrategyKind.CONSERVATIVE


def list_strategies() -> List[TradingStrategy]:
    return list(TRADING_STRATEGIES.values())


def get_strategy(kind: Union[StrategyKind, str]) -> TradingStrategy:
    """按类型获取策略, 未知类型抛出 ValueError"""
    return TRADING_STRATEGIES[StrategyKind(kind)]
