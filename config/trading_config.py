from dataclasses import dataclass, field
from typing import List

@dataclass
class TradingConfig:
    DEFAULT_BALANCE: float = 1000.0
    MIN_BALANCE: float = 1000.0
    RISK_PERCENTAGE: float = 2.0
    POLL_INTERVAL_SECONDS: float = 30.0
    REPRICE_INTERVAL_SECONDS: float = 2.0
    MAX_HISTORY_ITEMS: int = 20
    ANALYSIS_TYPES: List[str] = field(default_factory=lambda: [
        'price', 'technical', 'news', 'sentiment', 'volume', 'macro',
    ])

    @property
    def risk_fraction(self) -> float:
        return self.RISK_PERCENTAGE / 100.0
