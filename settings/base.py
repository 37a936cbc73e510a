# -*- coding: utf-8 -*-
"""
settings/base.py

用户设置存储接口 - 引擎状态在重新加载时以持久化设置为准
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List

from models.enums import StrategyKind


@dataclass
class UserSettings:
    super_brain_monitoring: bool = False
    auto_trading_enabled: bool = False
    trading_strategy: StrategyKind = StrategyKind.CONSERVATIVE
    virtual_balance: float = 1000.0
    max_positions: int = 5
    risk_per_trade: float = 2.0
    monitoring_symbols: List[str] = field(default_factory=lambda: [
        'BTC', 'ETH', 'BNB', 'XRP', 'ADA', 'SOL',
    ])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        """忽略未知字段 (如数据库的 id/user_id/created_at)"""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v is not None}
        settings = cls(**values)
        settings.trading_strategy = StrategyKind(settings.trading_strategy)
        settings.virtual_balance = float(settings.virtual_balance)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["trading_strategy"] = StrategyKind(self.trading_strategy).value
        return data


def encode_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """转换为可写入存储的原始值"""
    return {k: (v.value if isinstance(v, StrategyKind) else v) for k, v in updates.items()}


class SettingsStore(ABC):
    """外部设置存储"""

    @abstractmethod
    async def load(self) -> UserSettings:
        pass

    @abstractmethod
    async def save(self, updates: Dict[str, Any]) -> bool:
        """部分更新, 返回是否写入成功"""
        pass

    async def close(self):
        pass
