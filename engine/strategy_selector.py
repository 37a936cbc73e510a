# -*- coding: utf-8 -*-
"""
strategy_selector.py

策略选择 - 先暂存, 确认并持久化后才生效
"""

import logging
from typing import Union

from models.enums import StrategyKind
from settings.repository import SettingsRepository
from strategy.catalog import DEFAULT_STRATEGY, TradingStrategy, get_strategy
from utils.events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class StrategySelector:

    def __init__(self, repository: SettingsRepository, bus: EventBus, active: StrategyKind = DEFAULT_STRATEGY):
        self.repository = repository
        self.bus = bus
        self._active = get_strategy(active)
        self._staged = self._active

    @property
    def active(self) -> TradingStrategy:
        return self._active

    @property
    def staged(self) -> TradingStrategy:
        """界面上当前选中的策略"""
        return self._staged

    @property
    def has_pending_change(self) -> bool:
        return self._staged.kind != self._active.kind

    def restore(self, kind: Union[StrategyKind, str]):
        self._active = get_strategy(kind)
        self._staged = self._active

    def select_strategy(self, kind: Union[StrategyKind, str]) -> TradingStrategy:
        """暂存候选策略, 不影响准入判断"""
        self._staged = get_strategy(kind)
        return self._staged

    async def confirm_strategy(self) -> bool:
        """持久化成功后才切换; 失败时保留原策略并返回 False"""
        if not self.has_pending_change:
            return True

        candidate = self._staged
        if not await self.repository.update(trading_strategy=candidate.kind):
            logger.warning(f"[STRATEGY] 策略保存失败，仍使用{self._active.name}策略")
            return False

        previous = self._active
        self._active = candidate
        logger.info(f"[STRATEGY] 已切换到{candidate.name}策略 (最低胜率{candidate.min_confidence}%)")
        self.bus.publish(
            EventTypes.STRATEGY_CHANGED,
            {"previous": previous.kind.value, "active": candidate.kind.value},
            source="StrategySelector",
        )
        return True

    def cancel_strategy_change(self) -> TradingStrategy:
        self._staged = self._active
        return self._staged
