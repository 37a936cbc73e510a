"""
轻量级事件总线 - 用于解耦引擎组件与展示组件之间的通信
所有回调都在事件循环线程内同步执行
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """事件数据结构"""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None


class EventBus:
    """同步事件总线, 订阅者自行决定如何响应"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}

    def subscribe(self, event_type: str, callback: Callable[[Event], None]):
        self._subscribers.setdefault(event_type, []).append(callback)
        logger.debug(f"[EVENT] 订阅事件: {event_type}")

    def unsubscribe(self, event_type: str, callback: Callable[[Event], None]):
        try:
            self._subscribers.get(event_type, []).remove(callback)
            logger.debug(f"[EVENT] 取消订阅: {event_type}")
        except ValueError:
            pass

    def publish(self, event_type: str, data: Dict[str, Any], source: Optional[str] = None) -> Event:
        """发布事件

        单个订阅者抛出的异常会被记录, 不影响其他订阅者
        """
        event = Event(type=event_type, data=data, source=source)

        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"[EVENT] 事件处理异常 {event_type}: {e}", exc_info=True)

        return event

    def get_subscriber_count(self, event_type: Optional[str] = None) -> int:
        if event_type:
            return len(self._subscribers.get(event_type, []))
        return sum(len(subs) for subs in self._subscribers.values())

    def clear_subscribers(self, event_type: Optional[str] = None):
        if event_type:
            self._subscribers.pop(event_type, None)
        else:
            self._subscribers.clear()


class EventTypes:
    """标准事件类型定义"""

    # 引擎事件
    ENGINE_STATE_CHANGED = "engine_state_changed"
    DETECTOR_STATE_CHANGED = "detector_state_changed"
    STRATEGY_CHANGED = "strategy_changed"

    # 交易事件
    SIGNAL_RECEIVED = "signal_received"
    POSITION_OPENED = "position_opened"
    POSITION_CLOSED = "position_closed"
    POSITIONS_REPRICED = "positions_repriced"
    ACCOUNT_UPDATED = "account_updated"

    # 展示事件
    HISTORY_APPENDED = "history_appended"
