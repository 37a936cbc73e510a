import logging
from typing import Optional

from utils.events import EventBus, EventTypes

logger = logging.getLogger(__name__)


class DetectorFlag:
    """外部检测器 (最强大脑监测) 的活跃状态, 变化时广播"""

    def __init__(self, bus: EventBus, active: bool = False):
        self.bus = bus
        self._active = active

    @property
    def active(self) -> bool:
        return self._active

    def set_active(self, active: bool, source: Optional[str] = None) -> bool:
        """返回状态是否发生变化"""
        active = bool(active)
        if active == self._active:
            return False
        self._active = active
        logger.info(f"[DETECTOR] 最强大脑监测{'已启用' if active else '已停止'}")
        self.bus.publish(EventTypes.DETECTOR_STATE_CHANGED, {"active": active}, source=source or "DetectorFlag")
        return True
