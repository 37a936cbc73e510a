from typing import Any, Dict, Optional

from settings.base import SettingsStore, UserSettings, encode_updates


class InMemorySettingsStore(SettingsStore):
    """进程内设置存储"""

    def __init__(self, initial: Optional[UserSettings] = None):
        self._data: Dict[str, Any] = (initial or UserSettings()).to_dict()
        self.save_count = 0

    async def load(self) -> UserSettings:
        return UserSettings.from_dict(self._data)

    async def save(self, updates: Dict[str, Any]) -> bool:
        self._data.update(encode_updates(updates))
        self.save_count += 1
        return True

    @property
    def raw(self) -> Dict[str, Any]:
        return dict(self._data)
