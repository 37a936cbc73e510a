import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class SystemConfig:
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    USER_ID: str = ""
    SIGNAL_WS_URL: str = ""
    PRICE_API_URL: str = "https://api.binance.com/api/v3"
    QUOTE_ASSET: str = "USDT"
    SETTINGS_FILE: str = "autotrader_settings.json"
    SYMBOLS: Optional[List[str]] = None
    HTTP_TIMEOUT: float = 10.0
    WS_PING_INTERVAL: float = 20.0
    MAX_CONNECTIONS: int = 8
    MAX_RECONNECTS: int = 10

    def __post_init__(self):
        if self.SYMBOLS is None:
            self.SYMBOLS = ["BTC", "ETH", "BNB", "XRP", "ADA", "SOL"]

    @property
    def use_supabase(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY and self.USER_ID)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """从 AUTOTRADER_* 环境变量覆盖默认配置"""
        cfg = cls()
        cfg.SUPABASE_URL = os.getenv("AUTOTRADER_SUPABASE_URL", cfg.SUPABASE_URL).rstrip("/")
        cfg.SUPABASE_KEY = os.getenv("AUTOTRADER_SUPABASE_KEY", cfg.SUPABASE_KEY)
        cfg.USER_ID = os.getenv("AUTOTRADER_USER_ID", cfg.USER_ID)
        cfg.SIGNAL_WS_URL = os.getenv("AUTOTRADER_SIGNAL_WS_URL", cfg.SIGNAL_WS_URL)
        cfg.PRICE_API_URL = os.getenv("AUTOTRADER_PRICE_API_URL", cfg.PRICE_API_URL).rstrip("/")
        cfg.SETTINGS_FILE = os.getenv("AUTOTRADER_SETTINGS_FILE", cfg.SETTINGS_FILE)

        symbols = os.getenv("AUTOTRADER_SYMBOLS")
        if symbols:
            cfg.SYMBOLS = [s.strip().upper() for s in symbols.split(",") if s.strip()]

        timeout = os.getenv("AUTOTRADER_HTTP_TIMEOUT")
        if timeout:
            cfg.HTTP_TIMEOUT = float(timeout)
        return cfg
