from dataclasses import dataclass
from typing import List, Optional

@dataclass
class SystemConfig:
    """系统配置示例 - 也可以通过 AUTOTRADER_* 环境变量设置"""

    # Supabase配置 - 三项都填写后使用云端设置存储和交易记录
    SUPABASE_URL: str = "https://YOUR_PROJECT.supabase.co"   # AUTOTRADER_SUPABASE_URL
    SUPABASE_KEY: str = "YOUR_ANON_KEY_HERE"                 # AUTOTRADER_SUPABASE_KEY
    USER_ID: str = "YOUR_USER_ID_HERE"                       # AUTOTRADER_USER_ID

    # 信号推送通道 (留空则只使用轮询通道)
    SIGNAL_WS_URL: str = "wss://YOUR_SIGNAL_HOST/signals"    # AUTOTRADER_SIGNAL_WS_URL

    # 行情价格
    PRICE_API_URL: str = "https://api.binance.com/api/v3"   # AUTOTRADER_PRICE_API_URL
    QUOTE_ASSET: str = "USDT"

    # 未配置Supabase时的本地设置文件
    SETTINGS_FILE: str = "autotrader_settings.json"          # AUTOTRADER_SETTINGS_FILE

    # 监控币种
    SYMBOLS: Optional[List[str]] = None                             # AUTOTRADER_SYMBOLS=BTC,ETH

    # 网络配置
    HTTP_TIMEOUT: float = 10.0                               # AUTOTRADER_HTTP_TIMEOUT
    WS_PING_INTERVAL: float = 20.0
    MAX_CONNECTIONS: int = 8
    MAX_RECONNECTS: int = 10

    def __post_init__(self):
        if self.SYMBOLS is None:
            self.SYMBOLS = ["BTC", "ETH", "BNB", "XRP", "ADA", "SOL"]
