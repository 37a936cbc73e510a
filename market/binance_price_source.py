# -*- coding: utf-8 -*-
"""
binance_price_source.py - Binance 最新成交价
"""

from typing import Optional

import httpx
import orjson

from config.system_config import SystemConfig
from market.base import PriceSource, PriceSourceError


class BinancePriceSource(PriceSource):

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                base_url=self.config.PRICE_API_URL,
                timeout=httpx.Timeout(self.config.HTTP_TIMEOUT),
                limits=httpx.Limits(max_connections=self.config.MAX_CONNECTIONS),
            )
        return self.http_client

    def market_symbol(self, symbol: str) -> str:
        symbol = symbol.upper()
        if symbol.endswith(self.config.QUOTE_ASSET):
            return symbol
        return f"{symbol}{self.config.QUOTE_ASSET}"

    async def get_price(self, symbol: str) -> float:
        client = self._ensure_client()
        try:
            response = await client.get("/ticker/price", params={"symbol": self.market_symbol(symbol)})
        except httpx.HTTPError as e:
            raise PriceSourceError(f"{symbol} 价格请求异常: {e}") from e

        if response.status_code != 200:
            raise PriceSourceError(f"{symbol} 价格请求失败: HTTP {response.status_code}")

        try:
            price = float(orjson.loads(response.content)["price"])
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PriceSourceError(f"{symbol} 价格解析失败: {e}") from e

        if price <= 0:
            raise PriceSourceError(f"{symbol} 价格无效: {price}")
        return price

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
