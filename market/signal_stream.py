# -*- coding: utf-8 -*-
"""
signal_stream.py - WebSocket 信号推送通道

收到的每条消息转换为 TradingSignal 后交给回调 (通常是 SignalIntake.push)
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Union

import orjson
import websockets

from config.system_config import SystemConfig
from models.trading_models import TradingSignal
from utils.signal_converter import convert_payloads

logger = logging.getLogger(__name__)


class SignalStream:
    """信号推送订阅, 断线自动重连"""

    def __init__(self, config: SystemConfig, on_signal: Callable[[TradingSignal], None]):
        self.config = config
        self.on_signal = on_signal
        self.message_count = 0
        self.signal_count = 0
        self.reconnect_count = 0
        self._task: Optional[asyncio.Task] = None

    def _connect_kwargs(self) -> Dict:
        headers = {}
        if self.config.SUPABASE_KEY:
            headers["apikey"] = self.config.SUPABASE_KEY
        return {
            "uri": self.config.SIGNAL_WS_URL,
            "additional_headers": headers,
            "ping_interval": self.config.WS_PING_INTERVAL,
            "close_timeout": 5.0,
            "max_size": 2 ** 20,
        }

    def handle_message(self, message: Union[str, bytes]) -> List[TradingSignal]:
        """解析一条推送消息并逐个交给回调"""
        self.message_count += 1
        try:
            data = orjson.loads(message)
        except orjson.JSONDecodeError as e:
            logger.debug(f"[STREAM] JSON解析失败: {e}")
            return []

        signals = convert_payloads(data)
        for signal in signals:
            self.signal_count += 1
            try:
                self.on_signal(signal)
            except Exception as e:
                logger.error(f"[STREAM] 信号回调异常 {signal.symbol}: {e}", exc_info=True)
        return signals

    async def run(self) -> None:
        if not self.config.SIGNAL_WS_URL:
            logger.info("[STREAM] 未配置推送地址，只使用轮询通道")
            return

        backoff = 1.0

        while True:
            try:
                async with websockets.connect(**self._connect_kwargs()) as websocket:
                    logger.info(f"[STREAM] ✓ 已连接 {self.config.SIGNAL_WS_URL}")
                    self.reconnect_count = 0
                    backoff = 1.0

                    async for message in websocket:
                        self.handle_message(message)

                logger.info("[STREAM] 连接已关闭")

            except asyncio.CancelledError:
                logger.info("[STREAM] 推送任务被取消")
                raise

            except websockets.exceptions.InvalidURI as e:
                logger.error(f"[STREAM] ✗ WebSocket URI无效: {e}")
                return

            except websockets.exceptions.ConnectionClosed as e:
                logger.warning(f"[STREAM] 连接断开: {e}")

            except (websockets.exceptions.InvalidHandshake, OSError) as e:
                logger.warning(f"[STREAM] ✗ 连接失败: {type(e).__name__}: {e}")

            except Exception as e:
                logger.error(f"[STREAM] ✗ WebSocket连接异常: {type(e).__name__}: {e}", exc_info=True)

            self.reconnect_count += 1
            if self.reconnect_count > self.config.MAX_RECONNECTS:
                logger.error("[STREAM] ✗ 达到最大重连次数，停止尝试")
                return

            logger.info(f"[STREAM] 第{self.reconnect_count}次重连，等待 {backoff:.1f} 秒...")
            await asyncio.sleep(backoff)
            backoff = min(backoff * 1.2, 30)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="signal-stream")
        return self._task

    async def stop(self):
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def get_connection_stats(self) -> Dict:
        return {
            'message_count': self.message_count,
            'signal_count': self.signal_count,
            'reconnect_count': self.reconnect_count,
            'connected_task': self._task is not None and not self._task.done(),
        }
