# -*- coding: utf-8 -*-
"""
signal_intake.py

信号接入 - 推送通道和轮询通道都汇入同一个准入过滤器

- 推送通道: 队列按到达顺序逐个处理
- 轮询通道: 只在引擎启用且检测器活跃时运行, 不会叠加请求
- 价格刷新: 引擎启用期间按固定间隔刷新持仓
"""

from __future__ import annotations
import asyncio
import logging
from typing import List, Optional

from engine.admission import SignalAdmissionFilter
from engine.position_manager import PositionManager
from market.base import PriceSource, SignalSource
from models.enums import AdmissionResult
from models.trading_models import TradingSignal
from utils.events import Event, EventBus, EventTypes

logger = logging.getLogger(__name__)


class SignalIntake:

    def __init__(
        self,
        admission: SignalAdmissionFilter,
        position_manager: PositionManager,
        bus: EventBus,
        signal_source: Optional[SignalSource] = None,
        price_source: Optional[PriceSource] = None,
        symbols: Optional[List[str]] = None,
        analysis_types: Optional[List[str]] = None,
        poll_interval: float = 30.0,
        reprice_interval: float = 2.0,
    ):
        self.admission = admission
        self.position_manager = position_manager
        self.signal_source = signal_source
        self.price_source = price_source
        self.symbols = list(symbols or [])
        self.analysis_types = list(analysis_types or [])
        self.poll_interval = poll_interval
        self.reprice_interval = reprice_interval

        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._reprice_task: Optional[asyncio.Task] = None

        self._polling = False
        self._repricing = False
        self._reprice_armed = False

        self.poll_count = 0
        self.poll_failures = 0
        self.dropped_count = 0

        bus.subscribe(EventTypes.ENGINE_STATE_CHANGED, self._on_engine_state_changed)
        bus.subscribe(EventTypes.DETECTOR_STATE_CHANGED, self._on_detector_changed)

    # ------------------------------------------------------------------
    # 事件响应
    # ------------------------------------------------------------------

    def _on_engine_state_changed(self, event: Event):
        if event.data.get("enabled"):
            self.start()
        else:
            self.stop()

    def _on_detector_changed(self, event: Event):
        if not event.data.get("active"):
            self._stop_polling()

    @property
    def is_running(self) -> bool:
        return self._consumer_task is not None and not self._consumer_task.done()

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start(self):
        """需要在事件循环内调用"""
        if not self.is_running:
            self._consumer_task = asyncio.create_task(self._consume(), name="signal-consumer")

        if self.signal_source is not None and not self.is_polling and self.admission.is_listening():
            self._poll_task = asyncio.create_task(self._poll_loop(), name="signal-poller")

        if self.price_source is not None:
            self._reprice_armed = True
            if self._reprice_task is None or self._reprice_task.done():
                self._reprice_task = asyncio.create_task(self._reprice_loop(), name="price-refresher")

        logger.info("[INTAKE] 信号通道已启动")

    def stop(self):
        """立即停止信号投递; 进行中的价格刷新允许完成但不再继续"""
        if self._consumer_task is not None:
            self._consumer_task.cancel()
            self._consumer_task = None

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            self.dropped_count += dropped
            logger.debug(f"[INTAKE] 丢弃 {dropped} 个未处理的推送信号")

        self._stop_polling()

        self._reprice_armed = False
        if self._reprice_task is not None and not self._repricing:
            self._reprice_task.cancel()
            self._reprice_task = None

        logger.info("[INTAKE] 信号通道已停止")

    def _stop_polling(self):
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
            logger.debug("[POLL] 轮询已停止")

    # ------------------------------------------------------------------
    # 推送通道
    # ------------------------------------------------------------------

    def push(self, signal: TradingSignal) -> bool:
        """推送一个信号; 未在监听时静默丢弃"""
        if not self.admission.is_listening() or not self.is_running:
            self.dropped_count += 1
            logger.debug(f"[INTAKE] 未在监听，丢弃推送信号 {signal.symbol}")
            return False
        self._queue.put_nowait(signal)
        return True

    async def _consume(self):
        while True:
            signal = await self._queue.get()
            try:
                # 取消时让正在进行的开仓完成结算
                await asyncio.shield(self.admission.evaluate(signal))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[INTAKE] 处理推送信号异常 {signal.symbol}: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    async def join(self):
        """等待队列中的推送信号处理完毕"""
        await self._queue.join()

    # ------------------------------------------------------------------
    # 轮询通道
    # ------------------------------------------------------------------

    async def poll_once(self) -> List[AdmissionResult]:
        """执行一次轮询; 未在监听或上一次请求未返回时直接跳过"""
        if self._polling or self.signal_source is None or not self.admission.is_listening():
            return []

        self._polling = True
        self.poll_count += 1
        try:
            try:
                signals = await self.signal_source.fetch_signals(self.symbols, self.analysis_types)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.poll_failures += 1
                logger.debug(f"[POLL] 获取信号失败，跳过本轮: {e}")
                return []

            results = []
            for signal in signals:
                results.append(await asyncio.shield(self.admission.evaluate(signal)))
            return results
        finally:
            self._polling = False

    async def _poll_loop(self):
        while self.admission.is_listening():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[POLL] 轮询异常: {e}", exc_info=True)
            await asyncio.sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # 价格刷新
    # ------------------------------------------------------------------

    async def _reprice_loop(self):
        while self._reprice_armed:
            self._repricing = True
            try:
                self.position_manager.ledger.reset_daily_stats()
                await self.position_manager.refresh_prices(self.price_source)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[PRICE] 价格刷新异常: {e}", exc_info=True)
            finally:
                self._repricing = False

            if not self._reprice_armed:
                break
            await asyncio.sleep(self.reprice_interval)

    async def shutdown(self):
        self._reprice_armed = False
        tasks = [t for t in (self._consumer_task, self._poll_task, self._reprice_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._consumer_task = self._poll_task = self._reprice_task = None
