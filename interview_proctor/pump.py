"""
Signal Pump - Funnels concurrent signal producers into one engine

Face, audio and object producers run at different rates and publish
independently. The pump queues their signals in arrival order and a
single consumer task applies them to the engine one at a time.
"""

import asyncio
import logging
from typing import Optional

from .engine import ProctorEngine
from .signals import SIGNAL_TYPES

logger = logging.getLogger(__name__)


class SignalPump:
    """
    Single-consumer channel in front of a ProctorEngine.

    pause() stops accepting upstream signals; the session itself stays
    active until the engine is explicitly ended.
    """

    def __init__(self, engine: ProctorEngine, maxsize: Optional[int] = None):
        self.engine = engine
        self._queue: asyncio.Queue = asyncio.Queue(
            maxsize=maxsize if maxsize is not None else engine.settings.SIGNAL_QUEUE_SIZE
        )
        self._paused = False
        self._consumer: Optional[asyncio.Task] = None
        self.dropped = 0
        self.processed = 0

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def pause(self):
        """Stop accepting signals from producers."""
        self._paused = True
        logger.info(f"[PUMP] Paused signal intake for session {self.engine.id}")

    def resume(self):
        """Accept signals again."""
        self._paused = False
        logger.info(f"[PUMP] Resumed signal intake for session {self.engine.id}")

    def _accepting(self, signal) -> bool:
        if not isinstance(signal, SIGNAL_TYPES):
            raise TypeError(f"Unsupported signal type: {type(signal).__name__}")
        if self._paused or not self.engine.is_active:
            self.dropped += 1
            return False
        return True

    async def publish(self, signal) -> bool:
        """
        Queue a signal, waiting for room if the queue is full.

        Returns:
            False if the pump is paused or the session has ended
        """
        if not self._accepting(signal):
            return False
        await self._queue.put(signal)
        return True

    def publish_nowait(self, signal) -> bool:
        """
        Queue a signal without waiting; drops it when the queue is full.

        Returns:
            True if the signal was queued
        """
        if not self._accepting(signal):
            return False
        try:
            self._queue.put_nowait(signal)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"[PUMP] Queue full, dropped {type(signal).__name__} for session {self.engine.id}")
            return False
        return True

    async def run(self):
        """Consume queued signals until cancelled."""
        while True:
            signal = await self._queue.get()
            try:
                self.engine.submit(signal)
                self.processed += 1
            except Exception as e:
                logger.error(f"[PUMP] Failed to apply {type(signal).__name__}: {e}")
            finally:
                self._queue.task_done()

    def start(self) -> asyncio.Task:
        """Start the consumer task on the running loop."""
        if not self.running:
            self._consumer = asyncio.get_running_loop().create_task(self.run())
        return self._consumer

    async def drain(self):
        """Wait until every queued signal has been applied."""
        await self._queue.join()

    async def stop(self, drain: bool = True):
        """Stop the consumer, optionally after applying what is queued."""
        if self._consumer is None:
            return
        if drain:
            await self.drain()
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def __aenter__(self) -> "SignalPump":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
