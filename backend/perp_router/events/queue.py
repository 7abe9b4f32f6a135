"""
Trade Event Queue

Fire-and-forget delivery of post-trade side effects (reputation recording,
validation requests). Publishing never blocks the trade path; a background
worker runs the subscribed handlers with bounded retries.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None]]


class TradeEventQueue:
    """Bounded in-process event queue with retrying handlers"""

    def __init__(
        self,
        maxsize: int = 1000,
        max_attempts: int = 3,
        retry_backoff_seconds: float = 0.5,
    ):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._handlers: List[EventHandler] = []
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self.dropped = 0

    def subscribe(self, handler: EventHandler):
        self._handlers.append(handler)

    def publish(self, event: Any) -> bool:
        """
        Enqueue an event without waiting.

        Returns:
            False if the queue was full and the event was dropped
        """
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Event queue full, dropping {type(event).__name__} ({self.dropped} dropped so far)")
            return False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self):
        """Start the background worker"""
        if self.running:
            logger.warning("Trade event queue already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._worker_loop())
        logger.info(f"📨 Trade event queue started ({len(self._handlers)} handlers)")

    async def stop(self, drain: bool = True):
        """Stop the worker, optionally delivering what is still queued"""
        if not self.running:
            return

        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        if drain:
            await self.drain()

        logger.info("Trade event queue stopped")

    async def drain(self) -> int:
        """
        Deliver every queued event inline.

        Returns:
            Number of events processed
        """
        processed = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return processed
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()
            processed += 1

    async def _worker_loop(self):
        """Main delivery loop"""
        while self.running:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            except Exception as e:
                logger.error(f"Error dispatching {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: Any):
        for handler in self._handlers:
            await self._run_handler(handler, event)

    async def _run_handler(self, handler: EventHandler, event: Any):
        name = getattr(handler, "__qualname__", repr(handler))
        for attempt in range(1, self.max_attempts + 1):
            try:
                await handler(event)
                return
            except Exception as e:
                if attempt >= self.max_attempts:
                    logger.warning(
                        f"Side effect {name} failed after {attempt} attempts for "
                        f"{type(event).__name__}: {e}"
                    )
                    return
                logger.debug(f"Side effect {name} attempt {attempt} failed: {e}, retrying")
                await asyncio.sleep(self.retry_backoff_seconds * attempt)
