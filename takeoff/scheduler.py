"""
Debounced save timers on the asyncio event loop.

One timer per key (line identity). Scheduling again before the timer fires
replaces it, so a burst of edits produces a single write.
"""

import asyncio
import inspect
import logging
from typing import Callable, Dict, Optional

from .config import settings

logger = logging.getLogger(__name__)


class SaveScheduler:

    def __init__(self, delay: Optional[float] = None):
        self.delay = settings.SAVE_DEBOUNCE_SECONDS if delay is None else delay
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._callbacks: Dict[str, Callable] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self.errors: Dict[str, BaseException] = {}

    def schedule(self, key: str, callback: Callable):
        """(Re)start the quiet-period timer for key. Must be called with a running loop."""
        loop = asyncio.get_running_loop()
        self.cancel(key)
        self._callbacks[key] = callback
        self._timers[key] = loop.call_later(self.delay, self._fire, key)

    def pending(self, key: str) -> bool:
        return key in self._timers

    def cancel(self, key: str) -> bool:
        handle = self._timers.pop(key, None)
        self._callbacks.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def flush(self, key: str):
        """Cancel the timer for key and run its callback now. No-op if nothing is pending."""
        handle = self._timers.pop(key, None)
        callback = self._callbacks.pop(key, None)
        if handle is not None:
            handle.cancel()
        if callback is None:
            return None
        result = callback()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def wait(self, key: str):
        """Wait for a write already started by a fired timer."""
        task = self._tasks.get(key)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _fire(self, key: str):
        self._timers.pop(key, None)
        callback = self._callbacks.pop(key, None)
        if callback is None:
            return
        try:
            result = callback()
        except Exception as e:
            logger.error("Scheduled save for %s failed: %s", key, e)
            self.errors[key] = e
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks[key] = task
            task.add_done_callback(lambda t, key=key: self._done(key, t))

    def _done(self, key: str, task: asyncio.Task):
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Scheduled save for %s failed: %s", key, error)
            self.errors[key] = error
        else:
            self.errors.pop(key, None)
