# scheduling.py
# Description: Cancellable delayed task used to debounce pushes
#
# Imports
import asyncio
from typing import Awaitable, Callable, Optional
#
# 3rd-Party Imports
from loguru import logger
#
########################################################################################################################
#
# Functions:


class Debouncer:
    """
    Runs a coroutine once a quiet period has passed since the last `schedule()`.

    Each `schedule()` cancels the pending timer and starts a new one, so at most
    one callback is ever pending. Once the delay elapses the timer detaches
    itself before running the callback; a later `schedule()` starts a fresh
    timer instead of cancelling work that is already in flight.
    """

    def __init__(self, delay: float, name: str = "debounce"):
        self.delay = delay
        self.name = name
        self._timer: Optional[asyncio.Task] = None
        self._running: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def schedule(self, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later(callback), name=self.name)

    def cancel(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _fire_later(self, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.delay)
        # Past this point the timer is no longer cancellable by schedule()/cancel()
        self._timer = None
        self._running = asyncio.current_task()
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"{self.name}: debounced callback failed: {e}")
        finally:
            self._running = None

    async def shutdown(self) -> None:
        """Cancels the pending timer and any callback that is still running."""
        self.cancel()
        running, self._running = self._running, None
        if running is not None and running is not asyncio.current_task() and not running.done():
            running.cancel()
            try:
                await running
            except asyncio.CancelledError:
                pass

#
# End of scheduling.py
########################################################################################################################
