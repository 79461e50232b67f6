# subscription.py
# Description: Push-based live subscription delivered as an async stream of snapshots
#
# Imports
import asyncio
from typing import Any, Callable, Generic, Optional, TypeVar
#
# 3rd-Party Imports
from loguru import logger
#
########################################################################################################################
#
# Functions:

T = TypeVar("T")

_CLOSED = object()


class _Failure:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException):
        self.exc = exc


class Subscription(Generic[T]):
    """
    A cancellable live subscription.

    The store side calls `push()` (or `fail()`) for every server-side change;
    the consumer iterates with `async for snapshot in subscription`. Iteration
    ends once `unsubscribe()` is called. A failure pushed by the store is
    raised from the iterator and ends the stream. Stores that deliver
    callbacks on a foreign thread must hop onto the loop with
    `loop.call_soon_threadsafe(subscription.push, snapshot)`.
    """

    def __init__(self, description: str, on_unsubscribe: Optional[Callable[[], Any]] = None):
        self.description = description
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_unsubscribe = on_unsubscribe
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot: T) -> None:
        if not self._closed:
            self._queue.put_nowait(snapshot)

    def fail(self, exc: BaseException) -> None:
        if not self._closed:
            self._queue.put_nowait(_Failure(exc))

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_unsubscribe is not None:
            try:
                self._on_unsubscribe()
            except Exception as e:
                logger.warning(f"Error while detaching subscription '{self.description}': {e}")

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self.unsubscribe()
            raise item.exc
        if self._closed:
            raise StopAsyncIteration
        return item

#
# End of subscription.py
########################################################################################################################
