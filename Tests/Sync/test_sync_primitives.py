# Tests/Sync/test_sync_primitives.py
# Debouncer, Subscription and error classification
import asyncio

import pytest

from quizdeck.Constants import MSG_BLOCKED, MSG_NOT_SIGNED_IN
from quizdeck.Sync.exceptions import (
    NotAuthenticatedError,
    PermissionDeniedError,
    RemoteStoreError,
    SyncBlockedError,
    SyncConnectionError,
    SyncError,
    classify_sync_error,
)
from quizdeck.Sync.scheduling import Debouncer
from quizdeck.Sync.subscription import Subscription


class TestDebouncer:
    async def test_bursts_coalesce_into_one_call(self):
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(0.05)
        for _ in range(5):
            debouncer.schedule(callback)
            await asyncio.sleep(0.01)

        assert debouncer.pending
        await asyncio.sleep(0.15)
        assert calls == [1]
        assert not debouncer.pending

    async def test_cancel_prevents_call(self):
        called = asyncio.Event()

        async def callback():
            called.set()

        debouncer = Debouncer(0.02)
        debouncer.schedule(callback)
        debouncer.cancel()
        await asyncio.sleep(0.06)
        assert not called.is_set()

    async def test_callback_errors_are_logged_not_raised(self):
        async def callback():
            raise RuntimeError("boom")

        debouncer = Debouncer(0.01)
        debouncer.schedule(callback)
        await asyncio.sleep(0.05)
        assert not debouncer.pending

    async def test_shutdown_cancels_running_callback(self):
        started = asyncio.Event()
        finished = []

        async def callback():
            started.set()
            await asyncio.sleep(1)
            finished.append(1)

        debouncer = Debouncer(0)
        debouncer.schedule(callback)
        await asyncio.wait_for(started.wait(), 1)
        await debouncer.shutdown()
        assert finished == []


class TestSubscription:
    async def test_unsubscribe_before_iteration_drops_pending(self):
        sub = Subscription("test")
        sub.push(1)
        sub.push(2)
        sub.unsubscribe()

        received = [snapshot async for snapshot in sub]
        assert received == []

    async def test_iteration_ends_on_unsubscribe(self):
        sub = Subscription("test")
        received = []

        async def consume():
            async for snapshot in sub:
                received.append(snapshot)

        task = asyncio.create_task(consume())
        sub.push("a")
        sub.push("b")
        await asyncio.sleep(0.01)
        sub.unsubscribe()
        await asyncio.wait_for(task, 1)
        assert received == ["a", "b"]

    async def test_failure_is_raised_and_closes_stream(self):
        detached = []
        sub = Subscription("test", on_unsubscribe=lambda: detached.append(True))
        sub.push("first")
        sub.fail(PermissionDeniedError("denied"))

        assert await sub.__anext__() == "first"
        with pytest.raises(PermissionDeniedError):
            await sub.__anext__()
        assert sub.closed
        assert detached == [True]

    def test_unsubscribe_is_idempotent(self, mocker):
        on_unsubscribe = mocker.Mock()
        sub = Subscription("test", on_unsubscribe=on_unsubscribe)
        sub.unsubscribe()
        sub.unsubscribe()
        on_unsubscribe.assert_called_once()

    def test_push_after_close_is_dropped(self):
        sub = Subscription("test")
        sub.unsubscribe()
        sub.push("late")
        assert sub.closed


class TestClassifySyncError:
    def test_sync_errors_pass_through(self):
        error = PermissionDeniedError("nope")
        assert classify_sync_error(error) is error

    def test_blocked_by_client(self):
        error = classify_sync_error(Exception("net::ERR_BLOCKED_BY_CLIENT"))
        assert isinstance(error, SyncBlockedError)
        assert isinstance(error, SyncConnectionError)
        assert error.user_message == MSG_BLOCKED
        assert "ad blocker" in error.user_message

    def test_permission_denied_by_code(self):
        exc = Exception("Missing or insufficient permissions.")
        exc.code = "permission-denied"
        assert isinstance(classify_sync_error(exc), PermissionDeniedError)

    def test_unauthenticated(self):
        error = classify_sync_error(Exception("UNAUTHENTICATED: token expired"))
        assert isinstance(error, NotAuthenticatedError)

    def test_transport_errors(self):
        assert isinstance(classify_sync_error(ConnectionResetError("reset")), SyncConnectionError)
        assert isinstance(classify_sync_error(TimeoutError()), SyncConnectionError)

    def test_everything_else_is_generic(self):
        error = classify_sync_error(ValueError("weird"))
        assert type(error) is RemoteStoreError
        assert isinstance(error, SyncError)
        assert error.user_message == "Sync failed: weird"

    def test_not_signed_in_message(self):
        assert NotAuthenticatedError().user_message == MSG_NOT_SIGNED_IN
