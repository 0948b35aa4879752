import asyncio
import threading
from collections import deque
from types import TracebackType
from typing import Protocol

from oncesync.errors import DisposedError


class _Waiter(Protocol):
    granted: bool

    def wake(self) -> bool: ...


class _ThreadWaiter:
    def __init__(self) -> None:
        self.granted = False
        self.event = threading.Event()

    def wake(self) -> bool:
        self.event.set()
        return True


class _TaskWaiter:
    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.granted = False
        self.loop = loop
        self.future: asyncio.Future[None] = loop.create_future()

    def _resolve(self) -> None:
        # The task may have been cancelled after ownership was handed over
        if not self.future.done():
            self.future.set_result(None)

    def wake(self) -> bool:
        try:
            self.loop.call_soon_threadsafe(self._resolve)
        except RuntimeError:
            # Event loop is closed, nobody is left to take ownership
            return False
        return True


class HybridLock:
    """
    Binary lock shared by threads and asyncio tasks.

    Threads block in `acquire`, tasks suspend in `acquire_async`; both queue on
    the same FIFO list of waiters. On release, ownership is handed directly to
    the oldest waiter, whichever style or event loop it belongs to, so the two
    call styles can be mixed freely on one instance.

    A thread must never call `acquire` from an event loop while a task of that
    loop holds the lock: the loop would block and never release it.
    """

    def __init__(self, owner: str | None = None) -> None:
        self._owner = owner or self.__class__.__name__
        self._mutex = threading.Lock()
        self._locked = False
        self._closed = False
        self._waiters: deque[_Waiter] = deque()

    def __repr__(self) -> str:
        state = 'locked' if self._locked else 'unlocked'
        return f'<{self.__class__.__name__} {state}, waiters={len(self._waiters)}>'

    def locked(self) -> bool:
        return self._locked

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        # Queued waiters still get ownership in turn; only new acquisitions fail
        with self._mutex:
            self._closed = True

    def _check_closed(self) -> None:
        if self._closed:
            raise DisposedError(self._owner)

    def acquire(self) -> None:
        with self._mutex:
            self._check_closed()
            if not self._locked:
                self._locked = True
                return
            waiter = _ThreadWaiter()
            self._waiters.append(waiter)
        try:
            waiter.event.wait()
        except BaseException:
            self._abandon(waiter)
            raise

    async def acquire_async(self) -> None:
        with self._mutex:
            self._check_closed()
            if not self._locked:
                self._locked = True
                return
            waiter = _TaskWaiter(asyncio.get_running_loop())
            self._waiters.append(waiter)
        try:
            await waiter.future
        except BaseException:
            self._abandon(waiter)
            raise

    def release(self) -> None:
        with self._mutex:
            if not self._locked:
                raise RuntimeError('Lock is not acquired')
            while self._waiters:
                waiter = self._waiters.popleft()
                waiter.granted = True
                if waiter.wake():
                    return
                waiter.granted = False
            self._locked = False

    def _abandon(self, waiter: _Waiter) -> None:
        with self._mutex:
            if not waiter.granted:
                self._waiters.remove(waiter)
                return
        # Ownership was already handed over, pass it on
        self.release()

    def __enter__(self) -> 'HybridLock':
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    async def __aenter__(self) -> 'HybridLock':
        await self.acquire_async()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
