import inspect
import threading
from collections.abc import Awaitable, Callable
from logging import Logger
from types import TracebackType
from typing import Any, Generic, Self, TypeVar, cast

from typing_extensions import override

from oncesync.errors import CapturedError, DisposedError, IncompleteError, InvalidActionError
from oncesync.utils import HybridLock

T = TypeVar('T')

_AWAITABLE_ACTION = 'Awaitable actions require execute_async.'


class _OnceCore(Generic[T]):
    """
    State machine shared by `Once` and `OnceValue`.

    `NotStarted -> Running -> Completed (success | sticky failure)`. A failure
    that is not sticky drops back to `NotStarted`. `Disposed` is terminal and
    reachable from any state.
    """

    def __init__(self, logger: Logger | None = None):
        self.logger = logger

        # Written under `_lock` only. `_result` and `_error` are always
        # assigned before `_done` flips, so a lock-free read of `_done`
        # never observes a partial outcome.
        self._lock = HybridLock(owner=self.__class__.__name__)
        self._done = False
        self._result: T | None = None
        self._error: CapturedError | None = None

        self._disposed = False
        self._dispose_lock = threading.Lock()

    def __repr__(self) -> str:
        if self._disposed:
            state = 'disposed'
        elif self._error is not None:
            state = f'failed: {self._error.kind}'
        else:
            state = 'done' if self._done else 'pending'
        return f'<{self.__class__.__name__} {state}>'

    @property
    def done(self) -> bool:
        return self._done

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def error(self) -> CapturedError | None:
        return self._error

    def dispose(self) -> None:
        with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True
            self._lock.close()
        if self.logger:
            self.logger.debug(f'{self.__class__.__name__}: Disposed')

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _check_disposed(self) -> None:
        if self._disposed:
            raise DisposedError(self.__class__.__name__)

    def _validate(self, action: Callable[[], Any] | None) -> Callable[[], Any]:
        # Disposal takes precedence over argument validation
        self._check_disposed()
        if action is None or not callable(action):
            raise InvalidActionError('action')
        return action

    def _replay(self) -> T:
        if self._error is not None:
            self._error.reraise()
        return cast(T, self._result)

    def _complete(self, result: T) -> T:
        self._result = result
        self._done = True
        if self.logger:
            self.logger.debug(f'{self.__class__.__name__}: Action completed')
        return result

    def _fail(self, err: Exception, sticky_on_failure: bool) -> None:
        name = self.__class__.__name__
        if sticky_on_failure:
            self._error = CapturedError.capture(err)
            self._done = True
            if self.logger:
                self.logger.warning(f'{name}: Action failed permanently: {err!r}')
        elif self.logger:
            self.logger.warning(f'{name}: Action failed, next caller will retry: {err!r}')

    def _run(self, action: Callable[[], Any] | None, sticky_on_failure: bool) -> T:
        func = self._validate(action)
        if inspect.iscoroutinefunction(func):
            raise InvalidActionError('action', _AWAITABLE_ACTION)
        # Fast path, no locking once completed
        if self._done:
            return self._replay()

        with self._lock:
            self._check_disposed()
            if self._done:
                return self._replay()
            try:
                result = func()
            except Exception as err:
                self._fail(err, sticky_on_failure)
                raise
            if inspect.isawaitable(result):
                # Never started, so the instance stays retryable
                if inspect.iscoroutine(result):
                    result.close()
                raise InvalidActionError('action', _AWAITABLE_ACTION)
            return self._complete(result)

    async def _run_async(
        self, action: Callable[[], Awaitable[Any] | Any] | None, sticky_on_failure: bool
    ) -> T:
        func = self._validate(action)
        if self._done:
            return self._replay()

        async with self._lock:
            self._check_disposed()
            if self._done:
                return self._replay()
            try:
                result = func()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as err:
                self._fail(err, sticky_on_failure)
                raise
            return self._complete(result)


class Once(_OnceCore[None]):
    """
    Runs a side-effecting action at most one successful time.

    Any number of threads (`execute`) and asyncio tasks (`execute_async`) may
    race on the same instance; exactly one of them runs the action, the rest
    wait for it and replay its outcome.

    Args:
        logger (Logger | None): Optional logger for completion, failure and
                                disposal events. Nothing is logged without it.
    """

    def execute(self, action: Callable[[], Any] | None, sticky_on_failure: bool = False) -> None:
        """
        Runs `action` unless a previous call already completed.

        Args:
            action: Callable to run.
            sticky_on_failure (bool): If True, an exception raised by `action`
                                      is cached and re-raised to every later
                                      caller instead of allowing a retry.

        Raises:
            DisposedError: The instance was disposed.
            InvalidActionError: `action` is None or not callable.
        """
        self._run(action, sticky_on_failure)

    async def execute_async(
        self, action: Callable[[], Awaitable[Any] | Any] | None, sticky_on_failure: bool = False
    ) -> None:
        """
        Suspending counterpart of `execute`. Awaits the value returned by
        `action` when it is awaitable.
        """
        await self._run_async(action, sticky_on_failure)

    @override
    def _complete(self, result: None) -> None:
        # Side-effect variant never keeps what the action returned
        super()._complete(None)


class OnceValue(_OnceCore[T]):
    """
    Value-returning variant of `Once`.

    The first successful action's value is cached and returned to every
    caller from then on; later actions are never invoked.
    """

    @property
    def result(self) -> T:
        if not self._done:
            raise IncompleteError('Action has not completed yet')
        return self._replay()

    def execute(self, action: Callable[[], T] | None, sticky_on_failure: bool = False) -> T:
        return self._run(action, sticky_on_failure)

    async def execute_async(
        self, action: Callable[[], Awaitable[T] | T] | None, sticky_on_failure: bool = False
    ) -> T:
        return await self._run_async(action, sticky_on_failure)
