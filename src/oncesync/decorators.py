import functools
import inspect
from collections.abc import Callable
from typing import Any, TypeVar, cast

from oncesync.once import OnceValue

F = TypeVar('F', bound=Callable[..., Any])


def once(*, sticky_on_failure: bool = False) -> Callable[[F], F]:
    """
    Turns a function into one that runs its body at most one successful time.

    The arguments of the call that wins are used; every later call ignores its
    own arguments and gets the cached value. Coroutine functions are awaited
    through `OnceValue.execute_async`, plain functions through `execute`. The
    backing `OnceValue` is exposed as `wrapper.once`.

    Args:
        sticky_on_failure (bool): Cache the first exception and re-raise it on
                                  every later call instead of retrying.
    """

    def decorator(func: F) -> F:
        guard: OnceValue[Any] = OnceValue()

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                return await guard.execute_async(
                    functools.partial(func, *args, **kwargs), sticky_on_failure
                )

            wrapper: Callable[..., Any] = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                return guard.execute(functools.partial(func, *args, **kwargs), sticky_on_failure)

            wrapper = sync_wrapper

        setattr(wrapper, 'once', guard)
        return cast(F, wrapper)

    return decorator
