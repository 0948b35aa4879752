from dataclasses import dataclass, field
from types import TracebackType
from typing import NoReturn, Self


class OnceError(Exception): ...


class InvalidActionError(OnceError, TypeError):
    def __init__(self, name: str = 'action', reason: str = 'Value cannot be None or non-callable.'):
        super().__init__(f'{reason} (Parameter {name!r})')
        self.name = name


class DisposedError(OnceError, RuntimeError):
    def __init__(self, name: str):
        super().__init__(f'Cannot access a disposed object: {name}')
        self.name = name


class IncompleteError(OnceError, ValueError): ...


@dataclass(frozen=True)
class CapturedError:
    """
    Immutable record of a failure that was made terminal.

    Replaying raises the very same exception object, re-pinned to the
    traceback, cause and context it carried when it was captured, so whatever
    a replaying caller was handling never leaks to the next one.
    Records compare equal only when they wrap the same exception object.
    """

    kind: str
    message: str
    error: Exception = field(repr=False)
    traceback: TracebackType | None = field(default=None, repr=False, compare=False)
    cause: BaseException | None = field(default=None, repr=False, compare=False)
    context: BaseException | None = field(default=None, repr=False, compare=False)
    suppress_context: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def capture(cls, error: Exception) -> Self:
        return cls(
            kind=type(error).__qualname__,
            message=str(error),
            error=error,
            traceback=error.__traceback__,
            cause=error.__cause__,
            context=error.__context__,
            suppress_context=error.__suppress_context__,
        )

    def reraise(self) -> NoReturn:
        try:
            raise self.error.with_traceback(self.traceback)
        finally:
            # `raise` inside an except block chains the handled exception
            self.error.__cause__ = self.cause
            self.error.__context__ = self.context
            self.error.__suppress_context__ = self.suppress_context
