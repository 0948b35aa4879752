from .__about__ import __version__ as VERSION
from .decorators import once
from .errors import (
    CapturedError,
    DisposedError,
    IncompleteError,
    InvalidActionError,
    OnceError,
)
from .once import Once, OnceValue
from .utils import HybridLock

__version__ = VERSION

__all__ = [
    # once module
    'Once',
    'OnceValue',
    # decorators module
    'once',
    # errors module
    'OnceError',
    'DisposedError',
    'InvalidActionError',
    'IncompleteError',
    'CapturedError',
    # utils subpackage
    'HybridLock',
]


def __dir__() -> list[str]:
    return sorted(__all__)
