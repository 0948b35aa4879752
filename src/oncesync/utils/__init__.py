from ._lock import HybridLock

__all__ = [
    'HybridLock',
]


def __dir__() -> list[str]:
    return sorted(__all__)
