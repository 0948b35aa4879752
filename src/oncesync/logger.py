import logging
import sys
from typing import Protocol

from oncesync.once import OnceValue
from oncesync.settings import Settings
from oncesync.types import LogHandlerType


def _build_handler(kind: str, settings: Settings) -> logging.Handler | None:
    handler: logging.Handler
    match kind:
        case LogHandlerType.STDOUT:
            stream = {'stdout': sys.stdout, 'stderr': sys.stderr}.get(settings.log_console)
            if stream is None:
                raise ValueError(f'Invalid console log handler: {settings.log_console}')
            handler = logging.StreamHandler(stream)
        case LogHandlerType.FILE:
            try:
                handler = logging.FileHandler(settings.log_file)
            except OSError as err:
                raise RuntimeError(
                    f"Could not open log file '{err.filename}': {err.strerror}"
                ) from err
        case _:
            return None
    handler.setFormatter(settings.log_formatter)
    return handler


def initialize_logger(logger: logging.Logger, *, settings: Settings) -> logging.Logger:
    """
    Replaces the handlers of `logger` with the ones named in
    `settings.log_handlers`. A logger left without handlers gets a
    `NullHandler`, so records never reach the root logger's last resort.
    """
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(settings.log_level)

    for kind in sorted(settings.log_handlers):
        if handler := _build_handler(kind, settings):
            logger.addHandler(handler)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger


class InitializeLoggerProtocol(Protocol):
    def __call__(self, logger: logging.Logger, *, settings: Settings) -> logging.Logger: ...


# Process-wide default; a failed setup leaves it retryable
_logger_once: OnceValue[logging.Logger] = OnceValue()


def set_default_logger(
    logger: logging.Logger,
    *,
    settings: Settings,
    setup_func: InitializeLoggerProtocol | None = None,
) -> logging.Logger:
    if _logger_once.done:
        default = _logger_once.result
        default.info('Logger Already initialized')
        return default
    return _logger_once.execute(lambda: (setup_func or initialize_logger)(logger, settings=settings))


def get_default_logger() -> logging.Logger:
    return _logger_once.result
