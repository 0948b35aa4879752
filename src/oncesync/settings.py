import logging
from typing import Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from oncesync.types import (
    CallStyleType,
    LogConsoleType,
    LogHandlersType,
    LogLevelType,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        validate_default=False,
        extra='ignore',
        env_file=('.env', '.env.prod'),
        env_file_encoding='utf-8',
    )

    verbose: bool = False

    # Telemetry Settings
    service_name: str = 'oncesync'
    log_level: LogLevelType = logging.INFO
    log_handlers: set[LogHandlersType] = {'stdout'}
    log_console: LogConsoleType = 'stderr'
    log_file: str = 'oncesync.log'

    @property
    def log_formatter(self) -> logging.Formatter:
        fmt = '%(asctime)s | %(message)s'
        if self.verbose:
            fmt = '%(asctime)s %(levelname)s %(threadName)s %(lineno)d | %(message)s'
        elif logging.DEBUG == self.log_level:
            fmt = '%(asctime)s %(levelname)s | %(message)s'
        return logging.Formatter(fmt, '%Y-%m-%dT%H:%M:%S%z')

    # Stress Settings
    stress_callers: int = 1000  # Concurrent callers racing on one instance
    stress_workers: int = 32  # Thread pool size for blocking callers
    stress_style: CallStyleType = 'mixed'
    sticky_on_failure: bool = False

    @model_validator(mode='after')
    def sanity_options(self) -> Self:
        if self.stress_callers < 1:
            raise ValueError('At least one stress caller is required')
        if self.stress_workers < 1:
            raise ValueError('At least one stress worker thread is required')
        return self

    def __hash__(self) -> int:
        return id(self)
