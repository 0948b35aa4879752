import logging
from typing import Annotated, Literal, cast

from pydantic import BeforeValidator


def validate_log_level(value: str | int) -> int:
    if isinstance(value, str):
        valid_str_levels = {'CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'}
        if value.upper() not in valid_str_levels:
            raise ValueError(f'Invalid log level: {value}. Must be one of {valid_str_levels}.')
        return cast(int, getattr(logging, value.upper()))
    else:
        valid_int_levels = {
            logging.CRITICAL,
            logging.ERROR,
            logging.WARNING,
            logging.INFO,
            logging.DEBUG,
        }
        if value not in valid_int_levels:
            raise ValueError(f'Invalid log level: {value}. Must be one of {valid_int_levels}.')
        return value


class LogHandlerType:
    NONE = 'none'
    STDOUT = 'stdout'
    FILE = 'file'


LogLevelType = Annotated[int, BeforeValidator(validate_log_level)]
LogHandlersType = Literal['none', 'stdout', 'file']
LogConsoleType = Literal['stdout', 'stderr']


# Stress harness Types
class CallStyle:
    BLOCKING = 'blocking'
    ASYNC = 'async'
    MIXED = 'mixed'


CallStyleType = Literal['blocking', 'async', 'mixed']
