"""Minimal levelled logger with an optional stderr mirror set from the environment."""

from __future__ import annotations

import enum
import os
import re
import sys
from typing import Callable, Optional, Tuple

STDERR_ENV = "log2stderr"
_LINE_MAX = 1022

_NUMBER = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


class LogLevel(enum.IntEnum):
    ERROR = 0
    WARNING = 1
    INFO = 2
    VERBOSE = 3
    DEBUG = 4


LoggerFunc = Callable[[str], None]


def _default_logger(message: str) -> None:
    sys.stdout.write(message)


_level: int = LogLevel.DEBUG
_logger: LoggerFunc = _default_logger


def parse_stderr_level(value: Optional[str]) -> int:
    """Interpret the stderr level setting; -1 means stderr output is off."""
    if not value:
        return -1
    for level in LogLevel:
        if value == level.name:
            return int(level)
    match = _NUMBER.match(value)
    if match is None:
        return int(LogLevel.DEBUG)
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        number = int(digits, 16)
    elif digits.startswith("0"):
        number = int(digits, 8)
    else:
        number = int(digits)
    if sign == "-" and number != 0:
        return int(LogLevel.DEBUG)
    return min(number, int(LogLevel.DEBUG))


def set_logger(level: int, func: Optional[LoggerFunc] = None) -> Tuple[int, LoggerFunc]:
    """Set the level and, if given, the output function; return the previous pair."""
    global _level, _logger
    previous = (_level, _logger)
    _level = min(int(level), int(LogLevel.DEBUG))
    if func is not None:
        _logger = func
    return previous


def log(level: int, message: str) -> None:
    """Emit ``message`` followed by a newline if ``level`` passes either threshold."""
    stderr_level = parse_stderr_level(os.environ.get(STDERR_ENV))
    to_stderr = stderr_level >= 0 and level <= stderr_level
    to_logger = level <= _level
    if not (to_stderr or to_logger):
        return
    line = (message + "\n")[:_LINE_MAX]
    if to_stderr:
        sys.stderr.write(line)
    if to_logger:
        _logger(line)