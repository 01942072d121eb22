"""Console logging for solgraph components."""

import logging
from enum import IntEnum
from typing import Optional, Union

from rich.console import Console


class LogLevel(IntEnum):
    OFF = -1
    ERROR = 0
    INFO = 1
    DEBUG = 2

    @classmethod
    def coerce(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Accept LogLevel members, ints, or names like "ERROR" / "WARNING"."""
        if isinstance(level, cls):
            return level
        if isinstance(level, str):
            name = level.upper()
            if name == "WARNING":
                return cls.INFO
            return cls[name] if name in cls.__members__ else cls.INFO
        return cls(level)


_STYLES = {
    LogLevel.ERROR: "bold red",
    LogLevel.INFO: None,
    LogLevel.DEBUG: "dim",
}


class AgentLogger:
    """Level-filtered logger printing through a rich console.

    Messages are mirrored to the stdlib ``solgraph`` logger so that
    embedding applications can capture them with ordinary handlers.
    """

    def __init__(self, level: LogLevel = LogLevel.INFO, console: Optional[Console] = None):
        self.level = LogLevel.coerce(level)
        self.console = console or Console(stderr=True)
        self.logger = logging.getLogger("solgraph")

    def log(self, message, level: Union[LogLevel, str] = LogLevel.INFO, **kwargs) -> None:
        is_warning = isinstance(level, str) and level.upper() == "WARNING"
        level = LogLevel.coerce(level)
        getattr(self.logger, "warning" if is_warning else
                {LogLevel.ERROR: 'error', LogLevel.DEBUG: 'debug'}.get(level, 'info'))(message)
        if level <= self.level:
            style = "yellow" if is_warning else _STYLES.get(level)
            self.console.print(message, style=style, highlight=False, markup=False, **kwargs)

    def log_error(self, message: str) -> None:
        self.log(message, level=LogLevel.ERROR)
