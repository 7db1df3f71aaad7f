"""
Helmsman logging boundary: log records and the default rich sink.

Overview
- LogKind: INFO (return values, notices), WARNING, ERROR (faults) and CLEAR (a
  request to wipe the output, emitted by the clear built-in).
- Log: one immutable record {time, message, kind, exception}. The console keeps
  every record in Console.logs and hands it to each subscribed sink.
- RichSink: default sink printing records through a rich Console.

Sinks
- A sink is any callable(log). Tests typically subscribe list.append.
- RichSink honours the colorful/fancy flags:
  • colorful=False prints plain text (no styles).
  • fancy=True wraps each record in a panel titled with its kind; error records
    carrying a CommandException print the fault's own panel (code, title, hint).
- Palette keys (override them through a __styles__ mapping in __main__):
  log-time, log-info, log-warning, log-error, panel-title.
"""
from collections import defaultdict
from datetime import datetime
from enum import Enum

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .faults import CommandException
from .utils import *


class LogKind(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CLEAR = "clear"


class Log(metaclass=ReflectiveType):
    """
    A single console log record.

    Parameters
    - message: str, the rendered text.
    - kind: LogKind, INFO by default.
    - exception: the exception that produced an ERROR record, if any.
    - time: datetime of creation (now when omitted).
    """
    __introspectable__ = ("time", "message", "kind", "exception")
    __displayable__ = ("time", "message", "kind")

    def __init__(self, message, kind=LogKind.INFO, /, exception=None, time=Missing):
        if not isinstance(message, str):
            raise TypeError(f"{self.__typename__} message must be a string")
        if not isinstance(kind, LogKind):
            raise TypeError(f"{self.__typename__} kind must be a log kind")
        self._message = message
        self._kind = kind
        self._exception = exception
        self._time = datetime.now() if time is Missing else time

    def __str__(self):
        return self._message


class RichSink:
    """
    Print log records through a rich Console (stderr unless one is given).

    format receives time, kind and message; timefmt is passed to strftime.
    CLEAR records clear the console instead of printing.
    """

    def __init__(
            self,
            console=Missing,
            /,
            *,
            colorful=True,
            fancy=False,
            format="[{time}] [{kind}] {message}",
            timefmt="%H:%M:%S",
    ):
        self.console = Console(stderr=True) if console is Missing else console
        self.colorful = colorful
        self.fancy = fancy
        self.format = format
        self.timefmt = timefmt

    def __call__(self, log, /):
        if log.kind is LogKind.CLEAR:
            self.console.clear()
            return
        if self.fancy and isinstance(log.exception, CommandException):
            self.console.print(log.exception)
            return

        styles = defaultdict(str, {
            "log-time": "#737373",
            "log-info": "#E5E7EB",
            "log-warning": "bold #FFD600",
            "log-error": "bold #EF4444",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""

        text = Text(
            self.format.format(
                time=log.time.strftime(self.timefmt),
                kind=log.kind.value,
                message=log.message,
            ),
            styler("log-" + log.kind.value),
        )
        if self.fancy:
            self.console.print(Panel(text, title=Text(log.kind.value, styler("panel-title")), title_align="left"))
        else:
            self.console.print(text)


__all__ = (
    "LogKind",
    "Log",
    "RichSink",
)
