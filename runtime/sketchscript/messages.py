"""
Console message sink

The interpreter reports through a plain callback, on_message(kind, text,
line). MessageLog is a ready-made callback that keeps ConsoleMessage records,
used by the CLI and the tests.
"""

import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

INFO = "info"
WARNING = "warning"
ERROR = "error"
SUCCESS = "success"

MESSAGE_KINDS = (INFO, WARNING, ERROR, SUCCESS)

MessageCallback = Callable[[str, str, Optional[int]], None]

_ids = itertools.count(1)


@dataclass
class ConsoleMessage:
    """One console entry"""
    kind: str
    text: str
    line: Optional[int] = None
    id: int = field(default_factory=lambda: next(_ids))
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        if self.line is not None:
            return f"[{self.kind}] line {self.line}: {self.text}"
        return f"[{self.kind}] {self.text}"


class MessageLog:
    """Callable message sink that records everything it receives"""

    def __init__(self):
        self.messages: List[ConsoleMessage] = []

    def __call__(self, kind: str, text: str, line: Optional[int] = None):
        self.messages.append(ConsoleMessage(kind, text, line))

    def of_kind(self, kind: str) -> List[ConsoleMessage]:
        return [msg for msg in self.messages if msg.kind == kind]

    def texts(self, kind: Optional[str] = None) -> List[str]:
        return [msg.text for msg in self.messages if kind is None or msg.kind == kind]

    @property
    def errors(self) -> List[ConsoleMessage]:
        return self.of_kind(ERROR)

    def clear(self):
        self.messages.clear()


__all__ = [
    'ConsoleMessage',
    'MessageLog',
    'MessageCallback',
    'INFO',
    'WARNING',
    'ERROR',
    'SUCCESS',
    'MESSAGE_KINDS',
]
