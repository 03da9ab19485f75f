"""Unified fault model shared by the capture hooks and the page renderer.

Every channel a fault can arrive through (uncaught exception, promoted
warning, fatal error found at shutdown) ends up as a `Fault` holding an
ordered tuple of `StackFrame` records. Both are immutable once built.
"""

from __future__ import annotations

import enum
from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "Severity",
    "CallType",
    "StackFrame",
    "Fault",
    "RawError",
    "severity_for_warning",
]


class Severity(enum.IntFlag):
    """Error severities, combinable into a reporting mask."""

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384
    ALL = 32767
    FATAL = ERROR | CORE_ERROR | COMPILE_ERROR | PARSE


# Checked in MRO order, so the most specific warning class wins
_warning_severities = {
    DeprecationWarning: Severity.DEPRECATED,
    PendingDeprecationWarning: Severity.DEPRECATED,
    FutureWarning: Severity.USER_DEPRECATED,
    UserWarning: Severity.USER_WARNING,
    SyntaxWarning: Severity.COMPILE_WARNING,
    ImportWarning: Severity.CORE_WARNING,
    ResourceWarning: Severity.NOTICE,
    BytesWarning: Severity.NOTICE,
    UnicodeWarning: Severity.NOTICE,
}


def severity_for_warning(category: type) -> Severity:
    """Severity of a warning category, WARNING for anything unknown."""
    for cls in getattr(category, "__mro__", ()):
        if cls in _warning_severities:
            return _warning_severities[cls]
    return Severity.WARNING


class CallType(enum.Enum):
    INSTANCE = "instance"
    STATIC = "static"

    @property
    def symbol(self) -> str:
        return "." if self is CallType.INSTANCE else "::"


@dataclass(frozen=True)
class StackFrame:
    """One call in the stack: which function ran, and where it was called.

    A frame without a file is runtime-internal (called from outside any
    Python source we can show).
    """

    file: str | None = None
    line: int | None = None
    function: str | None = None
    class_name: str | None = None
    call_type: CallType | None = None
    module: str | None = None
    args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if self.class_name and not self.function:
            raise ValueError(f"Frame of class {self.class_name} has no function")
        if bool(self.class_name) != (self.call_type is not None):
            raise ValueError("class_name and call_type must be given together")
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class Fault:
    type_name: str
    message: str | None = None
    raw_code: int = 0
    file: str | None = None
    line: int | None = None
    frames: tuple[StackFrame, ...] = ()
    title: str = field(default="")

    def __post_init__(self) -> None:
        if self.message is None:
            object.__setattr__(self, "message", "(null)")
        if not self.title:
            object.__setattr__(self, "title", self.type_name)
        if not isinstance(self.frames, tuple):
            object.__setattr__(self, "frames", tuple(self.frames))


# Last error as reported by the runtime at shutdown
RawError = namedtuple(
    "RawError", ["severity", "message", "file", "line", "type_name"], defaults=[None]
)
