"""Conversion of exceptions, warnings and shutdown errors into `Fault`."""

from __future__ import annotations

import inspect
import os
from dataclasses import dataclass
from types import FrameType, TracebackType
from typing import Any, Union

from .fault import CallType, Fault, RawError, Severity, StackFrame
from .logging import logger

__all__ = [
    "Suppressed",
    "Promoted",
    "from_exception",
    "frames_from_traceback",
    "frames_from_stack",
    "promote_error",
    "from_last_error",
    "UNBOUND",
]


class _Unbound:
    """Stands in for a parameter whose local was deleted before the fault."""

    def __repr__(self) -> str:
        return "<unbound>"


UNBOUND = _Unbound()


@dataclass(frozen=True)
class Suppressed:
    """A recoverable error masked out by the reporting configuration."""

    severity: int


@dataclass(frozen=True)
class Promoted:
    """A recoverable error that passed the filter and must be reported."""

    fault: Fault


ErrorOutcome = Union[Suppressed, Promoted]


def _raw_code(exc: BaseException) -> int:
    for attr in ("code", "status_code", "errno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0


def from_exception(exc: BaseException) -> Fault:
    """Normalize an uncaught exception."""
    tb = exc.__traceback__
    file = line = None
    while tb:
        file, line = tb.tb_frame.f_code.co_filename, tb.tb_lineno
        tb = tb.tb_next
    if isinstance(exc, SyntaxError) and exc.filename and exc.lineno:
        # The offending source, not the compile() call that reported it
        file, line = exc.filename, exc.lineno
    try:
        frames = frames_from_traceback(exc.__traceback__)
    except Exception:
        logger.exception("Error extracting stack frames")
        frames = []
    message = exc.msg if isinstance(exc, SyntaxError) else str(exc)
    return Fault(
        type_name=type(exc).__name__,
        message=message,
        raw_code=_raw_code(exc),
        file=file,
        line=line,
        frames=tuple(frames),
    )


def frames_from_traceback(tb: TracebackType | None) -> list[StackFrame]:
    entries = []
    while tb:
        entries.append((tb.tb_frame, tb.tb_lineno))
        tb = tb.tb_next
    return _build_frames(entries[::-1])


def frames_from_stack(frame: FrameType | None) -> list[StackFrame]:
    """Frames of a live stack, starting at `frame` and going outward."""
    entries = []
    while frame:
        entries.append((frame, frame.f_lineno))
        frame = frame.f_back
    return _build_frames(entries)


def _build_frames(entries: list[tuple[FrameType, int]]) -> list[StackFrame]:
    """Pair each function with the location it was called from.

    Entries come innermost first. Entry k names the function, entry k+1
    holds its call site.
    """
    frames = []
    for i, (frame, _lineno) in enumerate(entries):
        if i + 1 < len(entries):
            caller, caller_line = entries[i + 1]
            file, line = caller.f_code.co_filename, caller_line
        elif frame.f_code.co_name == "<module>":
            break  # The main script is where everything starts
        else:
            file = line = None
        frames.append(_frame_record(frame, file, line))
    return frames


def _frame_record(frame: FrameType, file: str | None, line: int | None) -> StackFrame:
    code = frame.f_code
    if code.co_name == "<module>":
        op = "import" if os.path.isfile(code.co_filename) else "exec"
        return StackFrame(file=file, line=line, function=op)

    module = frame.f_globals.get("__name__")
    qualname = getattr(code, "co_qualname", code.co_name)
    owner = qualname.rpartition(".")[0]
    names = _argument_names(code)
    values = frame.f_locals
    class_name = call_type = None

    first = names[0] if code.co_argcount else None
    if first in ("self", "cls") and first in values:
        bound = values[first]
        if first == "cls" and isinstance(bound, type):
            call_type = CallType.STATIC
            class_name = owner or bound.__qualname__
        elif first == "self":
            call_type = CallType.INSTANCE
            class_name = owner or type(bound).__qualname__
        if call_type:
            names = names[1:]
    elif owner and not owner.endswith(">"):
        # Dotted qualname outside any function body: a staticmethod
        call_type = CallType.STATIC
        class_name = owner

    args = tuple(values.get(name, UNBOUND) for name in names)
    return StackFrame(
        file=file,
        line=line,
        function=code.co_name,
        class_name=class_name,
        call_type=call_type,
        module=module,
        args=args,
    )


def _argument_names(code: Any) -> list[str]:
    """Parameter names in signature order: positional, *args, keyword-only, **kwargs."""
    varnames = code.co_varnames
    npos, nkw = code.co_argcount, code.co_kwonlyargcount
    names = list(varnames[:npos])
    extra = npos + nkw
    if code.co_flags & inspect.CO_VARARGS:
        names.append(varnames[extra])
        extra += 1
    names += varnames[npos : npos + nkw]
    if code.co_flags & inspect.CO_VARKEYWORDS:
        names.append(varnames[extra])
    return names


def promote_error(
    severity: int,
    message: str,
    file: str | None = None,
    line: int | None = None,
    *,
    reporting: int = Severity.ALL,
    type_name: str = "RuntimeFault",
    stack: FrameType | None = None,
) -> ErrorOutcome:
    """Decide whether a recoverable error is ignored or becomes a fault."""
    if not severity & reporting:
        return Suppressed(severity)
    fault = Fault(
        type_name=type_name,
        message=message,
        raw_code=0,
        file=file,
        line=line,
        frames=tuple(frames_from_stack(stack)) if stack else (),
    )
    return Promoted(fault)


def from_last_error(raw: RawError | None) -> Fault | None:
    """Fault for a fatal error found at shutdown, None if there is nothing to report."""
    if raw is None or not raw.severity & Severity.FATAL:
        return None
    return Fault(
        type_name=raw.type_name or "FatalError",
        message=raw.message,
        raw_code=int(raw.severity),
        file=raw.file,
        line=raw.line,
    )
