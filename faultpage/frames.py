from __future__ import annotations

import inspect
import os
import sys
from typing import Any, Protocol, Sequence

from html5tagger import HTML, E  # type: ignore[import]

from .fault import CallType, StackFrame
from .inspector import dumpvalue
from .logging import logger
from .source import highlight_file

__all__ = [
    "ParameterNameResolver",
    "SignatureResolver",
    "INCLUDE_OPERATIONS",
    "INTERNAL_CODE",
    "clean_path",
    "call_site",
    "qualifier",
    "argument_labels",
    "render_frame",
]

# Frames of module-level code run by these operations show the operation
INCLUDE_OPERATIONS = frozenset({"import", "exec"})
INTERNAL_CODE = "{internal code}"


class ParameterNameResolver(Protocol):
    def parameter_names(self, frame: StackFrame) -> Sequence[str] | None:
        """Declared parameter names of the frame's callable, None if unresolvable."""
        ...


def _is_anonymous(name: str) -> bool:
    # <lambda>, <listcomp>, <genexpr>, and anything defined inside a function
    return name.endswith(">") or "<locals>" in name


class SignatureResolver:
    """Look up the frame's callable by module and qualified name, read its signature."""

    def parameter_names(self, frame: StackFrame) -> list[str] | None:
        name = frame.function
        if not name or _is_anonymous(name) or _is_anonymous(frame.class_name or ""):
            return None
        target = sys.modules.get(frame.module or "")
        if target is None:
            return None
        try:
            if frame.class_name:
                for part in frame.class_name.split("."):
                    target = getattr(target, part)
            params = list(inspect.signature(getattr(target, name)).parameters)
        except (AttributeError, TypeError, ValueError):
            return None
        # Plain functions looked up on the class still carry self
        if frame.call_type is CallType.INSTANCE:
            params = params[1:]
        return params


def clean_path(filename: str) -> str:
    """Paths inside the working directory are shown relative to it."""
    try:
        rel = os.path.relpath(filename)
    except ValueError:  # Different drive on Windows
        return filename
    return filename if rel.startswith("..") else rel


def _readable(filename: str | None) -> bool:
    return bool(filename) and os.path.isfile(filename) and os.access(filename, os.R_OK)


def call_site(frame: StackFrame) -> str:
    if not _readable(frame.file):
        return INTERNAL_CODE
    if frame.function in INCLUDE_OPERATIONS:
        return f"{frame.function} {clean_path(frame.file)}"
    return f"{clean_path(frame.file)} : {frame.line}"


def qualifier(frame: StackFrame) -> str | None:
    if frame.class_name:
        return f"{frame.class_name}{frame.call_type.symbol}{frame.function}"
    return frame.function


def argument_labels(
    frame: StackFrame, resolver: ParameterNameResolver | None
) -> list[str]:
    """Parameter names for the frame's args, positional labels where unknown."""
    names: Sequence[str] = ()
    if resolver is not None:
        try:
            names = resolver.parameter_names(frame) or ()
        except Exception:
            logger.exception(f"Resolving parameters of {qualifier(frame)} failed")
    return [
        names[i] if i < len(names) else f"#{i}" for i in range(len(frame.args))
    ]


def render_frame(
    doc: Any,
    frame: StackFrame,
    page_id: str,
    index: int,
    *,
    resolver: ParameterNameResolver | None = None,
    window: int = 15,
) -> None:
    """Append one backtrace entry for `frame` to the builder."""
    args_id = f"{page_id}args{index}"
    name = qualifier(frame)
    doc.li(class_="frame")
    with doc.div(class_="frame-head"):
        doc.span(call_site(frame), class_="call-site")
        if name:
            doc("  —  ").span(name, class_="function")
            if frame.args:
                doc("( ").label("arguments", for_=args_id, class_="args-label")(" )")
            else:
                doc("()")
    if name and frame.args:
        _arguments(doc, frame, args_id, resolver)
    if frame.class_name and _readable(frame.file):
        try:
            excerpt = highlight_file(frame.file, frame.line or 0, window)
        except Exception:
            logger.exception(f"Source excerpt of {frame.file} failed")
            excerpt = None
        if excerpt:
            doc.div(HTML(excerpt), class_="source")


def _arguments(
    doc: Any,
    frame: StackFrame,
    args_id: str,
    resolver: ParameterNameResolver | None,
) -> None:
    labels = argument_labels(frame, resolver)
    doc.input_(type="checkbox", id=args_id, class_="args-toggle")
    with doc.div(class_="args"), doc.table:
        for label, value in zip(labels, frame.args):
            doc.tr()
            doc.td(E.code(label))
            doc.td(E.pre(dumpvalue(value)))
