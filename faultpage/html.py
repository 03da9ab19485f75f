from __future__ import annotations

import platform
from dataclasses import dataclass, field
from datetime import datetime
from importlib.resources import files
from secrets import token_urlsafe
from typing import Any, cast

from html5tagger import HTML, Document, E  # type: ignore[import]

from .codes import resolve_codes
from .fault import Fault
from .frames import ParameterNameResolver, SignatureResolver, clean_path, render_frame
from .logging import logger
from .source import highlight_file, style_defs

__all__ = ["RenderContext", "html_page", "page_title"]

style = files(cast(str, __package__)).joinpath("style.css").read_text(encoding="UTF-8")


@dataclass
class RenderContext:
    """Per-page state, never shared between two pages."""

    page_id: str = field(default_factory=lambda: f"fault{token_urlsafe(6)}")


def page_title(fault: Fault) -> str:
    return f"{fault.title} #{fault.raw_code}" if fault.raw_code else fault.title


def html_page(
    fault: Fault,
    *,
    resolver: ParameterNameResolver | None = None,
    window: int = 15,
    version: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render the complete diagnostic document for a fault as one string."""
    ctx = RenderContext()
    status, exit_code = resolve_codes(fault.raw_code)
    resolver = resolver if resolver is not None else SignatureResolver()
    title = page_title(fault)

    doc = Document(title, lang="en")
    doc.meta(name="robots", content="noindex")
    doc._style(style + style_defs())
    doc.body(data_status=status, data_exit=exit_code)
    with doc.div(class_="header"), doc.div(class_="container"):
        doc.h1(title)
        doc.p(fault.message, class_="message")
        doc.p(f"Status {status}, exit code {exit_code}", class_="codes")
    with doc.div(class_="container"):
        _location(doc, fault, window)
    with doc.div(class_="container"):
        doc.h2("Backtrace")
        with doc.ol(class_="trace", id=f"{ctx.page_id}trace"):
            for index, frame in enumerate(fault.frames):
                # Built apart so that a failure leaves no partial entry behind
                entry = E()
                try:
                    render_frame(
                        entry,
                        frame,
                        ctx.page_id,
                        index,
                        resolver=resolver,
                        window=window,
                    )
                except Exception:
                    logger.exception("Rendering a stack frame failed")
                    entry = E.li("(frame not available)", class_="frame")
                doc(entry)
    _footer(doc, version, now)
    return str(doc)


def _location(doc: Any, fault: Fault, window: int) -> None:
    if not fault.file:
        return
    doc.p(E.b(clean_path(fault.file))(" at line ").b(str(fault.line)))
    try:
        excerpt = highlight_file(fault.file, fault.line or 0, window)
    except Exception:
        logger.exception(f"Source excerpt of {fault.file} failed")
        excerpt = None
    if excerpt:
        doc.div(HTML(excerpt), class_="source")


def _footer(doc: Any, version: str | None, now: datetime | None) -> None:
    now = now or datetime.now()
    version = version or platform.python_version()
    with doc.div(class_="footer"), doc.div(class_="container"):
        stamp = now.strftime("%H:%M:%S") + now.strftime("%p").lower()
        doc.p(f"Displayed at {stamp} — Python {version}")
