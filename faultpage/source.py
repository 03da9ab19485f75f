"""Highlighted, line-numbered source excerpts.

The whole file is highlighted before it is cut into lines, so constructs
spanning several lines (docstrings, comments) keep their colouring when the
excerpt starts in the middle of one. Cutting highlighted markup at line
boundaries may leave spans open or closed across the window; the excerpt
keeps a running balance and closes whatever is left open at the end.
"""

from __future__ import annotations

import html
import os
import re
from pathlib import Path

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.util import ClassNotFound

from .logging import logger

__all__ = ["highlight_file", "highlight_source", "style_defs"]

PYGMENTS_STYLE = "monokai"
tag_re = re.compile(r"<[^>]+>")


def style_defs(selector: str = ".excerpt") -> str:
    """CSS rules for the token classes produced by the highlighter."""
    return HtmlFormatter(style=PYGMENTS_STYLE).get_style_defs(selector)


def highlight_source(source: str, filename: str = "") -> list[str]:
    """Highlight a whole source text, returning one markup string per line."""
    lines = source.split("\n")
    if lines and not lines[-1]:
        lines.pop()
    try:
        lexer = get_lexer_for_filename(filename, stripnl=False)
    except ClassNotFound:
        lexer = TextLexer(stripnl=False)
    try:
        rows = highlight(source, lexer, HtmlFormatter(nowrap=True)).split("\n")
    except Exception:
        logger.exception(f"Highlighting {filename} failed")
        rows = []
    if len(rows) < len(lines):
        return [html.escape(line) for line in lines]
    return rows[: len(lines)]


def highlight_file(filename: str, lineno: int, lines: int = 15) -> str | None:
    """Render `lines` rows of `filename` around `lineno` as HTML.

    Returns None when the file cannot be read.
    """
    if not filename or not os.path.isfile(filename) or not os.access(filename, os.R_OK):
        return None
    try:
        source = Path(filename).read_text(encoding="UTF-8", errors="replace")
    except OSError as e:
        logger.debug(f"Source of {filename} not available: {e}")
        return None

    source = source.replace("\r\n", "\n").replace("\r", "\n")
    rows = highlight_source(source, filename)

    # Get just the part to show, rounding half up
    start = max(0, lineno - (lines + 1) // 2)
    rows = rows[start : start + lines]
    width = len(str(start + len(rows)))

    out = []
    # Seeded with the wrapper span opened below
    spans = 1
    for n, row in enumerate(rows, start + 1):
        spans += row.count("<span") - row.count("</span")
        if n == lineno:
            tags = "".join(tag_re.findall(row))
            out.append(
                f'<span class="line highlight"><span class="number">{n:0{width}d}</span>'
                f" {tag_re.sub('', row)}\n</span>{tags}"
            )
        else:
            out.append(
                f'<span class="line"><span class="number">{n:0{width}d}</span>'
                f" {row}\n</span>"
            )

    # A window starting inside a span sees its close without the open
    reopen = "<span>" * max(0, -spans)
    close = "</span>" * max(0, spans)
    return (
        f'<pre class="excerpt"><code><span class="lines">{reopen}'
        f"{''.join(out)}{close}</code></pre>"
    )
