from __future__ import annotations

import dataclasses
from typing import Any

from .logging import logger

__all__ = ["dumpvalue"]

MAX_ITEMS = 10
MAX_LINES = 20
MAX_CHARS = 2000


def _short(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "…"


def _safe_repr(val: Any) -> str:
    try:
        return repr(val)
    except Exception:
        logger.exception("Argument dump failed (please report a bug)")
        return f"<unprintable {type(val).__name__}>"


def _fields(val: Any) -> list[tuple[str, Any]] | None:
    """Named members of dicts, dataclasses, namedtuples, None for anything else."""
    if isinstance(val, dict):
        return [(_safe_repr(k), v) for k, v in val.items()]
    if dataclasses.is_dataclass(val) and not isinstance(val, type):
        return [
            (f.name, object.__getattribute__(val, f.name))
            for f in dataclasses.fields(val)
        ]
    if isinstance(val, tuple) and isinstance(getattr(val, "_fields", None), tuple):
        return list(zip(val._fields, val))
    return None


def dumpvalue(val: Any) -> str:
    """
    Format an argument value for display in the argument table.

    Containers are dumped one member per line with their type as header,
    large ones are summarised. Strings are shown as they are, other values
    by repr, truncated when long.
    """
    typename = type(val).__name__
    fields = _fields(val)
    if fields is not None:
        if not fields:
            return f"{typename}()"
        if len(fields) > MAX_ITEMS:
            return f"{typename} ({len(fields)} items)"
        rows = (f"    {_short(k, 40)}: {_short(_safe_repr(v), 60)}" for k, v in fields)
        return "\n".join((f"{typename} (", *rows, ")"))
    if isinstance(val, (list, tuple, set, frozenset)):
        if not 0 < len(val) <= MAX_ITEMS:
            return f"{typename} ({len(val)} items)"
        rows = (f"    {_short(_safe_repr(v), 80)}" for v in val)
        return "\n".join((f"{typename} (", *rows, ")"))
    if isinstance(val, type):
        return f"{val.__module__}.{val.__qualname__}"

    if isinstance(val, str):
        ret = val
    else:
        ret = _safe_repr(val)
        # Collapse multi-line reprs, truncate long ones
        if "\n" in ret:
            ret = " ".join(line.strip() for line in ret.split("\n") if line.strip())
        if len(ret) > 120:
            ret = ret[:30] + " … " + ret[-30:]
        return ret

    lines = ret.split("\n")
    if len(lines) > MAX_LINES:
        ret = "\n".join(lines[:10] + ["⋯"] + lines[-10:])
    if len(ret) > MAX_CHARS:
        half = MAX_CHARS // 2
        ret = ret[:half] + " … " + ret[-half:]
    return ret
