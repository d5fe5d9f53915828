"""Low-level table rendering helpers."""

import re

from rich.color import ColorSystem
from rich.console import Console
from rich.style import Style

_CONTROL_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

STATUS_STYLES = {
    "unread": "bold yellow",
    "open": "green",
    "snoozed": "blue",
    "spam": "red",
    "closed": "dim",
    "deleted": "dim",
}
TAG_STYLE = "cyan"


def should_use_color(stream, env):
    """Colour only for an interactive terminal with NO_COLOR unset."""
    if "NO_COLOR" in env:
        return False
    return Console(file=stream).is_terminal


def _paint(text, style, color):
    if not color or not style or not text:
        return text
    return Style.parse(style).render(text, color_system=ColorSystem.STANDARD)


def _trunc(s, maxlen):
    """Truncate string with ellipsis indicator."""
    if not s:
        return ""
    return s[: maxlen - 1] + "…" if len(s) > maxlen else s


def _sanitize_str(s):
    """Strip ANSI escape sequences and control chars from table output.
    Preserves newlines (\\n) and tabs (\\t)."""
    if not s:
        return s
    return _CONTROL_RE.sub("", str(s))


def _table(columns, rows, footer=None, color=False):
    """Build a formatted table string.
    columns: list of (name, width) or (name, width, style_fn) tuples.
    Last column has no width (fills). style_fn maps a cell value to a
    rich style string (or None); it only applies when *color* is set.
    rows: list of tuples matching columns.
    footer: optional footer line."""
    parts = []
    for i, col in enumerate(columns):
        name, width = col[0], col[1]
        if i == len(columns) - 1:
            parts.append(name)
        else:
            parts.append(f"{name:<{width}}")
    header = " ".join(parts)
    sep = "-" * max(len(header), 90)
    lines = [_paint(header, "bold", color), sep]
    for row in rows:
        parts = []
        for i, val in enumerate(row):
            safe = _sanitize_str(val) if isinstance(val, str) else str(val)
            col = columns[i]
            cell = safe if i == len(columns) - 1 else f"{safe:<{col[1]}}"
            style_fn = col[2] if len(col) > 2 else None
            if style_fn is not None and color:
                # Pad first so escape codes don't break alignment.
                padding = cell[len(safe) :]
                cell = _paint(safe, style_fn(safe), color) + padding
            parts.append(cell)
        lines.append(" ".join(parts).rstrip())
    if footer:
        lines.append(f"\n{footer}")
    return "\n".join(lines)


def _kv_lines(pairs, width=None):
    """Render aligned "key: value" lines."""
    if not pairs:
        return ""
    width = width or max(len(k) for k, _v in pairs) + 1
    return "\n".join(f"{k + ':':<{width + 1}}{_sanitize_str(str(v))}" for k, v in pairs)
