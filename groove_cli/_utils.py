"""
Shared pure-utility functions for groove-cli.

These helpers have no business logic and no side effects.
They are used across client.py and the formatters.
"""

from datetime import datetime, timezone


def _nodes(value):
    """Unwrap a GraphQL connection ({"nodes": [...]}) or pass a list through."""
    if isinstance(value, dict):
        value = value.get("nodes")
    return list(value) if isinstance(value, list) else []


def normalize_conversation(node):
    """Flatten connection wrappers on a conversation node.

    ``assigned`` may arrive as an Assignment wrapper ({"agent": {...}}) and
    ``tags`` as a connection; both are unwrapped. Every other field is kept.
    """
    if not isinstance(node, dict):
        return node
    conv = dict(node)
    assigned = conv.get("assigned")
    if isinstance(assigned, dict) and "agent" in assigned:
        conv["assigned"] = assigned.get("agent")
    if "tags" in conv:
        conv["tags"] = _nodes(conv.get("tags"))
    return conv


def _parse_iso_timestamp(ts):
    """Parse an ISO timestamp from the API into an aware datetime."""
    if not ts or not isinstance(ts, str):
        return None
    try:
        # Handle both "2026-01-15T10:30:00Z" and "2026-01-15T10:30:00.000Z"
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def relative_time(ts, now=None):
    """Render an API timestamp as "just now", "5m ago", ... or a date."""
    dt = _parse_iso_timestamp(ts)
    if dt is None:
        return ts or "-"
    now = now or datetime.now(timezone.utc)
    minutes = int((now - dt).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 60 * 24:
        return f"{minutes // 60}h ago"
    if minutes < 60 * 24 * 7:
        return f"{minutes // (60 * 24)}d ago"
    return dt.strftime("%Y-%m-%d")


def format_timestamp(ts, fmt="%Y-%m-%d %H:%M"):
    dt = _parse_iso_timestamp(ts)
    return dt.strftime(fmt) if dt else (ts or "-")
