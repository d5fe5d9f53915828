"""Conversation list and detail formatters."""

import re

from groove_cli._utils import format_timestamp, relative_time
from groove_cli.formatters._compact import MISSING, _person, compact_line
from groove_cli.formatters._table import (
    STATUS_STYLES,
    TAG_STYLE,
    _paint,
    _sanitize_str,
    _table,
    _trunc,
)

EXCERPT_LENGTH = 500
TRUNCATION_MARKER = "[... truncated, use --full to see all]"

_TAG_RE = re.compile(r"<[^>]+>")


def status_label(state):
    """Lower-case display form of an API conversation state."""
    if not state:
        return "-"
    label = str(state).lower()
    return "open" if label == "opened" else label


def _status_style(value):
    return STATUS_STYLES.get(value)


def _tag_style(value):
    return TAG_STYLE if value else None


def contact_label(contact):
    if not isinstance(contact, dict):
        return str(contact) if contact else "-"
    return contact.get("name") or contact.get("email") or "-"


def _contact_full(contact):
    if not isinstance(contact, dict):
        return str(contact) if contact else "-"
    name, email = contact.get("name"), contact.get("email")
    if name and email:
        return f"{name} <{email}>"
    return name or email or "-"


def tag_names(tags):
    names = []
    for tag in tags or []:
        name = tag.get("name") if isinstance(tag, dict) else tag
        if name:
            names.append(str(name))
    return names


def message_body(message):
    """Plain text body of a message; HTML bodies are stripped of tags."""
    text = message.get("bodyText")
    if not text and message.get("bodyHtml"):
        text = _TAG_RE.sub("", message["bodyHtml"])
    return (text or "").strip()


def excerpt(text, full=False):
    """Shorten *text* to the display excerpt, marking any truncation."""
    if full or len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH].rstrip() + "\n" + TRUNCATION_MARKER


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


def format_conversations_table(nodes, meta=None, color=False, now=None):
    """Format conversation list as a table."""
    if not nodes:
        return "No conversations found."
    cols = [
        ("#", 7),
        ("Status", 9, _status_style),
        ("Subject", 40),
        ("From", 25),
        ("Tags", 20, _tag_style),
        ("Updated", 0),
    ]
    rows = []
    for conv in nodes:
        rows.append(
            (
                f"#{conv.get('number', '-')}",
                status_label(conv.get("state")),
                _trunc(_sanitize_str(conv.get("subject") or "(no subject)"), 40),
                _trunc(_sanitize_str(contact_label(conv.get("contact"))), 25),
                _trunc(", ".join(tag_names(conv.get("tags"))), 20),
                relative_time(conv.get("updatedAt"), now),
            )
        )
    meta = meta or {}
    total = meta.get("totalCount", len(nodes))
    footer = f"Showing {len(nodes)} of {total} conversations"
    page_info = meta.get("pageInfo") or {}
    if page_info.get("hasNextPage") and page_info.get("endCursor"):
        footer += f"\nNext page: --after {page_info['endCursor']}"
    return _table(cols, rows, footer, color=color)


def format_conversation_detail(payload, full=False, color=False):
    """Format one conversation with its messages."""
    conv = payload.get("conversation") or {}
    messages = payload.get("messages") or []
    subject = _sanitize_str(conv.get("subject") or "(no subject)")
    status = status_label(conv.get("state"))
    tags = tag_names(conv.get("tags"))
    lines = [
        f"Conversation #{conv.get('number', '-')}: {subject}",
        f"  Status:   {_paint(status, STATUS_STYLES.get(status), color)}",
        f"  From:     {_sanitize_str(_contact_full(conv.get('contact')))}",
        f"  Assigned: {_sanitize_str(_contact_full(conv.get('assigned')))}",
    ]
    if tags:
        lines.append(f"  Tags:     {_paint(', '.join(tags), TAG_STYLE, color)}")
    if conv.get("snoozedUntil"):
        lines.append(f"  Snoozed:  until {format_timestamp(conv['snoozedUntil'])}")
    lines.append(f"  Created:  {format_timestamp(conv.get('createdAt'))}")
    lines.append(f"  Updated:  {format_timestamp(conv.get('updatedAt'))}")
    lines.append("")
    lines.append(f"Messages ({len(messages)}):")
    if not messages:
        lines.append("  (none)")
    for msg in messages:
        if not isinstance(msg, dict):
            lines.append(f"  {_sanitize_str(str(msg))}")
            continue
        author = _sanitize_str(contact_label(msg.get("author")))
        lines.append("-" * 60)
        lines.append(f"[{format_timestamp(msg.get('createdAt'))}] {author}")
        lines.append(_sanitize_str(excerpt(message_body(msg), full)))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Compact
# ---------------------------------------------------------------------------


def _conversation_fields(conv):
    return (
        conv.get("number"),
        status_label(conv.get("state")),
        conv.get("subject"),
        conv.get("contact"),
        conv.get("tags"),
        conv.get("updatedAt"),
    )


def format_conversations_compact(nodes):
    return "\n".join(compact_line(*_conversation_fields(c)) for c in nodes)


MESSAGE_PART_SEP = "|"
MESSAGE_SEP = ";"


def _escape_message_part(value):
    value = _person(value)
    if value is None or value == "":
        return MISSING
    text = str(value).replace("\\", "\\\\")
    return text.replace(MESSAGE_PART_SEP, "\\" + MESSAGE_PART_SEP).replace(
        MESSAGE_SEP, "\\" + MESSAGE_SEP
    )


def _messages_field(messages, full):
    """Fold messages into one field: `createdAt|author|excerpt` entries joined by `;`.

    Literal backslashes, `|` and `;` inside a part are backslash-escaped.
    """
    entries = []
    for msg in messages or []:
        if not isinstance(msg, dict):
            entries.append(_escape_message_part(msg))
            continue
        body = excerpt(message_body(msg), full)
        body = body.replace("\n" + TRUNCATION_MARKER, " " + TRUNCATION_MARKER)
        parts = (msg.get("createdAt"), msg.get("author"), body)
        entries.append(MESSAGE_PART_SEP.join(_escape_message_part(p) for p in parts))
    return MESSAGE_SEP.join(entries)


def format_conversation_detail_compact(payload, full=False):
    conv = payload.get("conversation") or {}
    number, status, subject, contact, tags, updated = _conversation_fields(conv)
    return compact_line(
        number,
        status,
        subject,
        contact,
        conv.get("assigned"),
        tags,
        updated,
        _messages_field(payload.get("messages"), full),
    )
