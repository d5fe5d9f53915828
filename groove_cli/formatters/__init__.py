"""Output formatting package for groove-cli.

Re-exports all public names so consumers can do:
    from groove_cli.formatters import render
"""

from groove_cli.formatters._compact import compact_field, compact_line
from groove_cli.formatters._conversations import (
    EXCERPT_LENGTH,
    TRUNCATION_MARKER,
    excerpt,
    format_conversation_detail,
    format_conversation_detail_compact,
    format_conversations_compact,
    format_conversations_table,
    status_label,
)
from groove_cli.formatters._core import render, render_json, to_json
from groove_cli.formatters._entities import (
    config_payload,
    format_canned_replies_table,
    format_config_table,
    format_folders_table,
    format_me_table,
    format_tags_table,
)
from groove_cli.formatters._mutations import format_mutation_table
from groove_cli.formatters._table import (
    _CONTROL_RE,
    _sanitize_str,
    _table,
    _trunc,
    should_use_color,
)

__all__ = [
    "EXCERPT_LENGTH",
    "TRUNCATION_MARKER",
    "_CONTROL_RE",
    "_sanitize_str",
    "_table",
    "_trunc",
    "compact_field",
    "compact_line",
    "config_payload",
    "excerpt",
    "format_canned_replies_table",
    "format_config_table",
    "format_conversation_detail",
    "format_conversation_detail_compact",
    "format_conversations_compact",
    "format_conversations_table",
    "format_folders_table",
    "format_me_table",
    "format_mutation_table",
    "format_tags_table",
    "render",
    "render_json",
    "should_use_color",
    "status_label",
    "to_json",
]
