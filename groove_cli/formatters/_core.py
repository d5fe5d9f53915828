"""Core output dispatcher: (verb, format) -> formatter."""

import json

from groove_cli import config, models
from groove_cli.formatters import _conversations as conv_fmt
from groove_cli.formatters import _entities as ent_fmt
from groove_cli.formatters import _mutations as mut_fmt
from groove_cli.formatters._compact import compact_field, compact_line
from groove_cli.formatters._table import _kv_lines, _sanitize_str


def to_json(data):
    """Stable, pretty JSON encoding used for every json-format output."""
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False, default=str)


def render_json(response, verb):
    """Lossless re-encoding of the payload; list verbs get a nodes envelope."""
    if verb in models.LIST_VERBS:
        envelope = {"nodes": response.payload}
        if response.meta:
            envelope.update(response.meta)
        return to_json(envelope)
    return to_json(response.payload)


# ---------------------------------------------------------------------------
# Generic fallbacks (any payload shape)
# ---------------------------------------------------------------------------


def _generic_table(payload):
    if isinstance(payload, dict):
        if not payload:
            return "(empty)"
        return _kv_lines([(str(k), _inline(v)) for k, v in payload.items()])
    if isinstance(payload, list):
        if not payload:
            return "(empty)"
        return "\n".join(_inline(item) for item in payload)
    return _sanitize_str(str(payload)) if payload is not None else "(empty)"


def _inline(value):
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    return "-" if value is None else str(value)


def _generic_compact(payload):
    if isinstance(payload, dict):
        values = [_inline(v) if isinstance(v, (dict, list)) else v for v in payload.values()]
        return compact_line(*values)
    if isinstance(payload, list):
        return "\n".join(
            _generic_compact(item) if isinstance(item, dict) else compact_field(item)
            for item in payload
        )
    return compact_field(payload)


# ---------------------------------------------------------------------------
# Shape checks
# ---------------------------------------------------------------------------


def _is_obj(payload):
    return isinstance(payload, dict)


def _is_obj_list(payload):
    return isinstance(payload, list) and all(isinstance(item, dict) for item in payload)


def _is_detail(payload):
    return isinstance(payload, dict) and isinstance(payload.get("conversation"), dict)


def _is_mutation(payload):
    return isinstance(payload, dict) and isinstance(payload.get("results"), list)


# verb -> (shape check, table formatter, compact formatter)
# Table formatters take (payload, meta, full, color); compact take (payload, full).
_FORMATTERS = {
    models.LIST_CONVERSATIONS: (
        _is_obj_list,
        lambda p, m, f, c: conv_fmt.format_conversations_table(p, m, color=c),
        lambda p, f: conv_fmt.format_conversations_compact(p),
    ),
    models.VIEW_CONVERSATION: (
        _is_detail,
        lambda p, m, f, c: conv_fmt.format_conversation_detail(p, full=f, color=c),
        lambda p, f: conv_fmt.format_conversation_detail_compact(p, full=f),
    ),
    models.LIST_FOLDERS: (
        _is_obj_list,
        lambda p, m, f, c: ent_fmt.format_folders_table(p, color=c),
        lambda p, f: ent_fmt.format_folders_compact(p),
    ),
    models.LIST_TAGS: (
        _is_obj_list,
        lambda p, m, f, c: ent_fmt.format_tags_table(p, color=c),
        lambda p, f: ent_fmt.format_tags_compact(p),
    ),
    models.LIST_CANNED_REPLIES: (
        _is_obj_list,
        lambda p, m, f, c: ent_fmt.format_canned_replies_table(p, color=c),
        lambda p, f: ent_fmt.format_canned_replies_compact(p),
    ),
    models.SHOW_CANNED_REPLY: (
        _is_obj,
        lambda p, m, f, c: ent_fmt.format_canned_reply_detail(p, color=c),
        lambda p, f: ent_fmt.format_canned_reply_compact(p),
    ),
    models.SHOW_ME: (
        _is_obj,
        lambda p, m, f, c: ent_fmt.format_me_table(p, color=c),
        lambda p, f: ent_fmt.format_me_compact(p),
    ),
    models.SHOW_CONFIG: (
        _is_obj,
        lambda p, m, f, c: ent_fmt.format_config_table(p, color=c),
        lambda p, f: ent_fmt.format_config_compact(p),
    ),
    models.SHOW_CONFIG_PATH: (
        _is_obj,
        lambda p, m, f, c: str(p.get("path")),
        lambda p, f: compact_line(p.get("path")),
    ),
    models.SET_TOKEN: (
        _is_obj,
        lambda p, m, f, c: ent_fmt.format_token_saved(p, color=c),
        lambda p, f: ent_fmt.format_token_saved_compact(p),
    ),
}

for _verb in (
    models.REPLY_CONVERSATION,
    models.CLOSE_CONVERSATION,
    models.OPEN_CONVERSATION,
    models.SNOOZE_CONVERSATION,
    models.ASSIGN_CONVERSATION,
    models.UNASSIGN_CONVERSATION,
    models.ADD_TAG,
    models.REMOVE_TAG,
    models.ADD_NOTE,
):
    _FORMATTERS[_verb] = (
        _is_mutation,
        lambda p, m, f, c, v=_verb: mut_fmt.format_mutation_table(p, v, color=c),
        lambda p, f, v=_verb: mut_fmt.format_mutation_compact(p, v),
    )


def render(response, fmt, verb, *, full=False, color=False):
    """Render *response* as text in *fmt* ("table", "json" or "compact").

    Never raises on an unexpected payload shape: verbs whose payload does not
    match the expected shape fall back to a generic rendering.
    """
    if fmt == "json":
        return render_json(response, verb)
    if fmt not in config.VALID_FORMATS:
        raise ValueError(f"Unknown output format: {fmt}")

    payload = response.payload
    entry = _FORMATTERS.get(verb)
    if entry is None or not entry[0](payload):
        return _generic_compact(payload) if fmt == "compact" else _generic_table(payload)
    _check, table_fn, compact_fn = entry
    if fmt == "compact":
        return compact_fn(payload, full)
    return table_fn(payload, response.meta, full, color)
