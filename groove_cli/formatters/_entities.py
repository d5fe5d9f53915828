"""Formatters for folders, tags, canned replies, agents and local config."""

from groove_cli.config import mask_token
from groove_cli.formatters._compact import compact_extras, compact_line
from groove_cli.formatters._table import TAG_STYLE, _kv_lines, _sanitize_str, _table, _trunc


_CANNED_FIELDS = ("id", "name", "subject", "body")
_ME_FIELDS = ("id", "name", "email", "role")
_CONFIG_FIELDS = (
    "config_path",
    "token",
    "token_source",
    "endpoint",
    "format",
    "default_limit",
    "default_folder",
    "aliases",
)
_TOKEN_SAVED_FIELDS = ("path", "token")


def _tag_style(_value):
    return TAG_STYLE


def format_folders_table(folders, color=False):
    if not folders:
        return "No folders found."
    cols = [("Name", 30), ("Count", 8), ("ID", 0)]
    rows = [
        (_trunc(f.get("name") or "", 30), str(f.get("count", "-")), f.get("id") or "-")
        for f in folders
    ]
    return _table(cols, rows, f"Total: {len(folders)}", color=color)


def format_tags_table(tags, color=False):
    if not tags:
        return "No tags found."
    cols = [("Name", 30, _tag_style), ("Color", 10), ("ID", 0)]
    rows = [
        (_trunc(t.get("name") or "", 30), t.get("color") or "-", t.get("id") or "-")
        for t in tags
    ]
    return _table(cols, rows, f"Total: {len(tags)}", color=color)


def format_canned_replies_table(replies, color=False):
    if not replies:
        return "No canned replies found."
    cols = [("Name", 30), ("Subject", 40), ("ID", 0)]
    rows = [
        (
            _trunc(r.get("name") or "", 30),
            _trunc(r.get("subject") or "", 40),
            r.get("id") or "-",
        )
        for r in replies
    ]
    return _table(cols, rows, f"Total: {len(replies)}", color=color)


def format_canned_reply_detail(reply, color=False):
    pairs = [
        ("Name", reply.get("name") or "-"),
        ("ID", reply.get("id") or "-"),
        ("Subject", reply.get("subject") or "-"),
    ]
    extra = [(k, v) for k, v in reply.items() if k not in _CANNED_FIELDS]
    lines = [_kv_lines(pairs + extra), "", _sanitize_str(reply.get("body") or "")]
    return "\n".join(lines).rstrip()


def format_me_table(me, color=False):
    pairs = [
        ("Name", me.get("name") or "-"),
        ("Email", me.get("email") or "-"),
        ("Role", me.get("role") or "-"),
        ("ID", me.get("id") or "-"),
    ]
    extra = [(k, v) for k, v in me.items() if k not in _ME_FIELDS]
    return _kv_lines(pairs + extra)


def format_config_table(cfg, color=False):
    source = cfg.get("token_source")
    token = cfg.get("token") or "(not set)"
    if source:
        token += f" (from {source})"
    pairs = [
        ("Config file", cfg.get("config_path") or "-"),
        ("API token", token),
        ("Endpoint", cfg.get("endpoint") or "-"),
        ("Format", cfg.get("format") or "-"),
        ("Default limit", cfg.get("default_limit", "-")),
        ("Default folder", cfg.get("default_folder") or "-"),
    ]
    pairs += [(k, v) for k, v in cfg.items() if k not in _CONFIG_FIELDS]
    lines = [_kv_lines(pairs)]
    aliases = cfg.get("aliases") or {}
    if aliases:
        lines.append("")
        lines.append("Aliases:")
        for name in sorted(aliases):
            lines.append(f"  {name} = {_sanitize_str(aliases[name])}")
    return "\n".join(lines)


def format_token_saved(payload, color=False):
    return f"OK: API token {payload.get('token') or ''} saved to {payload.get('path')}"


def config_payload(cfg):
    """JSON-safe view of an EffectiveConfig, with the token masked."""
    return {
        "config_path": cfg.config_path,
        "token": mask_token(cfg.token) or None,
        "token_source": cfg.token_source,
        "endpoint": cfg.endpoint,
        "format": cfg.format,
        "default_limit": cfg.default_limit,
        "default_folder": cfg.default_folder,
        "aliases": dict(cfg.aliases),
    }


# ---------------------------------------------------------------------------
# Compact
# ---------------------------------------------------------------------------


def format_folders_compact(folders):
    return "\n".join(compact_line(f.get("id"), f.get("name"), f.get("count")) for f in folders)


def format_tags_compact(tags):
    return "\n".join(compact_line(t.get("id"), t.get("name"), t.get("color")) for t in tags)


def format_canned_replies_compact(replies):
    return "\n".join(
        compact_line(r.get("id"), r.get("name"), r.get("subject")) for r in replies
    )


def format_canned_reply_compact(reply):
    fields = [reply.get(k) for k in _CANNED_FIELDS]
    return compact_line(*fields, *compact_extras(reply, _CANNED_FIELDS))


def format_me_compact(me):
    fields = [me.get(k) for k in _ME_FIELDS]
    return compact_line(*fields, *compact_extras(me, _ME_FIELDS))


def _alias_pairs(aliases):
    if not isinstance(aliases, dict):
        return aliases
    return [f"{name}={aliases[name]}" for name in sorted(aliases)]


def format_config_compact(cfg):
    fields = [cfg.get(k) for k in _CONFIG_FIELDS[:-1]]
    fields.append(_alias_pairs(cfg.get("aliases")))
    return compact_line(*fields, *compact_extras(cfg, _CONFIG_FIELDS))


def format_token_saved_compact(payload):
    fields = [payload.get(k) for k in _TOKEN_SAVED_FIELDS]
    return compact_line(*fields, *compact_extras(payload, _TOKEN_SAVED_FIELDS))
