"""
Command resolution: user tokens -> canonical Operation.

Group and sub-verb tokens are looked up in the alias table; the remaining
tokens are bound to the verb's parameters with a small argparse parser.
Every malformed command fails here with a ResolutionError, before any
configuration or network work happens.
"""

from __future__ import annotations

import argparse
import re
from datetime import datetime, timedelta, timezone

from groove_cli import aliases, config, models
from groove_cli.exceptions import (
    InvalidArgumentError,
    MissingArgumentError,
    UnknownCommandError,
)

_DURATION_RE = re.compile(r"^(\d+)([a-zA-Z]+)$")
_DURATION_UNITS = {"h": "hours", "d": "days", "w": "weeks"}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _VerbParser(argparse.ArgumentParser):
    """Parser that raises InvalidArgumentError instead of exiting."""

    def error(self, message):
        raise InvalidArgumentError(f"{self.prog}: {message}")


def _positive_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a positive integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return parsed


def _status_value(value):
    status = value.lower()
    if status not in config.VALID_STATUSES:
        raise argparse.ArgumentTypeError(
            f"invalid status '{value}' (choose from {', '.join(sorted(config.VALID_STATUSES))})"
        )
    return status


def _build_parser(verb):
    group, name = aliases.canonical_subverb(verb)
    prog = f"groove {group} {name}" if name else f"groove {group}"
    p = _VerbParser(prog=prog, add_help=False, allow_abbrev=False)
    p.add_argument("positionals", nargs="*")
    if verb == models.LIST_CONVERSATIONS:
        p.add_argument("--status", "-s", type=_status_value)
        p.add_argument("--folder", "-f")
        p.add_argument("--search", "-q")
        p.add_argument("--limit", "-n", type=_positive_int)
        p.add_argument("--after")
    elif verb == models.VIEW_CONVERSATION:
        p.add_argument("--full", action="store_true")
    elif verb == models.REPLY_CONVERSATION:
        p.add_argument("--canned", "-c")
    return p


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def parse_conversation_number(token):
    """Parse a conversation number. Must be a positive decimal integer."""
    if not re.fullmatch(r"\d+", token or ""):
        raise InvalidArgumentError(
            f"Invalid conversation number '{token}': must be a positive integer."
        )
    number = int(token)
    if number <= 0:
        raise InvalidArgumentError(
            f"Invalid conversation number '{token}': must be a positive integer."
        )
    return number


def parse_duration(token):
    """Parse a snooze duration.

    "<n>h", "<n>d" and "<n>w" become a timedelta; an ISO-8601 datetime
    becomes an absolute (UTC) datetime.
    """
    match = _DURATION_RE.match(token)
    if match:
        amount, unit = int(match.group(1)), match.group(2).lower()
        if unit not in _DURATION_UNITS:
            raise InvalidArgumentError(
                f"Invalid duration unit '{match.group(2)}' in '{token}'. Use h, d or w."
            )
        if amount <= 0:
            raise InvalidArgumentError(f"Invalid duration '{token}': must be greater than zero.")
        try:
            delta = timedelta(**{_DURATION_UNITS[unit]: amount})
        except OverflowError as e:
            raise InvalidArgumentError(f"Invalid duration '{token}': too large.") from e
        # The snooze deadline must stay a representable datetime.
        if delta >= datetime.max.replace(tzinfo=timezone.utc) - datetime.now(timezone.utc):
            raise InvalidArgumentError(f"Invalid duration '{token}': too large.")
        return delta
    if "T" in token:
        try:
            until = datetime.fromisoformat(token.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid snooze datetime '{token}'.") from e
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        return until
    raise InvalidArgumentError(
        f"Invalid duration '{token}'. Use <number><unit> with unit h, d or w (e.g. 2d)."
    )


def read_body(stdin):
    """Read a message body from stdin, to end of stream.

    Trailing newlines are stripped. A terminal stdin is never read.
    """
    if stdin is None or stdin.isatty():
        raise MissingArgumentError(
            "No message body provided. Pass it as an argument or pipe it via stdin."
        )
    data = stdin.read()
    body = data.rstrip("\r\n")
    if not body.strip():
        raise MissingArgumentError("Empty message body provided.")
    return body


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------


def _require(positionals, index, what, prog):
    if len(positionals) <= index:
        raise MissingArgumentError(f"{prog}: missing {what}.")
    return positionals[index]


def _no_extra(positionals, count, prog):
    if len(positionals) > count:
        raise InvalidArgumentError(f"{prog}: unexpected argument '{positionals[count]}'.")


def _bind(verb, ns, prog, stdin):
    pos = ns.positionals

    if verb in (
        models.LIST_FOLDERS,
        models.LIST_TAGS,
        models.LIST_CANNED_REPLIES,
        models.SHOW_ME,
        models.SHOW_CONFIG,
        models.SHOW_CONFIG_PATH,
    ):
        _no_extra(pos, 0, prog)
        return models.Operation(verb)

    if verb == models.LIST_CONVERSATIONS:
        _no_extra(pos, 0, prog)
        args = {
            k: getattr(ns, k)
            for k in ("status", "folder", "search", "limit", "after")
            if getattr(ns, k) is not None
        }
        return models.Operation(verb, args=args)

    if verb in models.BULK_VERBS:
        _require(pos, 0, "conversation number", prog)
        ids = tuple(parse_conversation_number(t) for t in pos)
        return models.Operation(verb, target_ids=ids)

    if verb == models.SHOW_CANNED_REPLY:
        name = _require(pos, 0, "canned reply name or ID", prog)
        _no_extra(pos, 1, prog)
        return models.Operation(verb, args={"name": name})

    if verb == models.SET_TOKEN:
        token = _require(pos, 0, "token", prog).strip()
        _no_extra(pos, 1, prog)
        if not token:
            raise InvalidArgumentError(f"{prog}: token cannot be empty.")
        return models.Operation(verb, args={"token": token})

    # Everything below targets exactly one conversation.
    number = parse_conversation_number(_require(pos, 0, "conversation number", prog))
    rest = pos[1:]

    if verb == models.VIEW_CONVERSATION:
        _no_extra(rest, 0, prog)
        return models.Operation(verb, (number,), {"full": ns.full})

    if verb == models.REPLY_CONVERSATION:
        _no_extra(rest, 1, prog)
        body = rest[0] if rest else None
        if body is None and ns.canned is None:
            body = read_body(stdin)
        return models.Operation(verb, (number,), {"body": body, "canned": ns.canned})

    if verb == models.ADD_NOTE:
        _no_extra(rest, 1, prog)
        body = rest[0] if rest else read_body(stdin)
        return models.Operation(verb, (number,), {"body": body})

    if verb == models.SNOOZE_CONVERSATION:
        token = _require(rest, 0, "snooze duration", prog)
        _no_extra(rest, 1, prog)
        value = parse_duration(token)
        key = "duration" if isinstance(value, timedelta) else "until"
        return models.Operation(verb, (number,), {key: value})

    if verb == models.ASSIGN_CONVERSATION:
        agent = _require(rest, 0, "agent (email, name or 'me')", prog)
        _no_extra(rest, 1, prog)
        return models.Operation(verb, (number,), {"agent": agent})

    if verb in (models.ADD_TAG, models.REMOVE_TAG):
        _require(rest, 0, "tag name", prog)
        return models.Operation(verb, (number,), {"tags": tuple(rest)})

    raise UnknownCommandError(f"No binding for verb '{verb}'.")


def split_command(tokens):
    """Resolve the group and sub-verb tokens.

    Returns (verb, remaining_tokens).
    """
    if not tokens:
        raise MissingArgumentError("No command given. Run 'groove --help' for usage.")
    group = aliases.lookup_group(tokens[0])
    if group is None:
        raise UnknownCommandError(f"Unknown command '{tokens[0]}'.")
    if group in aliases.DIRECT_VERBS:
        return aliases.DIRECT_VERBS[group], list(tokens[1:])
    names = ", ".join(name for name, _a, _v in aliases.SUBVERBS[group])
    if len(tokens) < 2:
        raise MissingArgumentError(f"'groove {group}' needs a sub-command: {names}.")
    verb = aliases.lookup_verb(group, tokens[1])
    if verb is None:
        raise UnknownCommandError(
            f"Unknown command '{tokens[1]}' for '{group}'. Available: {names}."
        )
    return verb, list(tokens[2:])


def resolve_command(tokens, stdin=None):
    """Turn raw command tokens into an Operation.

    *stdin* is only read for reply/note without a body argument.
    """
    verb, rest = split_command(tokens)
    parser = _build_parser(verb)
    ns = parser.parse_intermixed_args(rest)
    return _bind(verb, ns, parser.prog, stdin)


def apply_defaults(op, cfg):
    """Fill list defaults from the effective config when not given explicitly."""
    if op.kind != models.LIST_CONVERSATIONS:
        return op
    updates = {}
    if op.arg("limit") is None:
        updates["limit"] = cfg.default_limit
    if op.arg("folder") is None and cfg.default_folder:
        updates["folder"] = cfg.default_folder
    return op.with_args(**updates) if updates else op
