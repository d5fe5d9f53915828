"""Confirmation messages for mutating verbs."""

from groove_cli import models
from groove_cli.formatters._compact import compact_line
from groove_cli.formatters._table import _sanitize_str

_ACTIONS = {
    models.REPLY_CONVERSATION: "replied",
    models.CLOSE_CONVERSATION: "closed",
    models.OPEN_CONVERSATION: "reopened",
    models.SNOOZE_CONVERSATION: "snoozed",
    models.ASSIGN_CONVERSATION: "assigned",
    models.UNASSIGN_CONVERSATION: "unassigned",
    models.ADD_TAG: "tagged",
    models.REMOVE_TAG: "untagged",
    models.ADD_NOTE: "noted",
}


def action_name(verb):
    return _ACTIONS.get(verb, verb)


def _successes(payload):
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict) and r.get("ok", True)]


def _summary(verb, result):
    number = result.get("number", "?")
    if verb == models.REPLY_CONVERSATION:
        text = f"Replied to conversation #{number}"
        if result.get("canned"):
            text += f" using canned reply '{result['canned']}'"
        return text
    if verb == models.CLOSE_CONVERSATION:
        return f"Closed conversation #{number}"
    if verb == models.OPEN_CONVERSATION:
        return f"Reopened conversation #{number}"
    if verb == models.SNOOZE_CONVERSATION:
        return f"Snoozed conversation #{number} until {result.get('snoozedUntil', '?')}"
    if verb == models.ASSIGN_CONVERSATION:
        return f"Assigned conversation #{number} to {result.get('agent', '?')}"
    if verb == models.UNASSIGN_CONVERSATION:
        return f"Unassigned conversation #{number}"
    if verb == models.ADD_TAG:
        return f"Tagged conversation #{number}: {', '.join(result.get('tags') or [])}"
    if verb == models.REMOVE_TAG:
        return f"Removed tags from conversation #{number}: {', '.join(result.get('tags') or [])}"
    if verb == models.ADD_NOTE:
        return f"Added note to conversation #{number}"
    return f"{action_name(verb)} conversation #{number}"


def format_mutation_table(payload, verb, color=False):
    """One "OK: ..." line per successful target; failures are reported on stderr."""
    return "\n".join(f"OK: {_sanitize_str(_summary(verb, r))}" for r in _successes(payload))


def format_mutation_compact(payload, verb):
    return "\n".join(compact_line(r.get("number"), action_name(verb)) for r in _successes(payload))
