"""
Core value types: canonical verbs, the resolved Operation, and the
normalized Response handed from the remote client to the renderers.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

# ---------------------------------------------------------------------------
# Canonical verbs
# ---------------------------------------------------------------------------

LIST_CONVERSATIONS = "list_conversations"
VIEW_CONVERSATION = "view_conversation"
REPLY_CONVERSATION = "reply_conversation"
CLOSE_CONVERSATION = "close_conversation"
OPEN_CONVERSATION = "open_conversation"
SNOOZE_CONVERSATION = "snooze_conversation"
ASSIGN_CONVERSATION = "assign_conversation"
UNASSIGN_CONVERSATION = "unassign_conversation"
ADD_TAG = "add_tag"
REMOVE_TAG = "remove_tag"
ADD_NOTE = "add_note"
LIST_FOLDERS = "list_folders"
LIST_TAGS = "list_tags"
LIST_CANNED_REPLIES = "list_canned_replies"
SHOW_CANNED_REPLY = "show_canned_reply"
SHOW_ME = "show_me"
SHOW_CONFIG = "show_config"
SET_TOKEN = "set_token"
SHOW_CONFIG_PATH = "show_config_path"

VERBS = frozenset(
    {
        LIST_CONVERSATIONS,
        VIEW_CONVERSATION,
        REPLY_CONVERSATION,
        CLOSE_CONVERSATION,
        OPEN_CONVERSATION,
        SNOOZE_CONVERSATION,
        ASSIGN_CONVERSATION,
        UNASSIGN_CONVERSATION,
        ADD_TAG,
        REMOVE_TAG,
        ADD_NOTE,
        LIST_FOLDERS,
        LIST_TAGS,
        LIST_CANNED_REPLIES,
        SHOW_CANNED_REPLY,
        SHOW_ME,
        SHOW_CONFIG,
        SET_TOKEN,
        SHOW_CONFIG_PATH,
    }
)

# Handled locally against the config store; never need a token.
LOCAL_VERBS = frozenset({SHOW_CONFIG, SET_TOKEN, SHOW_CONFIG_PATH})

# Accept one or more conversation numbers, executed per ID.
BULK_VERBS = frozenset({CLOSE_CONVERSATION, OPEN_CONVERSATION, UNASSIGN_CONVERSATION})

# Output of these is a confirmation, suppressed by --quiet.
MUTATING_VERBS = frozenset(
    {
        REPLY_CONVERSATION,
        CLOSE_CONVERSATION,
        OPEN_CONVERSATION,
        SNOOZE_CONVERSATION,
        ASSIGN_CONVERSATION,
        UNASSIGN_CONVERSATION,
        ADD_TAG,
        REMOVE_TAG,
        ADD_NOTE,
        SET_TOKEN,
    }
)

LIST_VERBS = frozenset({LIST_CONVERSATIONS, LIST_FOLDERS, LIST_TAGS, LIST_CANNED_REPLIES})


def requires_auth(verb):
    return verb not in LOCAL_VERBS


# ---------------------------------------------------------------------------
# Operation / Response
# ---------------------------------------------------------------------------


def _freeze(args):
    return MappingProxyType(dict(args or {}))


@dataclass(frozen=True)
class Operation:
    """A fully resolved command. Immutable once built."""

    kind: str
    target_ids: tuple[int, ...] = ()
    args: Mapping[str, Any] = field(default_factory=lambda: _freeze({}))

    def __post_init__(self):
        if self.kind not in VERBS:
            raise ValueError(f"Unknown verb: {self.kind}")
        object.__setattr__(self, "target_ids", tuple(self.target_ids))
        object.__setattr__(self, "args", _freeze(self.args))

    def __eq__(self, other):
        if not isinstance(other, Operation):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.target_ids == other.target_ids
            and dict(self.args) == dict(other.args)
        )

    def __hash__(self):
        return hash((self.kind, self.target_ids))

    def arg(self, name, default=None):
        return self.args.get(name, default)

    def with_args(self, **updates):
        """Return a copy with *updates* merged into args."""
        merged = dict(self.args)
        merged.update(updates)
        return replace(self, args=merged)

    @property
    def target(self):
        """The single conversation number for non-bulk verbs."""
        return self.target_ids[0] if self.target_ids else None


@dataclass(frozen=True)
class Response:
    """Result of one operation.

    payload is a plain JSON-compatible tree (dict / list / scalars).
    meta carries pagination for list verbs.
    """

    payload: Any
    meta: dict | None = None

    @property
    def failures(self):
        """Per-ID failures of a bulk mutation."""
        if not isinstance(self.payload, dict):
            return []
        results = self.payload.get("results")
        if not isinstance(results, list):
            return []
        return [r for r in results if isinstance(r, dict) and not r.get("ok", True)]
