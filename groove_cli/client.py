"""
GrooveClient — remote operations against the Groove GraphQL API.

execute() takes a resolved Operation and returns a Response whose payload
is a plain JSON-compatible tree. Raises OperationError subclasses on failure.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from groove_cli import models
from groove_cli._utils import _nodes, normalize_conversation
from groove_cli.api import graphql_request, mutation_errors
from groove_cli.exceptions import NotFoundError, OperationError, UnknownOperationError

# ---------------------------------------------------------------------------
# GraphQL documents
# ---------------------------------------------------------------------------

_CONVERSATION_FIELDS = """
    id
    number
    subject
    state
    createdAt
    updatedAt
    snoozedUntil
    messagesCount
    assigned {
        ... on Agent {
            id
            email
            name
        }
    }
    contact {
        id
        email
        name
    }
    channel {
        id
        name
    }
    tags {
        nodes {
            id
            name
            color
        }
    }
"""

ME_QUERY = """
query {
    me {
        id
        email
        name
        role
    }
}
"""

CONVERSATIONS_QUERY = (
    """
query Conversations($first: Int, $after: String, $filter: ConversationFilter) {
    conversations(first: $first, after: $after, filter: $filter) {
        nodes {"""
    + _CONVERSATION_FIELDS
    + """
        }
        pageInfo {
            hasNextPage
            endCursor
        }
        totalCount
    }
}
"""
)

CONVERSATION_QUERY = (
    """
query Conversation($number: Int!) {
    conversation(number: $number) {"""
    + _CONVERSATION_FIELDS
    + """
    }
}
"""
)

MESSAGES_QUERY = """
query Messages($id: ID!, $first: Int) {
    node(id: $id) {
        ... on Conversation {
            messages(first: $first) {
                nodes {
                    id
                    createdAt
                    bodyText
                    bodyHtml
                    author {
                        __typename
                        ... on Agent {
                            id
                            email
                            name
                        }
                        ... on Contact {
                            id
                            email
                            name
                        }
                    }
                }
            }
        }
    }
}
"""

FOLDERS_QUERY = """
query {
    folders(first: 100) {
        nodes {
            id
            name
            count
        }
    }
}
"""

TAGS_QUERY = """
query {
    tags(first: 100) {
        nodes {
            id
            name
            color
        }
    }
}
"""

CANNED_REPLIES_QUERY = """
query {
    cannedReplies(first: 100) {
        nodes {
            id
            name
            subject
            body
        }
    }
}
"""

AGENTS_QUERY = """
query {
    agents(first: 100) {
        nodes {
            id
            email
            name
        }
    }
}
"""


def _mutation(name, input_type):
    return f"""
mutation {name[0].upper() + name[1:]}($input: {input_type}!) {{
    {name}(input: $input) {{
        errors {{
            message
        }}
    }}
}}
"""


_STATE_FILTERS = {
    "unread": "UNREAD",
    "open": "OPENED",
    "closed": "CLOSED",
    "snoozed": "SNOOZED",
    "spam": "SPAM",
}

MESSAGES_PAGE_SIZE = 50


def _now():
    return datetime.now(timezone.utc)


def _match_name(items, wanted, *keys):
    """Find the first item whose id matches exactly or whose *keys* match case-insensitively."""
    lowered = wanted.lower()
    for item in items:
        if item.get("id") == wanted:
            return item
        for key in keys:
            value = item.get(key)
            if isinstance(value, str) and value.lower() == lowered:
                return item
    return None


# ---------------------------------------------------------------------------
# GrooveClient
# ---------------------------------------------------------------------------


class GrooveClient:
    """Remote API surface for Groove conversations.

    All read methods return plain dicts/lists suitable for JSON
    serialization. Raises OperationError subclasses on failure.
    """

    def __init__(self, endpoint, token, *, log=False):
        self._endpoint = endpoint
        self._token = token
        self._log = log

    @classmethod
    def from_config(cls, cfg, *, log=False):
        return cls(cfg.endpoint, cfg.token, log=log)

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------

    def _query(self, query, variables=None) -> dict[str, Any]:
        return graphql_request(
            self._endpoint, self._token, query, variables, idempotent=True, log=self._log
        )

    def _mutate(self, name, input_type, variables) -> dict[str, Any]:
        data = graphql_request(
            self._endpoint,
            self._token,
            _mutation(name, input_type),
            {"input": variables},
            log=self._log,
        )
        result = data.get(name) or {}
        mutation_errors(result)
        return result

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def me(self) -> dict[str, Any]:
        return self._query(ME_QUERY).get("me") or {}

    def list_conversations(self, *, limit, after=None, status=None, folder=None, search=None):
        """Return (nodes, meta) for one page of conversations."""
        conv_filter: dict[str, Any] = {}
        if status:
            conv_filter["state"] = _STATE_FILTERS.get(status, status.upper())
        if folder:
            conv_filter["folderId"] = self.resolve_folder_id(folder)
        if search:
            conv_filter["keywords"] = search
        variables = {
            "first": limit,
            "after": after,
            "filter": conv_filter or None,
        }
        connection = self._query(CONVERSATIONS_QUERY, variables).get("conversations") or {}
        nodes = [normalize_conversation(n) for n in _nodes(connection)]
        meta = {
            "pageInfo": connection.get("pageInfo") or {"hasNextPage": False, "endCursor": None},
            "totalCount": connection.get("totalCount", len(nodes)),
        }
        return nodes, meta

    def get_conversation(self, number) -> dict[str, Any]:
        conv = self._query(CONVERSATION_QUERY, {"number": number}).get("conversation")
        if not conv:
            raise NotFoundError(f"Conversation #{number} not found.")
        return normalize_conversation(conv)

    def list_messages(self, conversation_id, limit=MESSAGES_PAGE_SIZE) -> list[dict[str, Any]]:
        node = self._query(MESSAGES_QUERY, {"id": conversation_id, "first": limit}).get("node")
        if not node:
            return []
        return _nodes(node.get("messages"))

    def list_folders(self) -> list[dict[str, Any]]:
        return _nodes(self._query(FOLDERS_QUERY).get("folders"))

    def list_tags(self) -> list[dict[str, Any]]:
        return _nodes(self._query(TAGS_QUERY).get("tags"))

    def list_canned_replies(self) -> list[dict[str, Any]]:
        return _nodes(self._query(CANNED_REPLIES_QUERY).get("cannedReplies"))

    def list_agents(self) -> list[dict[str, Any]]:
        return _nodes(self._query(AGENTS_QUERY).get("agents"))

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------

    def find_canned_reply(self, name) -> dict[str, Any]:
        reply = _match_name(self.list_canned_replies(), name, "name")
        if reply is None:
            raise NotFoundError(f"Canned reply '{name}' not found.")
        return reply

    def resolve_folder_id(self, folder) -> str:
        match = _match_name(self.list_folders(), folder, "name")
        if match is None:
            raise NotFoundError(f"Folder '{folder}' not found.")
        return match["id"]

    def resolve_agent_id(self, agent) -> str:
        if agent == "me":
            me = self.me()
            if not me.get("id"):
                raise NotFoundError("Current agent not found.")
            return me["id"]
        match = _match_name(self.list_agents(), agent, "email", "name")
        if match is None:
            raise NotFoundError(f"Agent '{agent}' not found.")
        return match["id"]

    def resolve_tag_ids(self, names) -> list[str]:
        all_tags = self.list_tags()
        tag_ids = []
        for name in names:
            match = _match_name(all_tags, name, "name")
            if match is None:
                raise NotFoundError(f"Tag '{name}' not found.")
            tag_ids.append(match["id"])
        return tag_ids

    def _conversation_id(self, number) -> str:
        return self.get_conversation(number)["id"]

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------

    def reply(self, number, body=None, canned=None) -> dict[str, Any]:
        """Send a reply. With *canned*, *body* is appended to the template."""
        if canned:
            template = (self.find_canned_reply(canned).get("body") or "").rstrip()
            body = f"{template}\n\n{body}" if template and body else (template or body)
        if not body:
            raise UnknownOperationError("Reply body is empty.")
        conv_id = self._conversation_id(number)
        self._mutate(
            "conversationReply",
            "ConversationReplyInput",
            {"conversationId": conv_id, "body": body},
        )
        result = {"number": number, "ok": True}
        if canned:
            result["canned"] = canned
        return result

    def close(self, number) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        self._mutate("conversationClose", "ConversationStateInput", {"conversationId": conv_id})
        return {"number": number, "ok": True}

    def reopen(self, number) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        self._mutate("conversationOpen", "ConversationStateInput", {"conversationId": conv_id})
        return {"number": number, "ok": True}

    def snooze(self, number, *, duration=None, until=None) -> dict[str, Any]:
        if until is None:
            until = _now() + (duration or timedelta(0))
        until_iso = until.isoformat()
        conv_id = self._conversation_id(number)
        self._mutate(
            "conversationSnooze",
            "ConversationSnoozeInput",
            {"conversationId": conv_id, "snoozedUntil": until_iso},
        )
        return {"number": number, "ok": True, "snoozedUntil": until_iso}

    def assign(self, number, agent) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        agent_id = self.resolve_agent_id(agent)
        self._mutate(
            "conversationAssign",
            "ConversationAssignInput",
            {"conversationId": conv_id, "assigneeId": agent_id},
        )
        return {"number": number, "ok": True, "agent": agent}

    def unassign(self, number) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        self._mutate(
            "conversationUnassign", "ConversationUnassignInput", {"conversationId": conv_id}
        )
        return {"number": number, "ok": True}

    def add_tags(self, number, tags) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        tag_ids = self.resolve_tag_ids(tags)
        self._mutate(
            "conversationTag",
            "ConversationTagInput",
            {"conversationId": conv_id, "tagIds": tag_ids},
        )
        return {"number": number, "ok": True, "tags": list(tags)}

    def remove_tags(self, number, tags) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        tag_ids = self.resolve_tag_ids(tags)
        self._mutate(
            "conversationUntag",
            "ConversationUntagInput",
            {"conversationId": conv_id, "tagIds": tag_ids},
        )
        return {"number": number, "ok": True, "tags": list(tags)}

    def add_note(self, number, body) -> dict[str, Any]:
        conv_id = self._conversation_id(number)
        self._mutate(
            "conversationAddNote",
            "ConversationAddNoteInput",
            {"conversationId": conv_id, "body": body},
        )
        return {"number": number, "ok": True}

    def _bulk(self, fn, numbers) -> dict[str, Any]:
        """Run *fn* per conversation number in order; failures don't stop the loop."""
        results = []
        for number in numbers:
            try:
                results.append(fn(number))
            except OperationError as e:
                results.append(
                    {"number": number, "ok": False, "error": str(e), "category": e.category}
                )
        return {"ok": all(r["ok"] for r in results), "results": results}

    # -------------------------------------------------------------------
    # Operation dispatch
    # -------------------------------------------------------------------

    def execute(self, op) -> models.Response:
        """Run one resolved Operation and return its Response."""
        kind = op.kind
        if kind == models.SHOW_ME:
            return models.Response(self.me())
        if kind == models.LIST_CONVERSATIONS:
            nodes, meta = self.list_conversations(
                limit=op.arg("limit"),
                after=op.arg("after"),
                status=op.arg("status"),
                folder=op.arg("folder"),
                search=op.arg("search"),
            )
            return models.Response(nodes, meta)
        if kind == models.VIEW_CONVERSATION:
            conv = self.get_conversation(op.target)
            messages = self.list_messages(conv["id"])
            return models.Response({"conversation": conv, "messages": messages})
        if kind == models.LIST_FOLDERS:
            return models.Response(self.list_folders())
        if kind == models.LIST_TAGS:
            return models.Response(self.list_tags())
        if kind == models.LIST_CANNED_REPLIES:
            return models.Response(self.list_canned_replies())
        if kind == models.SHOW_CANNED_REPLY:
            return models.Response(self.find_canned_reply(op.arg("name")))

        if kind == models.CLOSE_CONVERSATION:
            return models.Response(self._bulk(self.close, op.target_ids))
        if kind == models.OPEN_CONVERSATION:
            return models.Response(self._bulk(self.reopen, op.target_ids))
        if kind == models.UNASSIGN_CONVERSATION:
            return models.Response(self._bulk(self.unassign, op.target_ids))

        if kind == models.REPLY_CONVERSATION:
            result = self.reply(op.target, op.arg("body"), op.arg("canned"))
        elif kind == models.SNOOZE_CONVERSATION:
            result = self.snooze(op.target, duration=op.arg("duration"), until=op.arg("until"))
        elif kind == models.ASSIGN_CONVERSATION:
            result = self.assign(op.target, op.arg("agent"))
        elif kind == models.ADD_TAG:
            result = self.add_tags(op.target, op.arg("tags"))
        elif kind == models.REMOVE_TAG:
            result = self.remove_tags(op.target, op.arg("tags"))
        elif kind == models.ADD_NOTE:
            result = self.add_note(op.target, op.arg("body"))
        else:
            raise UnknownOperationError(f"Operation '{kind}' is not a remote operation.")
        return models.Response({"ok": True, "results": [result]})


def execute(op, cfg, *, log=False):
    """Execute *op* against the API configured in *cfg*."""
    return GrooveClient.from_config(cfg, log=log).execute(op)
