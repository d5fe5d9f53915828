"""
Command alias table.

Two flat lookups: group token -> group, and (group, sub-verb token) -> verb.
Adding an alias is a data change here; check_alias_table() rejects any
token that would resolve to two different targets in the same scope.
"""

import shlex

from groove_cli import models

# (group, aliases, summary)
GROUPS = [
    ("conversation", ("conv", "c"), "Manage conversations"),
    ("folder", ("f",), "List folders"),
    ("tag", ("t",), "List tags"),
    ("canned-replies", ("canned",), "List canned replies"),
    ("me", (), "Show current agent"),
    ("config", ("cfg",), "Manage configuration"),
]

# Groups that are complete commands on their own.
DIRECT_VERBS = {
    "me": models.SHOW_ME,
}

# group -> [(sub-verb, aliases, verb)]
SUBVERBS = {
    "conversation": [
        ("list", ("ls", "l"), models.LIST_CONVERSATIONS),
        ("view", ("show", "v"), models.VIEW_CONVERSATION),
        ("reply", ("r",), models.REPLY_CONVERSATION),
        ("close", (), models.CLOSE_CONVERSATION),
        ("open", (), models.OPEN_CONVERSATION),
        ("snooze", (), models.SNOOZE_CONVERSATION),
        ("assign", (), models.ASSIGN_CONVERSATION),
        ("unassign", (), models.UNASSIGN_CONVERSATION),
        ("add-tag", ("tag",), models.ADD_TAG),
        ("remove-tag", ("untag",), models.REMOVE_TAG),
        ("note", (), models.ADD_NOTE),
    ],
    "folder": [
        ("list", ("ls", "l"), models.LIST_FOLDERS),
    ],
    "tag": [
        ("list", ("ls", "l"), models.LIST_TAGS),
    ],
    "canned-replies": [
        ("list", ("ls", "l"), models.LIST_CANNED_REPLIES),
        ("show", (), models.SHOW_CANNED_REPLY),
    ],
    "config": [
        ("show", (), models.SHOW_CONFIG),
        ("set-token", (), models.SET_TOKEN),
        ("path", (), models.SHOW_CONFIG_PATH),
    ],
}


def check_alias_table(groups=None, subverbs=None, direct=None):
    """Build the two lookup maps, raising ValueError on any ambiguity.

    Returns (group_aliases, verb_aliases) where group_aliases maps
    token -> group and verb_aliases maps (group, token) -> verb.
    """
    groups = GROUPS if groups is None else groups
    subverbs = SUBVERBS if subverbs is None else subverbs
    direct = DIRECT_VERBS if direct is None else direct

    group_aliases = {}
    for group, aliases, _summary in groups:
        for token in (group, *aliases):
            existing = group_aliases.get(token)
            if existing is not None and existing != group:
                raise ValueError(f"Alias '{token}' maps to both '{existing}' and '{group}'")
            group_aliases[token] = group

    verb_aliases = {}
    for group, entries in subverbs.items():
        if group not in {g for g, _a, _s in groups}:
            raise ValueError(f"Sub-verbs defined for unknown group '{group}'")
        if group in direct:
            raise ValueError(f"Group '{group}' cannot be both direct and have sub-verbs")
        for name, aliases, verb in entries:
            for token in (name, *aliases):
                key = (group, token)
                existing = verb_aliases.get(key)
                if existing is not None and existing != verb:
                    raise ValueError(
                        f"Alias '{group} {token}' maps to both '{existing}' and '{verb}'"
                    )
                verb_aliases[key] = verb

    for group, _aliases, _summary in groups:
        if group not in subverbs and group not in direct:
            raise ValueError(f"Group '{group}' has no verbs")

    return group_aliases, verb_aliases


GROUP_ALIASES, VERB_ALIASES = check_alias_table()


def lookup_group(token):
    return GROUP_ALIASES.get(token)


def lookup_verb(group, token):
    return VERB_ALIASES.get((group, token))


def canonical_subverb(verb):
    """Return (group, sub-verb name) for a canonical verb, for help/usage text."""
    for group, entries in SUBVERBS.items():
        for name, _aliases, v in entries:
            if v == verb:
                return group, name
    for group, v in DIRECT_VERBS.items():
        if v == verb:
            return group, None
    return None, None


def expand_user_alias(tokens, user_aliases):
    """Replace a leading user-defined alias with its expansion.

    Built-in group tokens always win over user aliases.
    """
    if not tokens or not user_aliases:
        return list(tokens)
    head = tokens[0]
    if head in GROUP_ALIASES or head not in user_aliases:
        return list(tokens)
    return shlex.split(user_aliases[head]) + list(tokens[1:])
