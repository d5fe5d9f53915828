"""Tests for aliases.py — alias table lookups and the ambiguity check."""

import pytest

from groove_cli import aliases, models


class TestLookups:
    @pytest.mark.parametrize("token", ["conversation", "conv", "c"])
    def test_conversation_group(self, token):
        assert aliases.lookup_group(token) == "conversation"

    def test_unknown_group(self):
        assert aliases.lookup_group("nope") is None

    def test_verb_lookup_is_scoped_per_group(self):
        assert aliases.lookup_verb("conversation", "tag") == models.ADD_TAG
        assert aliases.lookup_verb("tag", "tag") is None
        assert aliases.lookup_verb("tag", "ls") == models.LIST_TAGS

    def test_canonical_subverb(self):
        assert aliases.canonical_subverb(models.ADD_TAG) == ("conversation", "add-tag")
        assert aliases.canonical_subverb(models.SHOW_ME) == ("me", None)

    def test_every_verb_reachable(self):
        reachable = set(aliases.VERB_ALIASES.values()) | set(aliases.DIRECT_VERBS.values())
        assert reachable == set(models.VERBS)


class TestCheckAliasTable:
    def test_builtin_table_is_unambiguous(self):
        aliases.check_alias_table()

    def test_group_alias_collision(self):
        groups = [("a", ("x",), ""), ("b", ("x",), "")]
        subverbs = {"a": [("list", (), models.LIST_TAGS)], "b": [("list", (), models.LIST_TAGS)]}
        with pytest.raises(ValueError, match="'x'"):
            aliases.check_alias_table(groups, subverbs, {})

    def test_verb_alias_collision(self):
        groups = [("a", (), "")]
        subverbs = {"a": [("list", ("l",), models.LIST_TAGS), ("lookup", ("l",), models.SHOW_ME)]}
        with pytest.raises(ValueError, match="a l"):
            aliases.check_alias_table(groups, subverbs, {})

    def test_same_token_in_different_groups_is_fine(self):
        groups = [("a", (), ""), ("b", (), "")]
        subverbs = {"a": [("list", (), models.LIST_TAGS)], "b": [("list", (), models.LIST_FOLDERS)]}
        aliases.check_alias_table(groups, subverbs, {})

    def test_group_without_verbs(self):
        with pytest.raises(ValueError, match="no verbs"):
            aliases.check_alias_table([("a", (), "")], {}, {})

    def test_subverbs_for_unknown_group(self):
        with pytest.raises(ValueError, match="unknown group"):
            aliases.check_alias_table([], {"a": [("list", (), models.LIST_TAGS)]}, {})


class TestUserAliases:
    def test_expands_leading_alias(self):
        tokens = aliases.expand_user_alias(["inbox", "-n", "5"], {"inbox": "conv list -s unread"})
        assert tokens == ["conv", "list", "-s", "unread", "-n", "5"]

    def test_quoted_expansion(self):
        tokens = aliases.expand_user_alias(["find"], {"find": 'conv list -q "late refund"'})
        assert tokens == ["conv", "list", "-q", "late refund"]

    def test_builtin_wins(self):
        tokens = aliases.expand_user_alias(["c", "ls"], {"c": "config show"})
        assert tokens == ["c", "ls"]

    def test_no_aliases(self):
        assert aliases.expand_user_alias(["me"], {}) == ["me"]
