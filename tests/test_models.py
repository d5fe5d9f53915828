"""Tests for models.py — Operation and Response value types."""

import dataclasses

import pytest

from groove_cli import models


class TestOperation:
    def test_unknown_verb_rejected(self):
        with pytest.raises(ValueError):
            models.Operation("explode")

    def test_immutable(self):
        op = models.Operation(models.CLOSE_CONVERSATION, [1, 2])
        with pytest.raises(dataclasses.FrozenInstanceError):
            op.kind = models.OPEN_CONVERSATION
        with pytest.raises(TypeError):
            op.args["x"] = 1

    def test_target_ids_become_tuple(self):
        op = models.Operation(models.CLOSE_CONVERSATION, [3, 1, 3])
        assert op.target_ids == (3, 1, 3)

    def test_equality_compares_args(self):
        a = models.Operation(models.LIST_CONVERSATIONS, args={"limit": 5})
        b = models.Operation(models.LIST_CONVERSATIONS, args={"limit": 5})
        c = models.Operation(models.LIST_CONVERSATIONS, args={"limit": 6})
        assert a == b
        assert a != c
        assert hash(a) == hash(b)

    def test_with_args_returns_new_operation(self):
        op = models.Operation(models.LIST_CONVERSATIONS, args={"status": "open"})
        updated = op.with_args(limit=10)
        assert updated.arg("limit") == 10
        assert updated.arg("status") == "open"
        assert op.arg("limit") is None

    def test_target(self):
        assert models.Operation(models.VIEW_CONVERSATION, (7,)).target == 7
        assert models.Operation(models.SHOW_ME).target is None


class TestVerbSets:
    def test_local_verbs_do_not_require_auth(self):
        for verb in models.LOCAL_VERBS:
            assert models.requires_auth(verb) is False
        assert models.requires_auth(models.SHOW_ME) is True

    def test_bulk_verbs_are_mutating(self):
        assert models.BULK_VERBS <= models.MUTATING_VERBS

    def test_read_verbs_not_mutating(self):
        assert not (models.LIST_VERBS & models.MUTATING_VERBS)
        assert models.VIEW_CONVERSATION not in models.MUTATING_VERBS


class TestResponse:
    def test_failures(self):
        resp = models.Response(
            {
                "ok": False,
                "results": [
                    {"number": 1, "ok": True},
                    {"number": 2, "ok": False, "error": "boom"},
                ],
            }
        )
        assert [f["number"] for f in resp.failures] == [2]

    def test_failures_on_other_shapes(self):
        assert models.Response([1, 2]).failures == []
        assert models.Response({"results": "nope"}).failures == []
        assert models.Response(None).failures == []
