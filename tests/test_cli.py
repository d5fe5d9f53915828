"""Tests for cli.py — global flags, dispatch, exit codes and diagnostics."""

import json
import os

import pytest

from groove_cli import cli, config, models
from groove_cli.client import GrooveClient
from groove_cli.config import FileConfig
from groove_cli.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
)

CLOSED = models.Response({"ok": True, "results": [{"number": 123, "ok": True}]})


class FlakyCloseClient(GrooveClient):
    """Closes every conversation except #101."""

    def __init__(self):
        super().__init__("https://example.invalid/graphql", "tok")
        self.closed = []

    def close(self, number):
        if number == 101:
            raise NotFoundError(f"Conversation #{number} not found.")
        self.closed.append(number)
        return {"number": number, "ok": True}


class TestExtractGlobalFlags:
    def test_flags_anywhere(self):
        flags, rest = cli._extract_global_flags(
            ["conv", "--format", "json", "list", "--token", "t", "--quiet", "-s", "open"]
        )
        assert flags["format"] == "json"
        assert flags["token"] == "t"
        assert flags["quiet"] is True
        assert rest == ["conv", "list", "-s", "open"]

    def test_equals_syntax(self):
        flags, rest = cli._extract_global_flags(["--format=compact", "--token=abc", "me"])
        assert flags["format"] == "compact"
        assert flags["token"] == "abc"
        assert rest == ["me"]

    def test_short_format_flag(self):
        flags, rest = cli._extract_global_flags(["-o", "json", "me"])
        assert flags["format"] == "json"
        assert rest == ["me"]

    def test_short_format_equals_syntax(self):
        flags, rest = cli._extract_global_flags(["c", "ls", "-o=compact"])
        assert flags["format"] == "compact"
        assert rest == ["c", "ls"]

    def test_invalid_format(self):
        with pytest.raises(InvalidArgumentError):
            cli._extract_global_flags(["--format", "xml", "me"])

    def test_missing_value(self):
        with pytest.raises(InvalidArgumentError):
            cli._extract_global_flags(["me", "--token"])

    def test_quiet_and_verbose_conflict(self):
        with pytest.raises(InvalidArgumentError):
            cli._extract_global_flags(["--quiet", "-v", "me"])

    def test_double_dash_stops_extraction(self):
        flags, rest = cli._extract_global_flags(["c", "reply", "1", "--", "--quiet"])
        assert flags["quiet"] is False
        assert rest == ["c", "reply", "1", "--", "--quiet"]

    def test_search_short_flag_is_not_quiet(self):
        flags, rest = cli._extract_global_flags(["c", "ls", "-q", "refund"])
        assert flags["quiet"] is False
        assert rest == ["c", "ls", "-q", "refund"]


class TestHelpAndVersion:
    def test_version(self, invoke):
        result = invoke("--version")
        assert result.code == 0
        assert result.stdout == f"groove {config.VERSION}\n"

    def test_short_version(self, invoke):
        assert invoke("-V").stdout.startswith("groove ")

    def test_no_args_prints_help(self, invoke):
        result = invoke()
        assert result.code == 0
        assert "Usage: groove" in result.stdout

    def test_help(self, invoke):
        result = invoke("--help")
        assert result.code == 0
        assert "conversation (conv, c)" in result.stdout

    def test_group_help(self, invoke):
        result = invoke("conv", "-h")
        assert result.code == 0
        assert "Usage: groove conversation" in result.stdout
        assert "list (ls, l)" in result.stdout

    def test_help_needs_no_token(self, invoke):
        assert invoke("--help", env={}).code == 0


class TestConfigCommands:
    def test_path_without_token(self, invoke, store):
        result = invoke("config", "path", env={})
        assert result.code == 0
        assert result.stdout.strip() == store.path()
        assert result.stdout.strip().endswith("config.toml")

    def test_show_without_token(self, invoke):
        result = invoke("config", "show", env={})
        assert result.code == 0
        assert "(not set)" in result.stdout

    def test_show_masks_token(self, invoke):
        result = invoke("--format", "json", "cfg", "show", "--token", "supersecret-token")
        data = json.loads(result.stdout)
        assert data["token"] == "supe...oken"
        assert data["token_source"] == "flag"
        assert "supersecret-token" not in result.stdout

    def test_set_token(self, invoke, store):
        result = invoke("config", "set-token", "saved-token-1234", env={})
        assert result.code == 0
        assert store.load().api_token == "saved-token-1234"
        assert "saved-token-1234" not in result.stdout
        assert "saved to" in result.stdout

    def test_set_token_quiet(self, invoke, store):
        result = invoke("--quiet", "config", "set-token", "saved-token-1234", env={})
        assert result.code == 0
        assert result.stdout == ""
        assert store.load().api_token == "saved-token-1234"

    def test_token_from_file(self, invoke, store, fake_client):
        store.save(FileConfig(api_token="file-token"))
        result = invoke("me", env={})
        assert result.code == 0
        assert result.seen["cfg"].token == "file-token"


class TestMissingToken:
    def test_exit_1_before_any_call(self, invoke, fake_client):
        result = invoke("conv", "list", env={})
        assert result.code == 1
        assert "[SETUP_NEEDED] API token not found" in result.stderr
        assert fake_client.calls == []
        assert result.stdout == ""

    def test_json_envelope(self, invoke):
        result = invoke("--format", "json", "me", env={})
        assert result.code == 1
        err = json.loads(result.stderr)
        assert err["ok"] is False
        assert err["error"]["type"] == "setup_needed"
        assert err["error"]["exit_code"] == 1

    def test_resolution_errors_come_first(self, invoke):
        result = invoke("conv", "view", "abc", env={})
        assert result.code == 2


class TestUsageErrors:
    def test_unknown_command(self, invoke):
        result = invoke("bogus")
        assert result.code == 2
        assert result.stderr.startswith("[USAGE] Unknown command 'bogus'")

    def test_bad_format(self, invoke):
        result = invoke("--format", "xml", "me")
        assert result.code == 2

    def test_quiet_verbose(self, invoke):
        assert invoke("--quiet", "--verbose", "me").code == 2

    def test_json_usage_envelope(self, invoke):
        result = invoke("--format", "json", "conv")
        err = json.loads(result.stderr)
        assert err["error"]["type"] == "usage"
        assert err["error"]["exit_code"] == 2

    def test_one_line_diagnostic(self, invoke):
        result = invoke("c", "snooze", "5", "3x")
        assert result.code == 2
        assert len(result.stderr.strip().splitlines()) == 1

    @pytest.mark.parametrize("duration", ["99999999999w", "600000w"])
    def test_oversized_snooze_duration(self, invoke, fake_client, duration):
        result = invoke("c", "snooze", "1", duration)
        assert result.code == 2
        assert result.stderr.startswith("[USAGE]")
        assert fake_client.calls == []


class TestDispatch:
    def test_aliases_dispatch_identically(self, invoke, fake_client):
        invoke("c", "ls", "-s", "open")
        invoke("conversation", "list", "--status", "open")
        assert fake_client.calls[0] == fake_client.calls[1]

    def test_defaults_applied(self, invoke, store, fake_client):
        store.save(FileConfig(default_limit=10, default_folder="Inbox"))
        invoke("c", "ls")
        op = fake_client.calls[0]
        assert op.arg("limit") == 10
        assert op.arg("folder") == "Inbox"

    def test_user_alias(self, invoke, store, fake_client):
        store.save(FileConfig(aliases={"inbox": "conversation list --status unread"}))
        result = invoke("inbox", "-n", "5")
        assert result.code == 0
        op = fake_client.calls[0]
        assert op.kind == models.LIST_CONVERSATIONS
        assert op.arg("status") == "unread"
        assert op.arg("limit") == 5

    def test_reply_from_stdin(self, invoke, fake_client):
        result = invoke("conv", "reply", "123", stdin_text="hi\n")
        assert result.code == 0
        op = fake_client.calls[0]
        assert op.kind == models.REPLY_CONVERSATION
        assert op.arg("body") == "hi"

    def test_reply_without_body_on_tty(self, invoke, fake_client):
        result = invoke("conv", "reply", "123")
        assert result.code == 2
        assert fake_client.calls == []

    def test_verbose_enables_http_log(self, invoke):
        assert invoke("-v", "me").seen["log"] is True
        assert invoke("me").seen["log"] is False

    def test_http_log_env(self, invoke):
        result = invoke("me", env={"GROOVEHQ_API_TOKEN": "t", "GROOVE_HTTP_LOG": "1"})
        assert result.seen["log"] is True

    def test_format_from_file(self, invoke, store, fake_client):
        store.save(FileConfig(default_format="json"))
        fake_client.responses[models.SHOW_ME] = models.Response({"id": "ag_1"})
        result = invoke("me")
        assert json.loads(result.stdout) == {"id": "ag_1"}


class TestQuietMode:
    def test_quiet_suppresses_confirmation(self, invoke, fake_client):
        fake_client.responses[models.CLOSE_CONVERSATION] = CLOSED
        result = invoke("--quiet", "conv", "close", "123")
        assert result.code == 0
        assert result.stdout == ""

    def test_confirmation_without_quiet(self, invoke, fake_client):
        fake_client.responses[models.CLOSE_CONVERSATION] = CLOSED
        result = invoke("conv", "close", "123")
        assert result.stdout == "OK: Closed conversation #123\n"

    def test_quiet_keeps_list_output(self, invoke, fake_client, make_conversation):
        fake_client.responses[models.LIST_CONVERSATIONS] = models.Response(
            [make_conversation(5)], {"totalCount": 1}
        )
        result = invoke("--quiet", "conv", "list")
        assert result.code == 0
        assert "#5" in result.stdout
        assert "Showing 1 of 1 conversations" in result.stdout


class TestBulkPartialFailure:
    def test_close_reports_per_id_and_exits_3(self, invoke):
        client = FlakyCloseClient()
        result = invoke("conv", "close", "100", "101", "102", client=client)
        assert result.code == 3
        assert client.closed == [100, 102]
        assert result.stdout.splitlines() == [
            "OK: Closed conversation #100",
            "OK: Closed conversation #102",
        ]
        assert result.stderr.splitlines() == [
            "[NOT_FOUND] Conversation #101: Conversation #101 not found."
        ]

    def test_json_keeps_all_results(self, invoke):
        client = FlakyCloseClient()
        result = invoke("--format", "json", "conv", "close", "100", "101", client=client)
        assert result.code == 3
        data = json.loads(result.stdout)
        assert [r["ok"] for r in data["results"]] == [True, False]
        err = json.loads(result.stderr.splitlines()[0])
        assert err["error"]["type"] == "not_found"
        assert err["error"]["number"] == 101


class TestOperationErrors:
    @pytest.mark.parametrize(
        "error,tag",
        [
            (UnauthorizedError("bad token"), "[UNAUTHORIZED]"),
            (NotFoundError("Conversation #9 not found."), "[NOT_FOUND]"),
            (TransportError("Connection failed"), "[TRANSPORT]"),
        ],
    )
    def test_exit_3_with_tag(self, invoke, fake_client, error, tag):
        fake_client.errors[models.VIEW_CONVERSATION] = error
        result = invoke("conv", "view", "9")
        assert result.code == 3
        assert result.stderr.startswith(tag)
        assert result.stdout == ""

    def test_debug_prints_cause_chain(self, invoke, fake_client):
        try:
            try:
                raise ConnectionResetError("peer reset")
            except ConnectionResetError as e:
                raise TransportError("Connection failed") from e
        except TransportError as err:
            fake_client.errors[models.SHOW_ME] = err
        result = invoke("me", env={"GROOVEHQ_API_TOKEN": "t", "GROOVE_DEBUG": "1"})
        assert result.code == 3
        assert "Caused by: ConnectionResetError: peer reset" in result.stderr

    def test_empty_debug_variable_still_enables_chain(self, invoke, fake_client):
        try:
            raise TransportError("Connection failed") from OSError("low level")
        except TransportError as err:
            fake_client.errors[models.SHOW_ME] = err
        result = invoke("me", env={"GROOVEHQ_API_TOKEN": "t", "GROOVE_DEBUG": ""})
        assert "Caused by: OSError: low level" in result.stderr

    def test_no_cause_chain_without_debug(self, invoke, fake_client):
        try:
            raise TransportError("Connection failed") from OSError("low level")
        except TransportError as err:
            fake_client.errors[models.SHOW_ME] = err
        result = invoke("me")
        assert "Caused by" not in result.stderr
        assert len(result.stderr.splitlines()) == 1


class TestConfigFileErrors:
    def _break(self, store):
        os.makedirs(os.path.dirname(store.path()), exist_ok=True)
        with open(store.path(), "w", encoding="utf-8") as f:
            f.write("[[[ not toml")

    def test_malformed_file_exit_1(self, invoke, store):
        self._break(store)
        result = invoke("me")
        assert result.code == 1
        assert result.stderr.startswith("[CONFIG]")

    def test_path_still_works(self, invoke, store):
        self._break(store)
        result = invoke("config", "path")
        assert result.code == 0
        assert result.stdout.strip() == store.path()

    def test_unknown_command_reports_config_error(self, invoke, store):
        self._break(store)
        assert invoke("inbox").code == 1
