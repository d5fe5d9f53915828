"""
Shared test fixtures for groove-cli tests.
Scrubs the environment and points the config store at a temp dir so no
test reads the real config file or talks to the API.
"""

import io
from collections import namedtuple

import pytest

from groove_cli import models
from groove_cli.cli import run
from groove_cli.config import ConfigStore

TEST_TOKEN = "test-token-abcdef"

Result = namedtuple("Result", "code stdout stderr seen")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Every test starts without groove/colour variables from the real shell."""
    for key in (
        "GROOVEHQ_API_TOKEN",
        "GROOVE_DEBUG",
        "GROOVE_HTTP_LOG",
        "NO_COLOR",
        "FORCE_COLOR",
        "TTY_COMPATIBLE",
        "XDG_CONFIG_HOME",
        "APPDATA",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def store(tmp_path):
    return ConfigStore(str(tmp_path / "groove" / "config.toml"))


class TtyStringIO(io.StringIO):
    """A stdin that claims to be an interactive terminal."""

    def isatty(self):
        return True


class FakeClient:
    """Stands in for GrooveClient: records operations, replays canned responses."""

    def __init__(self, responses=None, errors=None):
        self.responses = responses or {}
        self.errors = errors or {}
        self.calls = []

    def execute(self, op):
        self.calls.append(op)
        if op.kind in self.errors:
            raise self.errors[op.kind]
        resp = self.responses.get(op.kind)
        if callable(resp):
            return resp(op)
        if resp is None:
            return models.Response({"ok": True, "results": []})
        return resp


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def invoke(store, fake_client):
    """Run the CLI in-process and capture (exit code, stdout, stderr)."""

    def _invoke(*argv, stdin_text=None, env=None, client=None):
        stdout, stderr = io.StringIO(), io.StringIO()
        stdin = io.StringIO(stdin_text) if stdin_text is not None else TtyStringIO()
        seen = {}

        def factory(cfg, log=False):
            seen["cfg"] = cfg
            seen["log"] = log
            return client if client is not None else fake_client

        code = run(
            list(argv),
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            env={"GROOVEHQ_API_TOKEN": TEST_TOKEN} if env is None else env,
            store=store,
            client_factory=factory,
        )
        return Result(code, stdout.getvalue(), stderr.getvalue(), seen)

    return _invoke


def conversation_node(number=1, **overrides):
    node = {
        "id": f"conv_{number}",
        "number": number,
        "subject": f"Subject {number}",
        "state": "OPENED",
        "createdAt": "2026-01-15T10:30:00Z",
        "updatedAt": "2026-01-15T10:30:00Z",
        "snoozedUntil": None,
        "messagesCount": 1,
        "assigned": None,
        "contact": {"id": "ct_1", "email": "alice@example.com", "name": "Alice"},
        "channel": {"id": "ch_1", "name": "Support"},
        "tags": [{"id": "tg_1", "name": "billing", "color": "#ff0000"}],
    }
    node.update(overrides)
    return node


@pytest.fixture
def make_conversation():
    return conversation_node
