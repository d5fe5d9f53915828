"""Tests for exceptions.py — exit codes, diagnostic tags, categories."""

import pytest

from groove_cli.exceptions import (
    CliError,
    ConfigError,
    ConfigFileError,
    HTTPError,
    InvalidArgumentError,
    MissingArgumentError,
    MissingTokenError,
    NotFoundError,
    OperationError,
    RateLimitedError,
    ResolutionError,
    TransportError,
    UnauthorizedError,
    UnknownCommandError,
    UnknownOperationError,
)


class TestExitCodes:
    @pytest.mark.parametrize(
        "cls,code",
        [
            (CliError, 1),
            (ConfigError, 1),
            (MissingTokenError, 1),
            (ConfigFileError, 1),
            (ResolutionError, 2),
            (UnknownCommandError, 2),
            (MissingArgumentError, 2),
            (InvalidArgumentError, 2),
            (OperationError, 3),
            (UnauthorizedError, 3),
            (NotFoundError, 3),
            (RateLimitedError, 3),
            (TransportError, 3),
            (UnknownOperationError, 3),
        ],
    )
    def test_exit_code(self, cls, code):
        assert cls.exit_code == code

    def test_all_are_cli_errors(self):
        for cls in (ConfigFileError, UnknownCommandError, TransportError):
            assert issubclass(cls, CliError)

    def test_http_error_is_not_cli_error(self):
        assert not issubclass(HTTPError, CliError)


class TestTags:
    def test_missing_token_default_message(self):
        err = MissingTokenError()
        assert err.tag == "SETUP_NEEDED"
        assert "API token not found" in str(err)
        assert "GROOVEHQ_API_TOKEN" in str(err)

    def test_resolution_tag(self):
        assert InvalidArgumentError("x").tag == "USAGE"

    def test_operation_categories_distinct(self):
        cats = {
            cls.category
            for cls in (
                UnauthorizedError,
                NotFoundError,
                RateLimitedError,
                TransportError,
                UnknownOperationError,
            )
        }
        assert len(cats) == 5


class TestRateLimitedError:
    def test_retry_after_in_message(self):
        err = RateLimitedError(retry_after=12)
        assert err.retry_after == 12
        assert "12 seconds" in str(err)

    def test_default_message(self):
        assert "Rate limited" in str(RateLimitedError())


class TestHTTPError:
    def test_attributes(self):
        err = HTTPError(500, "Server Error", "body", headers={"X-Request-Id": "r1"})
        assert err.code == 500
        assert err.body == "body"
        assert err.headers["X-Request-Id"] == "r1"
        assert "HTTP 500" in str(err)
