"""
groove-cli exception hierarchy.

All custom exceptions live here to avoid circular imports.
Each CliError subclass carries the process exit code it maps to.
"""


class CliError(Exception):
    """Exit code 1 — generic failure."""

    exit_code = 1
    tag = "ERROR"


# ---------------------------------------------------------------------------
# Configuration / precondition failures (exit 1)
# ---------------------------------------------------------------------------


class ConfigError(CliError):
    """Exit code 1 — configuration could not be resolved."""

    exit_code = 1
    tag = "CONFIG"


class MissingTokenError(ConfigError):
    """No API token from flag, environment or config file."""

    tag = "SETUP_NEEDED"

    def __init__(self, message=None):
        super().__init__(
            message
            or "API token not found. Set GROOVEHQ_API_TOKEN or run 'groove config set-token'."
        )


class ConfigFileError(ConfigError):
    """Config file exists but cannot be read, parsed or written."""


# ---------------------------------------------------------------------------
# Command resolution failures (exit 2)
# ---------------------------------------------------------------------------


class ResolutionError(CliError):
    """Exit code 2 — the command line does not describe a valid operation."""

    exit_code = 2
    tag = "USAGE"


class UnknownCommandError(ResolutionError):
    pass


class MissingArgumentError(ResolutionError):
    pass


class InvalidArgumentError(ResolutionError):
    pass


# ---------------------------------------------------------------------------
# Remote operation failures (exit 3)
# ---------------------------------------------------------------------------


class OperationError(CliError):
    """Exit code 3 — the remote service rejected or failed the operation."""

    exit_code = 3
    category = "unknown"


class UnauthorizedError(OperationError):
    category = "unauthorized"
    tag = "UNAUTHORIZED"


class NotFoundError(OperationError):
    category = "not_found"
    tag = "NOT_FOUND"


class RateLimitedError(OperationError):
    category = "rate_limited"
    tag = "RATE_LIMITED"

    def __init__(self, message=None, retry_after=None):
        self.retry_after = retry_after
        if message is None:
            if retry_after is not None:
                message = f"Rate limited. Retry after {retry_after} seconds."
            else:
                message = "Rate limited. Please wait and try again."
        super().__init__(message)


class TransportError(OperationError):
    category = "transport"
    tag = "TRANSPORT"


class UnknownOperationError(OperationError):
    category = "unknown"
    tag = "ERROR"


class HTTPError(Exception):
    """Raised by _http_request for HTTP errors that callers want to handle."""

    def __init__(self, code, reason, body, headers=None):
        super().__init__(f"HTTP {code}: {reason}")
        self.code = code
        self.reason = reason
        self.body = body
        self.headers = headers or {}
