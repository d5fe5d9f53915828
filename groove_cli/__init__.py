"""groove-cli — command-line client for the GrooveHQ helpdesk."""

from groove_cli.client import GrooveClient
from groove_cli.config import VERSION, ConfigStore, EffectiveConfig, resolve_config
from groove_cli.exceptions import (
    CliError,
    ConfigError,
    OperationError,
    ResolutionError,
)
from groove_cli.models import Operation, Response
from groove_cli.resolver import resolve_command

__all__ = [
    "VERSION",
    "CliError",
    "ConfigError",
    "ConfigStore",
    "EffectiveConfig",
    "GrooveClient",
    "Operation",
    "OperationError",
    "ResolutionError",
    "Response",
    "resolve_command",
    "resolve_config",
]
