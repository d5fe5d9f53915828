"""
groove-cli configuration: constants, the on-disk config store, and the
layered resolver that merges flag, environment and file settings.
Standalone module — imports only groove_cli.exceptions.
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
import tomllib
from dataclasses import dataclass, field, replace

from groove_cli.exceptions import ConfigFileError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.3.0"

DEFAULT_ENDPOINT = "https://api.groovehq.com/v2/graphql"
DEFAULT_LIMIT = 25
DEFAULT_FORMAT = "table"
VALID_FORMATS = ("table", "json", "compact")
VALID_STATUSES = {"unread", "open", "closed", "snoozed", "spam"}

TOKEN_ENV_VAR = "GROOVEHQ_API_TOKEN"
DEBUG_ENV_VAR = "GROOVE_DEBUG"
HTTP_LOG_ENV_VAR = "GROOVE_HTTP_LOG"

CONFIG_DIR_NAME = "groove"
CONFIG_FILE_NAME = "config.toml"


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def _env_bool(key, default=False, env=None):
    """Parse common boolean env formats."""
    raw = (os.environ if env is None else env).get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default, env=None):
    """Parse integer env values with fallback."""
    raw = (os.environ if env is None else env).get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default, env=None):
    """Parse float env values with fallback."""
    raw = (os.environ if env is None else env).get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Transport tunables, read once at import.
HTTP_TIMEOUT_SECONDS = _env_int("GROOVE_HTTP_TIMEOUT_SECONDS", 30)
HTTP_MAX_RETRIES = _env_int("GROOVE_HTTP_MAX_RETRIES", 2)
HTTP_RETRY_BASE_SECONDS = _env_float("GROOVE_HTTP_RETRY_BASE_SECONDS", 1.0)
HTTP_MAX_RESPONSE_BYTES = _env_int("GROOVE_HTTP_MAX_RESPONSE_BYTES", 5_000_000)


def mask_token(token):
    """Show the first and last four chars of a token, or *** when too short."""
    if not token:
        return ""
    if len(token) >= 8:
        return f"{token[:4]}...{token[-4:]}"
    return "***"


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileConfig:
    """Contents of config.toml."""

    api_token: str | None = None
    api_endpoint: str | None = None
    default_format: str | None = None
    default_limit: int | None = None
    default_folder: str | None = None
    aliases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        defaults = data.get("defaults") or {}
        aliases = data.get("aliases") or {}
        if not isinstance(defaults, dict):
            raise ConfigFileError("[defaults] must be a table.")
        if not isinstance(aliases, dict):
            raise ConfigFileError("[aliases] must be a table.")

        def _str(value, name):
            if value is None or isinstance(value, str):
                return value
            raise ConfigFileError(f"'{name}' must be a string.")

        limit = defaults.get("limit")
        if limit is not None and (
            isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0
        ):
            raise ConfigFileError("'defaults.limit' must be a positive integer.")
        fmt = _str(defaults.get("format"), "defaults.format")
        if fmt is not None and fmt.lower() not in VALID_FORMATS:
            raise ConfigFileError(
                f"Invalid 'defaults.format' value '{fmt}'. Use: {', '.join(VALID_FORMATS)}"
            )
        for name, expansion in aliases.items():
            if not isinstance(expansion, str) or not expansion.strip():
                raise ConfigFileError(f"Alias '{name}' must map to a non-empty string.")

        return cls(
            api_token=_str(data.get("api_token"), "api_token"),
            api_endpoint=_str(data.get("api_endpoint"), "api_endpoint"),
            default_format=fmt.lower() if fmt else None,
            default_limit=limit,
            default_folder=_str(defaults.get("folder"), "defaults.folder"),
            aliases=dict(aliases),
        )

    def to_dict(self):
        data = {}
        if self.api_token is not None:
            data["api_token"] = self.api_token
        if self.api_endpoint is not None:
            data["api_endpoint"] = self.api_endpoint
        defaults = {}
        if self.default_format is not None:
            defaults["format"] = self.default_format
        if self.default_limit is not None:
            defaults["limit"] = self.default_limit
        if self.default_folder is not None:
            defaults["folder"] = self.default_folder
        if defaults:
            data["defaults"] = defaults
        if self.aliases:
            data["aliases"] = dict(self.aliases)
        return data


def _toml_value(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    # JSON string escapes are a subset of TOML basic-string escapes.
    return json.dumps(str(value), ensure_ascii=False)


def _toml_key(key):
    if key and all(c.isalnum() or c in "-_" for c in key):
        return key
    return json.dumps(key, ensure_ascii=False)


def dump_toml(data):
    """Serialize a flat document with one level of tables to TOML text."""
    lines = []
    tables = []
    for key, value in data.items():
        if isinstance(value, dict):
            tables.append((key, value))
        else:
            lines.append(f"{_toml_key(key)} = {_toml_value(value)}")
    for name, table in tables:
        if lines:
            lines.append("")
        lines.append(f"[{_toml_key(name)}]")
        for key, value in table.items():
            lines.append(f"{_toml_key(key)} = {_toml_value(value)}")
    return "\n".join(lines) + "\n"


def default_config_path(env=None, platform=None):
    """Return the OS-conventional config file path."""
    env = os.environ if env is None else env
    platform = platform or sys.platform
    home = os.path.expanduser("~")
    if platform.startswith("win"):
        base = env.get("APPDATA") or os.path.join(home, "AppData", "Roaming")
    elif platform == "darwin":
        base = os.path.join(home, "Library", "Application Support")
    else:
        base = env.get("XDG_CONFIG_HOME") or os.path.join(home, ".config")
    return os.path.join(base, CONFIG_DIR_NAME, CONFIG_FILE_NAME)


class ConfigStore:
    """Reads and writes config.toml."""

    def __init__(self, path=None):
        self._path = path or default_config_path()

    def path(self):
        return self._path

    def load(self):
        """Return the parsed FileConfig, or None when no file exists."""
        if not os.path.exists(self._path):
            return None
        try:
            with open(self._path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigFileError(f"Cannot read config file {self._path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigFileError(f"Invalid TOML in config file {self._path}: {e}") from e
        return FileConfig.from_dict(data)

    def save(self, file_config):
        """Write the config file (atomic write-then-rename, owner-only perms)."""
        config_dir = os.path.dirname(self._path) or "."
        try:
            os.makedirs(config_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=config_dir, prefix=".config_tmp_")
        except OSError as e:
            raise ConfigFileError(f"Cannot write config file {self._path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dump_toml(file_config.to_dict()))
            os.replace(tmp_path, self._path)
        except OSError as e:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise ConfigFileError(f"Cannot write config file {self._path}: {e}") from e
        # Restrict to owner-only on Unix/Mac. No-op on Windows.
        try:
            os.chmod(self._path, 0o600)
        except (OSError, NotImplementedError):
            pass

    def set_token(self, token):
        """Persist *token*, keeping every other setting in the file."""
        current = self.load() or FileConfig()
        self.save(replace(current, api_token=token))


# ---------------------------------------------------------------------------
# Effective configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EffectiveConfig:
    """Merged settings for one invocation."""

    token: str | None
    token_source: str | None
    endpoint: str
    format: str
    default_limit: int
    default_folder: str | None
    aliases: dict[str, str] = field(default_factory=dict)
    config_path: str | None = None


def resolve_config(flag_token=None, env=None, file_config=None, format_flag=None, config_path=None):
    """Merge flag > environment > file > built-in defaults, per field.

    A missing token is not an error here; the dispatcher checks it only
    for operations that talk to the API.
    """
    env = os.environ if env is None else env
    file_config = file_config or FileConfig()

    token, source = None, None
    if flag_token:
        token, source = flag_token, "flag"
    elif env.get(TOKEN_ENV_VAR):
        token, source = env[TOKEN_ENV_VAR], "env"
    elif file_config.api_token:
        token, source = file_config.api_token, "file"

    return EffectiveConfig(
        token=token,
        token_source=source,
        endpoint=file_config.api_endpoint or DEFAULT_ENDPOINT,
        format=format_flag or file_config.default_format or DEFAULT_FORMAT,
        default_limit=file_config.default_limit or DEFAULT_LIMIT,
        default_folder=file_config.default_folder,
        aliases=dict(file_config.aliases),
        config_path=config_path,
    )
