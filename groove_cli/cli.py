"""
groove — command-line client for the GrooveHQ helpdesk
"""

import json
import os
import sys

from groove_cli import aliases, commands, config, models
from groove_cli.client import GrooveClient
from groove_cli.exceptions import (
    CliError,
    ConfigFileError,
    InvalidArgumentError,
    MissingTokenError,
    ResolutionError,
)
from groove_cli.formatters import render, should_use_color
from groove_cli.resolver import apply_defaults, resolve_command

HELP_TEXT = """\
Usage: groove [global flags] <command> [args...]

Global flags:
  -o, --format <fmt>      Output format: table (default), json, compact
  --token <token>         API token (overrides GROOVEHQ_API_TOKEN and config file)
  --quiet                 Suppress confirmations of mutating commands
  --verbose, -v           Log HTTP requests to stderr
  --help, -h              Show help (after a command: help for that command)
  --version, -V           Show version number

Commands:
  conversation (conv, c)  - Manage conversations
    list (ls, l)            List conversations
      -s, --status <s>        Filter: unread, open, closed, snoozed, spam
      -f, --folder <name>     Filter by folder name or ID
      -q, --search <text>     Search by keywords
      -n, --limit <n>         Page size (default: 25)
      --after <cursor>        Fetch the page after this cursor
    view (show, v) <num>    Show a conversation and its messages
      --full                  Show full message bodies
    reply (r) <num> [body]  Reply (body from stdin when omitted)
      -c, --canned <name>     Use a canned reply (body is appended)
    close <num>...          Close one or more conversations
    open <num>...           Reopen one or more conversations
    snooze <num> <dur>      Snooze for 2h, 3d, 1w or until an ISO datetime
    assign <num> <agent>    Assign to an agent (email, name or "me")
    unassign <num>...       Remove the assignee
    add-tag (tag) <num> <tag>...      Add tags
    remove-tag (untag) <num> <tag>... Remove tags
    note <num> [body]       Add an internal note (body from stdin when omitted)
  folder (f) list         - List folders
  tag (t) list            - List tags
  canned-replies (canned) - Canned replies
    list (ls, l)            List canned replies
    show <name>             Show a canned reply by name or ID
  me                      - Show the authenticated agent
  config (cfg)            - Manage configuration
    show                    Show effective configuration
    set-token <token>       Save the API token to the config file
    path                    Print the config file path

Environment:
  GROOVEHQ_API_TOKEN      API token
  GROOVE_DEBUG            Print the full error chain on failure
  GROOVE_HTTP_LOG         Log HTTP requests (same as --verbose)
  NO_COLOR                Disable colored table output

Exit codes: 0 success, 1 configuration error, 2 usage error, 3 API error.
"""


def group_help(group):
    """Help for one command group, built from the alias table."""
    _name, group_aliases, summary = next(g for g in aliases.GROUPS if g[0] == group)
    if group in aliases.DIRECT_VERBS:
        usage = f"Usage: groove {group}"
    else:
        usage = f"Usage: groove {group} <command> [args...]"
    lines = [usage, "", f"{summary}.", ""]
    if group_aliases:
        lines.append(f"Aliases: {', '.join(group_aliases)}")
        lines.append("")
    if group in aliases.SUBVERBS:
        lines.append("Commands:")
        for name, verb_aliases, _verb in aliases.SUBVERBS[group]:
            label = f"{name} ({', '.join(verb_aliases)})" if verb_aliases else name
            lines.append(f"  {label}")
        lines.append("")
    lines.append("Run 'groove --help' for options.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Global flag extraction (before resolution, so flags work after the command)
# ---------------------------------------------------------------------------


def _flag_value(argv, i, name):
    arg = argv[i]
    if arg.startswith(name + "="):
        return arg.split("=", 1)[1], i + 1
    if i + 1 >= len(argv):
        raise InvalidArgumentError(f"{name} requires a value.")
    return argv[i + 1], i + 2


def _extract_global_flags(argv):
    """Extract global flags from argv regardless of position.

    Returns a dict of flag values and the remaining argv.
    Everything after a literal "--" is passed through untouched.
    """
    flags = {
        "format": None,
        "token": None,
        "quiet": False,
        "verbose": False,
        "help": False,
        "version": False,
    }
    remaining = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            remaining.extend(argv[i:])
            break
        if arg in ("--version", "-V"):
            flags["version"] = True
        elif arg in ("--help", "-h"):
            flags["help"] = True
        elif arg == "--quiet":
            flags["quiet"] = True
        elif arg in ("--verbose", "-v"):
            flags["verbose"] = True
        elif arg in ("--format", "-o") or arg.startswith(("--format=", "-o=")):
            name = "--format" if arg.startswith("--format") else "-o"
            fmt, i = _flag_value(argv, i, name)
            fmt = fmt.lower()
            if fmt not in config.VALID_FORMATS:
                raise InvalidArgumentError(
                    f"Invalid format '{fmt}'. Use: {', '.join(config.VALID_FORMATS)}"
                )
            flags["format"] = fmt
            continue
        elif arg == "--token" or arg.startswith("--token="):
            token, i = _flag_value(argv, i, "--token")
            flags["token"] = token.strip() or None
            continue
        else:
            remaining.append(arg)
        i += 1
    if flags["quiet"] and flags["verbose"]:
        raise InvalidArgumentError("--quiet and --verbose are mutually exclusive.")
    return flags, remaining


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

_CATEGORY_TAGS = {
    "unauthorized": "UNAUTHORIZED",
    "not_found": "NOT_FOUND",
    "rate_limited": "RATE_LIMITED",
    "transport": "TRANSPORT",
    "unknown": "ERROR",
}


def _error_type(err):
    category = getattr(err, "category", None)
    return category or getattr(err, "tag", "error").lower()


def _cause_chain(err):
    causes = []
    seen = {id(err)}
    cur = err.__cause__ or err.__context__
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        causes.append(f"{type(cur).__name__}: {cur}")
        cur = cur.__cause__ or cur.__context__
    return causes


def _emit_cli_error(err, fmt, stderr, debug=False):
    msg = str(err)
    causes = _cause_chain(err) if debug else []
    if fmt == "json":
        payload = {
            "ok": False,
            "error": {
                "type": _error_type(err),
                "message": msg,
                "exit_code": getattr(err, "exit_code", 1),
            },
        }
        if causes:
            payload["error"]["causes"] = causes
        print(json.dumps(payload, ensure_ascii=False), file=stderr)
        return
    print(f"[{getattr(err, 'tag', 'ERROR')}] {msg}", file=stderr)
    for cause in causes:
        print(f"  Caused by: {cause}", file=stderr)


def _emit_failures(failures, fmt, stderr):
    """One diagnostic line per failed ID of a bulk mutation."""
    for failure in failures:
        category = failure.get("category") or "unknown"
        msg = f"Conversation #{failure.get('number')}: {failure.get('error')}"
        if fmt == "json":
            payload = {
                "ok": False,
                "error": {
                    "type": category,
                    "message": msg,
                    "exit_code": 3,
                    "number": failure.get("number"),
                },
            }
            print(json.dumps(payload, ensure_ascii=False), file=stderr)
        else:
            print(f"[{_CATEGORY_TAGS.get(category, 'ERROR')}] {msg}", file=stderr)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _default_client_factory(cfg, log=False):
    return GrooveClient.from_config(cfg, log=log)


def _help_for(tokens):
    group = aliases.lookup_group(tokens[0]) if tokens else None
    return group_help(group) if group else HELP_TEXT.rstrip("\n")


def _load_file_config(store):
    """Load the config file, returning (file_config, error)."""
    try:
        return store.load(), None
    except ConfigFileError as e:
        return None, e


def run(argv, *, stdin=None, stdout=None, stderr=None, env=None, store=None, client_factory=None):
    """Run one invocation and return the process exit code."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr
    env = os.environ if env is None else env
    store = store or config.ConfigStore()
    client_factory = client_factory or _default_client_factory
    debug = config.DEBUG_ENV_VAR in env
    fmt = "table"

    try:
        flags, tokens = _extract_global_flags(list(argv))
        fmt = flags["format"] or fmt
        if flags["version"]:
            print(f"groove {config.VERSION}", file=stdout)
            return 0
        if flags["help"] or not tokens:
            print(_help_for(tokens), file=stdout)
            return 0

        file_config, load_error = _load_file_config(store)
        if load_error is None and file_config is not None:
            tokens = aliases.expand_user_alias(tokens, file_config.aliases)
        try:
            op = resolve_command(tokens, stdin=stdin)
        except ResolutionError:
            # A broken config file may hide a user alias.
            if load_error is not None:
                raise load_error from None
            raise
        if load_error is not None and op.kind != models.SHOW_CONFIG_PATH:
            raise load_error

        cfg = config.resolve_config(
            flag_token=flags["token"],
            env=env,
            file_config=file_config,
            format_flag=flags["format"],
            config_path=store.path(),
        )
        fmt = cfg.format
        if models.requires_auth(op.kind) and not cfg.token:
            raise MissingTokenError()
        op = apply_defaults(op, cfg)

        if op.kind in models.LOCAL_VERBS:
            response = commands.run_local(op, cfg, store)
        else:
            log = flags["verbose"] or config._env_bool(config.HTTP_LOG_ENV_VAR, env=env)
            response = client_factory(cfg, log=log).execute(op)

        text = render(
            response,
            fmt,
            op.kind,
            full=bool(op.arg("full")),
            color=fmt == "table" and should_use_color(stdout, env),
        )
        if text and not (flags["quiet"] and op.kind in models.MUTATING_VERBS):
            print(text, file=stdout)

        failures = response.failures
        if failures:
            _emit_failures(failures, fmt, stderr)
            return 3
        return 0

    except CliError as e:
        _emit_cli_error(e, fmt, stderr, debug=debug)
        return e.exit_code


def main():
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
