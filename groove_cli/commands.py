"""
Local command handlers: verbs served from the config store, never the API.
Each handler takes (op, cfg, store) and returns a Response.
"""

from groove_cli import models
from groove_cli.config import mask_token
from groove_cli.formatters import config_payload


def cmd_show_config(op, cfg, store):
    return models.Response(config_payload(cfg))


def cmd_set_token(op, cfg, store):
    """Persist the token. The running invocation keeps its own config."""
    token = op.arg("token")
    store.set_token(token)
    return models.Response({"ok": True, "path": store.path(), "token": mask_token(token)})


def cmd_config_path(op, cfg, store):
    return models.Response({"path": store.path()})


LOCAL_HANDLERS = {
    models.SHOW_CONFIG: cmd_show_config,
    models.SET_TOKEN: cmd_set_token,
    models.SHOW_CONFIG_PATH: cmd_config_path,
}


def run_local(op, cfg, store):
    return LOCAL_HANDLERS[op.kind](op, cfg, store)
