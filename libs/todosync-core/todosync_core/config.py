"""Configuration loading.

Sources, lowest precedence first:
  1) YAML file (--config, TODOSYNC_CONFIG, or ./todosync.yaml if present)
  2) environment (TODOSYNC_*; a .env file is loaded first)
  3) explicit overrides (CLI options)
"""

import logging
import os
from pathlib import Path
from typing import Any

import dotenv
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from todosync_core.errors import ConfigError
from todosync_core.models import SyncConfig

logger = logging.getLogger(__name__)

yaml = YAML(typ="safe")

DEFAULT_CONFIG_NAME = "todosync.yaml"

# env var -> config field
ENV_VARS = {
    "TODOSYNC_REPO_PATH": "repo_path",
    "TODOSYNC_LOCAL_DIR": "local_dir",
    "TODOSYNC_TRACKED_FILES": "tracked_files",
    "TODOSYNC_POLL_INTERVAL": "poll_interval",
    "TODOSYNC_CREDENTIALS_FILE": "credentials_file",
    "TODOSYNC_TOKEN_FILE": "token_file",
    "GOOGLE_APPLICATION_CREDENTIALS": "service_account_file",
    "TODOSYNC_AUTHOR_NAME": "author_name",
    "TODOSYNC_AUTHOR_EMAIL": "author_email",
}


def config_path(explicit: Path | None = None) -> Path | None:
    """Resolve the YAML config path (None when there is nothing to read)."""
    if explicit is not None:
        return explicit.expanduser()
    env = os.environ.get("TODOSYNC_CONFIG")
    if env:
        return Path(env).expanduser()
    default = Path.cwd() / DEFAULT_CONFIG_NAME
    return default if default.exists() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", "load-config", str(path))
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", "load-config", str(path), e) from e
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping", "load-config", str(path))
    # Normalize alias keys so that later sources override by field name
    fields = SyncConfig.model_fields
    aliases = {f.alias: name for name, f in fields.items() if f.alias}
    return {aliases.get(k, k): v for k, v in data.items()}


def _read_env() -> dict[str, Any]:
    out: dict[str, Any] = {}
    for var, field in ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            out[field] = value
    return out


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    *,
    load_dotenv: bool = True,
) -> SyncConfig:
    """Build the effective SyncConfig, raising ConfigError on any problem."""
    if load_dotenv:
        dotenv.load_dotenv()

    data: dict[str, Any] = {}
    cfg = config_path(path)
    if cfg is not None:
        logger.info(f"Loading config from {cfg}")
        data.update(_read_yaml(cfg))
    data.update(_read_env())
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        config = SyncConfig(**data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}", "load-config") from e

    return config.model_copy(
        update={
            "repo_path": config.repo_path.expanduser(),
            "local_dir": config.local_dir.expanduser(),
        }
    )
