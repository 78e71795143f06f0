"""
Configuration loader for sctui.

Loads workspace settings (API token, user, page limit) from a YAML file.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from . import validate

CONFIG_ENV_VAR = "SCTUI_CONFIG"
TOKEN_ENV_VAR = "SHORTCUT_API_TOKEN"
DEFAULT_CONFIG_PATH = Path("~/.config/sctui/config.yaml")
DEFAULT_LIMIT = 25

EXAMPLE_CONFIG = """\
default_workspace: acme
workspaces:
  acme:
    api_key: "<your Shortcut API token>"
    user_id: "<your mention name>"
    limit: 25
"""


class ConfigError(Exception):
    """Config file missing, unreadable, or naming an unknown workspace."""

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message + (f" ({path})" if path else ""))


@dataclass
class WorkspaceConfig:
    """One Shortcut workspace from config.yaml"""
    name: str
    api_key: str
    user_id: str  # mention name used in owner:/requester: queries
    limit: int = DEFAULT_LIMIT


@dataclass
class Config:
    default_workspace: str | None
    workspaces: dict[str, WorkspaceConfig]
    path: Path | None = None

    def workspace(self, name: str | None = None) -> WorkspaceConfig:
        """Named workspace, else the default, else the only one."""
        name = name or self.default_workspace
        if name is None:
            if len(self.workspaces) == 1:
                return next(iter(self.workspaces.values()))
            names = ", ".join(sorted(self.workspaces))
            raise ConfigError(f"Multiple workspaces configured; choose one with --workspace: {names}", self.path)
        if name not in self.workspaces:
            raise ConfigError(f"Workspace '{name}' not found in config", self.path)
        return self.workspaces[name]


def resolve_config_path(explicit: str | None = None) -> Path:
    """--config, then $SCTUI_CONFIG, then ~/.config/sctui/config.yaml."""
    raw = explicit or os.environ.get(CONFIG_ENV_VAR)
    path = Path(raw) if raw else DEFAULT_CONFIG_PATH
    return path.expanduser()


def load_config(path: Path) -> Config:
    """Load and validate config.yaml."""
    if not path.exists():
        raise ConfigError("Config file not found", path)

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", path) from None

    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping", path)

    try:
        validate.validate(data, "config")
    except validate.ValidationError as e:
        raise ConfigError(str(e), path) from None

    workspaces = {
        name: WorkspaceConfig(
            name=name,
            api_key=ws["api_key"],
            user_id=ws["user_id"],
            limit=ws.get("limit", DEFAULT_LIMIT),
        )
        for name, ws in data["workspaces"].items()
    }
    return Config(
        default_workspace=data.get("default_workspace"),
        workspaces=workspaces,
        path=path,
    )


def workspace_from_token(token: str, user_id: str = "", limit: int = DEFAULT_LIMIT) -> WorkspaceConfig:
    """Ad-hoc workspace for --token / $SHORTCUT_API_TOKEN, bypassing the file."""
    return WorkspaceConfig(name="token", api_key=token, user_id=user_id, limit=limit)
