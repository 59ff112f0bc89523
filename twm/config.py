"""twm configuration management."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .exceptions import ConfigError
from .workspace.conditions import Condition, WorkspaceDefinition
from .xdg import find_xdg_config_file, get_xdg_write_dir

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "twm.yaml"
CONFIG_SCHEMA_FILE_NAME = "twm.schema.json"
LOCAL_LAYOUT_FILE_NAME = ".twm.yaml"
CONFIG_FILE_ENV = "TWM_CONFIG_FILE"


class LayoutDefinition(BaseModel):
    """A named list of commands sent to a session when it is created."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(description="Name referenced by `default_layout` and by other layouts' `inherits`.")
    inherits: Optional[List[str]] = Field(
        default=None,
        description="Layouts whose commands run first, in the listed order. Only global layouts can be inherited.",
    )
    commands: Optional[List[str]] = Field(
        default=None,
        description="Commands typed into the new session (via tmux send-keys) after inherited commands.",
    )


class WorkspaceDefinitionConfig(BaseModel):
    """A workspace type as written in the config file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(description="Workspace type name, exported to the session as TWM_TYPE.")
    has_any_file: Optional[List[str]] = Field(default=None, description="At least one of these must exist.")
    has_all_files: Optional[List[str]] = Field(default=None, description="All of these must exist.")
    missing_any_file: Optional[List[str]] = Field(default=None, description="At least one of these must be missing.")
    missing_all_files: Optional[List[str]] = Field(default=None, description="All of these must be missing.")
    default_layout: Optional[str] = Field(default=None, description="Layout applied to new sessions of this type.")

    def to_definition(self) -> WorkspaceDefinition:
        """Convert to a workspace definition.

        Empty or unset rule lists are skipped; with no rules at all the
        definition gets a single always-true condition.
        """
        conditions = []
        if self.has_any_file:
            conditions.append(Condition.has_any_file(self.has_any_file))
        if self.has_all_files:
            conditions.append(Condition.has_all_files(self.has_all_files))
        if self.missing_any_file:
            conditions.append(Condition.missing_any_file(self.missing_any_file))
        if self.missing_all_files:
            conditions.append(Condition.missing_all_files(self.missing_all_files))
        if not conditions:
            conditions.append(Condition.null())
        return WorkspaceDefinition(
            name=self.name,
            conditions=tuple(conditions),
            default_layout=self.default_layout,
        )


def _default_workspace_definitions() -> List[WorkspaceDefinitionConfig]:
    return [WorkspaceDefinitionConfig(name="default", has_any_file=[".git", LOCAL_LAYOUT_FILE_NAME])]


class Config(BaseModel):
    """twm configuration."""

    model_config = ConfigDict(extra="forbid")

    search_paths: List[str] = Field(
        default_factory=lambda: ["~"],
        description="Directories searched for workspaces. `~` is expanded.",
    )
    workspace_definitions: List[WorkspaceDefinitionConfig] = Field(
        default_factory=_default_workspace_definitions,
        description="Workspace types in priority order; the first matching definition wins.",
    )
    max_search_depth: int = Field(default=3, ge=0, description="How many levels below each search path to look.")
    session_name_path_components: int = Field(
        default=1,
        ge=1,
        description="Trailing path components used for new session names.",
    )
    exclude_path_components: List[str] = Field(
        default_factory=list,
        description="Directory names that are never searched (e.g. node_modules).",
    )
    layouts: List[LayoutDefinition] = Field(default_factory=list, description="Layouts available to workspaces.")
    tmux_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds to wait for each tmux command. Unset waits forever.",
    )

    @model_validator(mode="after")
    def _validate_layout_references(self):
        names = [layout.name for layout in self.layouts]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate layout names: {', '.join(duplicates)}")

        known = set(names)
        for definition in self.workspace_definitions:
            if definition.default_layout and definition.default_layout not in known:
                raise ValueError(
                    f"Workspace definition '{definition.name}' uses unknown layout '{definition.default_layout}'"
                )
        for layout in self.layouts:
            for parent in layout.inherits or []:
                if parent not in known:
                    raise ValueError(f"Layout '{layout.name}' inherits from unknown layout '{parent}'")
        return self

    def expanded_search_paths(self) -> List[str]:
        """Search paths with `~` expanded and symlinks resolved, matching `--path` canonicalization."""
        return [os.path.realpath(os.path.expanduser(path)) for path in self.search_paths]

    def get_workspace_definitions(self) -> List[WorkspaceDefinition]:
        return [definition.to_definition() for definition in self.workspace_definitions]

    def get_workspace_definition(self, name: str) -> Optional[WorkspaceDefinition]:
        for definition in self.workspace_definitions:
            if definition.name == name:
                return definition.to_definition()
        return None

    def get_layout(self, name: str) -> Optional[LayoutDefinition]:
        for layout in self.layouts:
            if layout.name == name:
                return layout
        return None

    def layout_names(self) -> List[str]:
        return [layout.name for layout in self.layouts]


class LocalLayoutConfig(BaseModel):
    """Contents of a workspace's ``.twm.yaml`` file."""

    model_config = ConfigDict(extra="forbid")

    layout: LayoutDefinition = Field(
        description="Layout for this workspace, overriding the workspace type's default layout."
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config from {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top level of {path}")
    return data


def get_config_path() -> Optional[Path]:
    """Find the config file to load.

    ``$TWM_CONFIG_FILE`` is used as-is when set; otherwise the XDG config
    directories are searched.
    """
    env_path = os.environ.get(CONFIG_FILE_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return find_xdg_config_file(CONFIG_FILE_NAME)


def parse_config(data: Dict[str, Any], source: str = "config") -> Config:
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid twm configuration in {source}:\n{e}") from e


def load_config(path: Optional[Path] = None) -> Config:
    """Load twm configuration from YAML.

    Args:
        path: Path to the config file. If None, uses ``get_config_path()``

    Returns:
        Loaded config, or the defaults if no config file exists

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    if path is None:
        path = get_config_path()
        if path is None:
            logger.debug("No config file found, using defaults")
            return Config()

    logger.debug("Loading config from %s", path)
    return parse_config(_read_yaml(path), str(path))


def load_local_layout(directory: Path) -> Optional[LocalLayoutConfig]:
    """Load a workspace's local layout file.

    Returns:
        The local layout config, or None if the directory has no such file

    Raises:
        ConfigError: If the file exists but is invalid
    """
    path = Path(directory) / LOCAL_LAYOUT_FILE_NAME
    if not path.is_file():
        return None
    try:
        return LocalLayoutConfig.model_validate(_read_yaml(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid local layout in {path}:\n{e}") from e


def config_schema() -> str:
    return json.dumps(Config.model_json_schema(), indent=2)


def local_layout_schema() -> str:
    return json.dumps(LocalLayoutConfig.model_json_schema(), indent=2)


DEFAULT_CONFIG_TEMPLATE = """\
# yaml-language-server: $schema=./{schema}
# twm configuration. Every key is optional.

search_paths:
  - "~"

max_search_depth: 3

session_name_path_components: 1

exclude_path_components:
  - .cache
  - .git
  - node_modules
  - target
  - __pycache__

workspace_definitions:
  - name: default
    has_any_file:
      - .git
      - .twm.yaml

layouts: []
"""


def write_default_config(directory: Optional[Path] = None) -> List[Path]:
    """Write a default config file and its JSON schema.

    Args:
        directory: Target directory. If None, uses the XDG config directory

    Returns:
        Paths of the files written

    Raises:
        ConfigError: If either file already exists
    """
    directory = Path(directory) if directory else get_xdg_write_dir()
    config_path = directory / CONFIG_FILE_NAME
    schema_path = directory / CONFIG_SCHEMA_FILE_NAME

    for path in (config_path, schema_path):
        if path.exists():
            raise ConfigError(f"{path} already exists. Move or rename it and try again.")

    directory.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE.format(schema=CONFIG_SCHEMA_FILE_NAME), encoding="utf-8")
    schema_path.write_text(config_schema() + "\n", encoding="utf-8")
    return [config_path, schema_path]
