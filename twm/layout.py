"""Layout inheritance resolution for twm."""

from pathlib import Path
from typing import List, Optional, Sequence

from .config import Config, LayoutDefinition, load_local_layout
from .exceptions import ConfigError, LayoutCycleError


def get_layout_by_name(name: str, layouts: Sequence[LayoutDefinition]) -> Optional[LayoutDefinition]:
    for layout in layouts:
        if layout.name == name:
            return layout
    return None


def get_commands_from_layout(
    layout: LayoutDefinition,
    layouts: Sequence[LayoutDefinition],
    inheritance_chain: Optional[List[LayoutDefinition]] = None,
) -> List[str]:
    """Flatten a layout's commands, inherited layouts first.

    Each name in ``inherits`` is resolved depth-first in listed order before
    the layout's own commands are appended. A layout reachable through two
    parents contributes its commands twice.

    Cycles are tracked by layout object rather than by name, so a local
    layout may share its name with the global layout it inherits from.

    Args:
        layout: Layout to flatten
        layouts: Global layouts that ``inherits`` names refer to
        inheritance_chain: Layouts currently being flattened

    Raises:
        LayoutCycleError: If a layout (indirectly) inherits from itself
        ConfigError: If an inherited layout does not exist
    """
    chain = list(inheritance_chain or [])
    if any(ancestor is layout for ancestor in chain):
        raise LayoutCycleError([ancestor.name for ancestor in chain] + [layout.name])
    chain.append(layout)

    commands: List[str] = []
    for parent_name in layout.inherits or []:
        parent = get_layout_by_name(parent_name, layouts)
        if parent is None:
            raise ConfigError(f"Layout '{layout.name}' inherits from unknown layout '{parent_name}'")
        commands.extend(get_commands_from_layout(parent, layouts, chain))

    commands.extend(layout.commands or [])
    return commands


def get_commands_from_layout_name(name: str, layouts: Sequence[LayoutDefinition]) -> List[str]:
    layout = get_layout_by_name(name, layouts)
    if layout is None:
        raise ConfigError(f"Layout not found: {name}")
    return get_commands_from_layout(layout, layouts)


def get_layout_to_use(
    config: Config,
    workspace_path: Path,
    workspace_type: Optional[str],
    selected_layout: Optional[str] = None,
) -> Optional[LayoutDefinition]:
    """Decide which layout a new session gets.

    Precedence: an explicitly selected global layout, then the workspace's
    local ``.twm.yaml`` layout, then the workspace type's default layout.
    """
    if selected_layout:
        layout = config.get_layout(selected_layout)
        if layout is None:
            raise ConfigError(f"Layout not found: {selected_layout}")
        return layout

    local = load_local_layout(workspace_path)
    if local is not None:
        return local.layout

    if workspace_type:
        definition = config.get_workspace_definition(workspace_type)
        if definition and definition.default_layout:
            return config.get_layout(definition.default_layout)

    return None
