"""Top-level twm flows: pick a workspace or session and open it in tmux."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .config import Config
from .exceptions import TwmError
from .layout import get_commands_from_layout, get_layout_to_use
from .session_name import SessionNameResolver
from .tmux import ENV_TYPE, Tmux, session_environment
from .ui.picker import Picker, PickerSelection, pick
from .workspace import WorkspaceScanner, get_workspace_type

logger = logging.getLogger(__name__)

Chooser = Callable[[str, List[str]], PickerSelection]


@dataclass
class OpenOptions:
    """Command line choices that affect how a workspace is opened."""

    path: Optional[str] = None
    name: Optional[str] = None
    choose_layout: bool = False
    dont_attach: bool = False


class Handler:
    """Run the twm flows against one config and one tmux client.

    ``choose`` picks from a fixed list (layouts, sessions) and
    ``picker_factory`` builds the streaming workspace picker; both are
    injectable so the flows can run without a terminal.
    """

    def __init__(
        self,
        config: Config,
        tmux: Optional[Tmux] = None,
        choose: Chooser = pick,
        picker_factory: Callable[[str], Picker] = lambda prompt: Picker(prompt=prompt),
    ):
        self.config = config
        self.tmux = tmux or Tmux(timeout=config.tmux_timeout)
        self.resolver = SessionNameResolver(self.tmux)
        self.choose = choose
        self.picker_factory = picker_factory

    def select_workspace(self) -> PickerSelection:
        """Scan for workspaces in the background while the user picks one.

        The scan is not stopped when the picker exits; its daemon threads are
        left to finish or die with the process.
        """
        picker = self.picker_factory("Select a workspace: ")
        WorkspaceScanner.from_config(self.config).start(picker.injector)
        return picker.get_selection()

    def handle_workspace_selection(self, options: OpenOptions) -> bool:
        """Open a workspace from ``--path`` or from the picker.

        Returns:
            False if the user cancelled, True otherwise
        """
        if options.path:
            workspace_path = canonical_workspace_path(options.path)
            modified = False
        else:
            selection = self.select_workspace()
            if selection.is_cancelled:
                return False
            workspace_path = selection.text
            modified = selection.is_modified

        workspace_type = get_workspace_type(workspace_path, self.config.get_workspace_definitions())
        if modified and not options.name:
            self.open_workspace_grouped(workspace_path, workspace_type, options)
        else:
            self.open_workspace(workspace_path, workspace_type, options)
        return True

    def open_workspace(self, workspace_path: str, workspace_type: Optional[str], options: OpenOptions) -> str:
        """Create (if needed) and foreground the session for a workspace.

        Returns:
            Name of the session
        """
        if options.name:
            name = options.name
            exists = self.tmux.has_session(name)
        else:
            resolved = self.resolver.resolve(workspace_path, self.config.session_name_path_components)
            name, exists = resolved.name, resolved.exists

        if not exists:
            layout_name = self._choose_layout() if options.choose_layout else None
            self.tmux.new_session(name, workspace_path, session_environment(name, workspace_path, workspace_type))
            logger.info("Created session '%s' at %s", name, workspace_path)
            self._apply_layout(name, workspace_path, workspace_type, layout_name)

        if not options.dont_attach:
            self.tmux.attach(name)
        return name

    def open_workspace_grouped(
        self, workspace_path: str, workspace_type: Optional[str], options: OpenOptions
    ) -> str:
        """Open a workspace in a new session grouped with its existing one.

        Falls back to a plain open when the workspace has no live session.
        """
        resolved = self.resolver.resolve(workspace_path, self.config.session_name_path_components)
        if not resolved.exists:
            return self.open_workspace(workspace_path, workspace_type, options)
        return self.open_in_group(resolved.name, options, root=workspace_path, workspace_type=workspace_type)

    def open_in_group(
        self,
        group_with: str,
        options: OpenOptions,
        root: Optional[str] = None,
        workspace_type: Optional[str] = None,
    ) -> str:
        """Create a session grouped with ``group_with`` and foreground it."""
        if root is None:
            root = self.resolver.root_path(group_with)
        if workspace_type is None and root is not None:
            workspace_type = self.tmux.show_environment(group_with, ENV_TYPE)

        name = self.resolver.group_session_name(group_with)
        env = session_environment(name, root, workspace_type) if root else None
        self.tmux.new_grouped_session(name, group_with, env)
        logger.info("Created session '%s' in group '%s'", name, group_with)

        if not options.dont_attach:
            self.tmux.attach(name)
        return name

    def handle_group_session_selection(self, options: OpenOptions) -> bool:
        selection = self.choose("Select a session to group with: ", self._existing_sessions())
        if selection.is_cancelled:
            return False
        self.open_in_group(selection.text, options)
        return True

    def handle_existing_session_selection(self) -> bool:
        selection = self.choose("Select a session to attach to: ", self._existing_sessions())
        if selection.is_cancelled:
            return False
        self.tmux.attach(selection.text)
        return True

    def _existing_sessions(self) -> List[str]:
        sessions = self.tmux.list_sessions()
        if not sessions:
            raise TwmError("No tmux sessions are running")
        return sessions

    def _choose_layout(self) -> Optional[str]:
        names = self.config.layout_names()
        if not names:
            raise TwmError("No layouts are defined in the configuration")
        selection = self.choose("Select a layout: ", names)
        if selection.is_cancelled:
            return None
        return selection.text

    def _apply_layout(
        self, session: str, workspace_path: str, workspace_type: Optional[str], layout_name: Optional[str]
    ) -> None:
        layout = get_layout_to_use(self.config, Path(workspace_path), workspace_type, layout_name)
        if layout is None:
            return
        commands = get_commands_from_layout(layout, self.config.layouts)
        logger.debug("Applying layout '%s' (%d commands) to '%s'", layout.name, len(commands), session)
        for command in commands:
            self.tmux.send_keys(session, command)


def canonical_workspace_path(path: str) -> str:
    """Resolve a user-supplied path to the absolute directory it names.

    Raises:
        TwmError: If the path does not exist or is not a directory
    """
    candidate = Path(path).expanduser()
    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise TwmError(f"Path does not exist: {path}") from e
    if not resolved.is_dir():
        raise TwmError(f"Path is not a directory: {path}")
    resolved_str = str(resolved)
    try:
        resolved_str.encode("utf-8")
    except UnicodeEncodeError as e:
        raise TwmError(f"Path is not valid UTF-8: {resolved_str!r}") from e
    return resolved_str
