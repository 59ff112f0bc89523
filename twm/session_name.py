"""Derive collision-free tmux session names from workspace paths.

Names are checked against the live tmux server every time; nothing is cached.
A name already taken by a session whose ``TWM_ROOT`` is the same path counts
as a match (the caller should attach), a name taken by anything else counts
as a collision and one more path component is added.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from twm.exceptions import SessionNameExhaustedError
from twm.tmux import ENV_ROOT, Tmux

logger = logging.getLogger(__name__)

# tmux uses "." and ":" in target syntax, so they can't appear in session names
DISALLOWED_CHARS = (".", ":")


def sanitize_session_name(name: str) -> str:
    for char in DISALLOWED_CHARS:
        name = name.replace(char, "_")
    return name


def path_components(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def session_name_from_path(path: str, components: int) -> str:
    """Build a session name from the last ``components`` parts of a path.

    >>> session_name_from_path("/home/me/projects/foo.rs", 2)
    'projects/foo_rs'
    """
    parts = path_components(path)
    return sanitize_session_name("/".join(parts[-components:]))


@dataclass(frozen=True)
class ResolvedSessionName:
    """A session name accepted for a workspace path.

    Attributes:
        name: Session name to use
        exists: A session with this name already represents the path
    """

    name: str
    exists: bool


class SessionNameResolver:
    """Resolve session names against a running tmux server."""

    def __init__(self, tmux: Tmux):
        self.tmux = tmux

    def resolve(self, path: str, components: int = 1) -> ResolvedSessionName:
        """Find the session name for a workspace path.

        Starts with ``components`` trailing path parts and adds one part per
        collision with an unrelated session.

        Raises:
            SessionNameExhaustedError: If even the full path collides
        """
        available = len(path_components(path))
        if available == 0:
            raise SessionNameExhaustedError(path, "")

        count = max(1, min(components, available))
        name = ""
        while count <= available:
            name = session_name_from_path(path, count)
            if not self.tmux.has_session(name):
                return ResolvedSessionName(name=name, exists=False)

            root = self.root_path(name)
            if root == path:
                return ResolvedSessionName(name=name, exists=True)

            logger.info("Session name '%s' is taken by %s, adding a path component", name, root or "another session")
            count += 1

        raise SessionNameExhaustedError(path, name)

    def root_path(self, session: str) -> Optional[str]:
        """Get the workspace root recorded on a session, if it has one."""
        return self.tmux.show_environment(session, ENV_ROOT)

    def group_session_name(self, base: str) -> str:
        """Find the first free ``base-N`` name for a grouped session."""
        suffix = 1
        while True:
            name = f"{base}-{suffix}"
            if not self.tmux.has_session(name):
                return name
            suffix += 1
