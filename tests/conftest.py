"""Test configuration and fixtures."""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import pytest

from twm.config import Config
from twm.exceptions import TmuxCommandError
from twm.tmux import Tmux


class FakeTmux(Tmux):
    """In-memory stand-in for a tmux server.

    Sessions map names to their environment. Every mutating call is recorded
    so tests can assert on what would have been sent to tmux.
    """

    def __init__(self, sessions: Optional[Dict[str, Dict[str, str]]] = None, inside_tmux: bool = False):
        super().__init__(environ={"TMUX": "/tmp/tmux-1000/default,1,0"} if inside_tmux else {})
        self.sessions: Dict[str, Dict[str, str]] = {name: dict(env) for name, env in (sessions or {}).items()}
        self.groups: Dict[str, str] = {}
        self.sent_keys: List[Tuple[str, str]] = []
        self.attached: List[str] = []
        self.created: List[str] = []
        self.has_session_calls: List[str] = []

    def has_session(self, name: str) -> bool:
        self.has_session_calls.append(name)
        return name in self.sessions

    def show_environment(self, session: str, key: str) -> Optional[str]:
        env = self.sessions.get(session)
        if env is None:
            return None
        return env.get(key)

    def new_session(self, name: str, path: str, env: Optional[Mapping[str, str]] = None) -> None:
        if name in self.sessions:
            raise TmuxCommandError(f"duplicate session: {name}", command=["new-session", "-s", name])
        self.sessions[name] = dict(env or {})
        self.created.append(name)

    def new_grouped_session(self, name: str, group_with: str, env: Optional[Mapping[str, str]] = None) -> None:
        if group_with not in self.sessions:
            raise TmuxCommandError(f"can't find session: {group_with}")
        self.sessions[name] = dict(env or {})
        self.groups[name] = group_with
        self.created.append(name)

    def send_keys(self, session: str, command: str) -> None:
        self.sent_keys.append((session, command))

    def list_sessions(self) -> List[str]:
        return list(self.sessions)

    def attach(self, session: str) -> None:
        if session not in self.sessions:
            raise TmuxCommandError(f"can't find session: {session}")
        self.attached.append(session)


@pytest.fixture
def fake_tmux() -> FakeTmux:
    return FakeTmux()


@pytest.fixture
def make_workspace_tree(tmp_path):
    """Create directories (and files inside them) from relative paths.

    Paths ending with "/" are directories, anything else is a file.
    """

    def _make(*entries: str) -> Path:
        for entry in entries:
            target = tmp_path / entry
            if entry.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text("")
        return tmp_path

    return _make


@pytest.fixture
def git_config(tmp_path) -> Config:
    """Config that searches tmp_path for directories containing .git."""
    return Config(
        search_paths=[str(tmp_path)],
        workspace_definitions=[{"name": "git", "has_any_file": [".git"]}],
    )


@pytest.fixture
def cli_runner():
    """Create a CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

