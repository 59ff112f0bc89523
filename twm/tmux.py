"""Thin client for the tmux command line."""

import logging
import os
import subprocess
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from twm.exceptions import TmuxCommandError

logger = logging.getLogger(__name__)

TMUX_BINARY = "tmux"

# Environment variables recorded on every session twm creates
ENV_MANAGED = "TWM"
ENV_ROOT = "TWM_ROOT"
ENV_TYPE = "TWM_TYPE"
ENV_NAME = "TWM_NAME"

ProcessReplacer = Callable[[str, List[str]], None]


def exec_replace(file: str, args: List[str]) -> None:
    """Replace the current process image with ``file``. Only returns on failure."""
    os.execvp(file, args)


def session_environment(name: str, root: str, workspace_type: Optional[str]) -> Dict[str, str]:
    """Build the environment markers for a twm-managed session."""
    return {
        ENV_MANAGED: "1",
        ENV_ROOT: root,
        ENV_TYPE: workspace_type or "",
        ENV_NAME: name,
    }


def parse_environment(output: str) -> Dict[str, str]:
    """Parse ``show-environment`` output.

    Lines look like ``KEY=value``; removed variables show as ``-KEY`` and are
    left out.
    """
    env = {}
    for line in output.splitlines():
        if not line or line.startswith("-") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        env[key] = value
    return env


class Tmux:
    """Synchronous tmux commands.

    Every call blocks until tmux exits. ``timeout`` bounds each call; with the
    default of None a hung tmux server hangs the caller.
    """

    def __init__(
        self,
        binary: str = TMUX_BINARY,
        timeout: Optional[float] = None,
        replace_process: ProcessReplacer = exec_replace,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.binary = binary
        self.timeout = timeout
        self.replace_process = replace_process
        self.environ = environ if environ is not None else os.environ

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        cmd = [self.binary, *args]
        logger.debug("Running %s", cmd)
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise TmuxCommandError(f"tmux executable not found: {self.binary}", command=args) from e
        except subprocess.TimeoutExpired as e:
            raise TmuxCommandError(
                f"tmux command {list(args)} timed out after {self.timeout}s", command=args
            ) from e

    def run(self, args: Sequence[str]) -> str:
        """Run a tmux command and return its stdout.

        Raises:
            TmuxCommandError: If tmux exits non-zero
        """
        result = self._run(args)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise TmuxCommandError(
                f"tmux command {list(args)} failed because: {stderr}",
                command=args,
                returncode=result.returncode,
                stderr=stderr,
            )
        return result.stdout or ""

    def has_session(self, name: str) -> bool:
        # "=" forces an exact name match instead of tmux's prefix matching
        return self._run(["has-session", "-t", f"={name}"]).returncode == 0

    def show_environment(self, session: str, key: str) -> Optional[str]:
        """Read one environment variable of a session.

        Returns:
            The value, or None if the session or variable does not exist
        """
        result = self._run(["show-environment", "-t", f"={session}", key])
        if result.returncode != 0:
            return None
        return parse_environment(result.stdout or "").get(key)

    def new_session(self, name: str, path: str, env: Optional[Mapping[str, str]] = None) -> None:
        """Create a detached session rooted at ``path``."""
        args = ["new-session", "-d", "-s", name, "-c", path]
        args.extend(self._env_args(env))
        self.run(args)

    def new_grouped_session(
        self, name: str, group_with: str, env: Optional[Mapping[str, str]] = None
    ) -> None:
        """Create a detached session sharing windows with ``group_with``."""
        args = ["new-session", "-d", "-t", f"={group_with}", "-s", name]
        args.extend(self._env_args(env))
        self.run(args)

    def send_keys(self, session: str, command: str) -> None:
        """Type ``command`` into the session's active pane and press Enter."""
        self.run(["send-keys", "-t", f"={session}:", command, "C-m"])

    def list_sessions(self) -> List[str]:
        result = self._run(["list-sessions", "-F", "#{session_name}"])
        if result.returncode != 0:
            # no server running means no sessions
            logger.debug("list-sessions failed: %s", (result.stderr or "").strip())
            return []
        return [line for line in (result.stdout or "").splitlines() if line]

    def inside_tmux(self) -> bool:
        return bool(self.environ.get("TMUX"))

    def attach(self, session: str) -> None:
        """Bring a session to the foreground.

        Inside tmux the current client switches to it. Outside, this process
        is replaced by ``tmux attach-session`` and only returns on failure.
        """
        if self.inside_tmux():
            self.run(["switch-client", "-t", f"={session}"])
            return

        args = [self.binary, "attach-session", "-t", f"={session}"]
        logger.debug("Replacing process with %s", args)
        try:
            self.replace_process(self.binary, args)
        except OSError as e:
            raise TmuxCommandError(f"Unable to attach to tmux session {session}: {e}", command=args[1:]) from e

    @staticmethod
    def _env_args(env: Optional[Mapping[str, str]]) -> List[str]:
        args: List[str] = []
        for key, value in (env or {}).items():
            args.extend(["-e", f"{key}={value}"])
        return args
