"""Custom exception classes for twm."""

from typing import List, Optional, Sequence


class TwmError(Exception):
    """Base class for failures that are reported to the user without a traceback."""


class ConfigError(TwmError, ValueError):
    """Raised when the configuration cannot be read or is invalid."""


class LayoutCycleError(ConfigError):
    """Raised when layouts inherit from each other in a loop.

    Attributes:
        chain: Layout names in inheritance order, ending with the repeated name
    """

    def __init__(self, chain: Sequence[str]):
        self.chain: List[str] = list(chain)
        super().__init__(f"Circular layout inheritance detected: {' -> '.join(self.chain)}")


class TmuxCommandError(TwmError):
    """Raised when a tmux command exits non-zero or cannot be run.

    Attributes:
        command: Arguments passed to tmux (without the binary name)
        returncode: Exit status, None if the process never completed
        stderr: Text tmux wrote to stderr
    """

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command: List[str] = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class SessionNameExhaustedError(TwmError):
    """Raised when every component of a path has been tried as a session name.

    Attributes:
        path: Workspace path a name was being derived for
        tried: Last candidate name that collided
    """

    def __init__(self, path: str, tried: str):
        super().__init__(f"Unable to find a free session name for {path} (last tried '{tried}')")
        self.path = path
        self.tried = tried


class TerminalError(TwmError):
    """Raised when the picker needs an interactive terminal and none is available."""
