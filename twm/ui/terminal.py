"""Scoped ownership of the terminal for full-screen drawing."""

import sys
import threading
from contextlib import ExitStack
from typing import Optional, Tuple

from prompt_toolkit.input import Input, create_input
from rich.console import Console, RenderableType
from rich.control import Control

from twm.exceptions import TerminalError


class Terminal:
    """Raw-mode input plus the alternate screen, released on every exit path.

    Use as a context manager. Leaving the block restores the terminal, and
    while the block is active the process excepthooks are wrapped so that a
    crash on any thread restores the terminal before the traceback prints.
    """

    def __init__(self, console: Console, input: Optional[Input] = None):
        self.console = console
        self._input = input
        self._stack: Optional[ExitStack] = None
        self._lock = threading.Lock()
        self._screen = None
        self._prev_excepthook = None
        self._prev_threading_excepthook = None

    @property
    def input(self) -> Input:
        if self._input is None:
            raise TerminalError("Terminal is not active")
        return self._input

    @property
    def size(self) -> Tuple[int, int]:
        width, height = self.console.size
        return width, height

    def __enter__(self) -> "Terminal":
        if not self.console.is_terminal:
            raise TerminalError("An interactive terminal is required to pick from a list")

        stack = ExitStack()
        try:
            if self._input is None:
                self._input = create_input(always_prefer_tty=True)
                stack.callback(self._input.close)
            stack.enter_context(self._input.raw_mode())
            self._screen = stack.enter_context(self.console.screen(hide_cursor=False))
        except BaseException:
            stack.close()
            raise

        self._stack = stack
        self._install_hooks()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def restore(self) -> None:
        """Give the terminal back to the user. Safe to call more than once."""
        with self._lock:
            stack, self._stack = self._stack, None
        if stack is None:
            return
        self._uninstall_hooks()
        self._screen = None
        stack.close()

    def draw(self, renderable: RenderableType, cursor: Tuple[int, int]) -> None:
        """Replace the screen contents and place the cursor at ``(x, y)``."""
        if self._screen is None:
            return
        self._screen.update(renderable)
        self.console.control(Control.move_to(*cursor))

    def _install_hooks(self) -> None:
        prev_excepthook = self._prev_excepthook = sys.excepthook
        prev_threading_excepthook = self._prev_threading_excepthook = threading.excepthook

        def excepthook(exc_type, exc, tb):
            self.restore()
            prev_excepthook(exc_type, exc, tb)

        def threading_excepthook(args):
            self.restore()
            prev_threading_excepthook(args)

        sys.excepthook = excepthook
        threading.excepthook = threading_excepthook

    def _uninstall_hooks(self) -> None:
        if self._prev_excepthook is not None:
            sys.excepthook = self._prev_excepthook
            self._prev_excepthook = None
        if self._prev_threading_excepthook is not None:
            threading.excepthook = self._prev_threading_excepthook
            self._prev_threading_excepthook = None
