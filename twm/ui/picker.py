"""Interactive fuzzy picker."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from prompt_toolkit.keys import Keys
from rich.cells import cell_len
from rich.console import Console
from rich.text import Text

from twm.console import get_stderr_console
from twm.matching import Injector, Matcher, Snapshot

from .events import DEFAULT_TICK_RATE, EventHandler, InputFailed, KeyEvent
from .terminal import Terminal

DEFAULT_MATCH_BUDGET_MS = 10

PROMPT_STYLE = "bold bright_blue"
HIGHLIGHT_STYLE = "bright_blue"
STATUS_STYLE = "grey50"

CANCEL_KEYS = {Keys.ControlC, Keys.ControlD, Keys.ControlZ}
UP_KEYS = {Keys.Up, Keys.ControlP}
DOWN_KEYS = {Keys.Down, Keys.ControlN}
LEFT_KEYS = {Keys.Left, Keys.ControlB}
RIGHT_KEYS = {Keys.Right, Keys.ControlF}
HOME_KEYS = {Keys.Home, Keys.ControlA}
END_KEYS = {Keys.End, Keys.ControlE}


class SelectionKind(Enum):
    PLAIN = "plain"
    MODIFIED = "modified"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PickerSelection:
    """Outcome of a picker run.

    A MODIFIED selection (Enter with Alt or Ctrl held) asks the caller to
    group with an existing session instead of opening a fresh one.
    """

    kind: SelectionKind
    text: Optional[str] = None

    @classmethod
    def cancelled(cls) -> "PickerSelection":
        return cls(SelectionKind.CANCELLED)

    @property
    def is_cancelled(self) -> bool:
        return self.kind is SelectionKind.CANCELLED

    @property
    def is_modified(self) -> bool:
        return self.kind is SelectionKind.MODIFIED


class Picker:
    """Single-threaded picker loop over a :class:`Matcher`.

    Candidates can be added up front with ``items`` or streamed in from other
    threads through :attr:`injector` while the picker runs. Not reentrant.

    Row 0 is the best match and is drawn just above the prompt; moving "up"
    walks toward worse matches.
    """

    def __init__(
        self,
        prompt: str = "> ",
        items: Optional[Iterable[str]] = None,
        matcher: Optional[Matcher] = None,
        console: Optional[Console] = None,
        tick_rate: float = DEFAULT_TICK_RATE,
        match_budget_ms: float = DEFAULT_MATCH_BUDGET_MS,
    ):
        self.prompt = prompt
        self.matcher = matcher or Matcher()
        if items:
            self.matcher.extend(list(items))
        self.console = console or get_stderr_console()
        self.tick_rate = tick_rate
        self.match_budget_ms = match_budget_ms

        self.query = ""
        self.cursor = 0
        self.selected: Optional[int] = None
        self.offset = 0
        self.snapshot = Snapshot(items=(), matched_count=0, item_count=0)
        self.running = False
        self._result: Optional[PickerSelection] = None

    @property
    def injector(self) -> Injector:
        return self.matcher.injector()

    @property
    def result(self) -> Optional[PickerSelection]:
        return self._result

    def get_selection(self) -> PickerSelection:
        """Run the picker until the user selects or cancels.

        Raises:
            TerminalError: If there is no interactive terminal
        """
        self._result = None
        with Terminal(self.console) as terminal:
            events = EventHandler(terminal.input, self.tick_rate).start()
            try:
                while self._result is None:
                    width, height = terminal.size
                    self.refresh(height)
                    renderable, cursor = self.render(width, height)
                    terminal.draw(renderable, cursor)

                    event = events.next()
                    if isinstance(event, KeyEvent):
                        self.handle_key(event)
                    elif isinstance(event, InputFailed):
                        raise event.error
            finally:
                events.stop()
        return self._result

    def refresh(self, height: int) -> None:
        """Let the matcher work for one tick and re-read its results."""
        status = self.matcher.tick(self.match_budget_ms)
        self.running = status.running

        rows = self._list_rows(height)
        count = self.matcher.snapshot(limit=0).matched_count
        if count == 0:
            self.selected = None
        elif self.selected is None:
            self.selected = 0
        elif self.selected >= count:
            self.selected = count - 1

        if self.selected is not None:
            if self.selected < self.offset:
                self.offset = self.selected
            elif self.selected >= self.offset + rows:
                self.offset = self.selected - rows + 1
        else:
            self.offset = 0

        self.snapshot = self.matcher.snapshot(limit=self.offset + rows)

    def handle_key(self, event: KeyEvent) -> Optional[PickerSelection]:
        """Apply one key press.

        Returns:
            The final selection if this key ended the picker, otherwise None
        """
        key = event.key

        if key == Keys.Escape or key in CANCEL_KEYS:
            self._result = PickerSelection.cancelled()
        elif key == Keys.ControlM or key == Keys.ControlJ:
            modified = event.alt or key == Keys.ControlJ
            text = self.selected_text()
            if text is not None:
                kind = SelectionKind.MODIFIED if modified else SelectionKind.PLAIN
                self._result = PickerSelection(kind, text)
        elif key == Keys.Backspace:
            self._backspace()
        elif key == Keys.Delete:
            self._delete()
        elif key == Keys.ControlU:
            self._set_query("", 0)
        elif key == Keys.ControlW:
            self._delete_word()
        elif key in UP_KEYS:
            self._move_selection(1)
        elif key in DOWN_KEYS:
            self._move_selection(-1)
        elif key in LEFT_KEYS:
            self.cursor = max(0, self.cursor - 1)
        elif key in RIGHT_KEYS:
            self.cursor = min(len(self.query), self.cursor + 1)
        elif key in HOME_KEYS:
            self.cursor = 0
        elif key in END_KEYS:
            self.cursor = len(self.query)
        elif key == Keys.BracketedPaste:
            self._insert("".join(ch for ch in event.data if ch.isprintable()))
        elif not event.alt and len(key) == 1 and key.isprintable():
            self._insert(key)

        return self._result

    def selected_text(self) -> Optional[str]:
        if self.selected is None:
            return None
        return self.matcher.snapshot(limit=self.selected + 1).get(self.selected)

    def render(self, width: int, height: int) -> Tuple[Text, Tuple[int, int]]:
        """Build the screen contents.

        Returns:
            The full-screen text and the ``(x, y)`` cursor position
        """
        rows = self._list_rows(height)
        lines: List[Text] = []

        for row in reversed(range(rows)):
            index = self.offset + row
            item = self.snapshot.get(index)
            if item is None:
                lines.append(Text(""))
            elif index == self.selected:
                lines.append(Text.assemble(("> ", HIGHLIGHT_STYLE), (item, HIGHLIGHT_STYLE)))
            else:
                lines.append(Text.assemble("  ", item))

        status = f"  {self.snapshot.matched_count}/{self.snapshot.item_count}"
        if self.running:
            status += " ..."
        lines.append(Text(status, style=STATUS_STYLE))
        lines.append(Text.assemble((self.prompt, PROMPT_STYLE), self.query))

        for line in lines:
            line.truncate(width, overflow="ellipsis")

        cursor_x = min(width - 1, cell_len(self.prompt) + cell_len(self.query[: self.cursor]))
        return Text("\n").join(lines), (cursor_x, height - 1)

    @staticmethod
    def _list_rows(height: int) -> int:
        return max(1, height - 2)

    def _move_selection(self, step: int) -> None:
        count = self.matcher.snapshot(limit=0).matched_count
        if count == 0:
            self.selected = None
            return
        if self.selected is None:
            self.selected = 0
            return
        self.selected = min(max(self.selected + step, 0), count - 1)

    def _insert(self, text: str) -> None:
        if not text:
            return
        query = self.query[: self.cursor] + text + self.query[self.cursor :]
        self._set_query(query, self.cursor + len(text))

    def _backspace(self) -> None:
        if self.cursor == 0:
            return
        query = self.query[: self.cursor - 1] + self.query[self.cursor :]
        self._set_query(query, self.cursor - 1)

    def _delete(self) -> None:
        if self.cursor >= len(self.query):
            return
        query = self.query[: self.cursor] + self.query[self.cursor + 1 :]
        self._set_query(query, self.cursor)

    def _delete_word(self) -> None:
        head = self.query[: self.cursor].rstrip()
        cut = head.rfind(" ") + 1
        self._set_query(self.query[:cut] + self.query[self.cursor :], cut)

    def _set_query(self, query: str, cursor: int) -> None:
        self.cursor = cursor
        if query == self.query:
            return
        self.query = query
        self.matcher.set_pattern(query)
        # a new query re-ranks everything, start again from the best match
        self.selected = None
        self.offset = 0


def pick(prompt: str, items: Iterable[str], console: Optional[Console] = None) -> PickerSelection:
    """Pick one item from a fixed list."""
    return Picker(prompt=prompt, items=items, console=console).get_selection()
