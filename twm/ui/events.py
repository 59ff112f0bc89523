"""Tick and key events merged into one channel for the picker loop."""

import logging
import queue
import select
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys

logger = logging.getLogger(__name__)

DEFAULT_TICK_RATE = 0.015

# Quiet period after which a lone escape byte is treated as the Escape key
# instead of the start of an escape sequence.
ESCAPE_TIMEOUT = 0.05


@dataclass(frozen=True)
class Tick:
    """Periodic wakeup; the picker must treat it as "maybe nothing changed"."""


TICK = Tick()


@dataclass(frozen=True)
class KeyEvent:
    """A key press.

    Attributes:
        key: A prompt_toolkit ``Keys`` value, or the typed character
        data: Raw text of the key (pasted text for bracketed paste)
        alt: The key arrived prefixed with escape (Alt/Meta held)
    """

    key: str
    data: str = ""
    alt: bool = False


@dataclass(frozen=True)
class InputFailed:
    """The input thread died; carries the exception that killed it."""

    error: BaseException


Event = Union[Tick, KeyEvent, InputFailed]


def merge_key_presses(presses: Sequence[KeyPress]) -> List[KeyEvent]:
    """Convert prompt_toolkit key presses to key events.

    An escape immediately followed by another key in the same read is how
    terminals send Alt+key, so the pair becomes one event with ``alt`` set.
    """
    events: List[KeyEvent] = []
    pending_escape = False
    for press in presses:
        if press.key == Keys.Escape and not pending_escape:
            pending_escape = True
            continue
        events.append(KeyEvent(press.key, press.data, alt=pending_escape))
        pending_escape = False
    if pending_escape:
        events.append(KeyEvent(Keys.Escape, "\x1b"))
    return events


class EventHandler:
    """Read keys on a dedicated thread and interleave them with ticks.

    The render loop calls :meth:`next`, which never waits longer than one
    tick, so blocking terminal reads can't stall drawing.
    """

    def __init__(self, input: Input, tick_rate: float = DEFAULT_TICK_RATE):
        self.input = input
        self.tick_rate = tick_rate
        self._queue: "queue.Queue[Event]" = queue.Queue()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "EventHandler":
        self._thread = threading.Thread(target=self._run, name="twm-input", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: float = 0.5) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def next(self) -> Event:
        """Get the next event, or a tick if nothing arrived within one tick."""
        try:
            return self._queue.get(timeout=self.tick_rate)
        except queue.Empty:
            return TICK

    def _run(self) -> None:
        try:
            self._read_loop()
        except Exception as e:
            logger.debug("Input thread failed: %s", e)
            self._queue.put(InputFailed(e))

    def _read_loop(self) -> None:
        fd = self.input.fileno()
        last_tick = time.monotonic()
        last_data = last_tick

        while not self._stop.is_set():
            timeout = max(0.0, self.tick_rate - (time.monotonic() - last_tick))
            readable, _, _ = select.select([fd], [], [], timeout)

            if readable:
                presses = self.input.read_keys()
                last_data = time.monotonic()
                if self.input.closed:
                    raise EOFError("Terminal input closed")
            elif time.monotonic() - last_data >= ESCAPE_TIMEOUT:
                presses = self.input.flush_keys()
            else:
                presses = []

            for event in merge_key_presses(presses):
                self._queue.put(event)

            if time.monotonic() - last_tick >= self.tick_rate:
                self._queue.put(TICK)
                last_tick = time.monotonic()
