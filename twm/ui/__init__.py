"""Terminal UI for twm: a fuzzy picker drawn with rich, driven by prompt_toolkit input."""

from .events import EventHandler, KeyEvent, Tick
from .picker import Picker, PickerSelection, SelectionKind, pick
from .terminal import Terminal

__all__ = [
    "EventHandler",
    "KeyEvent",
    "Picker",
    "PickerSelection",
    "SelectionKind",
    "Terminal",
    "Tick",
    "pick",
]
