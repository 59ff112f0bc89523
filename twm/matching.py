"""Incremental fuzzy matching over a growing list of candidates.

Producers (scanner threads) push strings through an :class:`Injector` while a
single consumer (the picker's render loop) edits the pattern and calls
:meth:`Matcher.tick` to do a bounded slice of work, then reads a
:class:`Snapshot`.
"""

import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = 8
BONUS_PATH_SEPARATOR = 9
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2

WORD_SEPARATORS = "_-. "

# Items evaluated between deadline checks in tick()
_CHECK_INTERVAL = 256


@dataclass(frozen=True)
class PatternAtom:
    """One whitespace-separated word of the pattern."""

    text: str
    ignore_case: bool


def parse_pattern(pattern: str) -> List[PatternAtom]:
    """Split a pattern into atoms that must all match.

    Matching is smart-case: an atom is case-insensitive unless it contains an
    uppercase character.
    """
    atoms = []
    for word in pattern.split():
        ignore_case = word == word.lower()
        atoms.append(PatternAtom(word if not ignore_case else word.lower(), ignore_case))
    return atoms


def _char_bonus(text: str, index: int) -> int:
    if index == 0:
        return BONUS_BOUNDARY
    prev = text[index - 1]
    cur = text[index]
    if prev == "/":
        return BONUS_PATH_SEPARATOR
    if prev in WORD_SEPARATORS:
        return BONUS_BOUNDARY
    if prev.islower() and cur.isupper():
        return BONUS_CAMEL
    if not prev.isdigit() and cur.isdigit():
        return BONUS_CAMEL
    return 0


def _fold_case(text: str) -> str:
    """Lowercase one character at a time so positions line up with ``text``.

    Characters whose lowercase form is longer than one character (``İ``)
    are left as they are.
    """
    folded = []
    for ch in text:
        lower = ch.lower()
        folded.append(lower if len(lower) == 1 else ch)
    return "".join(folded)


def score_atom(atom: PatternAtom, text: str) -> Optional[int]:
    """Score a single atom against text.

    The atom's characters must appear in order. The forward pass finds the
    earliest end of a match, the backward pass the latest start for that end,
    which gives the tightest window to score.

    Returns:
        Score (higher is better), or None if the atom does not match
    """
    needle = atom.text
    if not needle:
        return 0
    haystack = _fold_case(text) if atom.ignore_case else text

    pos = -1
    for ch in needle:
        pos = haystack.find(ch, pos + 1)
        if pos < 0:
            return None
    end = pos

    pos = end + 1
    for ch in reversed(needle):
        pos = haystack.rfind(ch, 0, pos)
    start = pos

    score = 0
    pidx = 0
    in_gap = False
    consecutive = 0
    first_bonus = 0
    for i in range(start, end + 1):
        if pidx < len(needle) and haystack[i] == needle[pidx]:
            bonus = _char_bonus(text, i)
            if consecutive == 0:
                first_bonus = bonus
            else:
                bonus = max(bonus, first_bonus, BONUS_CONSECUTIVE)
            if pidx == 0:
                score += SCORE_MATCH + bonus * BONUS_FIRST_CHAR_MULTIPLIER
            else:
                score += SCORE_MATCH + bonus
            consecutive += 1
            in_gap = False
            pidx += 1
        else:
            score += SCORE_GAP_EXTENSION if in_gap else SCORE_GAP_START
            in_gap = True
            consecutive = 0
            first_bonus = 0
    return score


def fuzzy_score(atoms: Sequence[PatternAtom], text: str) -> Optional[int]:
    """Score text against every atom of a parsed pattern.

    Returns:
        Sum of the atom scores, or None if any atom fails to match
    """
    total = 0
    for atom in atoms:
        score = score_atom(atom, text)
        if score is None:
            return None
        total += score
    return total


@dataclass(frozen=True)
class MatchStatus:
    """Result of a :meth:`Matcher.tick` call.

    Attributes:
        changed: The snapshot differs from the one before the tick
        running: Work is left over for the next tick
    """

    changed: bool
    running: bool


@dataclass(frozen=True)
class Snapshot:
    """Ranked view of the matches at one point in time."""

    items: Tuple[str, ...]
    matched_count: int
    item_count: int

    def get(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.items):
            return self.items[index]
        return None


class Injector:
    """Thread-safe handle producers use to add candidates.

    Instances are callable so they can be passed directly as a scanner sink.
    """

    def __init__(self, matcher: "Matcher"):
        self._matcher = matcher

    def push(self, item: str) -> None:
        self._matcher.push(item)

    __call__ = push


class Matcher:
    """Fuzzy filter and ranker fed by concurrent producers.

    Matches are ordered by score (descending), then length (ascending), then
    push order. ``push`` may be called from any thread; every other method
    belongs to the single consumer thread.

    When the new pattern only extends the old one, the previous matches are
    the only candidates that can still match, so just those are re-scored.
    Any other edit rescans every item.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: List[str] = []

        self._items: List[str] = []
        self._pattern = ""
        self._atoms: List[PatternAtom] = []
        # (-score, length, index) tuples, kept sorted
        self._matches: List[Tuple[int, int, int]] = []
        # items[:_scanned] have been evaluated against the current pattern
        self._scanned = 0
        # item indices that matched an earlier, shorter pattern and need re-scoring
        self._recheck: List[int] = []
        self._recheck_pos = 0
        self._reparse: Optional[str] = None

    @property
    def pattern(self) -> str:
        return self._pattern

    def injector(self) -> Injector:
        return Injector(self)

    def push(self, item: str) -> None:
        """Add a candidate. Safe to call from any thread."""
        with self._lock:
            self._pending.append(item)

    def extend(self, items: Sequence[str]) -> None:
        with self._lock:
            self._pending.extend(items)

    def set_pattern(self, pattern: str) -> None:
        """Replace the query pattern; work happens on the next tick."""
        if pattern == self._pattern:
            return
        narrowing = pattern.startswith(self._pattern)
        self._pattern = pattern
        self._atoms = parse_pattern(pattern)
        if narrowing and self._reparse != "full":
            self._reparse = "narrow"
        else:
            self._reparse = "full"

    def tick(self, timeout_ms: float = 10) -> MatchStatus:
        """Do matching work for at most roughly ``timeout_ms`` milliseconds."""
        deadline = time.monotonic() + timeout_ms / 1000

        with self._lock:
            pending, self._pending = self._pending, []
        changed = bool(pending)
        self._items.extend(pending)

        if self._reparse is not None:
            self._apply_reparse()
            changed = True

        processed = 0
        added = False
        while self._recheck_pos < len(self._recheck):
            index = self._recheck[self._recheck_pos]
            self._recheck_pos += 1
            added |= self._evaluate(index)
            processed += 1
            if processed % _CHECK_INTERVAL == 0 and time.monotonic() >= deadline:
                break
        else:
            self._recheck = []
            self._recheck_pos = 0
            while self._scanned < len(self._items):
                added |= self._evaluate(self._scanned)
                self._scanned += 1
                processed += 1
                if processed % _CHECK_INTERVAL == 0 and time.monotonic() >= deadline:
                    break

        if added:
            self._matches.sort()
            changed = True

        running = self._recheck_pos < len(self._recheck) or self._scanned < len(self._items)
        return MatchStatus(changed=changed, running=running)

    def snapshot(self, limit: Optional[int] = None) -> Snapshot:
        """Get the ranked matches, optionally capped at ``limit`` items."""
        ranked = self._matches if limit is None else self._matches[:limit]
        return Snapshot(
            items=tuple(self._items[index] for _, _, index in ranked),
            matched_count=len(self._matches),
            item_count=len(self._items),
        )

    def _apply_reparse(self) -> None:
        if self._reparse == "narrow":
            remaining = self._recheck[self._recheck_pos :]
            self._recheck = sorted([index for _, _, index in self._matches] + remaining)
        else:
            self._recheck = []
            self._scanned = 0
        self._recheck_pos = 0
        self._matches = []
        self._reparse = None

    def _evaluate(self, index: int) -> bool:
        text = self._items[index]
        score = fuzzy_score(self._atoms, text)
        if score is None:
            return False
        self._matches.append((-score, len(text), index))
        return True
