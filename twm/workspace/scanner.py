"""Parallel, depth-bounded search for workspace directories."""

import logging
import os
import queue
import threading
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from .conditions import WorkspaceDefinition, meets

logger = logging.getLogger(__name__)

# Queue sentinel telling a worker to exit
_STOP = None


def _default_worker_count() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


def _is_utf8(path: str) -> bool:
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class WorkspaceScanner:
    """Walk search paths on background threads and report workspace directories.

    Every directory down to ``max_depth`` levels below each root is tested
    against the workspace definitions in order; the first match stops the
    test and the path is passed to ``sink``. Directories whose name is in
    ``exclude`` are neither tested nor descended into. Symlinked directories
    are not followed.

    Workers are daemon threads, so an unfinished scan never keeps the
    process alive. ``sink`` is called from worker threads and must be
    thread-safe.
    """

    def __init__(
        self,
        roots: Sequence[str],
        definitions: Sequence[WorkspaceDefinition],
        max_depth: int = 3,
        exclude: Iterable[str] = (),
        workers: Optional[int] = None,
    ):
        self.roots = list(roots)
        self.definitions = list(definitions)
        self.max_depth = max_depth
        self.exclude: Set[str] = set(exclude)
        self.workers = workers or _default_worker_count()

        self._queue: "queue.Queue[Optional[Tuple[str, int]]]" = queue.Queue()
        self._outstanding = 0
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._threads: List[threading.Thread] = []
        self._sink: Optional[Callable[[str], None]] = None

    @classmethod
    def from_config(cls, config, workers: Optional[int] = None) -> "WorkspaceScanner":
        """Build a scanner from a loaded twm config."""
        return cls(
            roots=config.expanded_search_paths(),
            definitions=config.get_workspace_definitions(),
            max_depth=config.max_search_depth,
            exclude=config.exclude_path_components,
            workers=workers,
        )

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def start(self, sink: Callable[[str], None]) -> "WorkspaceScanner":
        """Start scanning in the background.

        Args:
            sink: Called once per matching directory, from a worker thread

        Returns:
            The scanner, so callers can chain ``wait()``
        """
        if self._threads:
            raise RuntimeError("Scanner already started")

        self._sink = sink
        roots = [root for root in self.roots if os.path.isdir(root) and not self._is_excluded(root)]
        if not roots:
            self._done.set()
            return self

        with self._lock:
            self._outstanding = len(roots)
        for root in roots:
            self._queue.put((root, 0))

        for i in range(self.workers):
            thread = threading.Thread(target=self._work, name=f"twm-scan-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)

        logger.debug("Scanning %d root(s) with %d worker(s)", len(roots), self.workers)
        return self

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the scan finishes.

        Returns:
            True if the scan finished, False on timeout
        """
        return self._done.wait(timeout)

    def scan(self) -> List[str]:
        """Run a scan to completion and return the matches.

        Order is not meaningful: subtrees are walked concurrently.
        """
        results: List[str] = []
        lock = threading.Lock()

        def collect(path: str) -> None:
            with lock:
                results.append(path)

        self.start(collect).wait()
        return results

    def _is_excluded(self, path: str) -> bool:
        name = os.path.basename(os.path.normpath(path))
        return name in self.exclude

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            directory, depth = item
            try:
                self._visit(directory, depth)
            finally:
                self._task_finished()

    def _task_finished(self) -> None:
        with self._lock:
            self._outstanding -= 1
            finished = self._outstanding == 0
        if finished:
            self._done.set()
            for _ in range(self.workers):
                self._queue.put(_STOP)

    def _visit(self, directory: str, depth: int) -> None:
        for definition in self.definitions:
            if meets(definition.conditions, directory):
                if _is_utf8(directory):
                    self._sink(directory)
                else:
                    logger.debug("Dropping non UTF-8 workspace path %r", directory)
                break

        if depth >= self.max_depth:
            return

        try:
            with os.scandir(directory) as entries:
                children = [
                    entry.path
                    for entry in entries
                    if entry.name not in self.exclude and self._is_dir(entry)
                ]
        except OSError as e:
            logger.debug("Skipping %s: %s", directory, e)
            return

        with self._lock:
            self._outstanding += len(children)
        for child in children:
            self._queue.put((child, depth + 1))

    @staticmethod
    def _is_dir(entry: os.DirEntry) -> bool:
        try:
            return entry.is_dir(follow_symlinks=False)
        except OSError:
            return False


def find_workspaces(config, workers: Optional[int] = None) -> List[str]:
    """Synchronously find every workspace under the configured search paths."""
    return WorkspaceScanner.from_config(config, workers=workers).scan()
