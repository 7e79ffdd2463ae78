"""
File watcher that rebuilds an analyzer when its input tree changes.

Uses watchdog to monitor the input directory. Bursts of events (editor
auto-saves, git checkouts) are coalesced into a single build once the tree
has been quiet for ``debounce_seconds``.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .analyzer import BuildStats, ImportAnalyzer

logger = logging.getLogger(__name__)


class BuildScheduler:
    """
    Coalesces change notifications into debounced analyzer builds.

    Builds never overlap: a lock serialises them, so one analyzer only ever
    runs one build at a time.

    Parameters
    ----------
    analyzer:
        The :class:`ImportAnalyzer` to rebuild.
    debounce_seconds:
        Quiet period required before a build starts.
    on_build:
        Optional callback receiving the :class:`BuildStats` of each build.
    """

    def __init__(
        self,
        analyzer: ImportAnalyzer,
        debounce_seconds: float = 0.5,
        on_build: Optional[Callable[[BuildStats], None]] = None,
    ) -> None:
        self._analyzer = analyzer
        self._debounce = debounce_seconds
        self._on_build = on_build
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._build_lock = threading.Lock()

    def notify(self) -> None:
        """Record a change; (re)starts the debounce timer."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, self.run_build)
            self._timer.daemon = True
            self._timer.start()

    def run_build(self) -> Optional[BuildStats]:
        """Build now. Returns None if the build failed."""
        with self._build_lock:
            try:
                stats = self._analyzer.build()
            except Exception as exc:
                logger.warning("[watcher] Build failed, next build starts from scratch: %s", exc)
                return None
        if self._on_build is not None:
            self._on_build(stats)
        return stats

    def cancel(self) -> None:
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class _ChangeHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events to a :class:`BuildScheduler`."""

    def __init__(self, scheduler: BuildScheduler, ignore_root: Optional[str]) -> None:
        self._scheduler = scheduler
        self._ignore_root = os.path.abspath(ignore_root) if ignore_root else None

    def _ignored(self, path: str) -> bool:
        if self._ignore_root is None:
            return False
        path = os.path.abspath(path)
        return path == self._ignore_root or path.startswith(self._ignore_root + os.sep)

    def on_any_event(self, event) -> None:
        if event.event_type in ("opened", "closed", "closed_no_write"):
            return
        if self._ignored(event.src_path):
            return
        self._scheduler.notify()


class BuildWatcher:
    """
    High-level wrapper around watchdog that keeps an analyzer up to date.

    Usage::

        watcher = BuildWatcher(analyzer)
        watcher.start()   # blocking (call from a thread) or use start_background()
        watcher.stop()

    Parameters
    ----------
    analyzer:
        Configured :class:`ImportAnalyzer`.
    debounce_seconds:
        Quiet period before a rebuild.
    on_build:
        Optional callback receiving each build's :class:`BuildStats`.
    """

    def __init__(
        self,
        analyzer: ImportAnalyzer,
        debounce_seconds: float = 0.5,
        on_build: Optional[Callable[[BuildStats], None]] = None,
    ) -> None:
        self._analyzer = analyzer
        self._observer: Optional[Observer] = None
        self.scheduler = BuildScheduler(analyzer, debounce_seconds, on_build)
        # the mirrored output may live inside the watched tree
        self._handler = _ChangeHandler(self.scheduler, analyzer.output_root)

    def start(self) -> None:
        """
        Watch the analyzer's input directory.

        Blocks until :meth:`stop` is called.  For non-blocking use, call
        :meth:`start_background` instead.
        """
        observer = Observer()
        observer.schedule(self._handler, self._analyzer.input_root, recursive=True)
        observer.start()
        self._observer = observer
        logger.info("[watcher] Watching %s", self._analyzer.input_root)

        try:
            while observer.is_alive():
                observer.join(timeout=1)
        except KeyboardInterrupt:
            observer.stop()
        observer.join()

    def start_background(self) -> None:
        """Start the watcher in a background daemon thread."""
        t = threading.Thread(target=self.start, daemon=True, name="import-analyzer-watcher")
        t.start()

    def stop(self) -> None:
        """Stop the observer and any pending build."""
        self.scheduler.cancel()
        if self._observer is not None:
            self._observer.stop()
            logger.info("[watcher] Stopped")
