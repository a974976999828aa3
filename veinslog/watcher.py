"""Change watcher: re-parses files as they are added or changed.

One watchdog handler is scheduled per ingestable source root. Add/change
events re-parse just the affected file on a small thread pool; deletes are
reported without parsing. Notifications go to a Subscription, a closable
stream the caller iterates (optionally also to a callback). Delivery is best
effort: nothing is persisted and a full stream drops notifications.
"""

import logging
import os
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from veinslog.ingest import IngestionEngine
from veinslog.models import LogEvent, event_to_dict
from veinslog.registry import SourceRegistration
from veinslog.walker import is_candidate

logger = logging.getLogger(__name__)

ADD = "add"
CHANGE = "change"
DELETE = "delete"

_IGNORED_PARTS = ("node_modules", ".git")


@dataclass(frozen=True)
class ChangeNotification:
    action: str
    file_path: str
    source_type: str
    events: tuple[LogEvent, ...] | None = None

    def to_dict(self) -> dict:
        d = {"action": self.action, "filePath": self.file_path, "sourceType": self.source_type}
        if self.events is not None:
            d["events"] = [event_to_dict(e) for e in self.events]
        return d


_CLOSED = object()


class Subscription:
    """Stream of ChangeNotifications; close() stops the underlying watch."""

    def __init__(self, on_event: Callable[[ChangeNotification], None] | None = None,
                 maxsize: int = 1000):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._on_event = on_event
        self._closed = threading.Event()
        self._on_close: list[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, notification: ChangeNotification) -> None:
        if self.closed:
            return
        if self._on_event is not None:
            try:
                self._on_event(notification)
            except Exception:
                logger.exception("Change callback failed for %s", notification.file_path)
        try:
            self._queue.put_nowait(notification)
        except queue.Full:
            logger.warning("Subscription full, dropping %s notification for %s",
                           notification.action, notification.file_path)

    def get(self, timeout: float | None = None) -> ChangeNotification | None:
        """Next notification, or None on timeout or once closed."""
        if self.closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        return None if item is _CLOSED else item

    def __iter__(self):
        while True:
            item = self.get(timeout=0.5)
            if item is not None:
                yield item
            elif self.closed:
                return

    def add_close_hook(self, hook: Callable[[], None]) -> None:
        self._on_close.append(hook)

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        for hook in self._on_close:
            try:
                hook()
            except Exception:
                logger.exception("Error while closing subscription")
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class SourceEventHandler(FileSystemEventHandler):
    """Maps watchdog events under one source root to change actions.

    The first modify of a path is reported at once; further modifies inside
    the debounce window collapse into one trailing change when it closes, so
    the last state of a write burst is always re-parsed.
    """

    def __init__(self, registration: SourceRegistration,
                 dispatch: Callable[[str, str, str], None], debounce_seconds: float):
        super().__init__()
        self._registration = registration
        self._dispatch = dispatch
        self._debounce = debounce_seconds
        self._last_seen: dict[str, float] = {}
        self._pending: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _wanted(self, event, path: str) -> bool:
        if event.is_directory:
            return False
        parts = path.replace("\\", "/").split("/")
        if any(p in _IGNORED_PARTS for p in parts):
            return False
        return is_candidate(os.path.basename(path), self._registration.extra_extensions)

    def _debounced(self, path: str) -> bool:
        """True (and a trailing change scheduled) if *path* fired within the window."""
        now = time.monotonic()
        with self._lock:
            last = self._last_seen.get(path)
            if last is None or now - last >= self._debounce:
                self._last_seen[path] = now
                return False
            if path not in self._pending:
                timer = threading.Timer(self._debounce - (now - last), self._flush, args=(path,))
                timer.daemon = True
                self._pending[path] = timer
                timer.start()
        return True

    def _flush(self, path: str) -> None:
        with self._lock:
            if self._pending.pop(path, None) is None:
                return
            self._last_seen[path] = time.monotonic()
        self._emit(CHANGE, path)

    def _forget(self, path: str) -> None:
        with self._lock:
            self._last_seen.pop(path, None)
            timer = self._pending.pop(path, None)
        if timer is not None:
            timer.cancel()

    def cancel_pending(self) -> None:
        with self._lock:
            timers = list(self._pending.values())
            self._pending.clear()
        for timer in timers:
            timer.cancel()

    def _emit(self, action: str, path: str) -> None:
        self._dispatch(action, path, self._registration.source_type)

    def on_created(self, event):
        if self._wanted(event, event.src_path):
            self._emit(ADD, event.src_path)

    def on_modified(self, event):
        if self._wanted(event, event.src_path) and not self._debounced(event.src_path):
            self._emit(CHANGE, event.src_path)

    def on_deleted(self, event):
        if self._wanted(event, event.src_path):
            self._forget(event.src_path)
            self._emit(DELETE, event.src_path)

    def on_moved(self, event):
        self.on_deleted(event)
        if self._wanted(event, event.dest_path):
            self._emit(ADD, event.dest_path)


class ChangeWatcher:
    def __init__(self, engine: IngestionEngine):
        self._engine = engine
        self._config = engine.config

    def watch(self, on_event: Callable[[ChangeNotification], None] | None = None) -> Subscription:
        """Start watching every ingestable root and return the subscription."""
        subscription = Subscription(on_event)
        executor = ThreadPoolExecutor(max_workers=self._config.watch_workers,
                                      thread_name_prefix="veinslog-watch")

        def dispatch(action: str, path: str, source_type: str) -> None:
            logger.info("File %s: %s (%s)", action, path, source_type)
            if action == DELETE:
                subscription.publish(ChangeNotification(action, path, source_type))
                return
            try:
                executor.submit(self._reparse, subscription, action, path, source_type)
            except RuntimeError:
                # executor already shut down by close()
                logger.debug("Dropping %s for %s after close", action, path)

        observer = Observer()
        handlers: list[SourceEventHandler] = []
        for registration in self._engine.ingestable():
            root = registration.root
            if not os.path.isdir(root):
                logger.warning("Not watching missing directory: %s", root)
                continue
            handler = SourceEventHandler(registration, dispatch, self._config.debounce_seconds)
            try:
                observer.schedule(handler, root, recursive=True)
            except OSError as e:
                logger.error("Cannot watch %s: %s", root, e)
                continue
            handlers.append(handler)
            logger.info("Watching %s (%s)", root, registration.source_type)

        def shutdown() -> None:
            observer.stop()
            for handler in handlers:
                handler.cancel_pending()
            if observer.is_alive():
                observer.join(timeout=5)
            executor.shutdown(wait=False)

        subscription.add_close_hook(shutdown)
        observer.start()
        return subscription

    def _reparse(self, subscription: Subscription, action: str, path: str,
                 source_type: str) -> None:
        try:
            events = self._engine.parse_file(path, source_type)
        except Exception:
            logger.exception("Re-parse failed for %s", path)
            return
        if not events:
            return
        subscription.publish(ChangeNotification(action, path, source_type, tuple(events)))
