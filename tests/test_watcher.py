"""Tests for veinslog/watcher.py"""

import os
import time

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from veinslog.registry import SourceRegistration
from veinslog.watcher import ChangeNotification, ChangeWatcher, SourceEventHandler, Subscription

TIMEOUT = 10


def _wait_for(subscription, action, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        notification = subscription.get(timeout=0.2)
        if notification is not None and notification.action == action:
            return notification
    return None


@pytest.fixture
def calls():
    return []


@pytest.fixture
def handler(calls):
    registration = SourceRegistration("veins", "/data/logs", parser=None)
    handler = SourceEventHandler(registration, lambda *args: calls.append(args), debounce_seconds=60)
    yield handler
    handler.cancel_pending()


def _wait_for_calls(calls, count, timeout=2.0):
    deadline = time.monotonic() + timeout
    while len(calls) < count and time.monotonic() < deadline:
        time.sleep(0.05)


class TestSourceEventHandler:

    def test_created(self, handler, calls):
        handler.on_created(FileCreatedEvent("/data/logs/vehicle[0].log"))
        assert calls == [("add", "/data/logs/vehicle[0].log", "veins")]

    def test_modified_is_debounced(self, handler, calls):
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        handler.on_modified(FileModifiedEvent("/data/logs/b.log"))
        assert calls == [
            ("change", "/data/logs/a.log", "veins"),
            ("change", "/data/logs/b.log", "veins"),
        ]

    def test_deleted_resets_debounce(self, handler, calls):
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        handler.on_deleted(FileDeletedEvent("/data/logs/a.log"))
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        assert [c[0] for c in calls] == ["change", "delete", "change"]

    def test_burst_ends_with_trailing_change(self, calls):
        registration = SourceRegistration("veins", "/data/logs", parser=None)
        handler = SourceEventHandler(registration, lambda *args: calls.append(args), debounce_seconds=0.2)
        for _ in range(3):
            handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        assert len(calls) == 1

        _wait_for_calls(calls, 2)
        time.sleep(0.3)
        assert calls == [("change", "/data/logs/a.log", "veins")] * 2

    def test_delete_cancels_trailing_change(self, calls):
        registration = SourceRegistration("veins", "/data/logs", parser=None)
        handler = SourceEventHandler(registration, lambda *args: calls.append(args), debounce_seconds=0.2)
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        handler.on_modified(FileModifiedEvent("/data/logs/a.log"))
        handler.on_deleted(FileDeletedEvent("/data/logs/a.log"))

        time.sleep(0.5)
        assert [c[0] for c in calls] == ["change", "delete"]

    def test_moved(self, handler, calls):
        handler.on_moved(FileMovedEvent("/data/logs/old.log", "/data/logs/new.log"))
        assert calls == [
            ("delete", "/data/logs/old.log", "veins"),
            ("add", "/data/logs/new.log", "veins"),
        ]

    def test_ignores_directories_and_non_candidates(self, handler, calls):
        handler.on_created(DirCreatedEvent("/data/logs/sub"))
        handler.on_created(FileCreatedEvent("/data/logs/notes.md"))
        handler.on_created(FileCreatedEvent("/data/logs/.git/x.log"))
        assert calls == []


class TestSubscription:

    def test_callback_and_queue(self):
        seen = []
        sub = Subscription(seen.append)
        note = ChangeNotification("delete", "/x.log", "veins")
        sub.publish(note)
        assert seen == [note]
        assert sub.get(timeout=0.1) is note

    def test_closed_subscription(self):
        closed = []
        sub = Subscription()
        sub.add_close_hook(lambda: closed.append(True))
        with sub:
            pass
        assert sub.closed
        assert closed == [True]
        sub.publish(ChangeNotification("delete", "/x.log", "veins"))
        assert sub.get(timeout=0.1) is None
        assert list(sub) == []

    def test_full_queue_drops(self):
        sub = Subscription(maxsize=1)
        sub.publish(ChangeNotification("delete", "/a.log", "veins"))
        sub.publish(ChangeNotification("delete", "/b.log", "veins"))
        assert sub.get(timeout=0.1).file_path == "/a.log"
        assert sub.get(timeout=0.1) is None

    def test_notification_dict(self):
        assert ChangeNotification("delete", "/a.log", "qca").to_dict() == {
            "action": "delete", "filePath": "/a.log", "sourceType": "qca",
        }


class TestChangeWatcher:

    def test_add_reparses_file(self, engine, config):
        logs = config.sources["veins"]
        with ChangeWatcher(engine).watch() as sub:
            time.sleep(0.5)
            staging = os.path.join(logs, "staging.tmp")
            with open(staging, "w") as f:
                f.write("2024-01-01 10:00:00 INFO velocity: (3, 4)\n")
            target = os.path.join(logs, "vehicle[1].log")
            os.rename(staging, target)

            note = _wait_for(sub, "add")

        assert note is not None
        assert note.file_path == target
        assert note.source_type == "veins"
        assert len(note.events) == 1
        assert note.events[0].velocity_info["speed"] == 5.0
        assert note.to_dict()["events"][0]["nodeId"] == "vehicle[1]"

    def test_delete_has_no_events(self, engine, config):
        target = os.path.join(config.sources["veins"], "vehicle[0].log")
        with ChangeWatcher(engine).watch() as sub:
            time.sleep(0.5)
            os.remove(target)
            note = _wait_for(sub, "delete")

        assert note is not None
        assert note.file_path == target
        assert note.events is None

    def test_missing_roots_are_skipped(self, empty_config):
        from veinslog.ingest import IngestionEngine

        sub = ChangeWatcher(IngestionEngine(empty_config)).watch()
        try:
            assert sub.get(timeout=0.2) is None
        finally:
            sub.close()
        assert sub.closed
