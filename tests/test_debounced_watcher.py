"""Tests for debounced watcher module."""

import shutil
import threading
import time
from pathlib import Path

import pytest

from src.dirwatch.config import WatcherConfig
from src.dirwatch.exceptions import (
    RootError,
    RootNotFoundError,
    WatchSourceError,
    WatcherAlreadyRunningError,
    WatcherClosedError,
)
from src.dirwatch.models import RawEventType, RawFSEvent, WatchEventKind
from src.dirwatch.watcher import DebouncedWatcher


class FakeObserver:
    """Stand-in for a watchdog observer that records scheduled paths."""

    def __init__(self, fail_on=None):
        self.scheduled = []
        self.recursive = []
        self.started = False
        self.stopped = False
        self.fail_on = set(fail_on or [])

    def schedule(self, handler, path, recursive=False):
        if path in self.fail_on:
            raise OSError("inotify watch limit reached")
        self.scheduled.append(path)
        self.recursive.append(recursive)
        return path

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


class Collector:
    """Thread-safe listener collecting events."""

    def __init__(self):
        self.events = []
        self.lock = threading.Lock()

    def __call__(self, event):
        with self.lock:
            self.events.append(event)

    def snapshot(self):
        with self.lock:
            return list(self.events)


def wait_for(predicate, timeout=2.0, interval=0.02):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def make_watcher(config=None, observer=None):
    observer = observer or FakeObserver()
    watcher = DebouncedWatcher(config or WatcherConfig(debounce_ms=50), observer_factory=lambda: observer)
    return watcher, observer


def raw(event_type, path, dest=None, is_directory=False):
    return RawFSEvent(event_type=event_type, src_path=path, dest_path=dest, is_directory=is_directory)


class TestDebouncedWatcherRegistration:
    """Tests for root registration."""

    def test_constructor_failure_is_surfaced(self):
        def broken():
            raise OSError("no inotify")

        with pytest.raises(WatchSourceError):
            DebouncedWatcher(observer_factory=broken)

    def test_add_root_missing_raises(self, tmp_path):
        watcher, _ = make_watcher()
        with pytest.raises(RootNotFoundError):
            watcher.add_root(tmp_path / "missing")
        watcher.close()

    def test_add_root_file_raises(self, tmp_path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")
        watcher, _ = make_watcher()
        with pytest.raises(RootError):
            watcher.add_root(file_path)
        watcher.close()

    def test_add_root_registers_every_directory(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        (tmp_path / "c").mkdir()
        watcher, observer = make_watcher()

        count = watcher.add_root(tmp_path)

        root = tmp_path.resolve()
        assert count == 4
        assert observer.scheduled == [str(root)]
        assert observer.recursive == [True]
        assert watcher.get_roots() == frozenset({root})
        assert watcher.is_watching(tmp_path / "a" / "b")
        assert watcher.is_watching(tmp_path / "c")
        assert watcher.directory_count() == 4
        watcher.close()

    def test_add_root_twice_registers_nothing_new(self, tmp_path):
        (tmp_path / "a").mkdir()
        watcher, observer = make_watcher()

        watcher.add_root(tmp_path)
        assert watcher.add_root(tmp_path) == 0
        assert len(observer.scheduled) == 1
        watcher.close()

    def test_non_recursive_registers_only_root(self, tmp_path):
        (tmp_path / "a").mkdir()
        watcher, observer = make_watcher(WatcherConfig(debounce_ms=50, recursive=False))

        assert watcher.add_root(tmp_path) == 1
        assert observer.scheduled == [str(tmp_path.resolve())]
        assert observer.recursive == [False]
        assert not watcher.is_watching(tmp_path / "a")
        watcher.close()

    def test_root_schedule_failure_raises(self, tmp_path):
        observer = FakeObserver(fail_on=[str(tmp_path.resolve())])
        watcher, _ = make_watcher(observer=observer)

        with pytest.raises(WatchSourceError):
            watcher.add_root(tmp_path)
        watcher.close()

    def test_schedule_count_independent_of_tree_size(self, tmp_path):
        for i in range(300):
            (tmp_path / str(i)).mkdir()
        watcher, observer = make_watcher()

        assert watcher.add_root(tmp_path) == 301
        assert observer.scheduled == [str(tmp_path.resolve())]
        watcher.close()

    def test_nested_root_is_not_scheduled_twice(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        watcher, observer = make_watcher()

        watcher.add_root(tmp_path)
        assert watcher.add_root(tmp_path / "a") == 0

        root = tmp_path.resolve()
        assert observer.scheduled == [str(root)]
        assert watcher.get_roots() == frozenset({root, root / "a"})
        watcher.close()

    def test_nested_root_scheduled_when_not_recursive(self, tmp_path):
        (tmp_path / "a").mkdir()
        watcher, observer = make_watcher(WatcherConfig(debounce_ms=50, recursive=False))

        watcher.add_root(tmp_path)
        watcher.add_root(tmp_path / "a")

        root = tmp_path.resolve()
        assert observer.scheduled == [str(root), str(root / "a")]
        watcher.close()

    def test_close_forgets_roots(self, tmp_path):
        (tmp_path / "a").mkdir()
        watcher, _ = make_watcher()
        watcher.add_root(tmp_path)

        watcher.close()

        assert watcher.get_roots() == frozenset()
        assert watcher.directory_count() == 0


class TestDebouncedWatcherClassification:
    """Tests for debounce and classification of raw events."""

    def test_burst_of_writes_produces_one_event(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("[A]\nAchieved=1\n")
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)

        for _ in range(20):
            watcher.process(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        time.sleep(0.2)
        events = collector.snapshot()
        assert len(events) == 1
        assert events[0].kind == WatchEventKind.CHANGED
        assert events[0].path == target
        watcher.close()

    def test_creation_is_classified_as_added(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.CREATED, target))
        watcher.process(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        assert collector.snapshot()[0].kind == WatchEventKind.ADDED
        watcher.close()

    def test_vanished_path_is_dropped(self, tmp_path):
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.CREATED, tmp_path / "gone.ini"))
        time.sleep(0.3)

        assert collector.snapshot() == []
        assert watcher.pending_count() == 0
        watcher.close()

    def test_created_directory_is_registered_not_reported(self, tmp_path):
        watcher, observer = make_watcher()
        watcher.add_root(tmp_path)
        collector = Collector()
        watcher.on_event(collector)

        new_dir = tmp_path.resolve() / "123" / "nested"
        new_dir.mkdir(parents=True)
        watcher.process(raw(RawEventType.CREATED, new_dir.parent, is_directory=True))

        assert wait_for(lambda: watcher.is_watching(new_dir))
        assert watcher.is_watching(new_dir.parent)
        assert observer.scheduled == [str(tmp_path.resolve())]
        assert collector.snapshot() == []
        watcher.close()

    def test_modified_directory_is_not_registered(self, tmp_path):
        watcher, observer = make_watcher()
        sub = tmp_path / "sub"
        sub.mkdir()

        watcher.process(raw(RawEventType.MODIFIED, sub))
        time.sleep(0.3)

        assert observer.scheduled == []
        watcher.close()

    def test_remove_cancels_pending_event(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher(WatcherConfig(debounce_ms=150))
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.MODIFIED, target))
        watcher.process(raw(RawEventType.DELETED, target))
        time.sleep(0.4)

        assert collector.snapshot() == []
        watcher.close()

    def test_rename_reports_new_name_as_added(self, tmp_path):
        old = tmp_path / "achievements.ini.tmp"
        new = tmp_path / "achievements.ini"
        new.write_text("")
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.MODIFIED, old))
        watcher.process(raw(RawEventType.MOVED, old, dest=new))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        time.sleep(0.2)
        events = collector.snapshot()
        assert [(e.kind, e.path) for e in events] == [(WatchEventKind.ADDED, new)]
        watcher.close()

    def test_removed_events_are_opt_in(self, tmp_path):
        target = tmp_path / "achievements.ini"
        watcher, _ = make_watcher(WatcherConfig(debounce_ms=50, emit_removed=True))
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.DELETED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        assert collector.snapshot()[0].kind == WatchEventKind.REMOVED
        watcher.close()

    def test_removed_events_off_by_default(self, tmp_path):
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.DELETED, tmp_path / "achievements.ini"))
        time.sleep(0.2)

        assert collector.snapshot() == []
        watcher.close()


class TestDebouncedWatcherFiltering:
    """Tests for whitelist/ignore filtering."""

    def test_whitelist(self, tmp_path):
        wanted = tmp_path / "achievements.ini"
        other = tmp_path / "progress.dat"
        wanted.write_text("")
        other.write_text("")
        watcher, _ = make_watcher(WatcherConfig(debounce_ms=50, whitelist=["achievements.ini"]))
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.MODIFIED, wanted))
        watcher.process(raw(RawEventType.MODIFIED, other))

        assert wait_for(lambda: len(collector.snapshot()) >= 1)
        time.sleep(0.2)
        assert [e.path for e in collector.snapshot()] == [wanted]
        watcher.close()

    def test_ignore(self, tmp_path):
        ignored_dir = tmp_path / "backup"
        ignored_dir.mkdir()
        ignored = ignored_dir / "achievements.ini"
        kept = tmp_path / "achievements.ini"
        ignored.write_text("")
        kept.write_text("")
        watcher, _ = make_watcher(WatcherConfig(debounce_ms=50, ignore_patterns=["backup"]))
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.MODIFIED, ignored))
        watcher.process(raw(RawEventType.MODIFIED, kept))

        assert wait_for(lambda: len(collector.snapshot()) >= 1)
        time.sleep(0.2)
        assert [e.path for e in collector.snapshot()] == [kept]
        watcher.close()


class TestDebouncedWatcherListeners:
    """Tests for listener fan-out."""

    def test_every_listener_receives_event(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher()
        first, second = Collector(), Collector()
        watcher.on_event(first)
        watcher.on_event(second)

        watcher.process(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(first.snapshot()) == 1 and len(second.snapshot()) == 1)
        assert first.snapshot()[0] is second.snapshot()[0]
        watcher.close()

    def test_failing_listener_does_not_affect_others(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher()
        collector = Collector()

        @watcher.on_event
        def failing(event):
            raise RuntimeError("listener bug")

        watcher.on_event(collector)
        watcher.process(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        watcher.close()

    def test_slow_listener_does_not_delay_others(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher()
        release = threading.Event()
        collector = Collector()

        watcher.on_event(lambda event: release.wait(2.0))
        watcher.on_event(collector)
        watcher.process(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1, timeout=1.0)
        release.set()
        watcher.close()


class TestDebouncedWatcherLifecycle:
    """Tests for start/close."""

    def test_start_and_close(self):
        watcher, observer = make_watcher()
        watcher.start()

        assert observer.started
        assert watcher.is_running

        assert watcher.close() is True
        assert observer.stopped
        assert not watcher.is_running
        assert watcher.is_closed

    def test_start_twice_raises(self):
        watcher, _ = make_watcher()
        watcher.start()
        with pytest.raises(WatcherAlreadyRunningError):
            watcher.start()
        watcher.close()

    def test_start_after_close_raises(self):
        watcher, _ = make_watcher()
        watcher.close()
        with pytest.raises(WatcherClosedError):
            watcher.start()

    def test_add_root_after_close_raises(self, tmp_path):
        watcher, _ = make_watcher()
        watcher.close()
        with pytest.raises(WatcherClosedError):
            watcher.add_root(tmp_path)

    def test_close_is_idempotent(self):
        watcher, _ = make_watcher()
        watcher.start()

        assert watcher.close() is True
        assert watcher.close() is False

    def test_concurrent_close(self):
        watcher, _ = make_watcher()
        watcher.start()
        results = []
        lock = threading.Lock()

        def closer():
            value = watcher.close()
            with lock:
                results.append(value)

        threads = [threading.Thread(target=closer) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5.0)

        assert not any(t.is_alive() for t in threads)
        assert sorted(results) == [False, True]

    def test_close_abandons_pending_events(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher(WatcherConfig(debounce_ms=200))
        collector = Collector()
        watcher.on_event(collector)

        watcher.process(raw(RawEventType.MODIFIED, target))
        watcher.close()
        time.sleep(0.4)

        assert collector.snapshot() == []

    def test_dispatch_loop_survives_bad_event(self, tmp_path):
        target = tmp_path / "achievements.ini"
        target.write_text("")
        watcher, _ = make_watcher()
        collector = Collector()
        watcher.on_event(collector)
        watcher.start()

        watcher._enqueue("not an event")
        watcher._enqueue(raw(RawEventType.MODIFIED, target))

        assert wait_for(lambda: len(collector.snapshot()) == 1)
        watcher.close()

    def test_context_manager_closes(self):
        watcher, observer = make_watcher()
        with watcher:
            watcher.start()
        assert watcher.is_closed
        assert observer.stopped


class TestDebouncedWatcherIntegration:
    """End-to-end tests with a real watchdog observer."""

    def test_detects_file_creation(self, tmp_path):
        root = tmp_path.resolve()
        watcher = DebouncedWatcher(WatcherConfig(debounce_ms=100, whitelist=["achievements.ini"]))
        collector = Collector()
        watcher.on_event(collector)
        watcher.add_root(root)
        watcher.start()

        time.sleep(0.2)

        target = root / "achievements.ini"
        for i in range(5):
            target.write_text(f"[ACH_{i}]\nAchieved=1\n")
        (root / "ignored.txt").write_text("noise")

        assert wait_for(lambda: len(collector.snapshot()) >= 1, timeout=3.0)
        time.sleep(0.3)
        watcher.close()

        events = collector.snapshot()
        assert len(events) == 1
        assert events[0].path == target
        assert events[0].kind == WatchEventKind.ADDED

    def test_detects_file_in_new_subdirectory(self, tmp_path):
        root = tmp_path.resolve()
        watcher = DebouncedWatcher(WatcherConfig(debounce_ms=100))
        collector = Collector()
        watcher.on_event(collector)
        watcher.add_root(root)
        watcher.start()

        time.sleep(0.2)

        sub = root / "1245620"
        sub.mkdir()
        assert wait_for(lambda: watcher.is_watching(sub), timeout=3.0)
        time.sleep(0.2)

        target = sub / "achievements.ini"
        target.write_text("[ACH]\nAchieved=1\n")

        assert wait_for(
            lambda: any(e.path == target for e in collector.snapshot()), timeout=3.0
        )
        watcher.close()

    def test_watches_tree_larger_than_instance_limit(self, tmp_path):
        root = tmp_path.resolve()
        for i in range(200):
            (root / str(i)).mkdir()
        watcher = DebouncedWatcher(WatcherConfig(debounce_ms=100, whitelist=["achievements.ini"]))
        collector = Collector()
        watcher.on_event(collector)

        assert watcher.add_root(root) == 201
        watcher.start()
        time.sleep(0.3)

        target = root / "199" / "achievements.ini"
        target.write_text("[ACH]\nAchieved=1\n")

        assert wait_for(
            lambda: any(e.path == target for e in collector.snapshot()), timeout=3.0
        )
        watcher.close()

    def test_detects_file_in_recreated_directory(self, tmp_path):
        root = tmp_path.resolve()
        sub = root / "480"
        sub.mkdir()
        watcher = DebouncedWatcher(WatcherConfig(debounce_ms=100, whitelist=["achievements.ini"]))
        collector = Collector()
        watcher.on_event(collector)
        watcher.add_root(root)
        watcher.start()
        time.sleep(0.2)

        shutil.rmtree(sub)
        time.sleep(0.2)
        sub.mkdir()
        time.sleep(0.3)

        target = sub / "achievements.ini"
        target.write_text("[ACH]\nAchieved=1\n")

        assert wait_for(
            lambda: any(e.path == target for e in collector.snapshot()), timeout=3.0
        )
        assert watcher.is_watching(sub)
        watcher.close()
