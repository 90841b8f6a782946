import os
import stat
import threading

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from faustlsp.replicate import ReplicatingHandler, watch_replicate_dir


@pytest.fixture
def dirs(tmp_path):
    orig = tmp_path / "orig"
    replica = tmp_path / "replica"
    orig.mkdir()
    replica.mkdir()
    return orig, replica, ReplicatingHandler(str(orig), str(replica))


def test_created_file_is_empty_with_same_mode(dirs):
    orig, replica, handler = dirs
    source = orig / "a.dsp"
    source.write_text("content")
    os.chmod(source, 0o640)
    handler.on_created(FileCreatedEvent(str(source)))
    target = replica / "a.dsp"
    assert target.read_bytes() == b""
    assert stat.S_IMODE(target.stat().st_mode) == 0o640


def test_created_directory(dirs):
    orig, replica, handler = dirs
    (orig / "sub").mkdir()
    handler.on_created(DirCreatedEvent(str(orig / "sub")))
    assert (replica / "sub").is_dir()


def test_created_but_vanished_path_is_ignored(dirs):
    orig, replica, handler = dirs
    handler.on_created(FileCreatedEvent(str(orig / "gone.dsp")))
    assert list(replica.iterdir()) == []


def test_modified_copies_content(dirs):
    orig, replica, handler = dirs
    source = orig / "a.dsp"
    source.write_text("process = +;")
    handler.on_modified(FileModifiedEvent(str(source)))
    assert (replica / "a.dsp").read_text() == "process = +;"


def test_modified_directory_is_ignored(dirs):
    orig, replica, handler = dirs
    handler.on_modified(DirModifiedEvent(str(orig)))
    assert list(replica.iterdir()) == []


def test_deleted_removes_replica(dirs):
    orig, replica, handler = dirs
    (replica / "a.dsp").write_text("x")
    (replica / "empty").mkdir()
    handler.on_deleted(FileDeletedEvent(str(orig / "a.dsp")))
    handler.on_deleted(FileDeletedEvent(str(orig / "empty")))
    assert list(replica.iterdir()) == []


def test_moved_renames_replica(dirs):
    orig, replica, handler = dirs
    (replica / "old.dsp").write_text("kept")
    handler.on_moved(FileMovedEvent(str(orig / "old.dsp"), str(orig / "new.dsp")))
    assert (replica / "new.dsp").read_text() == "kept"
    assert not (replica / "old.dsp").exists()


def test_moved_without_replica_does_nothing(dirs):
    orig, replica, handler = dirs
    handler.on_moved(FileMovedEvent(str(orig / "old.dsp"), str(orig / "new.dsp")))
    assert list(replica.iterdir()) == []


def test_watch_creates_replica_directory_and_stops(tmp_path):
    orig = tmp_path / "orig"
    orig.mkdir()
    replica = tmp_path / "replica"
    stop = threading.Event()
    stop.set()
    watch_replicate_dir(stop, str(orig), str(replica))
    assert replica.is_dir()