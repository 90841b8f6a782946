"""Mirror a directory's changes into a replica directory."""

from __future__ import annotations

import contextlib
import os
import stat
import threading

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer


def _remove_entry(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        with contextlib.suppress(OSError):
            os.rmdir(path)


class ReplicatingHandler(FileSystemEventHandler):
    """Applies file system events under ``origdir`` to ``replicdir``."""

    def __init__(self, origdir: str, replicdir: str) -> None:
        super().__init__()
        self.origdir = os.fspath(origdir)
        self.replicdir = os.fspath(replicdir)

    def _replica(self, path: str | bytes) -> str:
        relative = os.path.relpath(os.fsdecode(path), self.origdir)
        return os.path.join(self.replicdir, relative)

    def on_created(self, event: FileSystemEvent) -> None:
        path = os.fsdecode(event.src_path)
        try:
            info = os.stat(path)
        except OSError:
            return
        target = self._replica(path)
        mode = stat.S_IMODE(info.st_mode)
        if stat.S_ISDIR(info.st_mode):
            with contextlib.suppress(OSError):
                os.mkdir(target, mode)
        else:
            with open(target, "wb"):
                pass
            os.chmod(target, mode)

    def on_deleted(self, event: FileSystemEvent) -> None:
        _remove_entry(self._replica(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        try:
            with open(path, "rb") as handle:
                contents = handle.read()
        except OSError:
            contents = b""
        with contextlib.suppress(OSError), open(self._replica(path), "wb") as handle:
            handle.write(contents)

    def on_moved(self, event: FileSystemEvent) -> None:
        old = self._replica(event.src_path)
        new = self._replica(event.dest_path)
        if os.path.exists(old):
            with contextlib.suppress(OSError):
                os.replace(old, new)


def watch_replicate_dir(stop: threading.Event, origdir: str, replicdir: str) -> None:
    """Replicate changes in ``origdir`` into ``replicdir`` until ``stop`` is set."""
    if not os.path.exists(replicdir):
        with contextlib.suppress(OSError):
            os.mkdir(replicdir, 0o755)

    observer = Observer()
    observer.schedule(ReplicatingHandler(origdir, replicdir), os.fspath(origdir), recursive=False)
    observer.start()
    try:
        stop.wait()
    finally:
        observer.stop()
        observer.join()