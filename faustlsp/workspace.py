"""Workspace tracking: mirrors editor and disk changes into a temporary copy."""

from __future__ import annotations

import contextlib
import enum
import logging
import os
import queue
import shutil
import stat
import threading
from dataclasses import dataclass
from typing import Any, Callable, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .files import File

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1


class TDChangeType(enum.Enum):
    """Kind of text document event coming from the editor."""

    OPEN = 0
    CHANGE = 1
    CLOSE = 2


@dataclass(frozen=True)
class TDEvent:
    """A text document event for the document at ``path``."""

    type: TDChangeType
    path: str


class DiskOp(enum.Flag):
    """Operations a disk event may report."""

    CREATE = enum.auto()
    WRITE = enum.auto()
    REMOVE = enum.auto()
    RENAME = enum.auto()
    CHMOD = enum.auto()


@dataclass(frozen=True)
class DiskEvent:
    """A change on disk to ``name``; a rename arrives as a create with ``renamed_from``."""

    name: str
    op: DiskOp
    renamed_from: str = ""


WorkspaceEvent = Union[TDEvent, DiskEvent]


def _remove_entry(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        with contextlib.suppress(OSError):
            os.rmdir(path)


def _write_bytes(path: str, content: bytes) -> None:
    with contextlib.suppress(OSError), open(path, "wb") as handle:
        handle.write(content)


class _DiskEventForwarder(FileSystemEventHandler):
    def __init__(self, events: queue.Queue[WorkspaceEvent]) -> None:
        super().__init__()
        self._events = events

    def on_created(self, event: FileSystemEvent) -> None:
        self._events.put(DiskEvent(os.fsdecode(event.src_path), DiskOp.CREATE))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._events.put(DiskEvent(os.fsdecode(event.src_path), DiskOp.REMOVE))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(DiskEvent(os.fsdecode(event.src_path), DiskOp.WRITE))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._events.put(
            DiskEvent(
                os.fsdecode(event.dest_path),
                DiskOp.CREATE,
                renamed_from=os.fsdecode(event.src_path),
            )
        )


class Workspace:
    """A workspace folder whose documents are replicated in the server's temp dir."""

    def __init__(self, root: str = "") -> None:
        self.root = root
        self.files: dict[str, File] = {}
        self.events: queue.Queue[WorkspaceEvent] = queue.Queue()
        self._lock = threading.Lock()

    def _folder_name(self) -> str:
        return os.path.basename(os.path.normpath(self.root))

    def _temp_path(self, server: Any, rel_path: str) -> str:
        return os.path.join(server.temp_dir, self._folder_name(), rel_path)

    def init(self, server: Any, stop: threading.Event) -> threading.Thread:
        """Load every workspace file, copy the workspace and start tracking it.

        Returns the tracking thread, which runs until ``stop`` is set.
        Raises OSError when the workspace cannot be copied.
        """
        self.files = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames.sort()
            for name in sorted(filenames):
                path = os.path.join(dirpath, name)
                if server.files.get(path) is None:
                    server.files.open_from_path(path, self.root, False)
                    self.add_file_from_store(path, server)

        logger.debug("Workspace Files: %s", sorted(self.files))
        logger.debug("File Store: %s", server.files)

        target = os.path.join(server.temp_dir, self._folder_name())
        shutil.copytree(self.root, target, symlinks=True, dirs_exist_ok=True)
        logger.info("Replicated Workspace in %s", target)

        thread = threading.Thread(
            target=self.start_tracking_changes, args=(server, stop), daemon=True
        )
        thread.start()
        return thread

    def start_tracking_changes(self, server: Any, stop: threading.Event) -> None:
        """Apply editor and disk events to the temp copy until ``stop`` is set."""
        observer = Observer()
        forwarder = _DiskEventForwarder(self.events)

        def watch(path: str) -> None:
            observer.schedule(forwarder, path, recursive=False)

        for dirpath, dirnames, _ in os.walk(self.root):
            dirnames.sort()
            watch(dirpath)
            logger.debug("Watching %s in workspace %s", dirpath, self.root)

        observer.start()
        try:
            while not stop.is_set():
                try:
                    event = self.events.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    continue
                try:
                    if isinstance(event, TDEvent):
                        logger.debug("Handling TD Event: %s", event)
                        self.handle_editor_event(event, server)
                    else:
                        logger.debug("Handling Workspace Disk Event: %s", event)
                        self.handle_disk_event(event, server, watch)
                except Exception:
                    logger.exception("Failed to handle workspace event %s", event)
        finally:
            observer.stop()
            observer.join()

    def handle_disk_event(
        self, event: DiskEvent, server: Any, watch: Callable[[str], None]
    ) -> None:
        """Mirror a disk change into the file store and the temp copy.

        Changes to documents open in the editor are ignored; ``watch`` is
        called with every new directory so that it is watched as well.
        """
        orig_path = event.name
        document = server.files.get(orig_path)
        if document is not None and document.open:
            return

        temp_path = self._temp_path(server, orig_path[len(self.root) + 1:])

        if DiskOp.CREATE in event.op:
            if not event.renamed_from:
                try:
                    info = os.stat(orig_path)
                except OSError:
                    return
                if stat.S_ISDIR(info.st_mode):
                    with contextlib.suppress(OSError):
                        os.makedirs(temp_path, stat.S_IMODE(info.st_mode), exist_ok=True)
                    watch(orig_path)
                else:
                    server.files.open_from_path(orig_path, self.root, False)
                    self.add_file_from_store(orig_path, server)
                    with open(temp_path, "wb"):
                        pass
                    os.chmod(temp_path, stat.S_IMODE(info.st_mode))
            else:
                old_temp_path = self._temp_path(
                    server, event.renamed_from[len(self.root) + 1:]
                )
                if os.path.exists(old_temp_path):
                    try:
                        os.replace(old_temp_path, temp_path)
                    except OSError:
                        return
                if os.path.isdir(orig_path):
                    watch(orig_path)

        if DiskOp.REMOVE in event.op:
            server.files.remove(orig_path)
            self.remove_file(orig_path)
            _remove_entry(temp_path)

        if DiskOp.WRITE in event.op:
            try:
                with open(orig_path, "rb") as handle:
                    contents = handle.read()
            except OSError:
                contents = b""
            _write_bytes(temp_path, contents)
            server.files.modify_full(orig_path, contents)

    def handle_editor_event(self, change: TDEvent, server: Any) -> None:
        """Mirror an editor event into the temp copy.

        Raises KeyError when the document is missing from the file store.
        """
        orig_path = change.path
        document = server.files.get(orig_path)
        if document is None:
            raise KeyError(f"File {orig_path} should've been in File Store.")

        temp_path = self._temp_path(server, document.rel_path)

        if change.type is TDChangeType.OPEN:
            os.makedirs(os.path.dirname(temp_path), 0o755, exist_ok=True)
            with open(temp_path, "wb"):
                pass
        elif change.type is TDChangeType.CHANGE:
            logger.debug("Writing recent change to %s", temp_path)
            _write_bytes(temp_path, document.content)
        elif change.type is TDChangeType.CLOSE:
            if os.path.exists(orig_path):
                server.files.open_from_path(orig_path, self.root, False)
                self.add_file_from_store(orig_path, server)
                document = server.files.get(orig_path)
                if document is not None:
                    _write_bytes(temp_path, document.content)
            else:
                server.files.remove(orig_path)

    def add_file_from_store(self, path: str, server: Any) -> None:
        """Track the file store's document at ``path`` as part of this workspace."""
        document = server.files.get(path)
        if document is None:
            return
        with self._lock:
            self.files[path] = document

    def remove_file(self, path: str) -> None:
        """Stop tracking ``path`` as part of this workspace."""
        with self._lock:
            self.files.pop(path, None)