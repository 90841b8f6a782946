"""In-memory store of the documents the server knows about."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass

from .uri import uri_to_path

logger = logging.getLogger(__name__)


@dataclass
class File:
    """A document: its absolute path, its path inside the workspace and its content."""

    path: str
    rel_path: str = ""
    content: bytes = b""
    open: bool = False


class FileStore:
    """Thread-safe mapping from absolute paths to documents."""

    def __init__(self) -> None:
        self._files: dict[str, File] = {}
        self._lock = threading.Lock()

    def open_from_uri(self, uri: str, root: str, editor_open: bool) -> None:
        """Add the document named by ``uri``; a malformed URI is logged and skipped."""
        try:
            path = uri_to_path(uri)
        except ValueError as exc:
            logger.error("%s", exc)
            return
        self.open_from_path(path, root, editor_open)

    def open_from_path(self, path: str, root: str, editor_open: bool) -> None:
        """Add the document at ``path``, reading it from disk when it exists.

        A path already in the store is left untouched.
        """
        with self._lock:
            if path in self._files:
                return

        rel_path = path[len(root) + 1:] if root else ""
        content = b""
        if os.path.exists(path):
            try:
                with open(path, "rb") as handle:
                    content = handle.read()
            except OSError as exc:
                logger.error("%s", exc)

        document = File(path=path, rel_path=rel_path, content=content, open=editor_open)
        with self._lock:
            self._files.setdefault(path, document)

    def get(self, path: str) -> File | None:
        """Return the document at ``path``, or None when it is not stored."""
        with self._lock:
            return self._files.get(path)

    def modify_full(self, path: str, content: str | bytes) -> None:
        """Replace the whole content of a stored document."""
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        with self._lock:
            document = self._files.get(path)
            if document is None:
                logger.error("error: file to modify not in file store (%s)", path)
                return
            document.content = data

    def close_from_uri(self, uri: str) -> None:
        """Mark the document named by ``uri`` as no longer open in the editor."""
        try:
            path = uri_to_path(uri)
        except ValueError as exc:
            logger.error("%s", exc)
            return
        self.close(path)

    def close(self, path: str) -> None:
        """Mark the document at ``path`` as no longer open in the editor."""
        with self._lock:
            document = self._files.get(path)
            if document is None:
                logger.error("error: file to close not in file store (%s)", path)
                return
            document.open = False

    def remove(self, path: str) -> None:
        """Forget the document at ``path``, if stored."""
        with self._lock:
            self._files.pop(path, None)

    def __str__(self) -> str:
        with self._lock:
            documents = list(self._files.items())
        return "".join(
            f"{path}\n {document.content.decode('utf-8', 'replace')}\n"
            for path, document in documents
        )