"""The language server: reads messages, checks them against its state and dispatches them."""

from __future__ import annotations

import json
import logging
import queue
import shutil
import sys
import tempfile
import threading
from typing import Any, Callable

from . import lifecycle, synchronization
from .files import FileStore
from .lifecycle import ServerState
from .transport import HEADER_SEPARATOR, Transport, TransportError, get_method
from .workspace import Workspace

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1

RequestHandler = Callable[[Any, Any, Any], bytes]
NotificationHandler = Callable[[Any, Any], None]

REQUEST_HANDLERS: dict[str, RequestHandler] = {
    "initialize": lifecycle.initialize,
    "shutdown": lifecycle.shutdown,
}

NOTIFICATION_HANDLERS: dict[str, NotificationHandler] = {
    "initialized": lifecycle.initialized,
    "textDocument/didOpen": synchronization.text_document_open,
    "textDocument/didChange": synchronization.text_document_change,
    "textDocument/didClose": synchronization.text_document_close,
    "exit": lifecycle.exit_notification,
}

# Handled on the reading thread so that state changes happen in message order.
_SYNCHRONOUS_METHODS = frozenset({"initialize", "shutdown", "exit"})


class ServerError(Exception):
    """The server ended abnormally or received a message it cannot accept."""


def _decode(content: bytes) -> dict[str, Any]:
    try:
        decoded = json.loads(content)
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


class Server:
    """A language server speaking over ``transport``."""

    def __init__(self, transport: Transport) -> None:
        self.status = ServerState.CREATED
        self.transport = transport
        self.files = FileStore()
        self.workspace = Workspace()
        self.request_id_counter = 0
        self.stop_event = threading.Event()
        self._write_lock = threading.Lock()
        self.temp_dir = tempfile.mkdtemp(prefix="faustlsp-")
        logger.info("Created Temp Directory at %s", self.temp_dir)

    def run(self, stop: threading.Event | None = None) -> None:
        """Serve until the client exits, the stream ends or ``stop`` is set.

        ``stop`` is set once the server has finished, which ends background
        tracking. Raises ServerError when the server ends abnormally.
        """
        if stop is None:
            stop = threading.Event()
        self.stop_event = stop
        outcome: queue.Queue[ServerError | None] = queue.Queue(maxsize=1)

        def serve() -> None:
            try:
                self.loop(stop)
            except ServerError as exc:
                outcome.put(exc)
            except Exception as exc:
                outcome.put(ServerError(str(exc)))
            else:
                outcome.put(None)

        threading.Thread(target=serve, daemon=True).start()

        error: ServerError | None = None
        try:
            while True:
                try:
                    error = outcome.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    if stop.is_set():
                        logger.info("Canceling Main Loop")
                        break
                    continue
                if error is None:
                    logger.info("LSP Successfully Exited")
                break
        finally:
            shutil.rmtree(self.temp_dir, ignore_errors=True)
            stop.set()

        if error is not None:
            message = f"Ending because of error ({error})"
            logger.error("%s", message)
            print(message, file=sys.stderr)
            raise error

    def loop(self, stop: threading.Event) -> None:
        """Read and dispatch messages until the server exits or the stream ends.

        Raises ServerError when the exit is not clean.
        """
        error: ServerError | None = None
        while (
            self.status not in (ServerState.EXIT, ServerState.EXIT_ERROR)
            and not self.transport.closed
        ):
            if stop.is_set():
                break
            logger.debug("Reading")
            try:
                message = self.transport.read()
                method = get_method(message)
            except TransportError as exc:
                error = ServerError(str(exc))
                break
            if not method:
                break
            logger.debug("Got Method: %s", method)

            try:
                self.validate_method(method)
            except ServerError as exc:
                error = exc
                break

            if method in _SYNCHRONOUS_METHODS:
                self.handle_method(method, message)
            else:
                threading.Thread(
                    target=self.handle_method, args=(method, message), daemon=True
                ).start()

        if self.status is ServerState.EXIT_ERROR:
            raise ServerError("Exiting Ungracefully")
        if self.status is ServerState.EXIT:
            return
        if error is None and self.transport.closed:
            raise ServerError("Stream Closed: Got EOF")
        self.transport.close()
        if error is not None:
            raise error

    def validate_method(self, method: str) -> None:
        """Raise ServerError when ``method`` is not allowed in the current state."""
        if self.status is ServerState.CREATED and method != "initialize":
            raise ServerError("Server not started, but received " + method)
        if self.status is ServerState.SHUTDOWN and method != "exit":
            raise ServerError("Can only exit" + method)

    def handle_method(self, method: str, message: bytes) -> None:
        """Run the handler for ``method`` on a framed message and send any reply."""
        _, _, content = message.partition(HEADER_SEPARATOR)
        decoded = _decode(content)

        request_handler = REQUEST_HANDLERS.get(method)
        if request_handler is not None:
            request_id = decoded.get("id")
            if isinstance(request_id, (int, float)) and not isinstance(request_id, bool):
                self.request_id_counter = int(request_id + 1)
            try:
                response = request_handler(self, request_id, decoded.get("params"))
            except Exception:
                logger.exception("Handling %s failed", method)
                return
            if response:
                logger.debug("Writing %s", response.decode("utf-8", "replace"))
                try:
                    with self._write_lock:
                        self.transport.write(response)
                except OSError as exc:
                    logger.error("%s", exc)
            return

        notification_handler = NOTIFICATION_HANDLERS.get(method)
        if notification_handler is not None:
            try:
                notification_handler(self, decoded.get("params"))
            except Exception:
                logger.exception("Handling %s failed", method)