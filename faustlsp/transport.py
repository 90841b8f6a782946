"""JSON-RPC message framing over standard streams or TCP sockets."""

from __future__ import annotations

import enum
import json
import logging
import re
import socket
import sys
from typing import Any, BinaryIO

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH_PREFIX = b"Content-Length: "
DEFAULT_PORT = 5007
MAX_MESSAGE_SIZE = 64 * 1024

_INTEGER = re.compile(rb"[+-]?[0-9]+")


class TransportMethod(enum.Enum):
    """Kind of stream the transport talks over."""

    STDIN = 0
    SOCKET = 1


class TransportType(enum.Enum):
    """Which end of the connection the transport is."""

    CLIENT = 0
    SERVER = 1


class TransportError(Exception):
    """A message could not be framed or decoded."""


def split_message(data: bytes | bytearray) -> bytes | None:
    """Return the first complete message in ``data``, header included.

    Returns None when more data is needed; raises TransportError on a
    malformed header.
    """
    header, separator, content = data.partition(HEADER_SEPARATOR)
    if not separator:
        return None
    if len(header) < len(CONTENT_LENGTH_PREFIX):
        raise TransportError("Invalid Header: " + bytes(header).decode("utf-8", "replace"))
    length_field = bytes(header[len(CONTENT_LENGTH_PREFIX):])
    if not _INTEGER.fullmatch(length_field):
        raise TransportError("Invalid Content Length")
    content_length = int(length_field)
    if content_length < 0:
        raise TransportError("Invalid Content Length")
    if len(content) < content_length:
        return None
    total = len(header) + len(separator) + content_length
    return bytes(data[:total])


def get_method(message: bytes) -> str:
    """Return the ``method`` of a framed message, or "" when it has none."""
    _, separator, content = message.partition(HEADER_SEPARATOR)
    if not separator:
        return ""
    try:
        decoded = json.loads(content)
    except ValueError as exc:
        raise TransportError(f"invalid JSON-RPC message: {exc}") from exc
    if decoded is None:
        return ""
    if not isinstance(decoded, dict):
        raise TransportError("JSON-RPC message is not an object")
    for key in ("jsonrpc", "method"):
        value = decoded.get(key)
        if value is not None and not isinstance(value, str):
            raise TransportError(f"JSON-RPC field {key!r} is not a string")
    return decoded.get("method") or ""


def request_message(id: Any, method: str, params: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC request object."""
    message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def response_message(id: Any, result: Any = None, error: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a JSON-RPC response object."""
    message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": id}
    if result is not None:
        message["result"] = result
    if error is not None:
        message["error"] = error
    return message


def notification_message(method: str, params: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC notification object."""
    message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        message["params"] = params
    return message


def _encode(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class Transport:
    """Reads and writes Content-Length framed JSON-RPC messages."""

    def __init__(
        self,
        ttype: TransportType,
        method: TransportMethod = TransportMethod.STDIN,
        reader: BinaryIO | None = None,
        writer: BinaryIO | None = None,
        port: int = DEFAULT_PORT,
    ) -> None:
        self.type = ttype
        self.method = method
        self.closed = False
        self._buffer = bytearray()
        self._listener: socket.socket | None = None
        self._conn: socket.socket | None = None
        self._files: list[BinaryIO] = []

        if method is TransportMethod.STDIN:
            self._reader = reader if reader is not None else sys.stdin.buffer
            self._writer = writer if writer is not None else sys.stdout.buffer
            return

        if ttype is TransportType.SERVER:
            self._listener = socket.create_server(("", port))
            try:
                self._conn, _ = self._listener.accept()
            except BaseException:
                self._listener.close()
                raise
        else:
            self._conn = socket.create_connection(("localhost", port))
        if reader is None:
            reader = self._conn.makefile("rb")
            self._files.append(reader)
        if writer is None:
            writer = self._conn.makefile("wb")
            self._files.append(writer)
        self._reader = reader
        self._writer = writer

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _read_chunk(self, size: int) -> bytes:
        read = getattr(self._reader, "read1", self._reader.read)
        try:
            return read(size)
        except OSError as exc:
            self.closed = True
            raise TransportError(str(exc)) from exc

    def read(self) -> bytes:
        """Return the next framed message, or b"" once the stream has ended."""
        if self.closed:
            return b""
        while True:
            try:
                token = split_message(self._buffer)
            except TransportError:
                self.closed = True
                raise
            if token is not None:
                del self._buffer[: len(token)]
                return token
            if len(self._buffer) >= MAX_MESSAGE_SIZE:
                self.closed = True
                raise TransportError("token too long")
            chunk = self._read_chunk(MAX_MESSAGE_SIZE - len(self._buffer))
            if not chunk:
                self.closed = True
                return b""
            self._buffer += chunk

    def write(self, msg: bytes) -> None:
        """Send ``msg`` preceded by its Content-Length header."""
        header = f"Content-Length: {len(msg)}\r\n\r\n".encode("ascii")
        self._writer.write(header + msg)
        self._writer.flush()

    def write_notification(self, method: str, params: Any = None) -> None:
        """Send a JSON-RPC notification."""
        self.write(_encode(notification_message(method, params)))

    def write_request(self, id: Any, method: str, params: Any = None) -> None:
        """Send a JSON-RPC request."""
        body = _encode(request_message(id, method, params))
        logger.debug("Writing %s", body.decode("utf-8", "replace"))
        self.write(body)

    def close(self) -> None:
        """Release the sockets held by a socket transport."""
        if self.method is not TransportMethod.SOCKET:
            return
        for stream in self._files:
            try:
                stream.close()
            except OSError:
                pass
        self._files.clear()
        for sock in (self._conn, self._listener):
            if sock is not None:
                sock.close()
        self._conn = None
        self._listener = None