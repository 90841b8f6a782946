import io
import json
import socket
import threading
import time

import pytest

from faustlsp.transport import (
    MAX_MESSAGE_SIZE,
    Transport,
    TransportError,
    TransportMethod,
    TransportType,
    get_method,
    notification_message,
    request_message,
    response_message,
    split_message,
)

EXPECTED_MSG = b"Content-Length: 4\r\n\r\nHey!"


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _connect(port):
    deadline = time.monotonic() + 5
    while True:
        try:
            return Transport(TransportType.CLIENT, TransportMethod.SOCKET, port=port)
        except ConnectionRefusedError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.05)


def _stream_transport(data=b""):
    writer = io.BytesIO()
    transport = Transport(
        TransportType.SERVER, TransportMethod.STDIN, reader=io.BytesIO(data), writer=writer
    )
    return transport, writer


def test_socket_round_trip():
    port = _free_port()

    def client():
        with _connect(port) as tr:
            tr.write(b"Hey!")

    thread = threading.Thread(target=client)
    thread.start()
    try:
        with Transport(TransportType.SERVER, TransportMethod.SOCKET, port=port) as server:
            msg = server.read()
    finally:
        thread.join(timeout=10)
    assert msg == EXPECTED_MSG


def test_socket_request_method_reaches_server():
    port = _free_port()

    def client():
        with _connect(port) as tr:
            tr.write_request(0, "initialize", {"rootPath": ""})

    thread = threading.Thread(target=client)
    thread.start()
    try:
        with Transport(TransportType.SERVER, TransportMethod.SOCKET, port=port) as server:
            method = get_method(server.read())
            after = server.read()
            closed = server.closed
    finally:
        thread.join(timeout=10)
    assert method == "initialize"
    assert after == b""
    assert closed is True


def test_write_frames_message():
    transport, writer = _stream_transport()
    transport.write(b"Hey!")
    assert writer.getvalue() == EXPECTED_MSG


def test_write_request_round_trip():
    transport, writer = _stream_transport()
    transport.write_request(1, "shutdown", {"a": 1})
    reader, _ = _stream_transport(writer.getvalue())
    message = reader.read()
    header, _, body = message.partition(b"\r\n\r\n")
    assert header == b"Content-Length: %d" % len(body)
    assert json.loads(body) == {"jsonrpc": "2.0", "id": 1, "method": "shutdown", "params": {"a": 1}}


def test_write_notification_omits_missing_params():
    transport, writer = _stream_transport()
    transport.write_notification("exit")
    body = writer.getvalue().partition(b"\r\n\r\n")[2]
    assert json.loads(body) == {"jsonrpc": "2.0", "method": "exit"}


def test_read_consecutive_messages_then_eof():
    data = EXPECTED_MSG + b"Content-Length: 2\r\n\r\n{}"
    transport, _ = _stream_transport(data)
    assert transport.read() == EXPECTED_MSG
    assert transport.read() == b"Content-Length: 2\r\n\r\n{}"
    assert transport.closed is False
    assert transport.read() == b""
    assert transport.closed is True


def test_read_incomplete_message_at_eof():
    transport, _ = _stream_transport(b"Content-Length: 10\r\n\r\nabc")
    assert transport.read() == b""
    assert transport.closed is True


def test_read_invalid_header_raises_and_closes():
    transport, _ = _stream_transport(b"abc\r\n\r\n")
    with pytest.raises(TransportError, match="Invalid Header: abc"):
        transport.read()
    assert transport.closed is True


def test_read_too_long_message():
    body = b"x" * MAX_MESSAGE_SIZE
    transport, _ = _stream_transport(b"Content-Length: %d\r\n\r\n" % len(body) + body)
    with pytest.raises(TransportError, match="token too long"):
        transport.read()


def test_split_message_needs_header():
    assert split_message(b"Content-Length: 4\r\n") is None


def test_split_message_needs_content():
    assert split_message(b"Content-Length: 4\r\n\r\nHe") is None


def test_split_message_returns_first_message_only():
    assert split_message(EXPECTED_MSG + b"Content-Length: 1") == EXPECTED_MSG


@pytest.mark.parametrize("header", [b"Content-Length: abc", b"Content-Length:  4", b"Content-Length: -4"])
def test_split_message_invalid_length(header):
    with pytest.raises(TransportError, match="Invalid Content Length"):
        split_message(header + b"\r\n\r\nHey!")


def test_get_method():
    message = b'Content-Length: 37\r\n\r\n{"jsonrpc":"2.0","method":"initialized"}'
    assert get_method(message) == "initialized"


def test_get_method_without_header():
    assert get_method(b'{"method":"initialize"}') == ""


def test_get_method_missing_method():
    assert get_method(b'Content-Length: 2\r\n\r\n{}') == ""


@pytest.mark.parametrize("body", [b"{not json", b"[1,2]", b'{"method":3}'])
def test_get_method_invalid_body(body):
    with pytest.raises(TransportError):
        get_method(b"Content-Length: 1\r\n\r\n" + body)


def test_message_builders():
    assert request_message(0, "initialize") == {"jsonrpc": "2.0", "id": 0, "method": "initialize"}
    assert response_message(3, result={}) == {"jsonrpc": "2.0", "id": 3, "result": {}}
    assert response_message(4, error={"code": -32600, "message": "bad"}) == {
        "jsonrpc": "2.0",
        "id": 4,
        "error": {"code": -32600, "message": "bad"},
    }
    assert notification_message("exit", {"x": 1}) == {"jsonrpc": "2.0", "method": "exit", "params": {"x": 1}}