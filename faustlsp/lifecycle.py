"""Handlers for the requests and notifications that drive the server's life cycle."""

from __future__ import annotations

import enum
import json
import logging
import shutil
from typing import Any

from .transport import response_message
from .uri import uri_to_path

logger = logging.getLogger(__name__)

SERVER_NAME = "faust-lsp"
SERVER_VERSION = "0.0.1"
TEXT_DOCUMENT_SYNC_FULL = 1


class ServerState(enum.Enum):
    """Where the server is in the protocol's life cycle."""

    CREATED = 0
    INITIALIZING = 1
    RUNNING = 2
    SHUTDOWN = 3
    EXIT = 4
    EXIT_ERROR = 5


def _encode(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _capabilities() -> dict[str, Any]:
    return {
        "capabilities": {
            "textDocumentSync": TEXT_DOCUMENT_SYNC_FULL,
            "workspace": {
                "workspaceFolders": {"supported": True, "changeNotifications": "ws"},
            },
        },
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    }


def initialize(server: Any, id: Any, params: Any) -> bytes:
    """Handle ``initialize``: record the workspace root and answer with the capabilities."""
    server.status = ServerState.INITIALIZING
    logger.info("Handling Initialize(id: %s)", id)
    logger.debug("%s", params)

    root_uri = params.get("rootUri") if isinstance(params, dict) else None
    try:
        root_path = uri_to_path(root_uri) if isinstance(root_uri, str) else ""
    except ValueError:
        root_path = ""
    logger.info("Workspace: %s", root_path)
    server.workspace.root = root_path

    return _encode(response_message(id, _capabilities()))


def initialized(server: Any, params: Any) -> None:
    """Handle ``initialized``: start loading and tracking the workspace.

    Raises OSError when the workspace cannot be replicated.
    """
    logger.info("Handling Initialized")
    server.status = ServerState.RUNNING
    server.workspace.init(server, server.stop_event)


def shutdown(server: Any, id: Any, params: Any) -> bytes:
    """Handle ``shutdown``: enter the shutdown state and drop the temp directory."""
    server.status = ServerState.SHUTDOWN
    # Some clients end the server right after shutdown, so clean up now.
    shutil.rmtree(server.temp_dir, ignore_errors=True)
    return _encode(response_message(id, {}))


def exit_notification(server: Any, params: Any) -> None:
    """Handle ``exit``: a clean exit only follows a shutdown."""
    if server.status is ServerState.SHUTDOWN:
        server.status = ServerState.EXIT
    else:
        server.status = ServerState.EXIT_ERROR