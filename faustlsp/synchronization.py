"""Handlers for the text document synchronization notifications."""

from __future__ import annotations

import logging
from typing import Any

from .uri import uri_to_path
from .workspace import TDChangeType, TDEvent

logger = logging.getLogger(__name__)


def _document_uri(params: Any) -> str:
    if not isinstance(params, dict):
        return ""
    document = params.get("textDocument")
    if not isinstance(document, dict):
        return ""
    uri = document.get("uri")
    return uri if isinstance(uri, str) else ""


def _path_or_empty(uri: str) -> str:
    try:
        return uri_to_path(uri)
    except ValueError:
        return ""


def text_document_open(server: Any, params: Any) -> None:
    """Handle ``textDocument/didOpen``: store the document and queue the event."""
    uri = _document_uri(params)
    server.files.open_from_uri(uri, server.workspace.root, True)
    logger.info("Opening File %s", uri)
    server.workspace.events.put(TDEvent(TDChangeType.OPEN, _path_or_empty(uri)))


def text_document_change(server: Any, params: Any) -> None:
    """Handle ``textDocument/didChange`` with full-content changes.

    Raises ValueError when the document URI is malformed.
    """
    uri = _document_uri(params)
    path = uri_to_path(uri)
    changes = params.get("contentChanges") if isinstance(params, dict) else None
    for change in changes or []:
        text = change.get("text", "") if isinstance(change, dict) else ""
        server.files.modify_full(path, text)
    server.workspace.events.put(TDEvent(TDChangeType.CHANGE, path))
    logger.info("Modified File %s", uri)


def text_document_close(server: Any, params: Any) -> None:
    """Handle ``textDocument/didClose``: mark the document closed and queue the event."""
    uri = _document_uri(params)
    server.files.close_from_uri(uri)
    server.workspace.events.put(TDEvent(TDChangeType.CLOSE, _path_or_empty(uri)))
    logger.info("Closed File %s", uri)