"""Conversion between document URIs and filesystem paths."""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

_CONTROL_CHARACTER = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def uri_to_path(uri: str) -> str:
    """Return the decoded path component of ``uri``.

    Raises ValueError when the URI holds control characters or a malformed
    percent escape.
    """
    if _CONTROL_CHARACTER.search(uri):
        raise ValueError(f"invalid control character in URL: {uri!r}")
    path = urlsplit(uri).path
    if _BAD_ESCAPE.search(path):
        raise ValueError(f"invalid URL escape in {uri!r}")
    return unquote(path)


def is_windows_path(path: str) -> bool:
    """Tell whether ``path`` starts with a drive letter such as ``C:``."""
    if len(path) < 3:
        return False
    return path[0].isalpha() and path[1] == ":"