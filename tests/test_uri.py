import pytest

from faustlsp.uri import is_windows_path, uri_to_path


def test_uri_to_path_file_uri():
    assert uri_to_path("file:///home/ecm/a.dsp") == "/home/ecm/a.dsp"


def test_uri_to_path_decodes_percent_escapes():
    assert uri_to_path("file:///home/ecm/my%20file.dsp") == "/home/ecm/my file.dsp"


def test_uri_to_path_keeps_plus_sign():
    assert uri_to_path("file:///home/ecm/a+b.dsp") == "/home/ecm/a+b.dsp"


def test_uri_to_path_empty_uri():
    assert uri_to_path("") == ""


def test_uri_to_path_windows_drive_uri():
    assert uri_to_path("file:///C:/Program/a.dsp") == "/C:/Program/a.dsp"


@pytest.mark.parametrize("uri", ["file:///home/%zz.dsp", "file:///home/a%2"])
def test_uri_to_path_rejects_bad_escape(uri):
    with pytest.raises(ValueError):
        uri_to_path(uri)


def test_uri_to_path_rejects_control_character():
    with pytest.raises(ValueError):
        uri_to_path("file:///home/ecm/a\n.dsp")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/home/ecm/a.dsp", False),
        ("C:\\Program\\a", True),
        ("C:", False),
        ("1:\\a", False),
        ("d:/x", True),
    ],
)
def test_is_windows_path(path, expected):
    assert is_windows_path(path) is expected