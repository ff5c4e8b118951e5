"""Shared fixtures for fileshell tests.

All tests run against a scratch directory tree under pytest's tmp_path;
nothing outside it is touched.

Usage:
    pytest tests/ -v
"""

import io
import os
import sys

import pytest

# Add the client package to the path so tests can import fileshell
_client_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "client",
)
if _client_dir not in sys.path:
    sys.path.insert(0, _client_dir)

from fileshell import Session
from fileshell.shell import FileShell


EMPTY_SHA256 = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)


def write_file(path, data):
    """Create path (and its parents) holding data (bytes or str)."""
    os.makedirs(os.path.dirname(str(path)), exist_ok=True)
    if isinstance(data, str):
        data = data.encode("utf-8")
    with open(str(path), "wb") as f:
        f.write(data)
    return str(path)


def read_file(path):
    with open(str(path), "rb") as f:
        return f.read()


@pytest.fixture
def workdir(tmp_path):
    """Scratch directory used as the starting cursor."""
    d = tmp_path / "home"
    d.mkdir()
    return d


@pytest.fixture
def session(workdir):
    """Session positioned in workdir, with cat output captured in memory."""
    return Session(str(workdir), username="tester", output=io.BytesIO())


def make_shell(session, **kwargs):
    """Create a FileShell without color for output comparisons."""
    kwargs.setdefault("color", False)
    return FileShell(session, **kwargs)


@pytest.fixture
def shell(session):
    return make_shell(session)
