"""Tests for the error hierarchy and OSError translation."""

import errno

import pytest

from fileshell import (
    AlreadyExistsError, CodecError, ErrorKind, FileIOError, FileShellError,
    InvalidInputError, IsDirectoryError, NotDirectoryError, NotFoundError,
    OperationFailedError, PermissionDeniedError, Session, error_from_os,
)


class TestErrorFromOs:
    @pytest.mark.parametrize("code,cls", [
        (errno.ENOENT, NotFoundError),
        (errno.EACCES, PermissionDeniedError),
        (errno.EPERM, PermissionDeniedError),
        (errno.EEXIST, AlreadyExistsError),
        (errno.ENOTDIR, NotDirectoryError),
        (errno.EISDIR, IsDirectoryError),
        (errno.EIO, FileIOError),
    ])
    def test_mapping(self, code, cls):
        err = error_from_os(OSError(code, "boom", "/some/path"))
        assert type(err) is cls
        assert isinstance(err, OperationFailedError)
        assert "/some/path" in err.message

    def test_no_errno(self):
        err = error_from_os(OSError("weird"))
        assert isinstance(err, FileIOError)
        assert err.kind is ErrorKind.IO_ERROR

    def test_rejected_path(self, tmp_path):
        try:
            open(str(tmp_path / "a\x00b"), "rb")
        except ValueError as e:
            err = error_from_os(e)
        assert isinstance(err, FileIOError)
        assert "null" in err.message

    def test_real_exception(self, tmp_path):
        try:
            open(str(tmp_path / "missing"), "rb")
        except OSError as e:
            err = error_from_os(e)
        assert err.kind is ErrorKind.NOT_FOUND


class TestRender:
    def test_operation_failed_generic(self):
        assert NotFoundError("x").render() == "Operation failed"

    def test_invalid_input_generic(self):
        assert InvalidInputError("bad").render() == "Invalid input"

    def test_verbose(self):
        assert CodecError("truncated").render(verbose=True) == \
            "Operation failed: codec error: truncated"

    def test_verbose_without_message(self):
        assert PermissionDeniedError().render(verbose=True) == \
            "Operation failed: permission denied"

    def test_kind_override(self):
        err = OperationFailedError("x", kind=ErrorKind.CODEC_ERROR)
        assert err.kind is ErrorKind.CODEC_ERROR

    def test_str(self):
        assert str(NotFoundError("a.txt")) == "not found: a.txt"

    def test_hierarchy(self):
        assert issubclass(InvalidInputError, FileShellError)
        assert not issubclass(InvalidInputError, OperationFailedError)


class TestSession:
    def test_normalizes_cwd(self):
        assert Session("/home/user/../other/").cwd == "/home/other"

    def test_snapshot_is_independent(self):
        s = Session("/a", username="u")
        snap = s.snapshot()
        s.cwd = "/b"
        assert snap.cwd == "/a"
        assert snap.username == "u"
        assert snap.chunk_size == s.chunk_size

    def test_binary_output_defaults_to_stdout(self):
        s = Session("/")
        assert s.binary_output() is not None
