"""fileshell -- interactive file manager shell.

Provides the Session context shared by every command handler, plus an
exception hierarchy mapping filesystem failures to error kinds that the
shell renders at its boundary.

Usage::

    from fileshell import Session
    from fileshell.operations import dispatch

    session = Session("/home/user", username="alice")
    print(dispatch(session, "hash", ["notes.txt"]))
"""

import enum
import errno
import os
import sys
from typing import Dict, Optional, Type


__all__ = [
    "ErrorKind",
    "FileShellError",
    "InvalidInputError",
    "OperationFailedError",
    "NotFoundError",
    "PermissionDeniedError",
    "AlreadyExistsError",
    "NotDirectoryError",
    "IsDirectoryError",
    "CodecError",
    "FileIOError",
    "Session",
    "error_from_os",
    "INVALID_INPUT_MESSAGE",
    "OPERATION_FAILED_MESSAGE",
]

__version__ = "1.0.0"

INVALID_INPUT_MESSAGE = "Invalid input"
OPERATION_FAILED_MESSAGE = "Operation failed"


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class ErrorKind(enum.Enum):
    """Closed set of failure categories surfaced by handlers."""

    INVALID_INPUT = "invalid input"
    NOT_FOUND = "not found"
    PERMISSION_DENIED = "permission denied"
    ALREADY_EXISTS = "already exists"
    NOT_A_DIRECTORY = "not a directory"
    IS_A_DIRECTORY = "is a directory"
    CODEC_ERROR = "codec error"
    IO_ERROR = "i/o error"


class FileShellError(Exception):
    """Base exception for all handler failures.

    Attributes:
        kind: ErrorKind classifying the failure.
        message: Human-readable detail (not shown unless verbose errors
            are enabled).
    """

    summary = OPERATION_FAILED_MESSAGE

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        self.kind = kind
        self.message = message
        super().__init__("{}: {}".format(kind.value, message)
                         if message else kind.value)

    def render(self, verbose: bool = False) -> str:
        """Return the user-facing line for this error."""
        if not verbose:
            return self.summary
        if self.message:
            return "{}: {}: {}".format(
                self.summary, self.kind.value, self.message)
        return "{}: {}".format(self.summary, self.kind.value)


class InvalidInputError(FileShellError):
    """Unknown command, unknown flag, bad argument count or bad quoting."""

    summary = INVALID_INPUT_MESSAGE

    def __init__(self, message: str = "") -> None:
        super().__init__(ErrorKind.INVALID_INPUT, message)


class OperationFailedError(FileShellError):
    """A filesystem or codec operation failed."""

    kind_default = ErrorKind.IO_ERROR

    def __init__(self, message: str = "",
                 kind: Optional[ErrorKind] = None) -> None:
        super().__init__(kind or self.kind_default, message)


class NotFoundError(OperationFailedError):
    """File or directory does not exist."""

    kind_default = ErrorKind.NOT_FOUND


class PermissionDeniedError(OperationFailedError):
    """Operation not permitted by the filesystem."""

    kind_default = ErrorKind.PERMISSION_DENIED


class AlreadyExistsError(OperationFailedError):
    """Target already exists or is the source itself."""

    kind_default = ErrorKind.ALREADY_EXISTS


class NotDirectoryError(OperationFailedError):
    """A path component that must be a directory is not one."""

    kind_default = ErrorKind.NOT_A_DIRECTORY


class IsDirectoryError(OperationFailedError):
    """A file operation was attempted on a directory."""

    kind_default = ErrorKind.IS_A_DIRECTORY


class CodecError(OperationFailedError):
    """Compressed input is corrupt or truncated."""

    kind_default = ErrorKind.CODEC_ERROR


class FileIOError(OperationFailedError):
    """Any other I/O failure."""

    kind_default = ErrorKind.IO_ERROR


# Map errno values to exception classes.  Unknown errnos fall back to
# FileIOError.
_ERRNO_MAP = {
    errno.ENOENT: NotFoundError,
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
    errno.EROFS: PermissionDeniedError,
    errno.EEXIST: AlreadyExistsError,
    errno.ENOTEMPTY: AlreadyExistsError,
    errno.ENOTDIR: NotDirectoryError,
    errno.EISDIR: IsDirectoryError,
}  # type: Dict[int, Type[OperationFailedError]]


def error_from_os(exc: Exception) -> OperationFailedError:
    """Translate an OSError into the matching OperationFailedError.

    The filename from the OSError (when present) is folded into the
    message so verbose rendering can show which path failed.  A
    ValueError raised by a path syscall (embedded NUL byte) carries no
    errno and becomes a FileIOError.
    """
    exc_class = _ERRNO_MAP.get(getattr(exc, "errno", None), FileIOError)
    detail = getattr(exc, "strerror", None) or str(exc)
    filename = getattr(exc, "filename", None)
    if filename is not None:
        detail = "{}: {}".format(detail, filename)
    return exc_class(detail)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

class Session:
    """Per-shell context passed by reference to every command handler.

    Attributes:
        cwd: The cursor -- absolute, normalized current directory.  Only
            navigation commands assign it; it is not revalidated between
            commands.
        username: Display name used in the welcome and farewell lines.
        output: Binary stream that ``cat`` streams into.  None means the
            process's stdout buffer, looked up at write time.
        chunk_size: Read size for streaming pipelines.
        level: zlib compression level for ``compress``.
    """

    def __init__(self, cwd: str, username: str = "", output=None,
                 chunk_size: int = 64 * 1024, level: int = 6) -> None:
        self.cwd = os.path.normpath(os.path.abspath(cwd))
        self.username = username
        self.output = output
        self.chunk_size = chunk_size
        self.level = level

    def binary_output(self):
        """Return the binary stream ``cat`` should write to."""
        if self.output is not None:
            return self.output
        return getattr(sys.stdout, "buffer", sys.stdout)

    def snapshot(self) -> "Session":
        """Return an independent copy with the cursor frozen as of now."""
        return Session(self.cwd, self.username, self.output,
                       self.chunk_size, self.level)

    def __repr__(self) -> str:
        return "Session(cwd={!r}, username={!r})".format(
            self.cwd, self.username)
