"""Command registry and file-operation handlers.

Every handler has the signature ``handler(session, args)`` and returns
the text to show the user: a string, a list of lines, or None when the
handler wrote its own output (``cat``).  Failures are raised as
FileShellError subclasses and rendered by the shell.

Paths are resolved against ``session.cwd`` before any I/O starts, so an
operation's targets are fixed at the moment it is dispatched.
"""

import enum
import locale
import logging
import os
import stat

from . import (
    AlreadyExistsError, InvalidInputError, IsDirectoryError, Session,
    error_from_os,
)
from . import osinfo
from .paths import basename, parent, resolve
from .pipeline import (
    compress_file, copy_file, decompress_file, hash_file, stream_file,
)


logger = logging.getLogger(__name__)


class Command(enum.Enum):
    """Every verb the shell understands, keyed by its typed name."""

    UP = "up"
    CD = "cd"
    LS = "ls"
    CAT = "cat"
    ADD = "add"
    RN = "rn"
    CP = "cp"
    MV = "mv"
    RM = "rm"
    HASH = "hash"
    COMPRESS = "compress"
    DECOMPRESS = "decompress"
    OS = "os"


class Operation:
    """Registry record binding a Command to its handler.

    command    The Command this record serves.
    handler    Callable ``(session, args) -> result``.
    arity      Exact number of arguments required.
    usage      One-line usage shown by ``help``.
    summary    Short description shown by ``help``.
    streaming  True for pipeline-backed handlers that may run in the
               background against a session snapshot.
    """

    def __init__(self, command, handler, arity, usage, summary,
                 streaming=False):
        self.command = command
        self.handler = handler
        self.arity = arity
        self.usage = usage
        self.summary = summary
        self.streaming = streaming

    @property
    def name(self):
        return self.command.value

    def check_args(self, args):
        if len(args) != self.arity:
            raise InvalidInputError("usage: {}".format(self.usage))

    def __repr__(self):
        return "Operation({})".format(self.name)


def cursor_line(session):
    return "You are currently in {}".format(session.cwd)


def _stat(path):
    try:
        return os.stat(path)
    except OSError as e:
        raise error_from_os(e)


def _ensure_distinct(source, dest):
    """Refuse to stream a file onto itself (the sink would truncate it)."""
    if os.path.normcase(source) == os.path.normcase(dest):
        raise AlreadyExistsError("source and destination are the same "
                                 "file: {}".format(dest))
    try:
        same = os.path.samefile(source, dest)
    except OSError:
        return
    if same:
        raise AlreadyExistsError("source and destination are the same "
                                 "file: {}".format(dest))


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def op_up(session, args):
    """Move the cursor to its lexical parent; a no-op at the root."""
    session.cwd = parent(session.cwd)
    return cursor_line(session)


def op_cd(session, args):
    """Move the cursor to an existing path."""
    target = resolve(session.cwd, args[0])
    _stat(target)
    session.cwd = target
    return cursor_line(session)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def list_directory(path):
    """Return (dirs, files) name lists for path, each sorted.

    Symlinks and special entries (sockets, devices, fifos) are left out.
    Sorting uses the current LC_COLLATE locale.
    """
    dirs = []
    files = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(entry.name)
                elif entry.is_file(follow_symlinks=False):
                    files.append(entry.name)
    except OSError as e:
        raise error_from_os(e)
    dirs.sort(key=locale.strxfrm)
    files.sort(key=locale.strxfrm)
    return dirs, files


def format_listing(dirs, files):
    lines = ["Type\t\tName"]
    lines.extend("Directory\t{}".format(name) for name in dirs)
    lines.extend("File\t\t{}".format(name) for name in files)
    return lines


def op_ls(session, args):
    """List the cursor directory: directories first, then files."""
    dirs, files = list_directory(session.cwd)
    return format_listing(dirs, files)


# ---------------------------------------------------------------------------
# Simple file operations
# ---------------------------------------------------------------------------

def op_add(session, args):
    """Create an empty file.  An existing file is truncated to zero bytes."""
    name = args[0]
    path = resolve(session.cwd, name)
    try:
        with open(path, "wb"):
            pass
    except OSError as e:
        raise error_from_os(e)
    return "File {} created".format(name)


def op_rn(session, args):
    """Rename a file, joining new_name onto the source's directory.

    new_name is used verbatim, so a name containing a separator moves the
    file into that subdirectory of the source's directory.
    """
    old = resolve(session.cwd, args[0])
    new_name = args[1]
    new = os.path.join(parent(old), new_name)
    try:
        os.rename(old, new)
    except OSError as e:
        raise error_from_os(e)
    return "File renamed to {}".format(new_name)


def op_rm(session, args):
    """Delete a file.  Directories are not removed."""
    path = resolve(session.cwd, args[0])
    try:
        os.unlink(path)
    except OSError as e:
        raise error_from_os(e)
    return "File deleted successfully"


def op_os(session, args):
    """Report host platform metadata."""
    try:
        return osinfo.report(args[0])
    except OSError as e:
        raise error_from_os(e)


# ---------------------------------------------------------------------------
# Streaming operations
# ---------------------------------------------------------------------------

def op_cat(session, args):
    """Stream a file's bytes to the session output."""
    path = resolve(session.cwd, args[0])
    stream_file(path, session.binary_output(), session.chunk_size)
    return None


def copy_into(session, source, dest_dir):
    """Copy source into dest_dir, keeping its file name.

    The destination directory tree is created first if it is missing.
    Returns (source_path, dest_path) once the destination is fully
    written and closed.
    """
    src = resolve(session.cwd, source)
    dest = os.path.join(resolve(session.cwd, dest_dir), basename(src))

    info = _stat(src)
    if stat.S_ISDIR(info.st_mode):
        raise IsDirectoryError("cannot copy a directory: {}".format(src))
    logger.debug("copy %s (%d bytes) -> %s", src, info.st_size, dest)

    try:
        os.makedirs(parent(dest), exist_ok=True)
    except OSError as e:
        raise error_from_os(e)
    _ensure_distinct(src, dest)

    copy_file(src, dest, session.chunk_size)
    return src, dest


def op_cp(session, args):
    """Copy a file into a directory, creating the directory if needed."""
    copy_into(session, args[0], args[1])
    return "File copied successfully"


def op_mv(session, args):
    """Copy a file into a directory, then delete the original.

    The original is only removed after the copy has completed; a failed
    copy leaves it untouched.
    """
    src, dest = copy_into(session, args[0], args[1])
    try:
        os.unlink(src)
    except OSError as e:
        logger.debug("mv: copied to %s but could not remove %s", dest, src)
        raise error_from_os(e)
    return "File moved successfully"


def op_hash(session, args):
    """Print the SHA-256 of a file as lowercase hex."""
    path = resolve(session.cwd, args[0])
    return hash_file(path, chunk_size=session.chunk_size)


def op_compress(session, args):
    """Compress source into dest (gzip format)."""
    src = resolve(session.cwd, args[0])
    dest = resolve(session.cwd, args[1])
    _ensure_distinct(src, dest)
    compress_file(src, dest, level=session.level,
                  chunk_size=session.chunk_size)
    return "File compressed successfully"


def op_decompress(session, args):
    """Decompress a file produced by ``compress``."""
    src = resolve(session.cwd, args[0])
    dest = resolve(session.cwd, args[1])
    _ensure_distinct(src, dest)
    decompress_file(src, dest, chunk_size=session.chunk_size)
    return "File decompressed successfully"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

OPERATIONS = {
    op.command: op for op in (
        Operation(Command.UP, op_up, 0, "up",
                  "Go to the parent directory"),
        Operation(Command.CD, op_cd, 1, "cd PATH",
                  "Change the current directory"),
        Operation(Command.LS, op_ls, 0, "ls",
                  "List the current directory"),
        Operation(Command.CAT, op_cat, 1, "cat PATH",
                  "Print a file's contents", streaming=True),
        Operation(Command.ADD, op_add, 1, "add NAME",
                  "Create an empty file (truncates an existing one)"),
        Operation(Command.RN, op_rn, 2, "rn PATH NEW_NAME",
                  "Rename a file (NEW_NAME may name a subdirectory)"),
        Operation(Command.CP, op_cp, 2, "cp SOURCE DEST_DIR",
                  "Copy a file into a directory", streaming=True),
        Operation(Command.MV, op_mv, 2, "mv SOURCE DEST_DIR",
                  "Move a file into a directory", streaming=True),
        Operation(Command.RM, op_rm, 1, "rm PATH",
                  "Delete a file"),
        Operation(Command.HASH, op_hash, 1, "hash PATH",
                  "Print the SHA-256 of a file", streaming=True),
        Operation(Command.COMPRESS, op_compress, 2, "compress SOURCE DEST",
                  "Compress a file (gzip)", streaming=True),
        Operation(Command.DECOMPRESS, op_decompress, 2,
                  "decompress SOURCE DEST",
                  "Decompress a file made by compress", streaming=True),
        Operation(Command.OS, op_os, 1,
                  "os --EOL|--cpus|--homedir|--username|--architecture",
                  "Show host platform information"),
    )
}


def lookup(name):
    """Return the Operation registered for name.

    Raises InvalidInputError for an unknown command name.
    """
    try:
        command = Command(name)
    except ValueError:
        raise InvalidInputError("unknown command: {}".format(name))
    return OPERATIONS[command]


def dispatch(session: Session, name, args):
    """Look up name, check the argument count and run the handler inline."""
    operation = lookup(name)
    operation.check_args(args)
    return operation.handler(session, list(args))
