"""Lexical path helpers for resolving user input against the cursor.

Nothing in this module touches the filesystem.  Symlinks are not
followed and existence is never checked; callers decide whether a
resolved path must exist.
"""

import os


def resolve(base, user_path):
    """Resolve user_path against the absolute directory base.

    Absolute user paths ignore base.  Relative ones are joined onto base.
    In both cases ``.`` and ``..`` segments are collapsed lexically, and
    ``..`` at the root stays at the root.  Never raises.

    Examples:
        resolve("/home/user", "docs/a.txt")  -> "/home/user/docs/a.txt"
        resolve("/home/user", "../x")        -> "/home/x"
        resolve("/home/user", "/etc")        -> "/etc"
        resolve("/", "../..")                -> "/"
    """
    if not user_path:
        return os.path.normpath(base)
    joined = os.path.join(base, user_path)
    resolved = os.path.normpath(joined)
    # normpath keeps a leading "//" on POSIX; collapse it so the root
    # has a single spelling.
    if resolved.startswith("//") and not resolved.startswith("///"):
        resolved = "/" + resolved.lstrip("/")
    return resolved


def parent(path):
    """Return the lexical parent of an absolute path.

    At the filesystem root (or a drive root) the root itself is returned.
    """
    return os.path.dirname(os.path.normpath(path)) or path


def is_root(path):
    """True if path is its own parent."""
    return parent(path) == os.path.normpath(path)


def basename(path):
    """Return the final segment of path, ignoring a trailing separator.

    Examples:
        basename("docs/report.txt") -> "report.txt"
        basename("docs/")           -> "docs"
        basename("/")               -> ""
    """
    stripped = path.rstrip("/\\") if len(path) > 1 else path
    return os.path.basename(stripped)
