"""ANSI terminal color support for fileshell output."""

import os
import sys


def _color_override():
    """Return True/False when the environment forces color, else None.

    NO_COLOR (any non-empty value) wins; FILESHELL_COLOR may be "always" or
    "never".
    """
    if os.environ.get("NO_COLOR"):
        return False
    setting = os.environ.get("FILESHELL_COLOR", "").lower()
    if setting in ("always", "never"):
        return setting == "always"
    return None


def _enable_windows_vt():
    """Turn on VT escape processing for the Windows console."""
    if os.environ.get("WT_SESSION"):
        return True
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        handle = kernel32.GetStdHandle(-11)  # STD_OUTPUT_HANDLE
        mode = ctypes.c_ulong()
        kernel32.GetConsoleMode(handle, ctypes.byref(mode))
        # ENABLE_VIRTUAL_TERMINAL_PROCESSING
        return bool(kernel32.SetConsoleMode(handle, mode.value | 0x0004))
    except (AttributeError, OSError):
        return False


def _supports_color(stream):
    """Detect whether ANSI color should be written to stream."""
    override = _color_override()
    if override is not None:
        return override
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return False
    if sys.platform == "win32":
        return _enable_windows_vt()
    return True


# ANSI escape sequences
RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
YELLOW = "\033[33m"


class ColorWriter:
    """Wrap text in color codes, falling back to plain text if unsupported.

    stream is where the text will be printed (default sys.stdout); it is
    only consulted when force_color is None.

    Usage:
        cw = ColorWriter(stream=sys.stdout)
        cw.error("Operation failed")     # red
        cw.bold("Welcome")               # bold
        cw.warning("Waiting for jobs")   # yellow
    """

    def __init__(self, force_color=None, stream=None):
        if force_color is not None:
            self.enabled = force_color
        else:
            self.enabled = _supports_color(
                stream if stream is not None else sys.stdout)

    def _wrap(self, code, text):
        if self.enabled:
            return "{}{}{}".format(code, text, RESET)
        return text

    def error(self, text):
        return self._wrap(RED, text)

    def bold(self, text):
        return self._wrap(BOLD, text)

    def warning(self, text):
        return self._wrap(YELLOW, text)
