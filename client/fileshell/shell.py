"""Interactive shell for fileshell."""

import cmd
import logging
import os
import shlex
import sys
import threading

from . import (
    FileShellError, InvalidInputError, Session, error_from_os,
)
from .colors import ColorWriter
from .operations import OPERATIONS, cursor_line, lookup
from .pipeline import PipelineRunner


logger = logging.getLogger(__name__)

EXIT_SENTINEL = ".exit"
HISTORY_FILE = "~/.fileshell_history"


def tokenize(line):
    """Split an input line into (name, args).

    Quoted arguments may contain spaces.  Returns (None, []) for a blank
    line.  Raises InvalidInputError on unbalanced quotes.
    """
    try:
        parts = shlex.split(line)
    except ValueError as e:
        raise InvalidInputError("cannot parse line: {}".format(e))
    if not parts:
        return None, []
    return parts[0], parts[1:]


# ---------------------------------------------------------------------------
# Interactive shell
# ---------------------------------------------------------------------------

class FileShell(cmd.Cmd):
    """Line-oriented file manager bound to one Session.

    Every line is tokenized and dispatched through the operation
    registry.  By default each command finishes before the next prompt.
    With background=True, streaming commands (cat, cp, mv, hash,
    compress, decompress) run on worker threads and report when done,
    so their output may interleave with later prompts.
    """

    intro = ""
    prompt = "> "

    def __init__(self, session: Session, background=False, max_jobs=4,
                 verbose_errors=False, prompt=None, stdin=None,
                 color=None):
        super().__init__(stdin=stdin)
        if stdin is not None:
            self.use_rawinput = False
        if prompt is not None:
            self.prompt = prompt
        self.session = session
        self.verbose_errors = verbose_errors
        self.runner = PipelineRunner(background=background,
                                     max_jobs=max_jobs)
        self.cw = ColorWriter(force_color=color, stream=self.stdout)
        self._print_lock = threading.Lock()

    # -- Lifecycle ---------------------------------------------------------

    def preloop(self):
        """Configure readline and greet the user before the REPL."""
        if self.use_rawinput:
            try:
                import readline
                readline.set_completer_delims(" \t\n")
                histfile = os.path.expanduser(HISTORY_FILE)
                try:
                    readline.read_history_file(histfile)
                except (FileNotFoundError, OSError):
                    pass
                import atexit
                atexit.register(readline.write_history_file, histfile)
            except ImportError:
                pass

        self._emit(self.cw.bold("Welcome to the File Manager, {}!".format(
            self.session.username)))
        self._emit(cursor_line(self.session))

    def postloop(self):
        """Let background jobs finish, then say goodbye."""
        pending = self.runner.in_flight()
        if pending:
            self._emit(self.cw.warning(
                "Waiting for {} running operation(s)...".format(pending)))
        self.runner.shutdown()
        self._emit("Thank you for using File Manager, {}, goodbye!".format(
            self.session.username))

    # -- Dispatch ----------------------------------------------------------

    def onecmd(self, line):
        """Tokenize and run one line.  Returns True to leave the loop."""
        if line == "EOF":
            # End of input (Ctrl-D): close normally.
            print()
            return True
        try:
            name, args = tokenize(line)
        except InvalidInputError as e:
            self._report_error(e)
            return False
        if name is None:
            return self.emptyline()
        if name == EXIT_SENTINEL:
            return True
        if name == "help":
            self.do_help(" ".join(args))
            return False
        self.execute(name, args)
        return False

    def execute(self, name, args):
        """Dispatch one command and report its outcome.

        Returns the command's Future, or None if the command was rejected
        before it started.
        """
        try:
            operation = lookup(name)
            operation.check_args(args)
        except InvalidInputError as e:
            self._report_error(e)
            return None

        logger.debug("dispatch %s %r (cwd=%s)", name, args, self.session.cwd)
        if operation.streaming:
            # Freeze the cursor so a later cd cannot redirect this job.
            session = self.session.snapshot()
            background = None
        else:
            session = self.session
            background = False

        sys.stdout.flush()
        future = self.runner.submit(operation.handler, session, list(args),
                                    background=background)
        if future.done():
            self._report_safely(future)
        else:
            future.add_done_callback(self._report_safely)
        return future

    def _report(self, future):
        """Print a finished command's result or its error."""
        try:
            result = future.result()
        except FileShellError as e:
            self._report_error(e)
            return
        except (OSError, ValueError) as e:
            # ValueError: a path the OS refuses outright (embedded NUL).
            self._report_error(error_from_os(e))
            return
        if result is None:
            return
        if isinstance(result, str):
            self._emit(result)
        else:
            self._emit("\n".join(result))

    def _report_safely(self, future):
        """Report a future, keeping the loop alive on unexpected errors."""
        try:
            self._report(future)
        except Exception:
            logger.exception("operation crashed")
            self._emit(self.cw.error(
                FileShellError.summary))

    def _report_error(self, error):
        logger.debug("%s failed: %s", type(error).__name__, error)
        self._emit(self.cw.error(error.render(self.verbose_errors)))

    def _emit(self, text):
        with self._print_lock:
            try:
                print(text)
            except UnicodeEncodeError:
                # Undecodable file names arrive surrogate-escaped.
                encoding = getattr(sys.stdout, "encoding", None) or "utf-8"
                print(text.encode(encoding, "replace").decode(encoding))
            sys.stdout.flush()

    # -- Help --------------------------------------------------------------

    def do_help(self, arg):
        """List commands, or show usage for one command."""
        name = arg.strip()
        if name:
            try:
                operation = lookup(name)
            except InvalidInputError as e:
                self._report_error(e)
                return
            self._emit("Usage: {}\n    {}".format(
                operation.usage, operation.summary))
            return
        width = max(len(op.usage) for op in OPERATIONS.values())
        lines = ["Commands:"]
        for operation in OPERATIONS.values():
            lines.append("  {:<{w}}  {}".format(
                operation.usage, operation.summary, w=width))
        lines.append("  {:<{w}}  {}".format(
            EXIT_SENTINEL, "Leave the file manager", w=width))
        self._emit("\n".join(lines))

    def emptyline(self):
        """Do nothing on empty input (override cmd.Cmd's default repeat)."""
        return False
