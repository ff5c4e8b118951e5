"""CLI entry point for fileshell.

Usage::

    fileshell --username=alice
    python -m fileshell --username=alice --start-dir /tmp --background
"""

import argparse
import configparser
import locale
import logging
import os
import sys

from . import Session
from .pipeline import DEFAULT_CHUNK_SIZE, DEFAULT_LEVEL
from .shell import FileShell


DEFAULT_MAX_JOBS = 4
DEFAULT_PROMPT = "> "
DEFAULT_LOG_LEVEL = "WARNING"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _default_config_path():
    """Return the path to fileshell.conf in the client directory.

    If the file does not exist but fileshell.conf.example does, copy it
    to create a starter config with defaults filled in.
    """
    client_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    conf = os.path.join(client_dir, "fileshell.conf")
    if not os.path.exists(conf):
        example = os.path.join(client_dir, "fileshell.conf.example")
        if os.path.exists(example):
            try:
                with open(example, "r") as src, open(conf, "w") as dst:
                    dst.write(src.read())
            except OSError:
                pass
    return conf


def _warn_or_exit(message, explicit):
    if explicit:
        print("Error: {}".format(message), file=sys.stderr)
        sys.exit(1)
    print("Warning: {}".format(message), file=sys.stderr)


def _get_str(config, section, key):
    value = config.get(section, key, fallback=None)
    if value is not None:
        value = value.strip()
    return value


def _load_config(path, explicit):
    """Load settings from a config file.

    Args:
        path: File path to read.
        explicit: True if the user passed --config (errors are fatal).

    Returns a dict; keys are present only for settings the file sets.
    """
    if not os.path.exists(path):
        if explicit:
            print("Error: config file not found: {}".format(path),
                  file=sys.stderr)
            sys.exit(1)
        return {}

    config = configparser.ConfigParser(interpolation=None)
    try:
        config.read(path)
    except configparser.Error as e:
        _warn_or_exit("failed to parse config file: {}".format(e), explicit)
        return {}

    result = {}

    username = config.get("shell", "username", fallback=None)
    if username is not None:
        result["username"] = username.strip()

    start_dir = _get_str(config, "shell", "start_dir")
    if start_dir:
        result["start_dir"] = os.path.expanduser(start_dir)

    # configparser drops trailing spaces, so a prompt may be quoted.
    prompt = _get_str(config, "shell", "prompt")
    if prompt is not None:
        if len(prompt) >= 2 and prompt[0] == prompt[-1] and prompt[0] in "\"'":
            prompt = prompt[1:-1]
        result["prompt"] = prompt or DEFAULT_PROMPT

    for section, key, name, getter in (
            ("shell", "background", "background", config.getboolean),
            ("shell", "max_jobs", "max_jobs", config.getint),
            ("errors", "verbose", "verbose_errors", config.getboolean),
            ("pipeline", "chunk_size", "chunk_size", config.getint),
            ("pipeline", "level", "level", config.getint)):
        try:
            value = getter(section, key, fallback=None)
        except ValueError as e:
            _warn_or_exit("invalid {} in config file: {}".format(key, e),
                          explicit)
            continue
        if value is not None:
            result[name] = value

    log_level = _get_str(config, "logging", "level")
    if log_level:
        result["log_level"] = log_level.upper()

    return result


def _configure_logging(level_name):
    """Send log records to stderr so they never mix with cat output."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        print("Warning: unknown log level {!r}, using {}".format(
            level_name, DEFAULT_LOG_LEVEL), file=sys.stderr)
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="fileshell",
        description="Interactive file manager shell",
    )
    parser.add_argument(
        "--username",
        default=None,
        help="Display name used in the greeting (default: empty)",
    )
    parser.add_argument(
        "--start-dir",
        default=None,
        metavar="DIR",
        help="Initial current directory (default: home directory)",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="PATH",
        help="Path to config file (default: client/fileshell.conf)",
    )
    parser.add_argument(
        "--background",
        action="store_true",
        default=None,
        help="Run streaming commands in the background instead of "
             "waiting for each to finish",
    )
    parser.add_argument(
        "--max-jobs",
        type=int,
        default=None,
        metavar="N",
        help="Maximum concurrent background operations (default: {})"
             .format(DEFAULT_MAX_JOBS),
    )
    parser.add_argument(
        "--verbose-errors",
        action="store_true",
        default=None,
        help="Show the reason after 'Operation failed'",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging on stderr",
    )
    return parser


def _first(*values):
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def main(argv=None) -> None:
    """Parse arguments, load configuration and run the shell."""
    parser = build_parser()
    # Unknown arguments are ignored; only the flags above matter.
    args, _unknown = parser.parse_known_args(argv)

    # --- Load config file ---
    config_path = args.config if args.config else _default_config_path()
    cfg = _load_config(config_path, bool(args.config))

    # --- Logging (CLI > env > config > default) ---
    if args.verbose:
        log_level = "DEBUG"
    else:
        log_level = _first(os.environ.get("FILESHELL_LOG_LEVEL") or None,
                           cfg.get("log_level"), DEFAULT_LOG_LEVEL)
    _configure_logging(log_level)

    # --- Resolve settings (CLI > env > config > default) ---
    username = _first(args.username,
                      os.environ.get("FILESHELL_USERNAME"),
                      cfg.get("username"), "")
    start_dir = _first(args.start_dir,
                       os.environ.get("FILESHELL_START_DIR") or None,
                       cfg.get("start_dir"), os.path.expanduser("~"))
    background = _first(args.background, cfg.get("background"), False)
    max_jobs = _first(args.max_jobs, cfg.get("max_jobs"), DEFAULT_MAX_JOBS)
    verbose_errors = _first(args.verbose_errors,
                            cfg.get("verbose_errors"), False)
    chunk_size = cfg.get("chunk_size", DEFAULT_CHUNK_SIZE)
    level = cfg.get("level", DEFAULT_LEVEL)
    prompt = cfg.get("prompt", DEFAULT_PROMPT)

    if max_jobs < 1:
        print("Error: max jobs must be at least 1", file=sys.stderr)
        sys.exit(1)
    if chunk_size < 1:
        print("Error: chunk_size must be positive", file=sys.stderr)
        sys.exit(1)
    if not -1 <= level <= 9:
        print("Error: compression level must be between -1 and 9",
              file=sys.stderr)
        sys.exit(1)

    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logging.getLogger(__name__).debug(
            "could not set collation locale; using C ordering")

    session = Session(start_dir, username=username,
                      chunk_size=chunk_size, level=level)
    sh = FileShell(session, background=background, max_jobs=max_jobs,
                   verbose_errors=verbose_errors, prompt=prompt)
    try:
        sh.cmdloop()
    except KeyboardInterrupt:
        print()
        sh.postloop()


if __name__ == "__main__":
    main()
