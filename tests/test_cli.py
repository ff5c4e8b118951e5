"""Tests for argument parsing, config loading and setting precedence."""

import logging
import os
from unittest import mock

import pytest

import fileshell.__main__ as cli


def _write_config(tmp_path, text):
    path = tmp_path / "fileshell.conf"
    path.write_text(text)
    return str(path)


@pytest.fixture
def run_main(tmp_path, monkeypatch):
    """Run cli.main() with the shell replaced by a mock.

    Returns a function taking argv and returning the mocked FileShell
    class, so tests can inspect how the shell was built.
    """
    for var in ("FILESHELL_USERNAME", "FILESHELL_START_DIR",
                "FILESHELL_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    missing = str(tmp_path / "no-such.conf")

    def _run(argv):
        with mock.patch.object(cli, "FileShell") as shell_cls, \
                mock.patch.object(cli, "_default_config_path",
                                  return_value=missing), \
                mock.patch.object(cli, "_configure_logging"), \
                mock.patch.object(cli.locale, "setlocale"):
            cli.main(argv)
        return shell_cls

    return _run


def _session_of(shell_cls):
    args, kwargs = shell_cls.call_args
    return args[0]


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------

class TestFlags:
    def test_username_flag(self, run_main):
        shell_cls = run_main(["--username=alice"])
        assert _session_of(shell_cls).username == "alice"
        shell_cls.return_value.cmdloop.assert_called_once_with()

    def test_username_defaults_empty(self, run_main):
        assert _session_of(run_main([])).username == ""

    def test_start_dir_defaults_to_home(self, run_main):
        session = _session_of(run_main([]))
        assert session.cwd == os.path.normpath(os.path.expanduser("~"))

    def test_start_dir_flag(self, run_main, tmp_path):
        session = _session_of(run_main(["--start-dir", str(tmp_path)]))
        assert session.cwd == str(tmp_path)

    def test_unknown_arguments_ignored(self, run_main):
        shell_cls = run_main(["--colour=blue", "--username=bob", "extra"])
        assert _session_of(shell_cls).username == "bob"

    def test_background_flags(self, run_main):
        shell_cls = run_main(["--background", "--max-jobs", "2"])
        kwargs = shell_cls.call_args[1]
        assert kwargs["background"] is True
        assert kwargs["max_jobs"] == 2

    def test_defaults(self, run_main):
        kwargs = run_main([]).call_args[1]
        assert kwargs["background"] is False
        assert kwargs["max_jobs"] == cli.DEFAULT_MAX_JOBS
        assert kwargs["verbose_errors"] is False
        assert kwargs["prompt"] == "> "

    def test_invalid_max_jobs(self, run_main):
        with pytest.raises(SystemExit) as excinfo:
            run_main(["--max-jobs", "0"])
        assert excinfo.value.code == 1

    def test_keyboard_interrupt_closes(self, run_main, capsys):
        with mock.patch.object(cli, "FileShell") as shell_cls, \
                mock.patch.object(cli, "_default_config_path",
                                  return_value="/nonexistent/x.conf"), \
                mock.patch.object(cli, "_configure_logging"), \
                mock.patch.object(cli.locale, "setlocale"):
            shell_cls.return_value.cmdloop.side_effect = KeyboardInterrupt
            cli.main([])
        shell_cls.return_value.postloop.assert_called_once_with()


# ---------------------------------------------------------------------------
# Config file and environment
# ---------------------------------------------------------------------------

class TestConfig:
    def test_config_values(self, run_main, tmp_path):
        path = _write_config(tmp_path, (
            "[shell]\n"
            "username = carol\n"
            "start_dir = {}\n"
            "prompt = \"fm> \"\n"
            "background = yes\n"
            "max_jobs = 3\n"
            "[errors]\n"
            "verbose = true\n"
            "[pipeline]\n"
            "chunk_size = 1024\n"
            "level = 9\n").format(tmp_path))
        shell_cls = run_main(["--config", path])
        session = _session_of(shell_cls)
        kwargs = shell_cls.call_args[1]
        assert session.username == "carol"
        assert session.cwd == str(tmp_path)
        assert session.chunk_size == 1024
        assert session.level == 9
        assert kwargs["prompt"] == "fm> "
        assert kwargs["background"] is True
        assert kwargs["max_jobs"] == 3
        assert kwargs["verbose_errors"] is True

    def test_cli_beats_env_beats_config(self, run_main, tmp_path,
                                        monkeypatch):
        path = _write_config(tmp_path, "[shell]\nusername = fromconfig\n")
        monkeypatch.setenv("FILESHELL_USERNAME", "fromenv")
        assert _session_of(run_main(["--config", path])).username == \
            "fromenv"
        assert _session_of(run_main(
            ["--config", path, "--username=fromcli"])).username == "fromcli"

    def test_env_start_dir(self, run_main, tmp_path, monkeypatch):
        monkeypatch.setenv("FILESHELL_START_DIR", str(tmp_path))
        assert _session_of(run_main([])).cwd == str(tmp_path)

    def test_explicit_missing_config_is_fatal(self, run_main, tmp_path,
                                              capsys):
        with pytest.raises(SystemExit):
            run_main(["--config", str(tmp_path / "absent.conf")])
        assert "config file not found" in capsys.readouterr().err

    def test_explicit_bad_value_is_fatal(self, run_main, tmp_path):
        path = _write_config(tmp_path, "[shell]\nmax_jobs = many\n")
        with pytest.raises(SystemExit):
            run_main(["--config", path])

    def test_implicit_bad_value_warns(self, tmp_path, capsys):
        path = _write_config(tmp_path, "[pipeline]\nchunk_size = big\n")
        result = cli._load_config(path, explicit=False)
        assert "chunk_size" not in result
        assert "Warning" in capsys.readouterr().err

    def test_implicit_parse_error_warns(self, tmp_path, capsys):
        path = _write_config(tmp_path, "not an ini file\n")
        assert cli._load_config(path, explicit=False) == {}
        assert "Warning" in capsys.readouterr().err

    def test_unquoted_prompt(self, tmp_path):
        path = _write_config(tmp_path, "[shell]\nprompt = $\n")
        assert cli._load_config(path, explicit=True)["prompt"] == "$"

    def test_log_level(self, tmp_path):
        path = _write_config(tmp_path, "[logging]\nlevel = debug\n")
        assert cli._load_config(path, explicit=True)["log_level"] == "DEBUG"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestLogging:
    def test_verbose_flag_selects_debug(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FILESHELL_LOG_LEVEL", raising=False)
        with mock.patch.object(cli, "FileShell"), \
                mock.patch.object(cli, "_default_config_path",
                                  return_value=str(tmp_path / "x.conf")), \
                mock.patch.object(cli, "_configure_logging") as configure, \
                mock.patch.object(cli.locale, "setlocale"):
            cli.main(["-v"])
        configure.assert_called_once_with("DEBUG")

    def test_env_log_level(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FILESHELL_LOG_LEVEL", "INFO")
        with mock.patch.object(cli, "FileShell"), \
                mock.patch.object(cli, "_default_config_path",
                                  return_value=str(tmp_path / "x.conf")), \
                mock.patch.object(cli, "_configure_logging") as configure, \
                mock.patch.object(cli.locale, "setlocale"):
            cli.main([])
        configure.assert_called_once_with("INFO")

    def test_configure_logging_level(self):
        with mock.patch.object(cli.logging, "basicConfig") as basic:
            cli._configure_logging("debug")
        assert basic.call_args[1]["level"] == logging.DEBUG

    def test_configure_logging_unknown_level(self, capsys):
        with mock.patch.object(cli.logging, "basicConfig") as basic:
            cli._configure_logging("chatty")
        assert basic.call_args[1]["level"] == logging.WARNING
        assert "unknown log level" in capsys.readouterr().err
