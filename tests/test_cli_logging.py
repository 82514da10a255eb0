import logging
from unittest.mock import patch

from aidigest import CLILogFormatter, _progress_enabled


def _record(level, msg):
    return logging.LogRecord(
        name="test", level=level, pathname="test.py", lineno=1,
        msg=msg, args=(), exc_info=None
    )


def test_cli_log_formatter_multiline_warning(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    formatted = CLILogFormatter().format(_record(logging.WARNING, "Line 1\nLine 2"))

    lines = formatted.splitlines()
    assert lines[0] == "WARNING: Line 1"
    assert lines[1] == "         Line 2"


def test_cli_log_formatter_multiline_error(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    formatted = CLILogFormatter().format(_record(logging.ERROR, "Err 1\nErr 2"))

    lines = formatted.splitlines()
    assert lines[0] == "ERROR: Err 1"
    assert lines[1] == "       Err 2"


def test_cli_log_formatter_info_is_bare():
    formatted = CLILogFormatter().format(_record(logging.INFO, "Info message"))
    assert formatted == "Info message"


def test_cli_log_formatter_uses_color_on_tty(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    with patch('sys.stderr.isatty', return_value=True):
        formatted = CLILogFormatter().format(_record(logging.WARNING, "careful"))

    assert formatted.startswith("\033[33mWARNING: \033[0m")
    assert formatted.endswith("careful")


def test_cli_log_formatter_no_color_when_not_tty(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    with patch('sys.stderr.isatty', return_value=False):
        formatted = CLILogFormatter().format(_record(logging.ERROR, "boom"))

    assert formatted == "ERROR: boom"


def test_cli_log_formatter_includes_exception(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    try:
        raise ValueError("bad value")
    except ValueError:
        import sys
        record = logging.LogRecord(
            name="test", level=logging.ERROR, pathname="test.py", lineno=1,
            msg="Failed", args=(), exc_info=sys.exc_info()
        )

    formatted = CLILogFormatter().format(record)
    assert formatted.startswith("ERROR: Failed")
    assert "ValueError: bad value" in formatted


def test_progress_enabled_behavior(monkeypatch, caplog):
    monkeypatch.delenv("CI", raising=False)

    with caplog.at_level(logging.INFO):
        assert _progress_enabled() is True

    with caplog.at_level(logging.DEBUG):
        assert _progress_enabled() is False


def test_progress_disabled_in_ci(monkeypatch, caplog):
    monkeypatch.setenv("CI", "1")

    with caplog.at_level(logging.INFO):
        assert _progress_enabled() is False
