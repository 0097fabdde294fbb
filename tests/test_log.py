import io
import re

import pytest

from gander.log import NopLogger, StdLogger, get_logger, nop_logger, set_logger


@pytest.fixture
def restore_logger():
    previous = get_logger()
    yield
    set_logger(previous)


def test_printf_formats_and_terminates_line():
    out = io.StringIO()
    StdLogger(out).printf("applied %s in %d steps", "v1", 3)
    text = out.getvalue()
    assert text.endswith("applied v1 in 3 steps\n")
    assert re.match(r"\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} ", text)


def test_printf_without_args_keeps_percent():
    out = io.StringIO()
    StdLogger(out).printf("100%")
    assert out.getvalue().endswith("100%\n")


def test_printf_does_not_double_newline():
    out = io.StringIO()
    StdLogger(out).printf("done\n")
    assert out.getvalue().count("\n") == 1


def test_fatalf_writes_and_exits():
    out = io.StringIO()
    with pytest.raises(SystemExit) as excinfo:
        StdLogger(out).fatalf("boom %s", "now")
    assert excinfo.value.code == 1
    assert out.getvalue().endswith("boom now\n")


def test_default_stream_is_stderr(capsys):
    StdLogger().printf("to stderr")
    captured = capsys.readouterr()
    assert captured.err.endswith("to stderr\n")
    assert captured.out == ""


def test_nop_logger_discards(capsys):
    logger = nop_logger()
    logger.printf("hidden %s", "x")
    logger.fatalf("hidden %s", "y")
    captured = capsys.readouterr()
    assert captured.err == ""
    assert captured.out == ""
    assert isinstance(logger, NopLogger)


def test_set_logger_replaces_package_logger(restore_logger):
    logger = nop_logger()
    set_logger(logger)
    assert get_logger() is logger
    other = StdLogger(io.StringIO())
    set_logger(other)
    assert get_logger() is other