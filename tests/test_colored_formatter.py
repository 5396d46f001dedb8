"""Tests for ColoredFormatter."""

import logging
from io import StringIO
from unittest.mock import patch

import pytest

from newi_music_bot.utils.logging import ColoredFormatter

RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


def _make_record(level: int, message: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class _TTY(StringIO):
    def isatty(self) -> bool:
        return True


@pytest.fixture(autouse=True)
def _no_color_unset(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)


class TestColoredFormatter:
    """Tests for ANSI color formatting."""

    def _tty_formatter(self) -> ColoredFormatter:
        return ColoredFormatter("%(levelname)s | %(message)s", stream=_TTY())

    @pytest.mark.parametrize(
        "level",
        [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL],
    )
    def test_color_applied_per_level(self, level: int):
        output = self._tty_formatter().format(_make_record(level))

        assert LEVEL_COLORS[level] in output
        assert RESET in output

    def test_no_color_when_no_color_env_set(self):
        fmt = self._tty_formatter()

        with patch.dict("os.environ", {"NO_COLOR": "1"}):
            output = fmt.format(_make_record(logging.INFO))

        assert "\033[" not in output

    def test_no_color_when_stream_not_tty(self):
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=StringIO())

        assert "\033[" not in fmt.format(_make_record(logging.ERROR))

    def test_force_color_overrides_tty_probe(self):
        fmt = ColoredFormatter("%(levelname)s", stream=StringIO(), force_color=True)

        assert fmt.format(_make_record(logging.WARNING)).startswith(LEVEL_COLORS[logging.WARNING])

    def test_force_color_respects_no_color(self):
        fmt = ColoredFormatter("%(levelname)s", stream=StringIO(), force_color=True)

        with patch.dict("os.environ", {"NO_COLOR": ""}):
            assert fmt.format(_make_record(logging.WARNING)) == "WARNING"

    def test_format_output_matches_pattern(self):
        output = self._tty_formatter().format(_make_record(logging.INFO, "hello world"))

        plain = output.replace(LEVEL_COLORS[logging.INFO], "").replace(RESET, "")
        assert plain == "INFO | hello world"

    def test_original_record_not_mutated(self):
        record = _make_record(logging.WARNING)

        self._tty_formatter().format(record)

        assert record.levelname == "WARNING"
