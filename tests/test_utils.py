"""Tests for env helpers, state dir resolution and duration parsing."""

from datetime import timedelta
from pathlib import Path

import pytest

from logcheck.utils import (
    format_duration,
    get_default_state_path,
    get_int_env,
    get_state_dir,
    parse_duration,
    truncate_text,
)


class TestStateDirConfig:
    """Test that LOGCHECK_STATE_DIR and XDG_STATE_HOME are respected."""

    def test_default_state_dir(self, monkeypatch):
        monkeypatch.delenv('LOGCHECK_STATE_DIR', raising=False)
        monkeypatch.delenv('XDG_STATE_HOME', raising=False)

        assert get_state_dir() == Path.home() / '.local' / 'state' / 'logcheck'

    def test_explicit_state_dir_takes_priority(self, monkeypatch, tmp_path):
        monkeypatch.setenv('LOGCHECK_STATE_DIR', str(tmp_path))
        monkeypatch.setenv('XDG_STATE_HOME', '/should/be/ignored')

        assert get_state_dir() == tmp_path
        assert get_default_state_path() == tmp_path / 'state.json'

    def test_xdg_state_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv('LOGCHECK_STATE_DIR', raising=False)
        monkeypatch.setenv('XDG_STATE_HOME', str(tmp_path))

        assert get_state_dir() == tmp_path / 'logcheck'

    def test_state_dir_not_created(self, monkeypatch, tmp_path):
        monkeypatch.setenv('LOGCHECK_STATE_DIR', str(tmp_path / 'missing'))

        get_default_state_path()
        assert not (tmp_path / 'missing').exists()


class TestEnvHelpers:
    def test_int_env(self, monkeypatch):
        monkeypatch.setenv('LOGCHECK_TEST_INT', '42')
        assert get_int_env('LOGCHECK_TEST_INT', 1) == 42

    def test_int_env_invalid_falls_back(self, monkeypatch):
        monkeypatch.setenv('LOGCHECK_TEST_INT', 'many')
        assert get_int_env('LOGCHECK_TEST_INT', 7) == 7

    def test_int_env_unset(self, monkeypatch):
        monkeypatch.delenv('LOGCHECK_TEST_INT', raising=False)
        assert get_int_env('LOGCHECK_TEST_INT', 3) == 3


class TestParseDuration:
    @pytest.mark.parametrize(
        'value,expected',
        [
            ('90', timedelta(seconds=90)),
            ('30s', timedelta(seconds=30)),
            ('15m', timedelta(minutes=15)),
            ('2h', timedelta(hours=2)),
            ('1d', timedelta(days=1)),
            ('1w', timedelta(weeks=1)),
            ('1h30m', timedelta(hours=1, minutes=30)),
            ('1h 30m', timedelta(hours=1, minutes=30)),
            ('2H', timedelta(hours=2)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize('value', [None, '', '   ', '0'])
    def test_no_retention(self, value):
        assert parse_duration(value) == timedelta(0)

    @pytest.mark.parametrize('value', ['abc', '10x', '-5m', '1.5h', 'h'])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_format_duration(self):
        assert format_duration(timedelta(minutes=90)) == '1h30m'
        assert format_duration(timedelta(days=1)) == '1d'
        assert format_duration(timedelta(0)) == '0s'


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text('short', 10) == 'short'

    def test_long_text_marked(self):
        assert truncate_text('abcdefghij', 6) == 'abc...'

    def test_zero_limit_disables(self):
        assert truncate_text('abcdefghij', 0) == 'abcdefghij'
