import pytest

from bot.utils.time_parser import format_duration_ms, parse_duration_ms


class TestParseDuration:

    @pytest.mark.parametrize("text, expected", [
        ("600000", 600000),
        ("0", 0),
        ("500ms", 500),
        ("45s", 45000),
        ("10m", 600000),
        ("1h30m", 5400000),
        ("2d", 172800000),
        (" 30M ", 1800000),
    ])
    def test_valid(self, text, expected):
        assert parse_duration_ms(text) == expected

    @pytest.mark.parametrize("text", ["", "-5", "10x", "m10", "1h 30m", "ten minutes"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration_ms(text)


class TestFormatDuration:

    @pytest.mark.parametrize("milliseconds, expected", [
        (0, "0s"),
        (45000, "45s"),
        (5400000, "1h30m"),
        (1500, "1s500ms"),
    ])
    def test_format(self, milliseconds, expected):
        assert format_duration_ms(milliseconds) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            format_duration_ms(-1)
