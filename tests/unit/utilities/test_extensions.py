"""Tests for utilities/extensions.py module."""

import pytest

from engine_cache.utilities.extensions import format_ext, strip_ext


@pytest.mark.parametrize(
    "value, expected",
    [("hbs", ".hbs"), (".hbs", ".hbs"), ("*", ".*"), ("", ""), (None, ""), (3, "")],
)
def test_format_ext(value, expected):
    assert format_ext(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(".hbs", "hbs"), ("hbs", "hbs"), (".", ""), ("", ""), (None, "")],
)
def test_strip_ext(value, expected):
    assert strip_ext(value) == expected
