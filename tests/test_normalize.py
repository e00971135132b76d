from __future__ import annotations

import pytest

from squatprobe.engine.normalize import to_ascii
from squatprobe.errors import EncodingError, InvalidDomain


def test_to_ascii_trims_whitespace_and_trailing_dot():
    assert to_ascii("  Example.COM.  ") == "example.com"


def test_to_ascii_encodes_unicode_labels():
    assert to_ascii("bücher.de") == "xn--bcher-kva.de"


@pytest.mark.parametrize("value", ["", "   ", ".", None])
def test_to_ascii_rejects_empty(value):
    with pytest.raises(InvalidDomain):
        to_ascii(value)


@pytest.mark.parametrize("value", ["bad..example.com", "exa mple.com", "-lead.com", "a" * 64 + ".com"])
def test_to_ascii_rejects_malformed_labels(value):
    with pytest.raises(EncodingError):
        to_ascii(value)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("faß.de", "xn--fa-hia.de"),
        ("FASS.de", "fass.de"),
    ],
)
def test_to_ascii_keeps_deviation_characters(value, expected):
    assert to_ascii(value) == expected
