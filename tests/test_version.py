import pytest

from qrstyle.capacity import ErrorLevel, PayloadMode, capacity, classify, version_capacities
from qrstyle.errors import InsufficientVersion
from qrstyle.version import fits, minimum_version, resolve_version

SAMPLES = [
    "1",
    "0123456789" * 30,
    "HELLO",
    "HELLO WORLD " * 40,
    "https://example.com/some/longer/path?with=query&and=more",
    "x!" * 100,
    "é" * 90,
]


def test_hello_medium_is_smallest_alphanumeric_version():
    assert classify("HELLO") is PayloadMode.ALPHANUMERIC
    caps = version_capacities(ErrorLevel.M, PayloadMode.ALPHANUMERIC)
    expected = next(i for i, cap in enumerate(caps, start=1) if cap >= 5)
    assert minimum_version("HELLO", ErrorLevel.M) == expected == 1


@pytest.mark.parametrize("text", SAMPLES)
def test_low_needs_no_larger_version_than_high(text):
    assert minimum_version(text, ErrorLevel.L) <= minimum_version(text, ErrorLevel.H)


@pytest.mark.parametrize("text", SAMPLES)
@pytest.mark.parametrize("level", list(ErrorLevel))
def test_auto_resolution_is_smallest_fitting_version(text, level):
    version = resolve_version(text, level)
    mode = classify(text)
    assert capacity(level, mode, version) >= len(text)
    if version > 1:
        assert capacity(level, mode, version - 1) < len(text)


def test_oversized_payload_caps_at_40():
    assert minimum_version("x" * 5000, ErrorLevel.L) == 40
    assert not fits("x" * 5000, ErrorLevel.L, 40)


def test_byte_payload_boundary():
    # H/byte: version 1 holds 7 characters, version 2 holds 14
    assert minimum_version("abcdef!", ErrorLevel.H) == 1
    assert minimum_version("abcdefg!", ErrorLevel.H) == 2


def test_requested_below_minimum_raises_with_both_values():
    text = "x!" * 100
    with pytest.raises(InsufficientVersion) as info:
        resolve_version(text, ErrorLevel.H, requested=1)
    assert info.value.requested == 1
    assert info.value.minimum_required == minimum_version(text, ErrorLevel.H) == 15
    assert info.value.minimum_required > 1
    assert "Minimum version required: 15" in str(info.value)


def test_insufficient_version_is_a_value_error():
    with pytest.raises(ValueError):
        resolve_version("x!" * 100, ErrorLevel.H, requested=2)


def test_requested_at_or_above_minimum_is_kept():
    assert resolve_version("HELLO", ErrorLevel.M, requested=1) == 1
    assert resolve_version("HELLO", ErrorLevel.M, requested=10) == 10
    assert resolve_version("x!" * 100, ErrorLevel.H, requested=15) == 15


@pytest.mark.parametrize("requested", [0, 41])
def test_requested_out_of_range(requested):
    with pytest.raises(ValueError):
        resolve_version("HELLO", ErrorLevel.M, requested=requested)


def test_fits():
    assert fits("HELLO", ErrorLevel.H, 1)
    assert not fits("x!" * 100, ErrorLevel.H, 14)
    assert fits("x!" * 100, ErrorLevel.H, 15)
