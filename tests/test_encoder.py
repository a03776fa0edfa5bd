import pytest

from qrstyle.capacity import ErrorLevel
from qrstyle.encoder import QRCodeEncoder, module_count
from qrstyle.errors import EncodeError

BW = ("#000000", "#ffffff")


def test_module_count():
    assert module_count(1) == 21
    assert module_count(40) == 177


def test_output_is_exact_size_and_origin_anchored(encoder):
    # version 1: 21 + 8 = 29 modules, 300 // 29 = 10 px per module, 290 px symbol
    img = encoder.encode("HELLO", 1, ErrorLevel.M, 300, 4, BW)
    assert img.size == (300, 300)
    assert img.mode == "RGBA"
    assert img.getpixel((0, 0)) == (255, 255, 255, 255)
    # top-left finder pattern starts after the 40 px quiet zone
    assert img.getpixel((40, 40)) == (0, 0, 0, 255)
    assert img.getpixel((39, 40)) == (255, 255, 255, 255)
    # remainder strip is light
    assert img.getpixel((295, 150)) == (255, 255, 255, 255)


def test_colours_are_applied(encoder):
    img = encoder.encode("HELLO", 1, ErrorLevel.M, 290, 4, ("#1e3a8a", "#fef3c7"))
    assert img.getpixel((40, 40))[:3] == (0x1E, 0x3A, 0x8A)
    assert img.getpixel((0, 0))[:3] == (0xFE, 0xF3, 0xC7)


def test_transparent_quiet_zone(encoder):
    img = encoder.encode("HELLO", 1, ErrorLevel.M, 300, 4, ("#000000", "transparent"))
    assert img.getpixel((0, 0))[3] == 0
    assert img.getpixel((299, 299))[3] == 0
    assert img.getpixel((40, 40)) == (0, 0, 0, 255)


def test_overflow_raises_encode_error(encoder):
    with pytest.raises(EncodeError):
        encoder.encode("x" * 100, 1, ErrorLevel.H, 300, 4, BW)


def test_pixel_size_too_small(encoder):
    with pytest.raises(EncodeError):
        encoder.encode("HELLO", 10, ErrorLevel.M, 50, 4, BW)


def test_fixed_mask_is_deterministic():
    enc = QRCodeEncoder(mask_pattern=3)
    a = enc.encode("HELLO", 1, ErrorLevel.Q, 200, 2, BW)
    b = enc.encode("HELLO", 1, ErrorLevel.Q, 200, 2, BW)
    assert a.tobytes() == b.tobytes()
