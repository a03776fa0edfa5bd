from PIL import Image

from qrstyle.capacity import ErrorLevel
from qrstyle.verify import scan_opencv, verify_render


def symbol(encoder, text="HELLO", background="#ffffff"):
    return encoder.encode(text, 1, ErrorLevel.M, 300, 4, ("#000000", background))


def test_scan_decodes_encoder_output(encoder):
    result = scan_opencv(symbol(encoder))
    assert result.success
    assert result.decoded_data == "HELLO"
    assert result.decoder == "opencv"
    assert result.decode_time_ms >= 0


def test_scan_flattens_transparency(encoder):
    result = scan_opencv(symbol(encoder, background="transparent"))
    assert result.decoded_data == "HELLO"


def test_verify_mismatch(encoder):
    result = verify_render(symbol(encoder), "GOODBYE")
    assert not result.success
    assert "mismatch" in result.error


def test_blank_image_fails():
    result = verify_render(Image.new("RGB", (200, 200), "white"), "HELLO")
    assert not result.success
    assert result.decoded_data is None
    assert result.error
