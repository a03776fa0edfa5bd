"""M2: Symbol encoder adapter — the only place that talks to python-qrcode.

The rest of the pipeline treats the encoder as opaque: it receives a raster
and nothing else.
"""

from typing import Protocol

import qrcode
import qrcode.exceptions
from PIL import Image

from qrstyle.capacity import ErrorLevel
from qrstyle.errors import EncodeError
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import TRANSPARENT, parse_color

log = get_logger("encoder")


def module_count(version: int) -> int:
    """Modules per side for a symbol version."""
    return version * 4 + 17


class SymbolEncoder(Protocol):
    def encode(
        self,
        text: str,
        version: int,
        error_level: ErrorLevel,
        pixel_size: int,
        margin: int,
        colors: tuple[str, str],
    ) -> Image.Image:
        ...


class QRCodeEncoder:
    """Encoder backed by python-qrcode.

    The symbol is drawn with an integer box size and anchored at the image
    origin, so module edges fall on multiples of the box size. Whatever is
    left of ``pixel_size`` at the right and bottom is filled with the light
    colour.
    """

    def __init__(self, mask_pattern: int | None = None):
        self.mask_pattern = mask_pattern

    @trace
    def encode(
        self,
        text: str,
        version: int,
        error_level: ErrorLevel,
        pixel_size: int,
        margin: int,
        colors: tuple[str, str],
    ) -> Image.Image:
        dark, light = colors
        total = module_count(version) + 2 * margin
        if pixel_size < total:
            raise EncodeError(
                f"Pixel size {pixel_size} is too small for a version {version} symbol "
                f"({total} modules including the quiet zone)"
            )
        box_size = pixel_size // total

        qr = qrcode.QRCode(
            version=version,
            error_correction=error_level.value,
            box_size=box_size,
            border=margin,
            mask_pattern=self.mask_pattern,
        )
        qr.add_data(text)
        try:
            qr.make(fit=False)
        except qrcode.exceptions.DataOverflowError as exc:
            audit("encode.overflow", logger=log, version=version,
                  ecc=error_level.name, chars=len(text))
            raise EncodeError(
                f"Data does not fit in a version {version} symbol at error level {error_level.name}"
            ) from exc

        transparent = light.strip().lower() == TRANSPARENT
        img = qr.make_image(
            fill_color=dark,
            back_color=TRANSPARENT if transparent else light,
        ).get_image().convert("RGBA")

        if img.size != (pixel_size, pixel_size):
            canvas = Image.new("RGBA", (pixel_size, pixel_size),
                               (255, 255, 255, 0) if transparent else parse_color(light))
            canvas.paste(img, (0, 0))
            img = canvas

        audit("symbol.encoded", logger=log,
              data=text[:80], version=version, modules=module_count(version),
              ecc=error_level.name, box_size=box_size, image_px=f"{pixel_size}x{pixel_size}")
        return img
