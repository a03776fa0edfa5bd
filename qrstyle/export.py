"""Export — encode a finished raster as PNG/JPEG bytes, or as a path-based SVG."""

import io
from xml.sax.saxutils import quoteattr

from PIL import Image

from qrstyle.grid import ModuleGrid, reconstruct_grid
from qrstyle.logging import audit, get_logger, trace

log = get_logger("export")

FORMATS = ("png", "jpg", "jpeg", "svg")


def _flatten(image: Image.Image, color=(255, 255, 255)) -> Image.Image:
    """Composite over an opaque colour and drop alpha."""
    rgba = image.convert("RGBA")
    base = Image.new("RGBA", rgba.size, color + (255,))
    base.alpha_composite(rgba)
    return base.convert("RGB")


def _path_data(grid: ModuleGrid) -> str:
    p = grid.pitch
    return "".join(
        f"M{int(col) * p} {int(row) * p}h{p}v{p}h-{p}z"
        for row, col in zip(*grid.modules.nonzero())
    )


def grid_to_svg(
    grid: ModuleGrid,
    size: int,
    dark: str = "#000000",
    light: str | None = "#ffffff",
    output_size: int | None = None,
) -> str:
    """SVG document drawing every dark module as one square sub-path.

    ``size`` is the pixel size of the raster the grid came from and becomes
    the viewBox; ``light=None`` leaves the background transparent.
    """
    out = output_size or size
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" version="1.1" '
        f'width="{out}" height="{out}" viewBox="0 0 {size} {size}" shape-rendering="crispEdges">'
    ]
    if light is not None:
        parts.append(f'<rect width="{size}" height="{size}" fill={quoteattr(light)}/>')
    parts.append(f'<path fill={quoteattr(dark)} d="{_path_data(grid)}"/>')
    parts.append("</svg>")
    return "".join(parts)


@trace
def export_image(
    image: Image.Image,
    fmt: str = "png",
    size: int | None = None,
    quality: float = 0.9,
    transparent: bool = False,
    dark: str = "#000000",
    light: str = "#ffffff",
    grid: ModuleGrid | None = None,
) -> bytes:
    """Encode ``image`` as ``fmt`` bytes.

    Args:
        image: Finished symbol raster.
        fmt: ``png``, ``jpg``/``jpeg`` or ``svg``.
        size: Output side in pixels (defaults to the raster size).
        quality: JPEG quality in (0, 1].
        transparent: Keep alpha (PNG/SVG only); otherwise flatten onto white.
        dark, light: SVG module and background colours.
        grid: Module grid the raster was rendered from. SVG output draws it
            as the unstyled symbol; gradients, module shapes and logos are
            not carried over. Without it the grid is reconstructed from
            ``image``, which only matches for an unstyled raster.
    """
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported export format: {fmt!r} (expected one of {', '.join(FORMATS)})")
    if not 0 < quality <= 1:
        raise ValueError(f"Quality must be within (0, 1], got {quality}")
    size = size or image.width

    if fmt == "svg":
        if grid is None:
            grid = reconstruct_grid(image)
        svg = grid_to_svg(grid, image.width, dark=dark,
                          light=None if transparent else light, output_size=size)
        data = svg.encode("utf-8")
    else:
        out = image if image.size == (size, size) else image.resize((size, size), Image.NEAREST)
        buf = io.BytesIO()
        if fmt == "png":
            out = out.convert("RGBA") if transparent else _flatten(out)
            out.save(buf, format="PNG")
        else:
            _flatten(out).save(buf, format="JPEG", quality=max(1, round(quality * 100)))
        data = buf.getvalue()

    audit("export.done", logger=log, format=fmt, size=size, transparent=transparent, bytes=len(data))
    return data
