"""M4: Style compositor — redraw a reconstructed module grid with shapes, fills and a logo.

Every call paints onto a fresh surface; input images are never drawn into.
"""

from PIL import Image, ImageDraw

from qrstyle.errors import CompositingError
from qrstyle.gradient import render_gradient
from qrstyle.grid import ModuleGrid
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import ModuleShape, RenderOptions, parse_color

log = get_logger("compositor")

MODULE_PADDING = 0.1   # of pitch, on each side of a module
LOGO_MAX_RATIO = 0.3   # of symbol size
LOGO_DEFAULT_RATIO = 0.2
LOGO_PADDING = 0.1     # of logo size, on each side

_CORNER_RADIUS = {
    ModuleShape.ROUNDED: 1 / 5,
    ModuleShape.EXTRA_ROUNDED: 1 / 2.5,
}


def module_box(row: int, col: int, pitch: int) -> tuple[int, int, int, int]:
    """Inclusive pixel box of a module after padding.

    The padding is a whole number of pixels so every box sits at the same
    offset inside its cell.
    """
    pad = round(MODULE_PADDING * pitch)
    x0 = col * pitch + pad
    y0 = row * pitch + pad
    x1 = max(x0, (col + 1) * pitch - pad - 1)
    y1 = max(y0, (row + 1) * pitch - pad - 1)
    return x0, y0, x1, y1


def draw_module_mask(grid: ModuleGrid, size: int, shape: ModuleShape) -> Image.Image:
    """Mode-L mask, 255 inside every dark module's shape."""
    mask = Image.new("L", (size, size), 0)
    draw = ImageDraw.Draw(mask)
    pitch = grid.pitch
    radius = round(_CORNER_RADIUS.get(shape, 0) * pitch)

    for row, col in zip(*grid.modules.nonzero()):
        box = module_box(int(row), int(col), pitch)
        if shape is ModuleShape.DOTS:
            draw.ellipse(box, fill=255)
        elif radius > 0:
            draw.rounded_rectangle(box, radius=radius, fill=255)
        else:
            draw.rectangle(box, fill=255)
    return mask


def logo_geometry(size: int, requested: int | None) -> tuple[int, int, int]:
    """(x, y, side) of the centered logo box."""
    wanted = requested if requested is not None else LOGO_DEFAULT_RATIO * size
    side = max(1, int(min(wanted, LOGO_MAX_RATIO * size)))
    offset = (size - side) // 2
    return offset, offset, side


def overlay_logo(surface: Image.Image, logo: Image.Image, options: RenderOptions) -> Image.Image:
    """Paint the clearance box, then the logo, onto a copy of ``surface``."""
    out = surface.copy()
    x, y, side = logo_geometry(out.width, options.logo.size if options.logo else None)
    pad = round(side * LOGO_PADDING)

    # The clearance is always opaque; a transparent symbol gets a white one.
    clearance = (255, 255, 255, 255) if options.transparent else options.background_rgba[:3] + (255,)
    ImageDraw.Draw(out).rectangle(
        (x - pad, y - pad, x + side + pad - 1, y + side + pad - 1), fill=clearance,
    )

    resized = logo.convert("RGBA").resize((side, side), Image.LANCZOS)
    out.alpha_composite(resized, (x, y))
    return out


@trace
def compose(grid: ModuleGrid, options: RenderOptions, logo: Image.Image | None = None) -> Image.Image:
    """Render ``grid`` as a new RGBA surface of ``options.size`` pixels.

    Dark modules are painted with the gradient (or the foreground colour)
    through a mask of module shapes, so background pixels stay untouched.

    Raises:
        CompositingError: Pillow or numpy rejected a compositing step.
    """
    size = options.size
    try:
        surface = Image.new("RGBA", (size, size), options.background_rgba)
        mask = draw_module_mask(grid, size, options.shape)

        if options.gradient is not None:
            fill = render_gradient(options.gradient, size)
        else:
            fill = Image.new("RGBA", (size, size), parse_color(options.foreground))

        surface = Image.composite(fill, surface, mask)

        if logo is not None:
            surface = overlay_logo(surface, logo, options)
    except (ValueError, OSError, TypeError) as exc:
        audit("compose.failed", logger=log, error=str(exc), shape=options.shape.value)
        raise CompositingError(f"Could not composite styled symbol: {exc}") from exc

    audit("compose.done", logger=log, shape=options.shape.value,
          gradient=options.gradient.kind.value if options.gradient else "none",
          logo=logo is not None, transparent=options.transparent,
          pitch=grid.pitch, dimension=grid.dimension)
    return surface
