"""M5: Render pipeline — resolve, encode, reconstruct, restyle.

A render awaits at exactly two points: the base symbol raster and the logo
decode. Reconstruction and compositing then run synchronously to completion.
Renders share no state; there is no cancellation, so a caller that starts a
newer render simply discards the older result.
"""

import asyncio
from dataclasses import dataclass

from PIL import Image

from qrstyle.capacity import ErrorLevel
from qrstyle.compositor import compose
from qrstyle.config import Settings
from qrstyle.encoder import QRCodeEncoder, SymbolEncoder
from qrstyle.errors import CompositingError, DecodeError, EncodeError
from qrstyle.grid import ModuleGrid, reconstruct_grid
from qrstyle.logging import audit, get_logger, trace
from qrstyle.logo import load_logo_async
from qrstyle.options import RenderOptions
from qrstyle.version import resolve_version

log = get_logger("pipeline")


@dataclass(frozen=True)
class RenderResult:
    image: Image.Image
    version: int
    error_level: ErrorLevel
    grid: ModuleGrid
    styled: bool
    logo_applied: bool


async def _encode_base(encoder: SymbolEncoder, options: RenderOptions, version: int) -> Image.Image:
    try:
        base = await asyncio.to_thread(
            encoder.encode,
            options.text,
            version,
            options.effective_error_level,
            options.size,
            options.margin,
            (options.foreground, options.background),
        )
    except EncodeError:
        raise
    except Exception as exc:
        raise EncodeError(f"Encoder failed: {exc}") from exc

    if not isinstance(base, Image.Image):
        raise DecodeError(f"Encoder returned {type(base).__name__}, not an image")
    try:
        base.load()
    except OSError as exc:
        raise DecodeError(f"Could not decode base symbol: {exc}") from exc
    return base


@trace
async def render(
    options: RenderOptions,
    encoder: SymbolEncoder | None = None,
    settings: Settings | None = None,
) -> RenderResult:
    """Produce the styled symbol for ``options``.

    Raises:
        InsufficientVersion: ``options.version`` is below the minimum for the
            effective error level.
        EncodeError: The encoder could not produce the base symbol.
        DecodeError: The base symbol could not be decoded.
    """
    encoder = encoder or QRCodeEncoder()
    settings = settings or Settings()
    level = options.effective_error_level

    version = resolve_version(options.text, level, options.version)
    base = await _encode_base(encoder, options, version)

    logo = None
    if options.logo is not None:
        try:
            logo = await load_logo_async(options.logo.source)
        except DecodeError as exc:
            audit("render.logo_skipped", logger=log, error=str(exc))

    grid = reconstruct_grid(base, strategy=settings.pitch_strategy)
    try:
        image = compose(grid, options, logo)
    except CompositingError as exc:
        audit("render.unstyled_fallback", logger=log, error=str(exc))
        return RenderResult(image=base.copy(), version=version, error_level=level,
                            grid=grid, styled=False, logo_applied=False)

    audit("render.done", logger=log, version=version, ecc=level.name,
          requested_ecc=options.error_level.name, shape=options.shape.value,
          logo=logo is not None, size=options.size)
    return RenderResult(image=image, version=version, error_level=level,
                        grid=grid, styled=True, logo_applied=logo is not None)


def render_sync(
    options: RenderOptions,
    encoder: SymbolEncoder | None = None,
    settings: Settings | None = None,
) -> RenderResult:
    """Blocking wrapper around ``render`` for callers without an event loop."""
    return asyncio.run(render(options, encoder=encoder, settings=settings))
