"""M3: Module grid reconstruction — recover pitch and dark/light modules from pixels alone.

Nothing here knows how the raster was produced. The pitch comes from the
spacing of dark runs (or from the center scanline) and the state from one
sample per module, which is exact for unscaled output and fragile once the
encoder anti-aliases.
"""

import math
from dataclasses import dataclass

import numpy as np
from PIL import Image

from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import DARK_THRESHOLD

log = get_logger("grid")

# Fallback modules-per-side when the center scanline has no transition.
FALLBACK_MODULES = 29

# The first entry is the default.
PITCH_STRATEGIES = ("period", "first-run", "shortest-run")


@dataclass(frozen=True)
class ModuleGrid:
    """Square boolean module matrix (True = dark) and the pixel pitch it was sampled at."""

    modules: np.ndarray
    pitch: int

    def __post_init__(self):
        modules = np.array(self.modules, dtype=bool)
        if modules.ndim != 2 or modules.shape[0] != modules.shape[1]:
            raise ValueError(f"Module grid must be square, got shape {modules.shape}")
        if self.pitch < 1:
            raise ValueError(f"Pitch must be >= 1, got {self.pitch}")
        modules.setflags(write=False)
        object.__setattr__(self, "modules", modules)

    @property
    def dimension(self) -> int:
        return self.modules.shape[0]

    @property
    def dark_count(self) -> int:
        return int(self.modules.sum())

    def __eq__(self, other):
        if not isinstance(other, ModuleGrid):
            return NotImplemented
        return self.pitch == other.pitch and np.array_equal(self.modules, other.modules)

    def __hash__(self):
        return hash((self.pitch, self.modules.tobytes()))

    def to_text(self, dark: str = "██", light: str = "  ") -> str:
        return "\n".join("".join(dark if cell else light for cell in row) for row in self.modules)


def dark_mask(image: Image.Image) -> np.ndarray:
    """Boolean array, True where a pixel's luminance is below the dark threshold.

    Alpha is flattened over white first so transparent pixels read as light.
    """
    if image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        flat = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        flat.alpha_composite(rgba)
        gray = flat.convert("L")
    else:
        gray = image.convert("L")
    return np.asarray(gray) < DARK_THRESHOLD


def _runs(line: np.ndarray) -> list[tuple[int, int]]:
    """(start, length) of each maximal same-class run that begins at a transition."""
    changes = np.flatnonzero(line[1:] != line[:-1]) + 1
    if changes.size == 0:
        return []
    ends = np.append(changes[1:], line.size)
    return [(int(s), int(e - s)) for s, e in zip(changes, ends)]


def _dark_run_period(mask: np.ndarray) -> int | None:
    """GCD of the spacing between dark-run starts over every row, or None.

    Module edges sit on multiples of the pitch, and padding shifts every start
    in a row by the same amount, so the spacing survives restyling.
    """
    starts = mask[:, 1:] & ~mask[:, :-1]
    spacing = [np.diff(np.flatnonzero(row)) for row in starts]
    spacing = [s for s in spacing if s.size]
    if not spacing:
        return None
    return int(np.gcd.reduce(np.concatenate(spacing)))


def detect_pitch(mask: np.ndarray, strategy: str = "period") -> int:
    """Module pitch in pixels.

    ``period`` takes the GCD of the spacing between dark-run starts across
    all rows, and falls back to ``first-run`` when no row has two dark runs.
    ``first-run`` takes the run starting at the first transition on the
    scanline through the vertical center. ``shortest-run`` takes the shortest
    run on that scanline bounded by transitions on both sides. Without any
    transition the pitch is ``size // 29`` (at least 1).
    """
    if strategy not in PITCH_STRATEGIES:
        raise ValueError(f"Unknown pitch strategy: {strategy!r}")
    if strategy == "period":
        pitch = _dark_run_period(mask)
        if pitch is not None:
            return pitch
        strategy = "first-run"

    height, width = mask.shape
    line = mask[height // 2]
    runs = _runs(line)
    if not runs:
        pitch = max(1, width // FALLBACK_MODULES)
        log.debug("pitch fallback: no transition on scanline y=%d, using %d", height // 2, pitch)
        return pitch

    if strategy == "shortest-run":
        interior = runs[:-1] or runs
        return min(length for _, length in interior)
    return runs[0][1]


def sample_modules(mask: np.ndarray, pitch: int) -> np.ndarray:
    """Sample one pixel at the center of each module, clamped to the raster."""
    height, width = mask.shape
    count = math.ceil(width / pitch)
    centers = np.floor(np.arange(count) * pitch + pitch / 2).astype(int)
    xs = np.clip(centers, 0, width - 1)
    ys = np.clip(centers, 0, height - 1)
    return mask[np.ix_(ys, xs)]


def sample_grid(image: Image.Image, pitch: int) -> ModuleGrid:
    """Module grid of ``image`` at a known pitch."""
    return ModuleGrid(sample_modules(dark_mask(image), pitch), pitch)


@trace
def reconstruct_grid(image: Image.Image, strategy: str = "period") -> ModuleGrid:
    """Recover the module grid of a square symbol raster.

    Pure function of the pixel content: the same raster always yields the
    same grid.
    """
    if image.width != image.height:
        raise ValueError(f"Symbol raster must be square, got {image.width}x{image.height}")
    mask = dark_mask(image)
    pitch = detect_pitch(mask, strategy)
    grid = ModuleGrid(sample_modules(mask, pitch), pitch)
    audit("grid.reconstructed", logger=log, pitch=pitch, dimension=grid.dimension,
          dark=grid.dark_count, strategy=strategy)
    return grid
