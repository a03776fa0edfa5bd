"""Render options — validated at construction so every render sees a consistent configuration."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from PIL import Image, ImageColor

from qrstyle.capacity import MAX_VERSION, MIN_VERSION, ErrorLevel

TRANSPARENT = "transparent"

# Pixels with luminance below this sample as dark modules.
DARK_THRESHOLD = 128

RGBA = tuple[int, int, int, int]


class ModuleShape(Enum):
    SQUARES = "squares"
    DOTS = "dots"
    ROUNDED = "rounded"
    EXTRA_ROUNDED = "extra-rounded"

    @classmethod
    def parse(cls, value: "str | ModuleShape") -> "ModuleShape":
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower().replace("_", "-")
        name = _SHAPE_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown module shape: {value!r} (expected one of {choices})") from None


_SHAPE_ALIASES = {"square": "squares", "dot": "dots", "circle": "dots"}


class GradientKind(Enum):
    LINEAR = "linear"
    RADIAL = "radial"


def parse_color(color: str) -> RGBA:
    """Parse any Pillow colour string (``#RRGGBB``, ``#RGBA``, names, ``rgb()``) to RGBA."""
    try:
        return ImageColor.getcolor(color, "RGBA")
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid colour: {color!r}") from None


def luminance(rgba: RGBA) -> float:
    """ITU-R 601 luma of a colour composited over white."""
    r, g, b, a = rgba
    alpha = a / 255
    r, g, b = (c * alpha + 255 * (1 - alpha) for c in (r, g, b))
    return (r * 299 + g * 587 + b * 114) / 1000


@dataclass(frozen=True)
class ColorStop:
    offset: float
    color: str

    def __post_init__(self):
        if not 0.0 <= self.offset <= 1.0:
            raise ValueError(f"Gradient stop offset must be within [0, 1], got {self.offset}")
        parse_color(self.color)

    @property
    def rgba(self) -> RGBA:
        return parse_color(self.color)


@dataclass(frozen=True)
class GradientSpec:
    """Gradient fill for dark modules.

    Linear gradients run through the symbol center along ``rotation``
    degrees (0 = left to right, 90 = top to bottom). Radial gradients start
    at the center and reach the last stop at half the symbol side.
    """

    kind: GradientKind
    stops: tuple[ColorStop, ...]
    rotation: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "kind", GradientKind(self.kind))
        stops = tuple(s if isinstance(s, ColorStop) else ColorStop(*s) for s in self.stops)
        if not stops:
            raise ValueError("A gradient needs at least one colour stop")
        object.__setattr__(self, "stops", tuple(sorted(stops, key=lambda s: s.offset)))


@dataclass(frozen=True)
class LogoSpec:
    """A logo handle (path, ``file://``/``data:`` URI, bytes or image) and its requested pixel size."""

    source: "str | Path | bytes | Image.Image"
    size: int | None = None

    def __post_init__(self):
        if self.size is not None and self.size <= 0:
            raise ValueError(f"Logo size must be positive, got {self.size}")


@dataclass(frozen=True)
class RenderOptions:
    text: str
    size: int = 300
    margin: int = 4
    error_level: ErrorLevel = ErrorLevel.M
    version: int | None = None
    foreground: str = "#000000"
    background: str = "#ffffff"
    gradient: GradientSpec | None = None
    logo: LogoSpec | None = None
    shape: ModuleShape = ModuleShape.SQUARES
    effective_error_level: ErrorLevel = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "error_level", ErrorLevel.parse(self.error_level))
        object.__setattr__(self, "shape", ModuleShape.parse(self.shape))

        if self.size <= 0:
            raise ValueError(f"Size must be positive, got {self.size}")
        if self.margin < 0:
            raise ValueError(f"Margin must be >= 0, got {self.margin}")
        if self.version is not None and not MIN_VERSION <= self.version <= MAX_VERSION:
            raise ValueError(f"QR version must be between {MIN_VERSION} and {MAX_VERSION}, got {self.version}")

        if luminance(parse_color(self.foreground)) >= DARK_THRESHOLD:
            raise ValueError(f"Foreground {self.foreground!r} is too light to be sampled as a dark module")
        if not self.transparent and luminance(parse_color(self.background)) < DARK_THRESHOLD:
            raise ValueError(f"Background {self.background!r} is too dark to be sampled as a light module")

        # A logo hides the symbol center; only level H has the redundancy to recover it.
        effective = ErrorLevel.H if self.logo is not None else self.error_level
        object.__setattr__(self, "effective_error_level", effective)

    @property
    def transparent(self) -> bool:
        return self.background.strip().lower() == TRANSPARENT

    @property
    def foreground_rgba(self) -> RGBA:
        return parse_color(self.foreground)

    @property
    def background_rgba(self) -> RGBA:
        if self.transparent:
            return (0, 0, 0, 0)
        return parse_color(self.background)
