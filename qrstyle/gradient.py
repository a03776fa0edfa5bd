"""Gradient fills evaluated over the whole symbol box with numpy."""

import math

import numpy as np
from PIL import Image

from qrstyle.options import GradientKind, GradientSpec


def linear_axis(size: int, rotation: float) -> tuple[float, float, float, float]:
    """Endpoints (x0, y0, x1, y1) of a linear gradient rotated about the box center."""
    angle = math.radians(rotation)
    half = size / 2
    dx, dy = math.cos(angle) * half, math.sin(angle) * half
    return half - dx, half - dy, half + dx, half + dy


def gradient_positions(spec: GradientSpec, size: int) -> np.ndarray:
    """Gradient parameter t in [0, 1] for every pixel center, shape (size, size)."""
    coords = np.arange(size, dtype=np.float64) + 0.5
    xs, ys = np.meshgrid(coords, coords)

    if spec.kind is GradientKind.LINEAR:
        x0, y0, x1, y1 = linear_axis(size, spec.rotation)
        ax, ay = x1 - x0, y1 - y0
        length_sq = ax * ax + ay * ay
        if length_sq == 0:
            return np.zeros((size, size))
        t = ((xs - x0) * ax + (ys - y0) * ay) / length_sq
    else:
        radius = size / 2
        if radius == 0:
            return np.zeros((size, size))
        t = np.hypot(xs - radius, ys - radius) / radius
    return np.clip(t, 0.0, 1.0)


def render_gradient(spec: GradientSpec, size: int) -> Image.Image:
    """RGBA image of the gradient; stops are interpolated per channel and held past the ends."""
    t = gradient_positions(spec, size)
    offsets = np.array([s.offset for s in spec.stops], dtype=np.float64)
    colors = np.array([s.rgba for s in spec.stops], dtype=np.float64)

    out = np.empty((size, size, 4), dtype=np.uint8)
    for channel in range(4):
        values = np.interp(t, offsets, colors[:, channel])
        out[..., channel] = np.clip(np.rint(values), 0, 255).astype(np.uint8)
    return Image.fromarray(out)
