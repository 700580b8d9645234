"""Parallel rendering of smoothed Mandelbrot frames."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .palette import Palette, linear_interpolation, unpack_rgba
from .sampler import sample_grid

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class ViewportSpec:
    """Window of the complex plane and the pixel grid it is mapped onto."""

    center_x: float
    center_y: float
    escape_radius: float
    width: int
    height: int
    max_iteration: int

    def __post_init__(self) -> None:
        for name in ("width", "height", "max_iteration"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}.")


@dataclass(frozen=True)
class Window:
    """Resolved bounds of the sampled rectangle."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float
    width: int
    height: int


@dataclass(frozen=True, eq=False)
class RenderResult:
    pixels: np.ndarray
    window: Window


def compute_window(viewport: ViewportSpec) -> Window:
    """Map the viewport onto the complex plane, corrected by ``height/width``.

    The upper bounds take the absolute value of ``center + span/2`` while the
    lower bounds do not, so a negative center yields an asymmetric window.
    """

    ratio = viewport.height / viewport.width
    x_min = viewport.center_x - viewport.escape_radius / 2.0
    x_max = abs(viewport.center_x + viewport.escape_radius / 2.0)
    y_min = viewport.center_y - viewport.escape_radius * ratio / 2.0
    y_max = abs(viewport.center_y + viewport.escape_radius * ratio / 2.0)
    return Window(
        x_min=float(x_min),
        x_max=float(x_max),
        y_min=float(y_min),
        y_max=float(y_max),
        width=int(viewport.width),
        height=int(viewport.height),
    )


def _axis_value(low: float, high: float, index: int, count: int) -> float:
    if count <= 1:
        return low
    if index == count - 1:
        return high
    return low + (high - low) * index / (count - 1)


def axis_coordinates(low: float, high: float, count: int) -> np.ndarray:
    """Sample positions along one axis; the last sample is exactly ``high``."""

    if count <= 1:
        return np.array([low], dtype=np.float64)
    indices = np.arange(count, dtype=np.float64)
    coords = low + (high - low) * indices / (count - 1)
    coords[-1] = high
    return coords


def pixel_to_complex(window: Window, ix: int, iy: int) -> tuple[float, float]:
    x = _axis_value(window.x_min, window.x_max, ix, window.width)
    y = _axis_value(window.y_min, window.y_max, iy, window.height)
    return x, y


def _colorize(norm: np.ndarray, counts: np.ndarray, max_iteration: int, palette: Palette) -> tuple[np.ndarray, np.ndarray]:
    """Return the mask of colored pixels and their RGBA values."""

    with np.errstate(divide="ignore", invalid="ignore"):
        smoothed = (max_iteration - counts).astype(np.float64) + np.log(norm)
        magnitude = np.abs(smoothed)
        # NaN compares false, so non-finite values leave the pixel untouched
        mask = magnitude < len(palette) - 1

    index = magnitude[mask].astype(np.int64)
    c1 = palette.packed[index]
    c2 = palette.packed[index + 1]
    return mask, unpack_rgba(linear_interpolation(c1, c2, smoothed[mask]))


def _render_row(
    pixels: np.ndarray,
    iy: int,
    xs: np.ndarray,
    y: float,
    max_iteration: int,
    palette: Palette,
) -> int:
    norm, counts = sample_grid(xs, np.full_like(xs, y), max_iteration)
    mask, colors = _colorize(norm, counts, max_iteration, palette)
    pixels[iy, mask] = colors
    return iy


def render(
    viewport: ViewportSpec,
    palette: Palette,
    *,
    workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> RenderResult:
    """Render ``viewport`` with ``palette`` using one task per scanline.

    Each task writes only its own row of the buffer. The call returns once
    every row has completed. An empty palette skips rendering and returns the
    zero-initialized buffer.
    """

    window = compute_window(viewport)
    pixels = np.zeros((viewport.height, viewport.width, 4), dtype=np.uint8)

    if len(palette) == 0:
        return RenderResult(pixels=pixels, window=window)

    xs = axis_coordinates(window.x_min, window.x_max, viewport.width)
    ys = axis_coordinates(window.y_min, window.y_max, viewport.height)

    if workers is None:
        workers = min(viewport.height, os.cpu_count() or 1)
    workers = max(int(workers), 1)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="row") as pool:
        futures = [
            pool.submit(_render_row, pixels, iy, xs, float(ys[iy]), viewport.max_iteration, palette)
            for iy in range(viewport.height)
        ]
        for completed, future in enumerate(as_completed(futures), start=1):
            future.result()
            if progress is not None:
                progress(completed, viewport.height)

    return RenderResult(pixels=pixels, window=window)
