"""Palette construction from color stops."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

AUTO = None

_MASK32 = np.uint64(0xFFFFFFFF)
_RGB_MASK = np.uint32(0xFFFFFF00)
_OPAQUE = np.uint32(0xFF)


@dataclass(frozen=True)
class ColorStop:
    """A color anchored at a normalized position along the gradient.

    ``step`` is either a position in ``[0, 1]`` or :data:`AUTO`, in which case
    the position is derived from the stop's index when the palette is built.
    """

    color: tuple[int, int, int, int]
    step: Optional[float] = AUTO


DEFAULT_STOPS: tuple[ColorStop, ...] = (
    ColorStop((0x00, 0x04, 0x0F, 0xFF)),
    ColorStop((0x03, 0x26, 0x28, 0xFF)),
    ColorStop((0x07, 0x3E, 0x1E, 0xFF)),
    ColorStop((0x18, 0x55, 0x08, 0xFF)),
    ColorStop((0x5F, 0x6E, 0x0F, 0xFF)),
    ColorStop((0x84, 0x50, 0x19, 0xFF)),
    ColorStop((0x9B, 0x30, 0x22, 0xFF)),
    ColorStop((0xB4, 0x92, 0x2F, 0xFF)),
    ColorStop((0x94, 0xCA, 0x3D, 0xFF)),
    ColorStop((0x4F, 0xD5, 0x51, 0xFF)),
    ColorStop((0x66, 0xFF, 0xB3, 0xFF)),
    ColorStop((0x82, 0xC9, 0xE5, 0xFF)),
    ColorStop((0x9D, 0xA3, 0xEB, 0xFF)),
    ColorStop((0xD7, 0xB5, 0xF3, 0xFF)),
    ColorStop((0xFD, 0xD6, 0xF6, 0xFF)),
    ColorStop((0xFF, 0xF0, 0xF2, 0xFF)),
)


@dataclass(frozen=True, eq=False)
class Palette:
    """Dense, immutable table of colors stored as packed ``0xRRGGBBAA`` values."""

    packed: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.uint32))

    def __post_init__(self) -> None:
        packed = np.array(self.packed, dtype=np.uint32, copy=True).reshape(-1)
        packed.flags.writeable = False
        object.__setattr__(self, "packed", packed)

    @classmethod
    def empty(cls) -> "Palette":
        return cls(np.zeros(0, dtype=np.uint32))

    def __len__(self) -> int:
        return int(self.packed.shape[0])

    @property
    def colors(self) -> np.ndarray:
        """Return the palette as an ``(n, 4)`` array of uint8 RGBA rows."""

        return unpack_rgba(self.packed)


def _truncate2(value: float) -> float:
    return float(int(value * 100)) / 100


def resolve_steps(stops: Sequence[ColorStop]) -> list[float]:
    """Resolve the position of every stop, pinning the first one to 0."""

    steps: list[float] = []
    count = len(stops)
    for index, stop in enumerate(stops):
        if index == 0:
            steps.append(0.0)
        elif stop.step is AUTO:
            steps.append(_truncate2((index + 1) / count))
        else:
            steps.append(float(stop.step))
    return steps


def pack_rgba(color: Sequence[int]) -> int:
    r, g, b, a = (int(channel) & 0xFF for channel in color)
    return (r << 24) | (g << 16) | (b << 8) | a


def unpack_rgba(values) -> np.ndarray:
    """Split packed values into RGBA channels; alpha is always opaque."""

    values = np.asarray(values, dtype=np.uint64)
    rgba = np.empty(values.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = (values >> np.uint64(24)) & np.uint64(0xFF)
    rgba[..., 1] = (values >> np.uint64(16)) & np.uint64(0xFF)
    rgba[..., 2] = (values >> np.uint64(8)) & np.uint64(0xFF)
    rgba[..., 3] = 0xFF
    return rgba


def cosine_interpolation(high, low, mu):
    mu2 = (1 - np.cos(mu * math.pi)) / 2.0
    return high * (1 - mu2) + low * mu2


def linear_interpolation(c1, c2, mu) -> np.ndarray:
    """Blend packed colors with unsigned 32-bit wrap-around arithmetic.

    ``mu`` is truncated toward zero to an integer and reduced modulo
    ``2**32``, so any fractional part is discarded before blending.
    """

    c1 = np.asarray(c1, dtype=np.uint64)
    c2 = np.asarray(c2, dtype=np.uint64)
    with np.errstate(over="ignore"):
        mu = np.asarray(mu).astype(np.int64).astype(np.uint64) & _MASK32
        inverse = (np.uint64(1) - mu) & _MASK32
        return ((c1 * inverse + c2 * mu) & _MASK32).astype(np.uint32)


def interpolate_colors(
    steps: Sequence[float],
    packed_colors: Sequence[int],
    number_of_colors: float,
) -> Palette:
    """Expand resolved stops into ``floor(number_of_colors) + 1`` colors.

    Interpolation runs on the packed 32-bit value of each stop rather than per
    channel, so neighbouring channels bleed into each other near transitions.
    Tables whose lengths disagree yield an empty palette.
    """

    if len(steps) != len(packed_colors) or len(steps) < 2:
        return Palette.empty()

    steps_arr = np.asarray(steps, dtype=np.float64)
    colors_arr = np.asarray(packed_colors, dtype=np.float64)
    factor = 1.0 / number_of_colors
    positions = np.arange(int(math.floor(number_of_colors)) + 1, dtype=np.float64) * factor

    # first pair with steps[j] <= i < steps[j + 1]; unbracketed positions use the last pair
    brackets = (steps_arr[:-1] <= positions[:, None]) & (positions[:, None] < steps_arr[1:])
    found = brackets.any(axis=1)
    pair = np.where(found, brackets.argmax(axis=1), len(steps_arr) - 2)

    low_step = steps_arr[pair]
    high_step = steps_arr[pair + 1]
    with np.errstate(divide="ignore", invalid="ignore"):
        mu = (positions - low_step) / (high_step - low_step)
        values = cosine_interpolation(colors_arr[pair + 1], colors_arr[pair], mu)
        packed = values.astype(np.uint32)

    return Palette((packed & _RGB_MASK) | _OPAQUE)


def build_palette(stops: Sequence[ColorStop], number_of_colors: float) -> Palette:
    """Build the palette for ``stops`` with ``number_of_colors`` as density."""

    steps = resolve_steps(stops)
    packed = [pack_rgba(stop.color) for stop in stops]
    return interpolate_colors(steps, packed, number_of_colors)
