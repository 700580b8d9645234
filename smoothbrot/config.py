"""Render configuration and execution-environment detection."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Mapping, Optional

from .renderer import ViewportSpec

LAMBDA_TMP_DIR = Path("/tmp")


@dataclass(frozen=True)
class RenderConfig:
    """Immutable settings for a single render, built once at startup."""

    color_step: float = 6000.0
    center_x: float = -0.00275
    center_y: float = 0.78912
    width: int = 2048
    height: int = 2048
    max_iteration: int = 800
    escape_radius: float = 0.125689
    filename: str = "mandelbrot.png"

    def __post_init__(self) -> None:
        if not (math.isfinite(self.color_step) and self.color_step > 0):
            raise ValueError(f"color_step must be a positive finite number, got {self.color_step!r}.")
        if not self.filename:
            raise ValueError("filename must not be empty.")
        # sizes and iteration bound are validated by ViewportSpec
        self.viewport()

    @property
    def palette_size(self) -> float:
        """Palette density: never fewer colors than iterations."""

        return max(float(self.color_step), float(self.max_iteration))

    def viewport(self) -> ViewportSpec:
        return ViewportSpec(
            center_x=self.center_x,
            center_y=self.center_y,
            escape_radius=self.escape_radius,
            width=self.width,
            height=self.height,
            max_iteration=self.max_iteration,
        )


_ENV_FIELDS: tuple[tuple[str, str, Callable[[str], object]], ...] = (
    ("COLORSTEP", "color_step", float),
    ("XPOS", "center_x", float),
    ("YPOS", "center_y", float),
    ("WIDTH", "width", int),
    ("HEIGHT", "height", int),
    ("MAXITERATION", "max_iteration", int),
    ("ESCAPERADIUS", "escape_radius", float),
    ("FILENAME", "filename", str),
)


def load_config(environ: Optional[Mapping[str, str]] = None, base: Optional[RenderConfig] = None) -> RenderConfig:
    """Override ``base`` (or the defaults) with any variables set in ``environ``."""

    if environ is None:
        environ = os.environ
    config = base if base is not None else RenderConfig()

    overrides: dict[str, object] = {}
    for key, field_name, convert in _ENV_FIELDS:
        if key not in environ:
            continue
        raw = environ[key]
        try:
            overrides[field_name] = convert(raw.strip())
        except ValueError as exc:
            raise ValueError(f"Environment variable {key}={raw!r} is not a valid {convert.__name__}.") from exc

    return replace(config, **overrides) if overrides else config


def running_on_lambda(environ: Optional[Mapping[str, str]] = None) -> bool:
    if environ is None:
        environ = os.environ
    return bool(environ.get("AWS_LAMBDA_FUNCTION_NAME")) and bool(environ.get("AWS_LAMBDA_FUNCTION_MEMORY_SIZE"))


def lambda_output_path(filename: str) -> Path:
    """Lambda only allows writes below ``/tmp``."""

    return LAMBDA_TMP_DIR / Path(filename).name
