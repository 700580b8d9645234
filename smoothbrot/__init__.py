"""Public API for smoothed Mandelbrot rendering."""

from .config import RenderConfig, lambda_output_path, load_config, running_on_lambda
from .palette import (
    AUTO,
    DEFAULT_STOPS,
    ColorStop,
    Palette,
    build_palette,
    cosine_interpolation,
    interpolate_colors,
    linear_interpolation,
    pack_rgba,
    resolve_steps,
    unpack_rgba,
)
from .renderer import (
    RenderResult,
    ViewportSpec,
    Window,
    axis_coordinates,
    compute_window,
    pixel_to_complex,
    render,
)
from .sampler import SampleResult, sample, sample_grid, smooth_value

__all__ = [
    "AUTO",
    "ColorStop",
    "DEFAULT_STOPS",
    "Palette",
    "RenderConfig",
    "RenderResult",
    "SampleResult",
    "ViewportSpec",
    "Window",
    "axis_coordinates",
    "build_palette",
    "compute_window",
    "cosine_interpolation",
    "interpolate_colors",
    "lambda_output_path",
    "linear_interpolation",
    "load_config",
    "pack_rgba",
    "pixel_to_complex",
    "render",
    "resolve_steps",
    "running_on_lambda",
    "sample",
    "sample_grid",
    "smooth_value",
    "unpack_rgba",
]
