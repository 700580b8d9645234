import os
import sys
import time
import warnings
from dataclasses import replace
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler_ in tf.get_logger().handlers:
        handler_.setLevel("ERROR")

import PIL.Image
from matplotlib import colormaps as _mpl_colormaps

from smoothbrot import (
    AUTO,
    DEFAULT_STOPS,
    ColorStop,
    RenderConfig,
    build_palette,
    lambda_output_path,
    load_config,
    render,
    running_on_lambda,
)

log("TensorFlow version: %s" % tf.__version__)

from argparse import ArgumentParser


def get_colormap(name):
    return _mpl_colormaps[name]


def colormap_stops(name: str, count: int = 16) -> tuple[ColorStop, ...]:
    """Sample ``count`` evenly spaced stops from a matplotlib colormap."""

    cmap = get_colormap(name)
    rgba = np.uint8(np.clip(np.asarray(cmap(np.linspace(0.0, 1.0, count))) * 255, 0, 255))
    return tuple(ColorStop(tuple(int(c) for c in row), AUTO) for row in rgba)


def build_parser():
    parser = ArgumentParser(description="Render a smoothly colored Mandelbrot image.")

    parser.add_argument('--color-step', type=float,
                        dest='color_step', help='number of colors in the interpolated palette (raised to MAX_ITERATIONS if lower)',
                        metavar='COLOR_STEP')

    parser.add_argument('--x-center', type=float,
                        dest='center_x', help='real part of the window center',
                        metavar='X_CENTER')

    parser.add_argument('--y-center', type=float,
                        dest='center_y', help='imaginary part of the window center',
                        metavar='Y_CENTER')

    parser.add_argument('--width', type=int,
                        dest='width', help='image width in pixels',
                        metavar='WIDTH')

    parser.add_argument('--height', type=int,
                        dest='height', help='image height in pixels',
                        metavar='HEIGHT')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iteration', help='escape-time iteration bound',
                        metavar='MAX_ITERATIONS')

    parser.add_argument('--escape-radius', type=float,
                        dest='escape_radius', help='span of the window in the complex plane',
                        metavar='ESCAPE_RADIUS')

    parser.add_argument('--output', dest='filename', type=str,
                        help='destination image file. Defaults to $FILENAME or "mandelbrot.png".')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for the image. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='build the palette from a matplotlib colormap (e.g. "viridis") instead of the built-in stops',
                        metavar='COLORMAP')

    parser.add_argument('--workers', type=int,
                        dest='workers', help='number of threads rendering rows (defaults to the CPU count)',
                        metavar='WORKERS')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics and row progress.')

    return parser


_CONFIG_FLAGS = (
    "color_step",
    "center_x",
    "center_y",
    "width",
    "height",
    "max_iteration",
    "escape_radius",
    "filename",
)


def resolve_config(opt, parser: ArgumentParser, environ=None) -> RenderConfig:
    """Combine defaults, environment variables and command-line flags."""

    try:
        config = load_config(environ)
        overrides = {name: getattr(opt, name) for name in _CONFIG_FLAGS if getattr(opt, name, None) is not None}
        config = replace(config, **overrides)
    except ValueError as exc:
        parser.error(str(exc))

    if opt.workers is not None and opt.workers <= 0:
        parser.error("--workers must be a positive integer.")
    return config


_NO_ALPHA_FORMATS = {"JPEG", "PPM"}


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    if pil_format in _NO_ALPHA_FORMATS and image.mode != "RGB":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def _print_progress(completed: int, total: int) -> None:
    print("row {0} out of {1}".format(completed, total), end='\r')


def run(
    config: RenderConfig,
    output_path: Path,
    *,
    stops=DEFAULT_STOPS,
    image_format: str = "png",
    workers=None,
) -> Path:
    """Render ``config`` and write the image to ``output_path``."""

    start = time.perf_counter()

    palette = build_palette(stops, config.palette_size)
    log("palette: %d colors from %d stops" % (len(palette), len(stops)))
    if len(palette) == 0:
        log("empty palette, skipping render")

    result = render(
        config.viewport(),
        palette,
        workers=workers,
        progress=_print_progress if VERBOSE else None,
    )
    log("window: x=[%.6g, %.6g] y=[%.6g, %.6g]" % (
        result.window.x_min, result.window.x_max, result.window.y_min, result.window.y_max))

    write_single_image(PIL.Image.fromarray(result.pixels), output_path, image_format)

    print("rendering took %.3fs" % (time.perf_counter() - start))
    print("\n\nMandelbrot set rendered into `%s`" % output_path)
    return output_path


def _log_lambda_environment(environ) -> None:
    print("Seems like running on Lambda: Funcname %s, Mem %s, Region %s" % (
        environ.get("AWS_LAMBDA_FUNCTION_NAME"),
        environ.get("AWS_LAMBDA_FUNCTION_MEMORY_SIZE"),
        environ.get("AWS_REGION", ""),
    ))


def handler(event, context):
    """AWS Lambda entry point; configuration comes from the environment only."""

    config = load_config(os.environ)
    _log_lambda_environment(os.environ)
    output_path = run(config, lambda_output_path(config.filename))
    return {
        "filename": str(output_path),
        "width": config.width,
        "height": config.height,
    }


def main():
    parser = build_parser()
    opt = parser.parse_args()

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    config = resolve_config(opt, parser)

    stops = DEFAULT_STOPS
    if opt.colormap:
        try:
            stops = colormap_stops(opt.colormap)
        except KeyError:
            parser.error(f"Unknown colormap '{opt.colormap}'.")

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    if running_on_lambda(os.environ):
        _log_lambda_environment(os.environ)
        output_path = lambda_output_path(config.filename)
    else:
        output_path = Path(config.filename).expanduser().resolve()

    run(config, output_path, stops=stops, image_format=image_format, workers=opt.workers)


if __name__ == '__main__':
    main()
