"""
Tests for the command-line script and the Lambda handler.

Run with: pytest tests/test_cli.py -v
"""

import importlib.util
import sys
from pathlib import Path

import PIL.Image
import pytest

import render
from smoothbrot import AUTO, RenderConfig

GALLERY_SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "generate_cli_examples.py"


def _load_gallery():
    found = importlib.util.spec_from_file_location("generate_cli_examples", GALLERY_SCRIPT)
    module = importlib.util.module_from_spec(found)
    sys.modules[found.name] = module
    found.loader.exec_module(module)
    return module


generate_cli_examples = _load_gallery()

LAMBDA_VARS = ("AWS_LAMBDA_FUNCTION_NAME", "AWS_LAMBDA_FUNCTION_MEMORY_SIZE")
CONFIG_VARS = ("COLORSTEP", "XPOS", "YPOS", "WIDTH", "HEIGHT", "MAXITERATION", "ESCAPERADIUS", "FILENAME")


@pytest.fixture
def clean_env(monkeypatch):
    for name in LAMBDA_VARS + CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


SMALL_ARGS = ["--width", "8", "--height", "6", "--max-iterations", "20", "--color-step", "40"]


class TestParser:
    """Tests for argument parsing and configuration precedence"""

    def test_flags_default_to_unset(self):
        opt = render.build_parser().parse_args([])
        assert opt.width is None
        assert opt.center_x is None
        assert opt.filename is None
        assert opt.format == "png"

    def test_defaults_without_flags_or_environment(self, clean_env):
        parser = render.build_parser()
        config = render.resolve_config(parser.parse_args([]), parser)
        assert config == RenderConfig()

    def test_flags_override_environment(self, clean_env):
        clean_env.setenv("WIDTH", "64")
        clean_env.setenv("HEIGHT", "16")
        parser = render.build_parser()
        config = render.resolve_config(parser.parse_args(["--width", "32"]), parser)
        assert config.width == 32
        assert config.height == 16

    def test_invalid_environment_is_a_usage_error(self, clean_env):
        clean_env.setenv("MAXITERATION", "lots")
        parser = render.build_parser()
        with pytest.raises(SystemExit):
            render.resolve_config(parser.parse_args([]), parser)

    def test_invalid_flag_value_is_a_usage_error(self, clean_env):
        parser = render.build_parser()
        with pytest.raises(SystemExit):
            render.resolve_config(parser.parse_args(["--width", "0"]), parser)

    @pytest.mark.parametrize("value", ["nan", "inf"])
    def test_non_finite_color_step_is_a_usage_error(self, clean_env, value):
        parser = render.build_parser()
        with pytest.raises(SystemExit):
            render.resolve_config(parser.parse_args(["--color-step", value]), parser)

    def test_non_positive_workers(self, clean_env):
        parser = render.build_parser()
        with pytest.raises(SystemExit):
            render.resolve_config(parser.parse_args(["--workers", "0"]), parser)

    def test_example_gallery_arguments_parse(self):
        parser = render.build_parser()
        for example in generate_cli_examples.EXAMPLES:
            parser.parse_args(example.full_args()[2:])


class TestColormapStops:
    """Tests for matplotlib-derived color stops"""

    def test_viridis(self):
        stops = render.colormap_stops("viridis")
        assert len(stops) == 16
        assert all(stop.step is AUTO for stop in stops)
        assert all(stop.color[3] == 255 for stop in stops)

    def test_unknown_colormap(self):
        with pytest.raises(KeyError):
            render.colormap_stops("not-a-colormap")


class TestRun:
    """Tests for rendering to a file"""

    def test_writes_png(self, tmp_path):
        config = RenderConfig(width=8, height=6, max_iteration=20, color_step=40)
        output = render.run(config, tmp_path / "brot.png")
        with PIL.Image.open(output) as image:
            assert image.size == (8, 6)
            assert image.mode == "RGBA"

    def test_creates_parent_directories(self, tmp_path):
        config = RenderConfig(width=4, height=4, max_iteration=10, color_step=10)
        output = render.run(config, tmp_path / "nested" / "dir" / "brot.png")
        assert output.is_file()

    @pytest.mark.parametrize("image_format, pil_format", [("jpg", "JPEG"), ("jpeg", "JPEG"), ("ppm", "PPM")])
    def test_formats_without_alpha(self, tmp_path, image_format, pil_format):
        """Formats with no alpha channel are written as RGB"""
        config = RenderConfig(width=8, height=6, max_iteration=20, color_step=40)
        output = render.run(config, tmp_path / ("brot." + image_format), image_format=image_format)
        with PIL.Image.open(output) as image:
            assert image.format == pil_format
            assert image.mode == "RGB"
            assert image.size == (8, 6)

    def test_empty_palette_writes_blank_image(self, tmp_path):
        config = RenderConfig(width=4, height=4, max_iteration=10, color_step=10)
        output = render.run(config, tmp_path / "blank.png", stops=())
        with PIL.Image.open(output) as image:
            assert image.getextrema() == ((0, 0), (0, 0), (0, 0), (0, 0))


class TestMain:
    """Tests for the script entry point"""

    def test_main_writes_output(self, clean_env, tmp_path, capsys):
        output = tmp_path / "main.png"
        clean_env.setattr(sys, "argv", ["render.py", *SMALL_ARGS, "--output", str(output)])
        render.main()
        assert output.is_file()
        assert "Mandelbrot set rendered into" in capsys.readouterr().out

    def test_main_uses_environment(self, clean_env, tmp_path):
        output = tmp_path / "env.png"
        clean_env.setenv("FILENAME", str(output))
        clean_env.setenv("WIDTH", "5")
        clean_env.setenv("HEIGHT", "3")
        clean_env.setenv("MAXITERATION", "15")
        clean_env.setattr(sys, "argv", ["render.py"])
        render.main()
        with PIL.Image.open(output) as image:
            assert image.size == (5, 3)

    def test_main_with_colormap_and_format(self, clean_env, tmp_path):
        output = tmp_path / "map.webp"
        clean_env.setattr(
            sys, "argv",
            ["render.py", *SMALL_ARGS, "--colormap", "inferno", "--format", "webp", "--output", str(output)],
        )
        render.main()
        with PIL.Image.open(output) as image:
            assert image.format == "WEBP"

    def test_main_writes_jpeg(self, clean_env, tmp_path):
        output = tmp_path / "brot.jpg"
        clean_env.setattr(sys, "argv", ["render.py", *SMALL_ARGS, "--format", "jpg", "--output", str(output)])
        render.main()
        with PIL.Image.open(output) as image:
            assert image.format == "JPEG"
            assert image.mode == "RGB"

    def test_unknown_colormap_is_a_usage_error(self, clean_env, tmp_path):
        clean_env.setattr(
            sys, "argv",
            ["render.py", *SMALL_ARGS, "--colormap", "not-a-colormap", "--output", str(tmp_path / "x.png")],
        )
        with pytest.raises(SystemExit):
            render.main()


class TestLambdaHandler:
    """Tests for the Lambda entry point"""

    def test_handler(self, clean_env, tmp_path, capsys):
        clean_env.setenv("AWS_LAMBDA_FUNCTION_NAME", "brot")
        clean_env.setenv("AWS_LAMBDA_FUNCTION_MEMORY_SIZE", "1024")
        clean_env.setenv("WIDTH", "6")
        clean_env.setenv("HEIGHT", "4")
        clean_env.setenv("MAXITERATION", "12")
        clean_env.setenv("FILENAME", "lambda.png")
        clean_env.setattr(render, "lambda_output_path", lambda filename: tmp_path / filename)

        response = render.handler({}, None)

        assert response == {"filename": str(tmp_path / "lambda.png"), "width": 6, "height": 4}
        assert (tmp_path / "lambda.png").is_file()
        assert "Seems like running on Lambda: Funcname brot, Mem 1024" in capsys.readouterr().out
