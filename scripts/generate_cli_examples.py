from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--width", "160", "--height", "160", "--max-iterations", "200", "--color-step", "600"]


@dataclass
class Example:
    name: str
    args: list[str]
    output: Path

    def full_args(self) -> list[str]:
        return ["python", "render.py", *self.args, "--output", str(self.output)]


def _example(name: str, filename: str, *extra: str) -> Example:
    return Example(name=name, args=[*BASE_ARGS, *extra], output=EXAMPLES_ROOT / name / filename)


EXAMPLES: list[Example] = [
    _example("defaults", "default-view.png"),
    _example("color-step", "dense-palette.png", "--color-step", "6000"),
    _example("x-center", "seahorse-valley.png", "--x-center", "-0.7453", "--y-center", "0.1127", "--escape-radius", "0.01"),
    _example("y-center", "upper-plane.png", "--y-center", "0.35", "--escape-radius", "1.5"),
    _example("width", "wide.png", "--width", "240"),
    _example("height", "short.png", "--height", "96"),
    _example("max-iterations", "high-iterations.png", "--max-iterations", "1500"),
    _example("escape-radius", "wide-window.png", "--escape-radius", "2.5", "--x-center", "-0.75", "--y-center", "0"),
    _example("colormap", "inferno.png", "--colormap", "inferno"),
    _example("format", "custom.webp", "--format", "webp"),
    _example("workers", "single-thread.png", "--workers", "1"),
    _example("verbose", "diagnostic.png", "--verbose"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            shutil.rmtree(path)


def _prepare(example: Example) -> None:
    _ensure_clean([example.output.parent])
    example.output.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    if not example.output.is_file():
        raise RuntimeError(f"Expected file {example.output} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
