from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--x-res", "160", "--y-res", "160"]


@dataclass
class Expected:
    path: Path
    is_dir: bool = False


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[Expected]

    def full_args(self) -> list[str]:
        return [sys.executable, "render.py", *self.args]


def _single(name: str, filename: str, *args: str) -> Example:
    path = EXAMPLES_ROOT / name / filename
    return Example(name=name, args=[*BASE_ARGS, *args, "--output", str(path)], expected=[Expected(path)])


EXAMPLES: list[Example] = [
    _single("mandelbrot", "default.png"),
    _single("max-iterations", "high-iterations.png", "--max-iterations", "400"),
    _single("radius", "large-radius.png", "--radius", "100"),
    _single("origin", "shifted-seed.png", "--x0", "0.3", "--y0", "-0.2"),
    _single("julia", "julia.png", "--formula", "julia", "--x", "-1.6", "--width", "3.2", "--y", "-1.6", "--height", "3.2"),
    _single("lambda", "dendrite.png", "--formula", "julia", "--lambda-x", "0", "--lambda-y", "-1",
            "--x", "-1.6", "--width", "3.2", "--y", "-1.6", "--height", "3.2"),
    _single("colors", "blue-gold.png", "--start-color", "navy", "--end-color", "gold"),
    _single("interior-color", "black-interior.png", "--end-color", "white", "--interior-color", "black"),
    _single("lock-aspect", "locked.png", "--x-res", "256", "--lock-aspect"),
    _single("format", "custom.webp", "--format", "webp"),
    Example(
        name="zoom-gif",
        args=[*BASE_ARGS, "--frames", "8", "--zoom-factor", "0.7", "--lock-aspect",
              "--output", str(EXAMPLES_ROOT / "zoom-gif" / "zoom.gif")],
        expected=[Expected(EXAMPLES_ROOT / "zoom-gif" / "zoom.gif")],
    ),
    Example(
        name="final-zoom",
        args=[*BASE_ARGS, "--frames", "5", "--mode", "image", "--final-zoom", "1e-3", "--easing", "linear",
              "--output", str(EXAMPLES_ROOT / "final-zoom" / "target-scale.png")],
        expected=[Expected(EXAMPLES_ROOT / "final-zoom" / "target-scale.png")],
    ),
    Example(
        name="frames",
        args=[*BASE_ARGS, "--frames", "3", "--mode", "frames", "--frame-dir", str(EXAMPLES_ROOT / "frames" / "seq")],
        expected=[Expected(EXAMPLES_ROOT / "frames" / "seq", is_dir=True)],
    ),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _verify(example: Example) -> None:
    for expected in example.expected:
        if expected.is_dir:
            if not expected.path.is_dir():
                raise RuntimeError(f"Expected directory {expected.path} was not created")
            if not any(expected.path.iterdir()):
                raise RuntimeError(f"Directory {expected.path} is empty")
        elif not expected.path.is_file():
            raise RuntimeError(f"Expected file {expected.path} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _ensure_clean([EXAMPLES_ROOT / example.name])
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
