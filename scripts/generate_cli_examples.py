from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--mode", "image", "--x-res", "160", "--y-res", "160", "--max-iterations", "200"]
ANIM_ARGS = ["--x-res", "96", "--y-res", "96", "--max-iterations", "200"]


@dataclass
class Expected:
    path: Path
    is_dir: bool = False


@dataclass
class Example:
    name: str
    args: list[str]
    expected: list[Expected]
    clean: list[Path] | None = None

    def full_args(self) -> list[str]:
        return ["python", "render.py", *self.args]


EXAMPLES: list[Example] = [
    Example(
        name="mandelbrot",
        args=[*BASE_ARGS, "--x-center", "-0.5", "--output", str(EXAMPLES_ROOT / "mandelbrot" / "mandelbrot.png")],
        expected=[Expected(EXAMPLES_ROOT / "mandelbrot" / "mandelbrot.png")],
        clean=[EXAMPLES_ROOT / "mandelbrot"],
    ),
    Example(
        name="palette",
        args=[*BASE_ARGS, "--palette", "bw-inv", "--bw-contrast", "9", "--output", str(EXAMPLES_ROOT / "palette" / "inverted.png")],
        expected=[Expected(EXAMPLES_ROOT / "palette" / "inverted.png")],
        clean=[EXAMPLES_ROOT / "palette"],
    ),
    Example(
        name="colormap",
        args=[*BASE_ARGS, "--palette", "inferno", "--inside-color", "#0a3ba0", "--output", str(EXAMPLES_ROOT / "colormap" / "inferno.png")],
        expected=[Expected(EXAMPLES_ROOT / "colormap" / "inferno.png")],
        clean=[EXAMPLES_ROOT / "colormap"],
    ),
    Example(
        name="direct-color",
        args=[*BASE_ARGS, "--direct-color", "--format", "jpg", "--output", str(EXAMPLES_ROOT / "direct-color" / "direct.jpg")],
        expected=[Expected(EXAMPLES_ROOT / "direct-color" / "direct.jpg")],
        clean=[EXAMPLES_ROOT / "direct-color"],
    ),
    Example(
        name="multibrot",
        args=[*BASE_ARGS, "--exponent", "3", "--output", str(EXAMPLES_ROOT / "multibrot" / "cubic.png")],
        expected=[Expected(EXAMPLES_ROOT / "multibrot" / "cubic.png")],
        clean=[EXAMPLES_ROOT / "multibrot"],
    ),
    Example(
        name="julia",
        args=[*BASE_ARGS, "--julia-cx", "-0.8", "--julia-cy", "0.156", "--x-width", "3", "--y-width", "3", "--output", str(EXAMPLES_ROOT / "julia" / "julia.png")],
        expected=[Expected(EXAMPLES_ROOT / "julia" / "julia.png")],
        clean=[EXAMPLES_ROOT / "julia"],
    ),
    Example(
        name="zoom",
        args=[
            *ANIM_ARGS,
            "--mode",
            "gif",
            "--frames",
            "12",
            "--x-center",
            "-0.743643",
            "--y-center",
            "0.131825",
            "--zoom-factor",
            "0.8",
            "--progress",
            "--output",
            str(EXAMPLES_ROOT / "zoom" / "zoom.gif"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "zoom" / "zoom.gif")],
        clean=[EXAMPLES_ROOT / "zoom"],
    ),
    Example(
        name="final-zoom",
        args=[
            *ANIM_ARGS,
            "--mode",
            "gif",
            "--mode",
            "image",
            "--frames",
            "6",
            "--x-center",
            "-1.401155",
            "--final-zoom",
            "1e-3",
            "--output",
            str(EXAMPLES_ROOT / "final-zoom"),
        ],
        expected=[
            Expected(EXAMPLES_ROOT / "final-zoom" / "render.gif"),
            Expected(EXAMPLES_ROOT / "final-zoom" / "render.png"),
        ],
        clean=[EXAMPLES_ROOT / "final-zoom"],
    ),
    Example(
        name="sweep",
        args=[
            *ANIM_ARGS,
            "--mode",
            "gif",
            "--frames",
            "16",
            "--zoom-factor",
            "1",
            "--x-width",
            "3",
            "--y-width",
            "3",
            "--sweep-radius",
            "0.7885",
            "--palette",
            "gb",
            "--output",
            str(EXAMPLES_ROOT / "sweep" / "circle.gif"),
        ],
        expected=[Expected(EXAMPLES_ROOT / "sweep" / "circle.gif")],
        clean=[EXAMPLES_ROOT / "sweep"],
    ),
    Example(
        name="sequential",
        args=[*ANIM_ARGS, "--mode", "gif", "--frames", "4", "--max-jobs", "0", "--per-point", "--output", str(EXAMPLES_ROOT / "sequential" / "sequential.gif")],
        expected=[Expected(EXAMPLES_ROOT / "sequential" / "sequential.gif")],
        clean=[EXAMPLES_ROOT / "sequential"],
    ),
    Example(
        name="frames",
        args=[*ANIM_ARGS, "--mode", "frames", "--frames", "3", "--slice-width", "8", "--frame-dir", str(EXAMPLES_ROOT / "frames" / "frames")],
        expected=[Expected(EXAMPLES_ROOT / "frames" / "frames", is_dir=True)],
        clean=[EXAMPLES_ROOT / "frames"],
    ),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()


def _prepare(example: Example) -> None:
    clean = example.clean or []
    _ensure_clean(clean)
    for expected in example.expected:
        expected.path.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    for expected in example.expected:
        if expected.is_dir:
            if not expected.path.is_dir():
                raise RuntimeError(f"Expected directory {expected.path} was not created")
            if not any(expected.path.iterdir()):
                raise RuntimeError(f"Directory {expected.path} is empty")
        else:
            if not expected.path.is_file():
                raise RuntimeError(f"Expected file {expected.path} was not created")


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
