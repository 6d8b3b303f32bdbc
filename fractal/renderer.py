"""Rendering primitives for fractal frames."""

from __future__ import annotations

import logging
import math
import os
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np

from .errors import ConfigurationError, RenderError

logger = logging.getLogger(__name__)

ColoringFunction = Callable[[complex], Any]


class ColorMode(str, Enum):
    """How a coloring function's result is stored in the raster."""

    INDEXED = "indexed"
    DIRECT = "direct"


@dataclass(frozen=True)
class PlaneWindow:
    """Rectangular region of the complex plane mapped onto a raster."""

    x_center: float
    y_center: float
    width: float
    height: float

    def __post_init__(self) -> None:
        values = (self.x_center, self.y_center, self.width, self.height)
        if not all(math.isfinite(v) for v in values):
            raise ConfigurationError(f"plane window must be finite, got {values}")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"plane window must have positive extent, got {self.width}x{self.height}"
            )

    def zoomed(self, factor: float) -> PlaneWindow:
        return replace(self, width=self.width * factor, height=self.height * factor)


@dataclass(frozen=True)
class RasterDimensions:
    """Pixel dimensions shared by every raster of a render."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if int(self.width) != self.width or int(self.height) != self.height:
            raise ConfigurationError(f"raster dimensions must be integers, got {self.width}x{self.height}")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(f"raster dimensions must be positive, got {self.width}x{self.height}")


def new_raster(dims: RasterDimensions, mode: ColorMode = ColorMode.INDEXED) -> np.ndarray:
    """Allocate an empty raster, indexed ``[y, x]``."""

    if mode is ColorMode.DIRECT:
        return np.zeros((dims.height, dims.width, 3), dtype=np.uint8)
    return np.zeros((dims.height, dims.width), dtype=np.uint8)


def default_slice_width(img_width: int) -> int:
    """Slice width giving roughly one slice per available CPU."""

    return max(1, img_width // (os.cpu_count() or 1))


def slice_bounds(img_width: int, slice_width: int) -> list[tuple[int, int]]:
    """Partition ``[0, img_width)`` into contiguous ``[lb, ub)`` column ranges."""

    if slice_width < 1:
        raise ConfigurationError(f"slice width must be at least 1, got {slice_width}")
    return [(lb, min(lb + slice_width, img_width)) for lb in range(0, img_width, slice_width)]


def pixel_to_plane(dims: RasterDimensions, window: PlaneWindow, px: float, py: float) -> complex:
    """Map a pixel to its point on the complex plane."""

    x = window.x_center + (px / dims.width - 0.5) * window.width
    y = window.y_center + (py / dims.height - 0.5) * window.height
    return complex(x, y)


def grid_evaluator(coloring_fn: ColoringFunction) -> Optional[Callable[[np.ndarray], np.ndarray]]:
    """The coloring function's whole-slice evaluator, if it has an enabled one."""

    if not getattr(coloring_fn, "vectorized", True):
        return None
    return getattr(coloring_fn, "evaluate_grid", None)


def _slice_points(dims: RasterDimensions, window: PlaneWindow, lb: int, ub: int) -> np.ndarray:
    px = np.arange(lb, ub, dtype=np.float64)
    py = np.arange(dims.height, dtype=np.float64)
    xs = window.x_center + (px / dims.width - 0.5) * window.width
    ys = window.y_center + (py / dims.height - 0.5) * window.height
    points = np.empty((dims.height, ub - lb), dtype=np.complex128)
    points.real = xs[np.newaxis, :]
    points.imag = ys[:, np.newaxis]
    return points


class TileRenderer:
    """Fill a raster by evaluating a coloring function over vertical slices.

    Slices write disjoint column ranges of the same raster, so they run
    concurrently without locking. ``render`` returns once every slice is done.
    """

    def __init__(
        self,
        dims: RasterDimensions,
        window: PlaneWindow,
        *,
        mode: ColorMode = ColorMode.INDEXED,
        executor: Optional[Executor] = None,
    ) -> None:
        self.dims = dims
        self.window = window
        self.mode = mode
        self.executor = executor

    def reset(self, window: PlaneWindow) -> TileRenderer:
        self.window = window
        return self

    def render_slice(self, raster: np.ndarray, lb: int, ub: int, coloring_fn: ColoringFunction) -> None:
        """Color every pixel of the columns ``[lb, ub)``."""

        evaluate_grid = grid_evaluator(coloring_fn)
        if evaluate_grid is not None:
            raster[:, lb:ub] = evaluate_grid(_slice_points(self.dims, self.window, lb, ub))
            return

        dims, window = self.dims, self.window
        for py in range(dims.height):
            y = window.y_center + (py / dims.height - 0.5) * window.height
            row = raster[py]
            for px in range(lb, ub):
                x = window.x_center + (px / dims.width - 0.5) * window.width
                row[px] = coloring_fn(complex(x, y))

    def render(
        self,
        coloring_fn: ColoringFunction,
        slice_width: Optional[int] = None,
        raster: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Render the window into ``raster`` (allocated if omitted) and return it."""

        if slice_width is None:
            slice_width = default_slice_width(self.dims.width)
        bounds = slice_bounds(self.dims.width, slice_width)
        if raster is None:
            raster = new_raster(self.dims, self.mode)

        logger.debug("rendering %s into %d slice(s) of width %d", self.window, len(bounds), slice_width)
        if self.executor is not None:
            self._fan_out(self.executor, raster, bounds, coloring_fn)
        else:
            with ThreadPoolExecutor(max_workers=min(len(bounds), os.cpu_count() or 1)) as executor:
                self._fan_out(executor, raster, bounds, coloring_fn)
        return raster

    def _fan_out(
        self,
        executor: Executor,
        raster: np.ndarray,
        bounds: list[tuple[int, int]],
        coloring_fn: ColoringFunction,
    ) -> None:
        futures = [executor.submit(self.render_slice, raster, lb, ub, coloring_fn) for lb, ub in bounds]
        wait(futures)
        for (lb, ub), future in zip(bounds, futures):
            exc = future.exception()
            if exc is not None:
                raise RenderError(f"coloring failed in slice [{lb}, {ub})") from exc


def render_image(
    dims: RasterDimensions,
    window: PlaneWindow,
    coloring_fn: ColoringFunction,
    *,
    mode: ColorMode = ColorMode.INDEXED,
    slice_width: Optional[int] = None,
) -> np.ndarray:
    """Render a single standalone image."""

    logger.info("rendering %dx%d image of %s", dims.width, dims.height, window)
    return TileRenderer(dims, window, mode=mode).render(coloring_fn, slice_width)
