"""Escape-time functions and the coloring functions built from them."""

from __future__ import annotations

import cmath
import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import tensorflow as tf

from .errors import ConfigurationError
from .palettes import ColorPalette
from .renderer import ColorMode


@tf.function
def _escape_step(
    i: tf.Tensor,
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    ns: tf.Tensor,
    active: tf.Tensor,
    exponent: int,
    radius_sq: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single iteration for points that have not escaped."""

    wr, wi = zr, zi
    for _ in range(exponent - 1):
        wr, wi = wr * zr - wi * zi, wr * zi + wi * zr
    zr = tf.where(active, wr + cr, zr)
    zi = tf.where(active, wi + ci, zi)
    escaped = tf.logical_and(active, zr * zr + zi * zi > radius_sq)
    ns = tf.where(escaped, i, ns)
    return zr, zi, ns, tf.logical_and(active, tf.logical_not(escaped))


@tf.function(reduce_retracing=True)
def _escape_run(
    zr: tf.Tensor,
    zi: tf.Tensor,
    cr: tf.Tensor,
    ci: tf.Tensor,
    max_iterations: tf.Tensor,
    exponent: int,
    radius_sq: tf.Tensor,
) -> tf.Tensor:
    """Iterate the map with a TensorFlow while loop, returning escape iterations."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    ns = tf.fill(tf.shape(zr), max_iterations)
    active = tf.ones_like(ns, tf.bool)

    def cond(i, zr, zi, ns, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, zr, zi, ns, active):
        zr, zi, ns, active = _escape_step(i, zr, zi, cr, ci, ns, active, exponent, radius_sq)
        return i + 1, zr, zi, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, zr, zi, ns, active))
    return ns


@dataclass(frozen=True)
class MultibrotEscape:
    """``z -> z**exponent + c`` over the parameter plane: each point is ``c``.

    With the defaults this is the Mandelbrot set.
    """

    exponent: int = 2
    max_iters: int = 1000
    escape_radius: float = 2.0
    init_iterate: complex = 0j

    def __post_init__(self) -> None:
        if self.exponent < 2:
            raise ConfigurationError(f"exponent must be at least 2, got {self.exponent}")
        if self.max_iters < 1:
            raise ConfigurationError(f"max_iters must be at least 1, got {self.max_iters}")
        if not math.isfinite(self.escape_radius) or self.escape_radius <= 0:
            raise ConfigurationError(f"escape radius must be positive, got {self.escape_radius}")

    def _start(self, point: complex) -> tuple[complex, complex]:
        return complex(self.init_iterate), point

    def evaluate(self, point: complex) -> int:
        """Iteration at which ``|z|`` first exceeds the escape radius, or ``max_iters``."""

        z, c = self._start(point)
        zr, zi, cr, ci = z.real, z.imag, c.real, c.imag
        radius_sq = self.escape_radius * self.escape_radius
        for n in range(self.max_iters):
            wr, wi = zr, zi
            for _ in range(self.exponent - 1):
                wr, wi = wr * zr - wi * zi, wr * zi + wi * zr
            zr, zi = wr + cr, wi + ci
            if zr * zr + zi * zi > radius_sq:
                return n
        return self.max_iters

    def _start_grid(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return np.full(points.shape, complex(self.init_iterate), dtype=np.complex128), points

    def evaluate_grid(self, points: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`evaluate` over an array of complex points."""

        points = np.asarray(points, dtype=np.complex128)
        zs, cs = self._start_grid(points)
        ns = _escape_run(
            tf.constant(zs.real),
            tf.constant(zs.imag),
            tf.constant(cs.real),
            tf.constant(cs.imag),
            tf.constant(self.max_iters, dtype=tf.int32),
            self.exponent,
            tf.constant(self.escape_radius * self.escape_radius, dtype=tf.float64),
        )
        return ns.numpy()


@dataclass(frozen=True)
class JuliaEscape(MultibrotEscape):
    """``z -> z**exponent + c`` over the dynamical plane: each point is ``z0``."""

    c: complex = 0j

    def _start(self, point: complex) -> tuple[complex, complex]:
        return point, complex(self.c)

    def _start_grid(self, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        return points, np.full(points.shape, complex(self.c), dtype=np.complex128)


def sweep_parameter(radius: float, frame_id: int, n_frames: int) -> complex:
    """Julia parameter for ``frame_id`` of a full circular sweep of ``radius``."""

    return cmath.rect(radius, frame_id * 2 * math.pi / n_frames)


@dataclass(frozen=True)
class EscapeColoring:
    """Coloring function: escape iterations looked up in a palette.

    With ``vectorized`` set, the tile renderer hands whole slices to
    :meth:`evaluate_grid` (the TensorFlow kernel) instead of calling the
    instance once per pixel.
    """

    escape: MultibrotEscape
    palette: ColorPalette
    mode: ColorMode = ColorMode.INDEXED
    vectorized: bool = True

    def __call__(self, point: complex) -> Any:
        iters = self.escape.evaluate(point)
        if self.mode is ColorMode.DIRECT:
            return self.palette.pixel_color(iters)
        return self.palette.pixel_color_idx(iters)

    def evaluate_grid(self, points: np.ndarray) -> np.ndarray:
        indices = self.palette.lookup_idx(self.escape.evaluate_grid(points))
        if self.mode is ColorMode.DIRECT:
            return np.asarray(self.palette.palette(), dtype=np.uint8)[indices]
        return indices
