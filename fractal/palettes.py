"""Palettes translating escape iterations to palette indices and colors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

try:
    from matplotlib import colormaps as _mpl_colormaps
except ImportError:  # Matplotlib < 3.5
    from matplotlib import cm as _mpl_colormaps  # type: ignore

from .errors import ConfigurationError

Color = tuple[int, int, int]

BLACK: Color = (0, 0, 0)

ULTRA_FRACTAL_STOPS: tuple[Color, ...] = (
    (66, 30, 15),
    (25, 7, 26),
    (9, 1, 47),
    (4, 4, 73),
    (0, 7, 100),
    (12, 44, 138),
    (24, 82, 177),
    (57, 125, 209),
    (134, 181, 229),
    (211, 236, 248),
    (241, 233, 191),
    (248, 201, 95),
    (255, 170, 0),
    (204, 128, 0),
    (153, 87, 0),
    (106, 52, 3),
)


class ColorPalette(ABC):
    """Maps escape iteration counts onto a fixed palette.

    Points that never escape (``iters >= max_iters``) get the last entry, the
    inside color. ``precompute`` must run before the palette is used; the
    constructors of the concrete palettes call it.
    """

    def __init__(self, max_iters: int) -> None:
        if max_iters < 1:
            raise ConfigurationError(f"max_iters must be at least 1, got {max_iters}")
        self.max_iters = max_iters
        self.colors: list[Color] = []

    @abstractmethod
    def precompute(self) -> None:
        """Build ``self.colors``."""

    @abstractmethod
    def _escaped_idx(self, iters: np.ndarray) -> np.ndarray:
        """Palette indices of escaped points."""

    @property
    def inside_idx(self) -> int:
        return len(self.colors) - 1

    def palette(self) -> list[Color]:
        return self.colors

    def lookup_idx(self, iters: np.ndarray) -> np.ndarray:
        iters = np.asarray(iters, dtype=np.int64)
        indices = np.where(iters < self.max_iters, self._escaped_idx(iters), self.inside_idx)
        return indices.astype(np.uint8)

    def pixel_color_idx(self, iters: int) -> int:
        if iters < self.max_iters:
            return int(self._escaped_idx(np.int64(iters)))
        return self.inside_idx

    def pixel_color(self, iters: int) -> Color:
        return self.colors[self.pixel_color_idx(iters)]


class GrayscalePalette(ColorPalette):
    """255 grays stepping down by ``contrast`` (wrapping), plus black."""

    def __init__(self, max_iters: int, contrast: int = 15, inverse: bool = False) -> None:
        super().__init__(max_iters)
        self.contrast = contrast
        self.inverse = inverse
        self.precompute()

    def precompute(self) -> None:
        colors = []
        for i in range(0xFF):
            level = 0xFF - ((self.contrast * i) & 0xFF)
            if self.inverse:
                level = 0xFF - level
            colors.append((level, level, level))
        self.colors = colors + [BLACK]

    def _escaped_idx(self, iters):
        return iters % 0xFF


class UltraFractalPalette(ColorPalette):
    """The UltraFractal 16-stop gradient, plus black."""

    def __init__(self, max_iters: int) -> None:
        super().__init__(max_iters)
        self.precompute()

    def precompute(self) -> None:
        self.colors = list(ULTRA_FRACTAL_STOPS) + [BLACK]

    def _escaped_idx(self, iters):
        return iters % len(ULTRA_FRACTAL_STOPS)


class GreenBlackPalette(ColorPalette):
    """255-step gradient from bright green down to black, plus black."""

    def __init__(self, max_iters: int) -> None:
        super().__init__(max_iters)
        self.precompute()

    def precompute(self) -> None:
        self.colors = [(0, 0xFF - i, 0) for i in range(0xFF)] + [BLACK]

    def _escaped_idx(self, iters):
        return iters % 0xFF


class ColormapPalette(ColorPalette):
    """255 samples of a matplotlib colormap spread over ``[0, max_iters)``."""

    def __init__(self, max_iters: int, name: str, inside_color: Color = BLACK) -> None:
        super().__init__(max_iters)
        try:
            self.cmap = _mpl_colormaps.get_cmap(name)
        except ValueError as exc:
            raise ConfigurationError(f"unknown colormap '{name}'") from exc
        self.name = name
        self.inside_color = inside_color
        self.precompute()

    def precompute(self) -> None:
        samples = self.cmap(np.linspace(0.0, 1.0, 0xFF))
        rgb = np.uint8(np.clip(samples[:, :3] * 255, 0, 255))
        self.colors = [tuple(int(v) for v in row) for row in rgb] + [tuple(self.inside_color)]

    def _escaped_idx(self, iters):
        return iters * (0xFF - 1) // self.max_iters


PALETTE_NAMES = ("bw", "bw-inv", "uf", "gb")


def palette_by_name(
    name: str,
    max_iters: int,
    *,
    contrast: int = 15,
    inside_color: Optional[Color] = None,
) -> ColorPalette:
    """Build a palette from its short name, or from a matplotlib colormap name."""

    if name in ("bw", "bw-inv"):
        return GrayscalePalette(max_iters, contrast=contrast, inverse=name == "bw-inv")
    if name == "uf":
        return UltraFractalPalette(max_iters)
    if name == "gb":
        return GreenBlackPalette(max_iters)
    return ColormapPalette(max_iters, name, inside_color or BLACK)
