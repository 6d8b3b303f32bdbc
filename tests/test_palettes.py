"""Tests for the iteration-to-color palettes."""

import numpy as np
import pytest

from fractal import (
    ColormapPalette,
    ConfigurationError,
    GrayscalePalette,
    GreenBlackPalette,
    UltraFractalPalette,
    palette_by_name,
)
from fractal.palettes import BLACK, ULTRA_FRACTAL_STOPS


class TestGrayscalePalette:
    def test_levels_step_down_by_contrast(self):
        colors = GrayscalePalette(1000, contrast=15).palette()
        assert len(colors) == 256
        assert colors[0] == (255, 255, 255)
        assert colors[1] == (240, 240, 240)
        # 15 * 18 = 270 wraps to 14
        assert colors[18] == (241, 241, 241)
        assert colors[-1] == BLACK

    def test_inverse(self):
        colors = GrayscalePalette(1000, contrast=15, inverse=True).palette()
        assert colors[0] == (0, 0, 0)
        assert colors[1] == (15, 15, 15)

    def test_indices(self):
        palette = GrayscalePalette(1000)
        assert palette.pixel_color_idx(3) == 3
        assert palette.pixel_color_idx(300) == 45
        assert palette.pixel_color_idx(1000) == 255
        assert palette.pixel_color(1000) == BLACK


def test_ultra_fractal_palette():
    palette = UltraFractalPalette(100)
    assert palette.palette()[:16] == list(ULTRA_FRACTAL_STOPS)
    assert palette.pixel_color_idx(17) == 1
    assert palette.pixel_color_idx(100) == 16
    assert palette.pixel_color(0) == (66, 30, 15)


def test_green_black_palette():
    palette = GreenBlackPalette(500)
    colors = palette.palette()
    assert colors[0] == (0, 255, 0)
    assert colors[254] == (0, 1, 0)
    assert palette.pixel_color(500) == BLACK


class TestColormapPalette:
    def test_samples_colormap(self):
        palette = ColormapPalette(200, "viridis", inside_color=(10, 59, 160))
        colors = palette.palette()
        assert len(colors) == 256
        assert colors[-1] == (10, 59, 160)
        assert palette.pixel_color_idx(0) == 0
        assert palette.pixel_color_idx(199) == 199 * 254 // 200

    def test_unknown_colormap(self):
        with pytest.raises(ConfigurationError):
            ColormapPalette(200, "not-a-colormap")


@pytest.mark.parametrize(
    "palette",
    [
        GrayscalePalette(300, contrast=7),
        UltraFractalPalette(300),
        GreenBlackPalette(300),
        ColormapPalette(300, "inferno"),
    ],
)
def test_lookup_matches_scalar_indices(palette):
    iters = np.arange(0, 310)
    indices = palette.lookup_idx(iters)
    assert indices.dtype == np.uint8
    assert indices.tolist() == [palette.pixel_color_idx(int(n)) for n in iters]
    assert int(indices.max()) < len(palette.palette())


@pytest.mark.parametrize(
    "name,cls",
    [("bw", GrayscalePalette), ("bw-inv", GrayscalePalette), ("uf", UltraFractalPalette), ("gb", GreenBlackPalette), ("magma", ColormapPalette)],
)
def test_palette_by_name(name, cls):
    palette = palette_by_name(name, 100, contrast=9)
    assert isinstance(palette, cls)


def test_palette_by_name_inverse_flag():
    assert palette_by_name("bw-inv", 100).inverse
    assert not palette_by_name("bw", 100).inverse


def test_rejects_zero_iterations():
    with pytest.raises(ConfigurationError):
        UltraFractalPalette(0)
