"""Tests for the tile-parallel single-frame renderer."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from fractal import ColorMode, ConfigurationError, PlaneWindow, RasterDimensions, RenderError, TileRenderer
from fractal.renderer import grid_evaluator, new_raster, pixel_to_plane, render_image, slice_bounds


def centered_block(point):
    return 1 if abs(point.real) < 1 and abs(point.imag) < 1 else 0


def banded(point):
    return int(abs(point.real) * 53 + abs(point.imag) * 17) % 256


class CenteredBlockGrid:
    """``centered_block`` with a whole-slice evaluator."""

    def __init__(self, vectorized=True):
        self.vectorized = vectorized

    def __call__(self, point):
        return centered_block(point)

    def evaluate_grid(self, points):
        return ((np.abs(points.real) < 1) & (np.abs(points.imag) < 1)).astype(np.uint8)


class TestSliceBounds:
    def test_final_slice_is_narrower(self):
        assert slice_bounds(10, 3) == [(0, 3), (3, 6), (6, 9), (9, 10)]

    def test_slice_count_is_ceiling(self):
        assert len(slice_bounds(64, 5)) == 13

    def test_wide_slice_is_single_slice(self):
        assert slice_bounds(10, 10) == [(0, 10)]
        assert slice_bounds(10, 50) == [(0, 10)]

    def test_width_one_slices(self):
        assert slice_bounds(4, 1) == [(0, 1), (1, 2), (2, 3), (3, 4)]

    def test_rejects_zero_width(self):
        with pytest.raises(ConfigurationError):
            slice_bounds(10, 0)


class TestConfiguration:
    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-1, 4)])
    def test_rejects_empty_raster(self, width, height):
        with pytest.raises(ConfigurationError):
            RasterDimensions(width, height)

    @pytest.mark.parametrize("width,height", [(0.0, 1.0), (1.0, -2.0), (float("inf"), 1.0)])
    def test_rejects_degenerate_window(self, width, height):
        with pytest.raises(ConfigurationError):
            PlaneWindow(0.0, 0.0, width, height)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            RasterDimensions(0, 0)

    def test_zoomed_window(self):
        window = PlaneWindow(-0.5, 0.25, 4.0, 2.0).zoomed(0.5)
        assert window == PlaneWindow(-0.5, 0.25, 2.0, 1.0)


class TestCoordinateMapping:
    def test_pixel_to_plane(self):
        dims = RasterDimensions(64, 32)
        window = PlaneWindow(1.0, -1.0, 4.0, 2.0)
        assert pixel_to_plane(dims, window, 0, 0) == complex(-1.0, -2.0)
        assert pixel_to_plane(dims, window, 32, 16) == complex(1.0, -1.0)

    def test_centered_block(self):
        dims = RasterDimensions(64, 64)
        raster = render_image(dims, PlaneWindow(0.0, 0.0, 4.0, 4.0), centered_block)

        assert raster.shape == (64, 64)
        assert raster.dtype == np.uint8
        for x, y in [(0, 0), (63, 0), (0, 63), (63, 63)]:
            assert raster[y, x] == 0
        assert raster[32, 32] == 1
        # |x| < 1 holds for columns 17..47 only; column 16 maps to exactly -1.
        assert raster[32, 16] == 0
        assert raster[32, 17] == 1
        assert raster[32, 47] == 1
        assert raster[32, 48] == 0
        assert raster.sum() == 31 * 31

    def test_rows_are_not_flipped(self):
        dims = RasterDimensions(8, 8)
        raster = render_image(dims, PlaneWindow(0.0, 0.0, 2.0, 2.0), lambda p: 1 if p.imag < 0 else 0)
        assert raster[0].tolist() == [1] * 8
        assert raster[7].tolist() == [0] * 8


class TestTileRenderer:
    @pytest.mark.parametrize("slice_width", [1, 2, 3, 7, 16, 50, 100])
    def test_output_invariant_under_reslicing(self, slice_width):
        dims = RasterDimensions(50, 30)
        window = PlaneWindow(-0.5, 0.1, 3.0, 2.0)
        reference = TileRenderer(dims, window).render(banded, slice_width=dims.width)
        raster = TileRenderer(dims, window).render(banded, slice_width=slice_width)
        assert np.array_equal(raster, reference)

    def test_identical_inputs_give_identical_rasters(self):
        dims = RasterDimensions(33, 17)
        window = PlaneWindow(0.3, -0.2, 1.5, 1.0)
        first = render_image(dims, window, banded)
        second = render_image(dims, window, banded)
        assert first.tobytes() == second.tobytes()

    def test_renders_into_given_raster(self):
        dims = RasterDimensions(10, 10)
        raster = new_raster(dims)
        result = TileRenderer(dims, PlaneWindow(0.0, 0.0, 4.0, 4.0)).render(centered_block, 3, raster=raster)
        assert result is raster
        assert raster.sum() > 0

    def test_shared_executor(self):
        dims = RasterDimensions(40, 20)
        window = PlaneWindow(0.0, 0.0, 4.0, 4.0)
        with ThreadPoolExecutor(max_workers=3) as executor:
            raster = TileRenderer(dims, window, executor=executor).render(banded, slice_width=4)
        assert np.array_equal(raster, render_image(dims, window, banded, slice_width=40))

    def test_direct_color_mode(self):
        dims = RasterDimensions(12, 6)
        raster = render_image(
            dims,
            PlaneWindow(0.0, 0.0, 4.0, 4.0),
            lambda p: (255, 0, 0) if centered_block(p) else (0, 0, 255),
            mode=ColorMode.DIRECT,
            slice_width=5,
        )
        assert raster.shape == (6, 12, 3)
        assert tuple(raster[3, 6]) == (255, 0, 0)
        assert tuple(raster[0, 0]) == (0, 0, 255)

    def test_grid_evaluator_matches_per_point(self):
        dims = RasterDimensions(64, 48)
        window = PlaneWindow(0.1, -0.2, 4.0, 3.0)
        vectorized = render_image(dims, window, CenteredBlockGrid(), slice_width=10)
        per_point = render_image(dims, window, CenteredBlockGrid(vectorized=False), slice_width=10)
        assert np.array_equal(vectorized, per_point)

    def test_grid_evaluator_lookup(self):
        assert grid_evaluator(centered_block) is None
        assert grid_evaluator(CenteredBlockGrid(vectorized=False)) is None
        assert grid_evaluator(CenteredBlockGrid()) is not None

    def test_coloring_fault_aborts_render(self):
        def faulty(point):
            if point.real > 0.5:
                raise ZeroDivisionError("boom")
            return 0

        dims = RasterDimensions(16, 4)
        with pytest.raises(RenderError) as excinfo:
            render_image(dims, PlaneWindow(0.0, 0.0, 4.0, 4.0), faulty, slice_width=4)
        assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
