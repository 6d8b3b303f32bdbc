"""Tests for the image, GIF and frame-sequence writers."""

import imageio.v3 as iio
import numpy as np
import PIL.Image
import pytest

from fractal import AnimationBuffer, ColorMode, UltraFractalPalette
from fractal.output import pil_format_name, to_pil_image, to_rgb_array, write_frame_sequence, write_gif, write_image

PALETTE = UltraFractalPalette(100).palette()


def gradient_raster(offset=0):
    return ((np.arange(8 * 6).reshape(6, 8) + offset) % len(PALETTE)).astype(np.uint8)


def make_buffer(n_frames=3, mode=ColorMode.INDEXED):
    buffer = AnimationBuffer(palette=list(PALETTE), mode=mode)
    for f in range(n_frames):
        raster = gradient_raster(f)
        if mode is ColorMode.DIRECT:
            raster = to_rgb_array(raster, PALETTE, ColorMode.INDEXED)
        buffer.append(raster, 5 * (f + 1))
    return buffer


def test_pil_format_name():
    assert pil_format_name("jpg") == "JPEG"
    assert pil_format_name("tif") == "TIFF"
    assert pil_format_name("png") == "PNG"


def test_indexed_image_carries_palette():
    image = to_pil_image(gradient_raster(), PALETTE, ColorMode.INDEXED)
    assert image.mode == "P"
    assert image.size == (8, 6)
    assert image.getpixel((3, 0)) == 3
    assert image.convert("RGB").getpixel((3, 0)) == PALETTE[3]


def test_rgb_array_resolves_palette():
    rgb = to_rgb_array(gradient_raster(), PALETTE, ColorMode.INDEXED)
    assert rgb.shape == (6, 8, 3)
    assert tuple(rgb[0, 5]) == PALETTE[5]


def test_write_png(tmp_path):
    path = tmp_path / "nested" / "render.png"
    write_image(gradient_raster(), PALETTE, path)
    with PIL.Image.open(path) as image:
        assert image.mode == "P"
        assert np.array_equal(np.asarray(image), gradient_raster())


def test_write_direct_image(tmp_path):
    rgb = to_rgb_array(gradient_raster(), PALETTE, ColorMode.INDEXED)
    path = tmp_path / "render.png"
    write_image(rgb, PALETTE, path, mode=ColorMode.DIRECT)
    with PIL.Image.open(path) as image:
        assert image.mode == "RGB"
        assert np.array_equal(np.asarray(image), rgb)


def test_write_jpeg_from_indexed(tmp_path):
    path = tmp_path / "render.jpg"
    write_image(gradient_raster(), PALETTE, path, "jpg")
    with PIL.Image.open(path) as image:
        assert image.format == "JPEG"


@pytest.mark.parametrize("mode", list(ColorMode))
def test_write_gif(tmp_path, mode):
    path = tmp_path / "anim.gif"
    write_gif(make_buffer(3, mode), path)
    with PIL.Image.open(path) as image:
        assert image.format == "GIF"
        assert image.n_frames == 3
        assert image.info["duration"] == 50
        assert image.info.get("loop") == 0


def test_write_gif_rejects_empty_buffer(tmp_path):
    with pytest.raises(ValueError):
        write_gif(AnimationBuffer(palette=list(PALETTE)), tmp_path / "empty.gif")


def test_write_frame_sequence(tmp_path):
    buffer = make_buffer(3)
    paths = write_frame_sequence(buffer, tmp_path / "frames")
    assert [p.name for p in paths] == ["frame000.png", "frame001.png", "frame002.png"]
    for path, raster in zip(paths, buffer.frames):
        assert np.array_equal(iio.imread(path), to_rgb_array(raster, PALETTE, ColorMode.INDEXED))
