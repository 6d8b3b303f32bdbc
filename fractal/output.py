"""Writers handing finished rasters to image and animation files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import imageio.v3 as iio
import numpy as np
import PIL.Image

from .animation import AnimationBuffer
from .palettes import Color
from .renderer import ColorMode

logger = logging.getLogger(__name__)


def pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def _flat_palette(palette: Sequence[Color]) -> list[int]:
    flat = [channel for color in palette for channel in color]
    return flat + [0] * (768 - len(flat))


def to_rgb_array(raster: np.ndarray, palette: Sequence[Color], mode: ColorMode) -> np.ndarray:
    """Resolve an indexed raster against ``palette``; direct rasters pass through."""

    if mode is ColorMode.DIRECT:
        return raster
    return np.asarray(palette, dtype=np.uint8)[raster]


def to_pil_image(raster: np.ndarray, palette: Sequence[Color], mode: ColorMode) -> PIL.Image.Image:
    """Wrap a raster as a ``P`` image carrying ``palette``, or as ``RGB`` for direct rasters."""

    if mode is ColorMode.DIRECT:
        return PIL.Image.fromarray(np.ascontiguousarray(raster, dtype=np.uint8))
    height, width = raster.shape
    image = PIL.Image.frombytes("P", (width, height), np.ascontiguousarray(raster, dtype=np.uint8).tobytes())
    image.putpalette(_flat_palette(palette))
    return image


def write_image(
    raster: np.ndarray,
    palette: Sequence[Color],
    output_path: Path,
    image_format: str = "png",
    mode: ColorMode = ColorMode.INDEXED,
) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    image = to_pil_image(raster, palette, mode)
    pil_format = pil_format_name(image_format)
    if image.mode == "P" and pil_format in {"JPEG", "WEBP"}:
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)
    logger.info("wrote %s", output_path)


def write_gif(buffer: AnimationBuffer, output_path: Path) -> None:
    """Encode the buffer as a looping GIF; delays are in hundredths of a second."""

    if not buffer.frames:
        raise ValueError("cannot encode an empty animation")
    images = [to_pil_image(raster, buffer.palette, buffer.mode) for raster in buffer.frames]
    if buffer.mode is ColorMode.DIRECT:
        images = [image.quantize(colors=256) for image in images]
    output_path.parent.mkdir(parents=True, exist_ok=True)
    images[0].save(
        str(output_path),
        format="GIF",
        save_all=True,
        append_images=images[1:],
        duration=[delay * 10 for delay in buffer.delays],
        loop=0,
        optimize=False,
    )
    logger.info("wrote %d frame(s) to %s", len(images), output_path)


def write_frame_sequence(
    buffer: AnimationBuffer,
    frame_dir: Path,
    image_format: str = "png",
    prefix: str = "frame",
) -> list[Path]:
    """Persist every frame as a numbered image inside ``frame_dir``."""

    digits = max(3, len(str(max(len(buffer) - 1, 0))))
    frame_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for index, raster in enumerate(buffer.frames):
        frame_path = frame_dir / f"{prefix}{index:0{digits}d}.{image_format}"
        iio.imwrite(frame_path, to_rgb_array(raster, buffer.palette, buffer.mode))
        paths.append(frame_path)
    logger.info("wrote %d frame(s) to %s", len(paths), frame_dir)
    return paths
