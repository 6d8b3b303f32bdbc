"""Utilities for managing zoom sequences."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .renderer import PlaneWindow


def validate_zoom_factor(zoom_factor: float) -> float:
    if not math.isfinite(zoom_factor) or zoom_factor <= 0:
        raise ConfigurationError(f"zoom factor must be a positive finite number, got {zoom_factor}")
    return float(zoom_factor)


@dataclass
class ZoomPlanner:
    """Hand out per-frame windows, shrinking the plot once per frame.

    Frame 0 gets ``initial`` unmodified; every later call multiplies the
    running width/height accumulator by ``zoom_factor`` exactly once.
    """

    initial: PlaneWindow
    zoom_factor: float
    frames_planned: int = field(default=0, init=False)
    _width: float = field(default=0.0, init=False, repr=False)
    _height: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        self.zoom_factor = validate_zoom_factor(self.zoom_factor)
        self._width = self.initial.width
        self._height = self.initial.height

    def next_window(self) -> PlaneWindow:
        if self.frames_planned != 0:
            self._width *= self.zoom_factor
            self._height *= self.zoom_factor
        self.frames_planned += 1
        return PlaneWindow(self.initial.x_center, self.initial.y_center, self._width, self._height)


def window_for_frame(initial: PlaneWindow, zoom_factor: float, frame_id: int) -> PlaneWindow:
    """Closed-form window of ``frame_id``: the initial extent times ``zoom_factor ** frame_id``."""

    scale = np.float64(validate_zoom_factor(zoom_factor)) ** np.float64(frame_id)
    return initial.zoomed(float(scale))


def compute_zoom_factor(frames: int, zoom_factor: float, *, final_zoom: Optional[float] = None) -> float:
    """Per-frame zoom factor, derived from ``final_zoom`` when one is given.

    ``final_zoom`` is the overall scale applied by the last frame, e.g. ``1e-4``
    narrows the window by 10000x across the animation.
    """

    if final_zoom is None:
        return validate_zoom_factor(zoom_factor)
    validate_zoom_factor(final_zoom)
    if frames <= 1:
        return validate_zoom_factor(zoom_factor)
    return float(np.exp(np.log(np.float64(final_zoom)) / (frames - 1)))
