"""Public API for tile-parallel fractal rendering and animation."""

from .animation import (
    AnimationBuffer,
    AnimationSettings,
    ConcurrentScheduler,
    FrameJob,
    SchedulerState,
    SequentialScheduler,
    render_animation,
)
from .errors import ConfigurationError, FractalError, RenderError
from .escape import EscapeColoring, JuliaEscape, MultibrotEscape, sweep_parameter
from .generator import ZoomPlanner, compute_zoom_factor, window_for_frame
from .palettes import (
    ColorPalette,
    ColormapPalette,
    GrayscalePalette,
    GreenBlackPalette,
    UltraFractalPalette,
    palette_by_name,
)
from .pool import ObjectPool
from .renderer import (
    ColorMode,
    PlaneWindow,
    RasterDimensions,
    TileRenderer,
    new_raster,
    pixel_to_plane,
    render_image,
    slice_bounds,
)

__all__ = [
    "AnimationBuffer",
    "AnimationSettings",
    "ColorMode",
    "ColorPalette",
    "ColormapPalette",
    "ConcurrentScheduler",
    "ConfigurationError",
    "EscapeColoring",
    "FractalError",
    "FrameJob",
    "GrayscalePalette",
    "GreenBlackPalette",
    "JuliaEscape",
    "MultibrotEscape",
    "ObjectPool",
    "PlaneWindow",
    "RasterDimensions",
    "RenderError",
    "SchedulerState",
    "SequentialScheduler",
    "TileRenderer",
    "UltraFractalPalette",
    "ZoomPlanner",
    "compute_zoom_factor",
    "new_raster",
    "palette_by_name",
    "pixel_to_plane",
    "render_animation",
    "render_image",
    "slice_bounds",
    "sweep_parameter",
    "window_for_frame",
]
