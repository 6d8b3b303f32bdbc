"""Animation schedulers: render many frames and emit them in frame order."""

from __future__ import annotations

import logging
import os
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from .errors import ConfigurationError, RenderError
from .generator import ZoomPlanner, validate_zoom_factor
from .palettes import Color
from .pool import ObjectPool
from .renderer import (
    ColoringFunction,
    ColorMode,
    PlaneWindow,
    RasterDimensions,
    TileRenderer,
    default_slice_width,
    new_raster,
)

logger = logging.getLogger(__name__)

ColoringFunctionGenerator = Callable[[int], ColoringFunction]
FrameDelayFunction = Callable[[int], int]
ProgressFunction = Callable[[int, int], None]


@dataclass(frozen=True)
class AnimationSettings:
    """Everything needed to render an animation, fixed for its lifetime."""

    n_frames: int
    dims: RasterDimensions
    window: PlaneWindow
    coloring_fn_gen: ColoringFunctionGenerator
    frame_delay_fn: FrameDelayFunction
    zoom_factor: float = 1.0
    palette: Sequence[Color] = ()
    mode: ColorMode = ColorMode.INDEXED
    slice_width: Optional[int] = None
    progress: Optional[ProgressFunction] = None

    def __post_init__(self) -> None:
        if self.n_frames < 1:
            raise ConfigurationError(f"an animation needs at least one frame, got {self.n_frames}")
        validate_zoom_factor(self.zoom_factor)
        if self.slice_width is not None and self.slice_width < 1:
            raise ConfigurationError(f"slice width must be at least 1, got {self.slice_width}")

    def effective_slice_width(self) -> int:
        return self.slice_width if self.slice_width is not None else default_slice_width(self.dims.width)


@dataclass
class AnimationBuffer:
    """Rasters and their delays, appended strictly in frame order."""

    palette: list[Color] = field(default_factory=list)
    mode: ColorMode = ColorMode.INDEXED
    frames: list[np.ndarray] = field(default_factory=list)
    delays: list[int] = field(default_factory=list)

    def append(self, raster: np.ndarray, delay: int) -> None:
        self.frames.append(raster)
        self.delays.append(int(delay))

    def __len__(self) -> int:
        return len(self.frames)


@dataclass
class FrameJob:
    """One frame's render task; pooled and reset before every dispatch."""

    frame_id: int = -1
    window: Optional[PlaneWindow] = None
    coloring_fn: Optional[ColoringFunction] = None
    renderer: Optional[TileRenderer] = None
    slice_width: int = 1
    raster: Optional[np.ndarray] = None

    def reset(
        self,
        frame_id: int,
        window: PlaneWindow,
        coloring_fn: ColoringFunction,
        renderer: TileRenderer,
        slice_width: int,
    ) -> FrameJob:
        self.frame_id = frame_id
        self.window = window
        self.coloring_fn = coloring_fn
        self.renderer = renderer.reset(window)
        self.slice_width = slice_width
        self.raster = None
        return self

    def run(self) -> FrameJob:
        renderer = self.renderer
        self.raster = renderer.render(self.coloring_fn, self.slice_width, raster=new_raster(renderer.dims, renderer.mode))
        return self


def _new_buffer(settings: AnimationSettings) -> AnimationBuffer:
    return AnimationBuffer(palette=list(settings.palette), mode=settings.mode)


class SequentialScheduler:
    """Render frames one after another; parallelism is only within a frame."""

    def __init__(self, settings: AnimationSettings, *, slice_workers: Optional[int] = None) -> None:
        self.settings = settings
        self.slice_workers = slice_workers or os.cpu_count() or 1

    def render(self) -> AnimationBuffer:
        s = self.settings
        buffer = _new_buffer(s)
        planner = ZoomPlanner(s.window, s.zoom_factor)
        slice_width = s.effective_slice_width()
        logger.info("rendering %d frame(s) sequentially", s.n_frames)

        with ThreadPoolExecutor(max_workers=self.slice_workers, thread_name_prefix="fractal-slice") as slice_executor:
            renderer = TileRenderer(s.dims, s.window, mode=s.mode, executor=slice_executor)
            for f in range(s.n_frames):
                renderer.reset(planner.next_window())
                coloring_fn = s.coloring_fn_gen(f)
                try:
                    raster = renderer.render(coloring_fn, slice_width)
                except RenderError as exc:
                    raise RenderError(f"frame {f} failed: {exc}", frame_id=f) from exc
                buffer.append(raster, s.frame_delay_fn(f))
                logger.debug("emitted frame %d of %d", f + 1, s.n_frames)
                if s.progress is not None:
                    s.progress(f + 1, s.n_frames)
        return buffer


class SchedulerState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    COLLECTING = "collecting"
    DRAINING = "draining"
    DONE = "done"


class ConcurrentScheduler:
    """Render up to ``max_jobs`` frames at once and emit them in frame order.

    The loop is a state machine driven from a single thread. Finished frame
    jobs land on a completion queue and are parked in a holding area keyed by
    frame id; only the head of line (``next_frame_needed``) is ever appended to
    the buffer, so completion order never leaks into the output. The zoom
    planner advances once per dispatch, which happens in frame order, so every
    frame's window is independent of how many workers run or when they finish.
    """

    def __init__(
        self,
        settings: AnimationSettings,
        max_jobs: int,
        *,
        slice_workers: Optional[int] = None,
    ) -> None:
        if max_jobs < 1:
            raise ConfigurationError(f"max_jobs must be at least 1, got {max_jobs}")
        self.settings = settings
        self.max_jobs = max_jobs
        self.slice_workers = slice_workers or os.cpu_count() or 1
        self.state = SchedulerState.IDLE
        self.renderers_created = 0

    def render(self) -> AnimationBuffer:
        s = self.settings
        n_frames = s.n_frames
        buffer = _new_buffer(s)
        planner = ZoomPlanner(s.window, s.zoom_factor)
        slice_width = s.effective_slice_width()

        completions: queue.SimpleQueue[Future] = queue.SimpleQueue()
        holding: dict[int, np.ndarray] = {}
        in_flight: dict[Future, int] = {}
        running = 0
        next_frame_id = 0
        next_frame_needed = 0

        def can_dispatch() -> bool:
            return running < self.max_jobs and next_frame_id < n_frames

        logger.info("rendering %d frame(s) with up to %d concurrent job(s)", n_frames, self.max_jobs)
        self.state = SchedulerState.IDLE

        with ThreadPoolExecutor(max_workers=self.slice_workers, thread_name_prefix="fractal-slice") as slice_executor, \
                ThreadPoolExecutor(max_workers=self.max_jobs, thread_name_prefix="fractal-frame") as frame_executor:
            renderers: ObjectPool[TileRenderer] = ObjectPool(
                lambda: TileRenderer(s.dims, s.window, mode=s.mode, executor=slice_executor)
            )
            jobs: ObjectPool[FrameJob] = ObjectPool(FrameJob)

            try:
                while self.state is not SchedulerState.DONE:
                    if self.state is SchedulerState.IDLE:
                        self.state = SchedulerState.DISPATCHING if can_dispatch() else SchedulerState.COLLECTING

                    elif self.state is SchedulerState.DISPATCHING:
                        if can_dispatch():
                            frame_id = next_frame_id
                            window = planner.next_window()
                            renderer = renderers.checkout()
                            job = jobs.checkout(
                                lambda j: j.reset(frame_id, window, s.coloring_fn_gen(frame_id), renderer, slice_width)
                            )
                            future = frame_executor.submit(job.run)
                            in_flight[future] = frame_id
                            future.add_done_callback(completions.put)
                            logger.debug("dispatched frame %d (%s)", frame_id, window)
                            next_frame_id += 1
                            running += 1
                        self.state = SchedulerState.COLLECTING

                    elif self.state is SchedulerState.COLLECTING:
                        block = not can_dispatch() and next_frame_needed not in holding
                        try:
                            future = completions.get(block=block)
                        except queue.Empty:
                            future = None
                        if future is not None:
                            running -= 1
                            frame_id = in_flight.pop(future)
                            try:
                                job = future.result()
                            except Exception as exc:
                                raise RenderError(f"frame {frame_id} failed: {exc}", frame_id=frame_id) from exc
                            holding[job.frame_id] = job.raster
                            job.raster = None
                            renderers.give_back(job.renderer)
                            jobs.give_back(job)
                        self.state = SchedulerState.DRAINING if next_frame_needed in holding else SchedulerState.IDLE

                    elif self.state is SchedulerState.DRAINING:
                        raster = holding.pop(next_frame_needed)
                        buffer.append(raster, s.frame_delay_fn(next_frame_needed))
                        next_frame_needed += 1
                        logger.debug("emitted frame %d of %d", next_frame_needed, n_frames)
                        if s.progress is not None:
                            s.progress(next_frame_needed, n_frames)
                        if next_frame_needed == n_frames:
                            self.state = SchedulerState.DONE
                        elif next_frame_needed in holding:
                            self.state = SchedulerState.COLLECTING
                        else:
                            self.state = SchedulerState.DISPATCHING
            except BaseException:
                frame_executor.shutdown(wait=True, cancel_futures=True)
                raise

        self.renderers_created = renderers.created
        logger.info("rendered %d frame(s) using %d renderer(s)", n_frames, self.renderers_created)
        return buffer


def render_animation(settings: AnimationSettings, max_jobs: Optional[int] = None) -> AnimationBuffer:
    """Render ``settings`` sequentially, or with up to ``max_jobs`` frames in flight."""

    if max_jobs is None:
        return SequentialScheduler(settings).render()
    return ConcurrentScheduler(settings, max_jobs).render()
