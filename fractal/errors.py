"""Exceptions raised by the fractal rendering pipeline."""

from __future__ import annotations

from typing import Optional


class FractalError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(FractalError, ValueError):
    """Invalid render or animation parameters, rejected before rendering."""


class RenderError(FractalError, RuntimeError):
    """A render or animation aborted because a collaborator raised."""

    def __init__(self, message: str, *, frame_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.frame_id = frame_id
