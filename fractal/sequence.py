"""Utilities for planning zoom animations through a fractal."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .renderer import IterationGrid, RenderResult
from .request import FractalRequest
from .viewport import ViewportMapper, lock_aspect


@dataclass(frozen=True)
class ZoomPlanner:
    """Advance the request viewport between frames of a zoom sequence."""

    lock_aspect: bool

    def enforce_aspect(self, request: FractalRequest) -> FractalRequest:
        if not self.lock_aspect:
            return request
        return request.with_viewport(lock_aspect(request.viewport, request.output_size))

    def initialize_focus(self, request: FractalRequest, result: RenderResult) -> FractalRequest:
        focus_pixel = select_zoom_center(boundary_mask(result.grid))
        return recenter_request(request, focus_pixel, result.grid.mapper)

    def update_after_frame(self, request: FractalRequest, result: RenderResult, zoom_factor: float) -> FractalRequest:
        focus_pixel = select_zoom_center(boundary_mask(result.grid))
        request = recenter_request(request, focus_pixel, result.grid.mapper)
        mapper = ViewportMapper(request.viewport, request.output_size)
        return request.with_viewport(mapper.zoom_by(zoom_factor, lock=self.lock_aspect))


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: float | None, easing: str) -> np.ndarray:
    """Per-frame viewport multipliers for a zoom sequence.

    Without ``final_zoom`` every frame uses ``zoom_factor``.  With it, frame
    ``k`` advances the zoom to ``final_zoom ** progress(k)`` where progress
    runs from 0 on the first frame to 1 on the last, either linearly or along
    a smoothstep curve (``easing="ease"``).  The factors multiply to
    ``final_zoom``.
    """

    if frames <= 0:
        return np.empty(0, dtype=np.float64)
    if final_zoom is None or final_zoom <= 0:
        return np.full(frames, zoom_factor, dtype=np.float64)

    t = np.linspace(0.0, 1.0, frames) if frames > 1 else np.ones(1)
    progress = t if easing.lower() == "linear" else t * t * (3.0 - 2.0 * t)
    return np.power(np.float64(final_zoom), np.diff(progress, prepend=0.0))


def boundary_mask(grid: IterationGrid) -> np.ndarray:
    """Pixels where the inside/outside classification changes between rows or columns."""

    inside = grid.inside
    vertical = np.logical_xor(np.roll(inside, 1, axis=0), inside)
    horizontal = np.logical_xor(np.roll(inside, 1, axis=1), inside)
    vertical[0, :] = False
    horizontal[:, 0] = False
    return np.logical_or(vertical, horizontal)


def select_zoom_center(edges: np.ndarray) -> np.ndarray:
    """Select the boundary pixel ``(row, col)`` closest to the image centre."""

    height, width = edges.shape
    center_row = height // 2
    center_col = width // 2

    edge_indices = np.argwhere(edges)
    if edge_indices.size == 0:
        return np.array([center_row, center_col], dtype=np.int64)

    center = np.array([(height - 1) / 2.0, (width - 1) / 2.0], dtype=np.float64)
    distances = np.sum((edge_indices.astype(np.float64) - center) ** 2, axis=1)
    return edge_indices[int(np.argmin(distances))]


def recenter_request(request: FractalRequest, pixel: np.ndarray, mapper: ViewportMapper) -> FractalRequest:
    row, col = int(pixel[0]), int(pixel[1])
    return request.with_viewport(mapper.recenter(col, row))
