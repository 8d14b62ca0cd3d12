"""Rendering pipeline: iteration grid, colour table and final bitmap."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .colors import ColorTable, build_color_table
from .errors import ComputationAborted
from .image import RenderedImage, assemble_image
from .kernels import DivergenceKernel
from .request import RGB, FractalRequest
from .viewport import ViewportMapper

DEFAULT_ROWS_PER_BATCH = 64

# Marks an interior colour argument that should be taken from the existing request.
KEEP_INTERIOR: Any = object()


class CancellationToken:
    """Flag checked by the grid builder between row batches."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ComputationAborted("render cancelled")


@dataclass(frozen=True)
class IterationGrid:
    """Read-only iteration counts of shape ``(H, W)``, indexed ``counts[py, px]``."""

    counts: np.ndarray
    max_iterations: int
    mapper: ViewportMapper

    @property
    def shape(self) -> tuple[int, int]:
        return self.counts.shape

    def at(self, px: int, py: int) -> int:
        return int(self.counts[py, px])

    @property
    def inside(self) -> np.ndarray:
        """Mask of pixels that never diverged."""

        return self.counts >= self.max_iterations


@dataclass(frozen=True)
class RenderResult:
    """Container for everything a render produced."""

    request: FractalRequest
    grid: IterationGrid
    table: ColorTable
    image: RenderedImage


def build_iteration_grid(
    request: FractalRequest,
    *,
    token: Optional[CancellationToken] = None,
    rows_per_batch: int = DEFAULT_ROWS_PER_BATCH,
    device: Optional[str] = None,
) -> IterationGrid:
    """Evaluate the request's kernel for every pixel of the output image.

    Rows are computed in batches of ``rows_per_batch``; ``token`` is checked
    before every batch and once more at the end.  A cancelled build raises
    :class:`ComputationAborted` and its partial counts are dropped.
    """

    request.validate()
    if rows_per_batch < 1:
        raise ValueError(f"rows_per_batch must be at least 1, got {rows_per_batch}")

    width, height = request.output_size
    mapper = ViewportMapper(request.viewport, request.output_size)
    kernel = DivergenceKernel.for_request(request)
    xs = mapper.plane_xs()

    counts = np.empty((height, width), dtype=np.int32)
    for start in range(0, height, rows_per_batch):
        if token is not None:
            token.raise_if_cancelled()
        stop = min(start + rows_per_batch, height)
        plane_x, plane_y = np.meshgrid(xs, mapper.plane_ys(start, stop))
        counts[start:stop] = kernel.evaluate(plane_x, plane_y, device=device)

    if token is not None:
        token.raise_if_cancelled()
    counts.setflags(write=False)
    return IterationGrid(counts=counts, max_iterations=request.max_iterations, mapper=mapper)


def color_table_for(request: FractalRequest) -> ColorTable:
    return build_color_table(request.max_iterations, request.start_color, request.end_color, request.interior_color)


def render_frame(
    request: FractalRequest,
    *,
    token: Optional[CancellationToken] = None,
    rows_per_batch: int = DEFAULT_ROWS_PER_BATCH,
    device: Optional[str] = None,
) -> RenderResult:
    """Render ``request`` into an image, keeping the grid for re-colouring."""

    grid = build_iteration_grid(request, token=token, rows_per_batch=rows_per_batch, device=device)
    table = color_table_for(request)
    return RenderResult(request=request, grid=grid, table=table, image=assemble_image(grid, table))


def recolor(
    result: RenderResult,
    start_color: RGB,
    end_color: RGB,
    interior_color: Optional[RGB] = KEEP_INTERIOR,
) -> RenderResult:
    """Re-colour a finished render without recomputing its iteration grid.

    The interior colour of the finished render is kept unless
    ``interior_color`` is passed; pass ``None`` to fall back to the gradient
    end colour.
    """

    if interior_color is KEEP_INTERIOR:
        interior_color = result.request.interior_color
    request = result.request.with_colors(start_color, end_color, interior_color)
    table = color_table_for(request)
    return RenderResult(request=request, grid=result.grid, table=table, image=assemble_image(result.grid, table))
