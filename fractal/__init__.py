"""Public API for escape-time fractal rendering."""

from .colors import ColorTable, build_color_table, parse_color
from .errors import ComputationAborted, FractalError, IndexOutOfRange, InvalidRequest
from .image import RenderedImage, assemble_image
from .kernels import DivergenceKernel, escape_count
from .renderer import (
    CancellationToken,
    IterationGrid,
    RenderResult,
    build_iteration_grid,
    recolor,
    render_frame,
)
from .request import Formula, FractalRequest, Viewport
from .sequence import ZoomPlanner, compute_zoom_factors, select_zoom_center
from .session import RenderSession
from .viewport import PixelRect, Selection, ViewportMapper, lock_aspect

__all__ = [
    "CancellationToken",
    "ColorTable",
    "ComputationAborted",
    "DivergenceKernel",
    "Formula",
    "FractalError",
    "FractalRequest",
    "IndexOutOfRange",
    "InvalidRequest",
    "IterationGrid",
    "PixelRect",
    "RenderResult",
    "RenderSession",
    "RenderedImage",
    "Selection",
    "Viewport",
    "ViewportMapper",
    "ZoomPlanner",
    "assemble_image",
    "build_color_table",
    "build_iteration_grid",
    "compute_zoom_factors",
    "escape_count",
    "lock_aspect",
    "parse_color",
    "recolor",
    "render_frame",
    "select_zoom_center",
]
