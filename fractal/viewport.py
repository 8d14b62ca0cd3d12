"""Mapping between output pixels and the complex plane.

Pixels are addressed from the bottom-left corner of the image with ``y``
increasing upwards, matching the plane.  Pixel ``(px, py)`` maps to::

    plane_x = viewport.x + px * (viewport.width / W)
    plane_y = viewport.y + py * (viewport.height / H)
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from .errors import InvalidRequest
from .request import Viewport


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in pixel space, anchored at its bottom-left corner."""

    x: float
    y: float
    width: float
    height: float

    def normalized(self) -> "PixelRect":
        """Return the same rectangle with non-negative width and height."""

        x, width = (self.x + self.width, -self.width) if self.width < 0 else (self.x, self.width)
        y, height = (self.y + self.height, -self.height) if self.height < 0 else (self.y, self.height)
        return PixelRect(x, y, width, height)


@dataclass(frozen=True)
class Selection:
    """Plane-space rectangle produced from a pixel selection.

    When ``is_zoom`` is true ``viewport`` is meant to drive the next render,
    otherwise it is informational only.
    """

    viewport: Viewport
    is_zoom: bool


def lock_aspect(viewport: Viewport, output_size: tuple[int, int]) -> Viewport:
    """Recompute the viewport height from its width so pixels stay square."""

    width, height = output_size
    aspect = np.float64(height) / np.float64(width)
    return replace(viewport, height=float(np.float64(viewport.width) * aspect))


@dataclass(frozen=True)
class ViewportMapper:
    viewport: Viewport
    output_size: tuple[int, int]

    @property
    def scale(self) -> float:
        """Plane units per pixel, driven by the width."""

        return self.viewport.width / self.output_size[0]

    @property
    def x_step(self) -> float:
        return self.viewport.width / self.output_size[0]

    @property
    def y_step(self) -> float:
        return self.viewport.height / self.output_size[1]

    def forward(self, px: float, py: float) -> tuple[float, float]:
        """Map pixel coordinates to the plane."""

        return self.viewport.x + px * self.x_step, self.viewport.y + py * self.y_step

    def inverse(self, plane_x: float, plane_y: float) -> tuple[float, float]:
        """Map a plane point back to (fractional) pixel coordinates."""

        return (plane_x - self.viewport.x) / self.x_step, (plane_y - self.viewport.y) / self.y_step

    def plane_xs(self) -> np.ndarray:
        """Plane x coordinate of every pixel column, left to right."""

        columns = np.arange(self.output_size[0], dtype=np.float64)
        return self.viewport.x + columns * self.x_step

    def plane_ys(self, start: int = 0, stop: int | None = None) -> np.ndarray:
        """Plane y coordinate of pixel rows ``start:stop``, bottom to top."""

        stop = self.output_size[1] if stop is None else stop
        rows = np.arange(start, stop, dtype=np.float64)
        return self.viewport.y + rows * self.y_step

    def select(self, rect: PixelRect, zoom: bool = False) -> Selection:
        """Translate a pixel rectangle into a plane rectangle.

        A zoom keeps the output aspect ratio: the new height is derived from
        the selected width, the dragged height is ignored.
        """

        rect = rect.normalized()
        x, y = self.forward(rect.x, rect.y)
        width = rect.width * self.scale
        if not zoom:
            return Selection(Viewport(x, y, width, rect.height * self.scale), is_zoom=False)
        if rect.width <= 0:
            raise InvalidRequest("selection.width", "a zoom selection must have a positive width")
        return Selection(lock_aspect(Viewport(x, y, width, width), self.output_size), is_zoom=True)

    def recenter(self, px: float, py: float) -> Viewport:
        """Move the viewport so that pixel ``(px, py)`` becomes its centre."""

        x_center, y_center = self.forward(px, py)
        return Viewport.from_center(x_center, y_center, self.viewport.width, self.viewport.height)

    def zoom_by(self, zoom_factor: float, lock: bool = True) -> Viewport:
        """Scale the viewport about its centre; ``zoom_factor < 1`` zooms in."""

        if zoom_factor <= 0:
            raise InvalidRequest("zoom_factor", f"must be positive, got {zoom_factor!r}")
        x_center, y_center = self.viewport.center
        width = float(np.float64(self.viewport.width) * np.float64(zoom_factor))
        height = float(np.float64(self.viewport.height) * np.float64(zoom_factor))
        zoomed = Viewport.from_center(x_center, y_center, width, height)
        if lock:
            zoomed = lock_aspect(zoomed, self.output_size)
            # Keep the centre fixed after the height was recomputed.
            zoomed = Viewport.from_center(x_center, y_center, zoomed.width, zoomed.height)
        return zoomed
