"""Turn iteration grids into RGB bitmaps."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import PIL.Image

from .colors import ColorTable
from .errors import IndexOutOfRange

if TYPE_CHECKING:
    from .renderer import IterationGrid


@dataclass(frozen=True)
class RenderedImage:
    """8-bit RGB pixels of shape ``(H, W, 3)``; row 0 is the bottom of the view."""

    pixels: np.ndarray

    @property
    def size(self) -> tuple[int, int]:
        return int(self.pixels.shape[1]), int(self.pixels.shape[0])

    def to_pil(self) -> PIL.Image.Image:
        """Return a Pillow image with the top of the view on the first row."""

        return PIL.Image.fromarray(np.ascontiguousarray(np.flipud(self.pixels)))

    def save(self, path: Path | str, image_format: str | None = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pil_format = _pil_format_name(image_format) if image_format else None
        self.to_pil().save(str(path), format=pil_format)
        return path


def _pil_format_name(ext: str) -> str:
    upper = ext.upper().lstrip(".")
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def assemble_image(grid: "IterationGrid", table: ColorTable) -> RenderedImage:
    """Colour every pixel by looking its iteration count up in ``table``.

    Raises :class:`IndexOutOfRange` if the grid and table were built for
    different iteration caps or any count is not a valid table index; counts
    are never clamped.
    """

    if grid.max_iterations != table.max_iterations:
        raise IndexOutOfRange(
            f"grid was built with max_iterations={grid.max_iterations} "
            f"but the color table with max_iterations={table.max_iterations}"
        )
    counts = grid.counts
    if counts.size:
        low = int(counts.min())
        high = int(counts.max())
        if low < 0 or high >= len(table):
            raise IndexOutOfRange(
                f"iteration counts span [{low}, {high}] but the color table only covers [0, {len(table) - 1}]"
            )
    pixels = table.as_uint8()[counts]
    pixels.setflags(write=False)
    return RenderedImage(pixels=pixels)
