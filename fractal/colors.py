"""Gradient colour tables indexed by iteration count."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from matplotlib import colors as mcolors

from .request import RGB


@dataclass(frozen=True)
class ColorTable:
    """``max_iterations + 1`` RGB rows in [0, 255]; row ``i`` colours count ``i``."""

    colors: np.ndarray
    max_iterations: int

    def __len__(self) -> int:
        return int(self.colors.shape[0])

    def __getitem__(self, index: int) -> tuple[float, ...]:
        return tuple(float(c) for c in self.colors[index])

    def as_uint8(self) -> np.ndarray:
        return np.uint8(np.clip(np.rint(self.colors), 0, 255))


def build_color_table(
    max_iterations: int,
    start_color: RGB,
    end_color: RGB,
    interior_color: Optional[RGB] = None,
) -> ColorTable:
    """Interpolate linearly from ``start_color`` to ``end_color``.

    With ``max_iterations == 0`` the table holds ``start_color`` only.  When
    ``interior_color`` is given it replaces the last row, which colours the
    points that never diverged.
    """

    if max_iterations < 0:
        raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")

    start = np.asarray(start_color, dtype=np.float64)
    end = np.asarray(end_color, dtype=np.float64)
    if max_iterations == 0:
        t = np.zeros((1, 1), dtype=np.float64)
    else:
        t = (np.arange(max_iterations + 1, dtype=np.float64) / np.float64(max_iterations))[:, None]
    table = start * (1.0 - t) + end * t

    if interior_color is not None and max_iterations > 0:
        table[max_iterations] = np.asarray(interior_color, dtype=np.float64)

    table.setflags(write=False)
    return ColorTable(colors=table, max_iterations=int(max_iterations))


def parse_color(spec: str) -> RGB:
    """Parse any matplotlib colour spec (``"red"``, ``"#ff8000"``, ``"0.5"``) into [0, 255]."""

    try:
        rgb = mcolors.to_rgb(spec)
    except ValueError as exc:
        raise ValueError(f"invalid color {spec!r}") from exc
    return tuple(float(channel) * 255.0 for channel in rgb)
