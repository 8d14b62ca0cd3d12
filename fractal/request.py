"""Immutable parameter bundle describing a single fractal render."""

from __future__ import annotations

import enum
import math
import numbers
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from .errors import InvalidRequest

RGB = tuple[float, float, float]

BLACK: RGB = (0.0, 0.0, 0.0)
WHITE: RGB = (255.0, 255.0, 255.0)


class Formula(enum.Enum):
    """Escape-time formula used to colour the plane."""

    MANDELBROT = "mandelbrot"
    JULIA = "julia"

    @classmethod
    def parse(cls, value: "Formula | str") -> "Formula":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(f.value for f in cls)
            raise InvalidRequest("formula", f"unknown formula {value!r} (expected one of {choices})") from exc


@dataclass(frozen=True)
class Viewport:
    """Region of the complex plane, anchored at its bottom-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def x_max(self) -> float:
        return self.x + self.width

    @property
    def y_max(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    @classmethod
    def from_center(cls, x_center: float, y_center: float, width: float, height: float) -> "Viewport":
        return cls(x_center - width / 2.0, y_center - height / 2.0, width, height)


def _as_pair(name: str, value: Any) -> tuple[float, float]:
    try:
        a, b = value
        return float(a), float(b)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(name, f"expected a pair of numbers, got {value!r}") from exc


def _as_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidRequest(name, f"expected an integer, got {value!r}")
    return int(value)


def _as_size(value: Any) -> tuple[int, int]:
    try:
        width, height = value
    except (TypeError, ValueError) as exc:
        raise InvalidRequest("output_size", f"expected (width, height), got {value!r}") from exc
    return _as_count("output_size.width", width), _as_count("output_size.height", height)


def _as_viewport(value: Any) -> Viewport:
    if not isinstance(value, Viewport):
        raise InvalidRequest("viewport", f"expected a Viewport, got {value!r}")
    fields = {}
    for name in ("x", "y", "width", "height"):
        raw = getattr(value, name)
        try:
            fields[name] = float(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidRequest(f"viewport.{name}", f"expected a number, got {raw!r}") from exc
    return Viewport(**fields)


def _as_color(name: str, value: Any) -> RGB:
    try:
        r, g, b = value
        color = (float(r), float(g), float(b))
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(name, f"expected an RGB triple, got {value!r}") from exc
    for channel in color:
        if not 0.0 <= channel <= 255.0:
            raise InvalidRequest(name, f"channel {channel!r} outside [0, 255]")
    return color


@dataclass(frozen=True)
class FractalRequest:
    """Everything needed to compute one image.

    ``origin`` is the fixed initial ``z`` for the Mandelbrot formula and is
    ignored by Julia, which seeds ``z`` with the sampled plane point.
    ``lambda_point`` is the constant subtracted each iteration for Julia; the
    Mandelbrot formula uses the sampled plane point instead.  Colours are RGB
    triples in [0, 255].  ``interior_color``, when set, replaces the gradient
    end colour for points that never diverge.
    """

    viewport: Viewport
    output_size: tuple[int, int]
    max_iterations: int
    radius: float = 4.0
    formula: Formula = Formula.MANDELBROT
    origin: tuple[float, float] = (0.0, 0.0)
    lambda_point: tuple[float, float] = (0.0, 0.0)
    start_color: RGB = BLACK
    end_color: RGB = WHITE
    interior_color: Optional[RGB] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "formula", Formula.parse(self.formula))
        try:
            object.__setattr__(self, "radius", float(self.radius))
        except (TypeError, ValueError) as exc:
            raise InvalidRequest("radius", f"expected a number, got {self.radius!r}") from exc
        object.__setattr__(self, "max_iterations", _as_count("max_iterations", self.max_iterations))
        object.__setattr__(self, "output_size", _as_size(self.output_size))
        object.__setattr__(self, "viewport", _as_viewport(self.viewport))
        object.__setattr__(self, "origin", _as_pair("origin", self.origin))
        object.__setattr__(self, "lambda_point", _as_pair("lambda_point", self.lambda_point))
        object.__setattr__(self, "start_color", _as_color("start_color", self.start_color))
        object.__setattr__(self, "end_color", _as_color("end_color", self.end_color))
        if self.interior_color is not None:
            object.__setattr__(self, "interior_color", _as_color("interior_color", self.interior_color))
        self.validate()

    def validate(self) -> None:
        """Raise :class:`InvalidRequest` naming the first invalid field."""

        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, numbers.Integral):
            raise InvalidRequest("max_iterations", f"expected an integer, got {self.max_iterations!r}")
        if self.max_iterations < 1:
            raise InvalidRequest("max_iterations", f"must be at least 1, got {self.max_iterations}")

        if not math.isfinite(self.radius) or self.radius <= 0:
            raise InvalidRequest("radius", f"must be a positive number, got {self.radius!r}")

        try:
            width, height = self.output_size
        except (TypeError, ValueError) as exc:
            raise InvalidRequest("output_size", f"expected (width, height), got {self.output_size!r}") from exc
        for name, value in (("output_size.width", width), ("output_size.height", height)):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidRequest(name, f"expected an integer, got {value!r}")
            if value < 1:
                raise InvalidRequest(name, f"must be at least 1, got {value}")

        viewport = self.viewport
        if not isinstance(viewport, Viewport):
            raise InvalidRequest("viewport", f"expected a Viewport, got {viewport!r}")
        for name in ("x", "y"):
            if not math.isfinite(getattr(viewport, name)):
                raise InvalidRequest(f"viewport.{name}", "must be finite")
        for name in ("width", "height"):
            value = getattr(viewport, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidRequest(f"viewport.{name}", f"must be a positive number, got {value!r}")

    @property
    def width(self) -> int:
        return self.output_size[0]

    @property
    def height(self) -> int:
        return self.output_size[1]

    def with_viewport(self, viewport: Viewport) -> "FractalRequest":
        return replace(self, viewport=viewport)

    def with_colors(
        self,
        start_color: RGB,
        end_color: RGB,
        interior_color: Optional[RGB] = None,
    ) -> "FractalRequest":
        return replace(self, start_color=start_color, end_color=end_color, interior_color=interior_color)

    def to_state(self) -> dict[str, Any]:
        """Return the opaque parameter bundle stored by bookmark managers.

        Colours are stored in [0, 1], the output size is not part of it.
        """

        state: dict[str, Any] = {
            "isMandelbrot": self.formula is Formula.MANDELBROT,
            "iters": self.max_iterations,
            "x0": self.viewport.x,
            "y0": self.viewport.y,
            "width": self.viewport.width,
            "height": self.viewport.height,
            "radius": self.radius,
            "lambdax": self.lambda_point[0],
            "lambday": self.lambda_point[1],
            "originx": self.origin[0],
            "originy": self.origin[1],
        }
        for prefix, color in (("1", self.start_color), ("2", self.end_color)):
            for channel, value in zip("rgb", color):
                state[f"{channel}{prefix}"] = value / 255.0
        if self.interior_color is not None:
            state["interior"] = [value / 255.0 for value in self.interior_color]
        return state

    @classmethod
    def from_state(cls, state: Mapping[str, Any], output_size: tuple[int, int]) -> "FractalRequest":
        """Rebuild a request from a bundle produced by :meth:`to_state`."""

        try:
            interior = state.get("interior")
            return cls(
                viewport=Viewport(
                    float(state["x0"]),
                    float(state["y0"]),
                    float(state["width"]),
                    float(state["height"]),
                ),
                output_size=output_size,
                max_iterations=int(state["iters"]),
                radius=float(state["radius"]),
                formula=Formula.MANDELBROT if state["isMandelbrot"] else Formula.JULIA,
                origin=(float(state.get("originx", 0.0)), float(state.get("originy", 0.0))),
                lambda_point=(float(state["lambdax"]), float(state["lambday"])),
                start_color=tuple(float(state[f"{c}1"]) * 255.0 for c in "rgb"),
                end_color=tuple(float(state[f"{c}2"]) * 255.0 for c in "rgb"),
                interior_color=None if interior is None else tuple(float(v) * 255.0 for v in interior),
            )
        except KeyError as exc:
            raise InvalidRequest(str(exc.args[0]), "missing from bookmark state") from exc
