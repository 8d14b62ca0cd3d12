"""Exceptions raised by the fractal rendering core."""

from __future__ import annotations


class FractalError(Exception):
    """Base class for errors raised by the rendering core."""


class InvalidRequest(FractalError, ValueError):
    """A request failed validation before any computation took place."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ComputationAborted(FractalError):
    """A render was cancelled before its iteration grid was complete."""


class IndexOutOfRange(FractalError, AssertionError):
    """An iteration count fell outside the colour table it is looked up in."""
