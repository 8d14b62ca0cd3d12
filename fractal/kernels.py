"""Escape-time kernels for the quadratic Mandelbrot and Julia formulas.

Both formulas iterate ``z <- z**2 - lambda`` and count the iterations that
complete before ``|z|**2`` exceeds the divergence radius.  They only differ in
which values are fixed when the kernel is built and which come from the
sampled plane point:

* Mandelbrot: ``z`` starts at a fixed origin, ``lambda`` is the plane point.
* Julia: ``z`` starts at the plane point, ``lambda`` is fixed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .request import Formula, FractalRequest


def escape_count(x: float, y: float, lambda_x: float, lambda_y: float, max_iterations: int, radius: float) -> int:
    """Iterate from ``(x, y)`` and return the 0-based index of divergence.

    Returns ``max_iterations`` when the orbit stays inside ``radius``.
    """

    for i in range(max_iterations):
        new_x = x * x - y * y - lambda_x
        new_y = 2 * x * y - lambda_y
        if new_x * new_x + new_y * new_y > radius:
            return i
        x = new_x
        y = new_y
    return max_iterations


@tf.function
def _escape_step(
    i: tf.Tensor,
    x: tf.Tensor,
    y: tf.Tensor,
    lambda_x: tf.Tensor,
    lambda_y: tf.Tensor,
    radius: tf.Tensor,
    counts: tf.Tensor,
    active: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single iteration for points that have not diverged."""

    new_x = x * x - y * y - lambda_x
    new_y = 2 * x * y - lambda_y
    diverged = tf.logical_and(active, new_x * new_x + new_y * new_y > radius)
    counts = tf.where(diverged, tf.fill(tf.shape(counts), i), counts)
    active = tf.logical_and(active, tf.logical_not(diverged))
    # Diverged points keep their last bounded value so they cannot overflow.
    x = tf.where(active, new_x, x)
    y = tf.where(active, new_y, y)
    return x, y, counts, active


@tf.function
def _escape_run(
    x: tf.Tensor,
    y: tf.Tensor,
    lambda_x: tf.Tensor,
    lambda_y: tf.Tensor,
    radius: tf.Tensor,
    max_iterations: tf.Tensor,
) -> tf.Tensor:
    """Iterate the whole batch with a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    counts = tf.fill(tf.shape(x), max_iterations)
    active = tf.ones_like(counts, tf.bool)

    def cond(i, x, y, counts, active):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, x, y, counts, active):
        x, y, counts, active = _escape_step(i, x, y, lambda_x, lambda_y, radius, counts, active)
        return i + 1, x, y, counts, active

    _, _, _, counts, _ = tf.while_loop(cond, body, (i, x, y, counts, active))
    return counts


@dataclass(frozen=True)
class DivergenceKernel:
    """Iteration counter for one formula with its construction-time constants.

    ``fixed`` holds the Mandelbrot origin or the Julia lambda depending on
    ``formula``.
    """

    formula: Formula
    max_iterations: int
    radius: float
    fixed: tuple[float, float] = (0.0, 0.0)

    @classmethod
    def mandelbrot(cls, max_iterations: int, radius: float, x0: float = 0.0, y0: float = 0.0) -> "DivergenceKernel":
        return cls(Formula.MANDELBROT, int(max_iterations), float(radius), (float(x0), float(y0)))

    @classmethod
    def julia(cls, max_iterations: int, radius: float, lambda_x: float, lambda_y: float) -> "DivergenceKernel":
        return cls(Formula.JULIA, int(max_iterations), float(radius), (float(lambda_x), float(lambda_y)))

    @classmethod
    def for_request(cls, request: FractalRequest) -> "DivergenceKernel":
        if request.formula is Formula.MANDELBROT:
            return cls.mandelbrot(request.max_iterations, request.radius, *request.origin)
        return cls.julia(request.max_iterations, request.radius, *request.lambda_point)

    def __call__(self, plane_x: float, plane_y: float) -> int:
        fixed_x, fixed_y = self.fixed
        if self.formula is Formula.MANDELBROT:
            return escape_count(fixed_x, fixed_y, plane_x, plane_y, self.max_iterations, self.radius)
        return escape_count(plane_x, plane_y, fixed_x, fixed_y, self.max_iterations, self.radius)

    def evaluate(self, plane_x: np.ndarray, plane_y: np.ndarray, *, device: Optional[str] = None) -> np.ndarray:
        """Vectorised :meth:`__call__` over matching arrays of plane coordinates."""

        plane_x = np.asarray(plane_x, dtype=np.float64)
        plane_y = np.asarray(plane_y, dtype=np.float64)
        if plane_x.shape != plane_y.shape:
            raise ValueError(f"coordinate shapes differ: {plane_x.shape} != {plane_y.shape}")
        if plane_x.size == 0:
            return np.zeros(plane_x.shape, dtype=np.int32)

        fixed_x, fixed_y = self.fixed
        with tf.device(device if device is not None else "/CPU:0"):
            px = tf.convert_to_tensor(plane_x, dtype=tf.float64)
            py = tf.convert_to_tensor(plane_y, dtype=tf.float64)
            if self.formula is Formula.MANDELBROT:
                x = tf.fill(tf.shape(px), tf.constant(fixed_x, dtype=tf.float64))
                y = tf.fill(tf.shape(py), tf.constant(fixed_y, dtype=tf.float64))
                lambda_x, lambda_y = px, py
            else:
                x, y = px, py
                lambda_x = tf.fill(tf.shape(px), tf.constant(fixed_x, dtype=tf.float64))
                lambda_y = tf.fill(tf.shape(py), tf.constant(fixed_y, dtype=tf.float64))
            counts = _escape_run(
                x,
                y,
                lambda_x,
                lambda_y,
                tf.constant(self.radius, dtype=tf.float64),
                tf.constant(self.max_iterations, dtype=tf.int32),
            )
        return counts.numpy()
