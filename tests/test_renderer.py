import numpy as np
import pytest

import fractal.renderer
from fractal import (
    CancellationToken,
    ComputationAborted,
    DivergenceKernel,
    Formula,
    FractalRequest,
    Viewport,
    build_color_table,
    build_iteration_grid,
    recolor,
    render_frame,
)


@pytest.fixture
def scenario_request():
    return FractalRequest(
        viewport=Viewport(-2.0, -1.5, 3.0, 3.0),
        output_size=(300, 300),
        max_iterations=50,
        radius=4.0,
        formula=Formula.MANDELBROT,
        origin=(0.0, 0.0),
    )


def test_end_to_end_classification(scenario_request):
    grid = build_iteration_grid(scenario_request)

    assert grid.shape == (300, 300)
    assert grid.mapper.forward(200, 150) == (0.0, 0.0)
    assert grid.at(200, 150) == 50
    assert DivergenceKernel.for_request(scenario_request)(2.0, 2.0) <= 1
    assert grid.counts.min() >= 0
    assert grid.counts.max() <= 50


def test_grid_matches_per_pixel_kernel(julia_request, mandelbrot_request):
    for request in (julia_request, mandelbrot_request):
        grid = build_iteration_grid(request)
        kernel = DivergenceKernel.for_request(request)
        width, height = request.output_size
        for py in range(height):
            for px in range(width):
                assert grid.at(px, py) == kernel(*grid.mapper.forward(px, py))


def test_grid_shape_is_rows_by_columns(mandelbrot_request):
    grid = build_iteration_grid(mandelbrot_request)
    assert grid.shape == (20, 30)
    assert grid.counts.dtype == np.int32


def test_builds_are_deterministic(julia_request):
    first = build_iteration_grid(julia_request)
    second = build_iteration_grid(julia_request, rows_per_batch=1)
    third = build_iteration_grid(julia_request, rows_per_batch=5)

    np.testing.assert_array_equal(first.counts, second.counts)
    np.testing.assert_array_equal(first.counts, third.counts)


def test_grid_is_read_only(julia_request):
    grid = build_iteration_grid(julia_request)
    with pytest.raises(ValueError):
        grid.counts[0, 0] = 0


def test_rows_per_batch_must_be_positive(julia_request):
    with pytest.raises(ValueError):
        build_iteration_grid(julia_request, rows_per_batch=0)


def test_render_frame_colors_grid(mandelbrot_request):
    result = render_frame(mandelbrot_request)

    table = build_color_table(25, (0, 0, 0), (255, 255, 255))
    expected = table.as_uint8()[result.grid.counts]
    np.testing.assert_array_equal(result.image.pixels, expected)
    assert result.image.size == mandelbrot_request.output_size


def test_interior_color_policy_applies_to_inside_points(mandelbrot_request):
    request = mandelbrot_request.with_colors((0, 0, 0), (255, 255, 255), interior_color=(255, 0, 0))
    result = render_frame(request)

    inside = result.grid.inside
    assert inside.any()
    assert (result.image.pixels[inside] == (255, 0, 0)).all()
    assert not (result.image.pixels[~inside] == (255, 0, 0)).all(axis=-1).any()


def test_recolor_reuses_grid(mandelbrot_request):
    result = render_frame(mandelbrot_request)
    recolored = recolor(result, (255, 255, 255), (0, 0, 0))

    assert recolored.grid is result.grid
    assert recolored.request.start_color == (255.0, 255.0, 255.0)
    assert recolored.request.viewport == mandelbrot_request.viewport
    assert not np.array_equal(recolored.image.pixels, result.image.pixels)


def test_cancelled_token_aborts_before_work(julia_request):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(ComputationAborted):
        build_iteration_grid(julia_request, token=token)


class CancelAfter(CancellationToken):
    """Token that trips itself after a number of checks."""

    def __init__(self, checks):
        super().__init__()
        self.checks = checks

    def raise_if_cancelled(self):
        self.checks -= 1
        if self.checks <= 0:
            self.cancel()
        super().raise_if_cancelled()


def test_cancelled_render_never_assembles_partial_grid(julia_request, monkeypatch):
    assembled = []
    monkeypatch.setattr(fractal.renderer, "assemble_image", lambda grid, table: assembled.append(grid))

    with pytest.raises(ComputationAborted):
        render_frame(julia_request, token=CancelAfter(3), rows_per_batch=2)

    assert assembled == []


def test_cancellation_after_last_batch_discards_result(julia_request):
    # 12 rows in batches of 6: two checks before batches, one at the end.
    with pytest.raises(ComputationAborted):
        build_iteration_grid(julia_request, token=CancelAfter(3), rows_per_batch=6)


def test_recolor_keeps_interior_color_unless_given(mandelbrot_request):
    request = mandelbrot_request.with_colors((0, 0, 0), (255, 255, 255), interior_color=(255, 0, 0))
    result = render_frame(request)
    inside = result.grid.inside

    kept = recolor(result, (0, 0, 64), (0, 255, 0))
    assert kept.request.interior_color == (255.0, 0.0, 0.0)
    assert (kept.image.pixels[inside] == (255, 0, 0)).all()

    cleared = recolor(result, (0, 0, 64), (0, 255, 0), interior_color=None)
    assert cleared.request.interior_color is None
    assert (cleared.image.pixels[inside] == (0, 255, 0)).all()
