import numpy as np
import pytest

from fractal import ZoomPlanner, compute_zoom_factors, render_frame, select_zoom_center
from fractal.sequence import boundary_mask


def test_no_frames_no_factors():
    assert compute_zoom_factors(0, 0.8, final_zoom=None, easing="ease").size == 0


def test_constant_zoom_factor():
    factors = compute_zoom_factors(4, 0.8, final_zoom=None, easing="ease")
    np.testing.assert_allclose(factors, [0.8] * 4)


@pytest.mark.parametrize("easing", ["linear", "ease"])
def test_final_zoom_is_reached(easing):
    factors = compute_zoom_factors(6, 0.8, final_zoom=1e-3, easing=easing)
    assert np.prod(factors) == pytest.approx(1e-3)


def test_linear_final_zoom_is_geometric():
    factors = compute_zoom_factors(3, 0.8, final_zoom=1e-3, easing="linear")
    assert factors[0] == pytest.approx(1.0)
    assert factors[1] == pytest.approx(factors[2])


def test_select_zoom_center_without_edges_uses_middle():
    assert tuple(select_zoom_center(np.zeros((5, 7), dtype=bool))) == (2, 3)


def test_select_zoom_center_picks_closest_edge():
    edges = np.zeros((9, 9), dtype=bool)
    edges[0, 0] = True
    edges[5, 6] = True
    assert tuple(select_zoom_center(edges)) == (5, 6)


def test_boundary_mask_follows_inside_region(mandelbrot_request):
    result = render_frame(mandelbrot_request)
    edges = boundary_mask(result.grid)

    assert edges.shape == result.grid.shape
    assert edges.any()
    assert not edges.all()


def test_planner_zooms_towards_boundary(mandelbrot_request):
    planner = ZoomPlanner(lock_aspect=True)
    request = planner.enforce_aspect(mandelbrot_request)
    assert request.viewport.height == pytest.approx(request.viewport.width * 20 / 30)

    result = render_frame(request)
    next_request = planner.update_after_frame(request, result, 0.5)

    assert next_request.viewport.width == pytest.approx(request.viewport.width * 0.5)
    assert next_request.viewport.height == pytest.approx(request.viewport.height * 0.5)
    focus = select_zoom_center(boundary_mask(result.grid))
    assert next_request.viewport.center == pytest.approx(result.grid.mapper.forward(focus[1], focus[0]))


def test_planner_without_lock_keeps_aspect_untouched(mandelbrot_request):
    planner = ZoomPlanner(lock_aspect=False)
    assert planner.enforce_aspect(mandelbrot_request) is mandelbrot_request


def test_single_frame_applies_whole_final_zoom():
    factors = compute_zoom_factors(1, 0.8, final_zoom=0.25, easing="ease")
    np.testing.assert_allclose(factors, [0.25])


def test_eased_zoom_is_slow_at_both_ends():
    factors = compute_zoom_factors(5, 0.8, final_zoom=1e-4, easing="ease")
    steps = np.log(factors)
    assert factors[0] == pytest.approx(1.0)
    assert steps[1] == pytest.approx(steps[4])
    assert steps[2] == pytest.approx(steps[3])
    assert abs(steps[2]) > abs(steps[1])
