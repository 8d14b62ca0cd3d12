import pytest

from fractal import Formula, FractalRequest, Viewport


@pytest.fixture
def mandelbrot_request():
    return FractalRequest(
        viewport=Viewport(-2.0, -1.5, 3.0, 3.0),
        output_size=(30, 20),
        max_iterations=25,
        radius=4.0,
        formula=Formula.MANDELBROT,
        origin=(0.0, 0.0),
        start_color=(0, 0, 0),
        end_color=(255, 255, 255),
    )


@pytest.fixture
def julia_request():
    return FractalRequest(
        viewport=Viewport(-1.6, -1.2, 3.2, 2.4),
        output_size=(16, 12),
        max_iterations=30,
        radius=4.0,
        formula=Formula.JULIA,
        lambda_point=(0.8, -0.156),
        start_color=(0, 0, 64),
        end_color=(255, 200, 0),
    )
