import numpy as np
import PIL.Image
import pytest

from fractal import IndexOutOfRange, IterationGrid, Viewport, ViewportMapper, assemble_image, build_color_table


def make_grid(counts, max_iterations):
    counts = np.asarray(counts, dtype=np.int32)
    height, width = counts.shape
    mapper = ViewportMapper(Viewport(0.0, 0.0, 1.0, 1.0), (width, height))
    return IterationGrid(counts=counts, max_iterations=max_iterations, mapper=mapper)


def test_assemble_looks_up_each_count():
    grid = make_grid([[0, 1, 2], [2, 1, 0]], max_iterations=2)
    table = build_color_table(2, (0, 0, 0), (200, 100, 50))

    image = assemble_image(grid, table)

    assert image.size == (3, 2)
    assert image.pixels.dtype == np.uint8
    assert tuple(image.pixels[0, 0]) == (0, 0, 0)
    assert tuple(image.pixels[0, 1]) == (100, 50, 25)
    assert tuple(image.pixels[0, 2]) == (200, 100, 50)
    assert tuple(image.pixels[1, 0]) == (200, 100, 50)


def test_assemble_rejects_counts_beyond_table():
    grid = make_grid([[0, 5]], max_iterations=4)
    table = build_color_table(4, (0, 0, 0), (255, 255, 255))
    with pytest.raises(IndexOutOfRange):
        assemble_image(grid, table)


def test_assemble_rejects_mismatched_iteration_caps():
    # Count 25 is a valid index into a 51-entry table but would land mid-gradient.
    grid = make_grid([[0, 25]], max_iterations=25)
    table = build_color_table(50, (0, 0, 0), (255, 255, 255), interior_color=(255, 0, 0))
    with pytest.raises(IndexOutOfRange, match="max_iterations"):
        assemble_image(grid, table)


def test_assemble_rejects_negative_counts():
    grid = make_grid([[0, -1]], max_iterations=3)
    table = build_color_table(3, (0, 0, 0), (255, 255, 255))
    with pytest.raises(AssertionError):
        assemble_image(grid, table)


def test_rendered_pixels_are_read_only():
    image = assemble_image(make_grid([[0]], 1), build_color_table(1, (0, 0, 0), (1, 1, 1)))
    with pytest.raises(ValueError):
        image.pixels[0, 0, 0] = 9


def test_to_pil_puts_top_of_view_first():
    # Row 0 of the grid is the bottom of the view.
    grid = make_grid([[0, 0], [1, 1]], max_iterations=1)
    image = assemble_image(grid, build_color_table(1, (0, 0, 0), (255, 255, 255)))

    pil_image = image.to_pil()

    assert pil_image.size == (2, 2)
    assert pil_image.mode == "RGB"
    assert pil_image.getpixel((0, 0)) == (255, 255, 255)
    assert pil_image.getpixel((0, 1)) == (0, 0, 0)


def test_save_writes_requested_format(tmp_path):
    image = assemble_image(make_grid([[0, 1]], 1), build_color_table(1, (0, 0, 0), (255, 0, 0)))
    path = image.save(tmp_path / "nested" / "out.jpg", "jpg")

    assert path.is_file()
    with PIL.Image.open(path) as reopened:
        assert reopened.format == "JPEG"
        assert reopened.size == (2, 1)
