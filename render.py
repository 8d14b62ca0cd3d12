import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import imageio

from fractal import (
    Formula,
    FractalRequest,
    InvalidRequest,
    RenderedImage,
    Viewport,
    ZoomPlanner,
    compute_zoom_factors,
    parse_color,
    render_frame,
)

from argparse import ArgumentParser


def select_device():
    """Use the first visible GPU when TensorFlow sees one, the CPU otherwise."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render Mandelbrot and Julia sets of z^2 - lambda.')

    parser.add_argument('--formula', type=str, choices=[f.value for f in Formula],
                        default=Formula.MANDELBROT.value, help='escape-time formula to render')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='maximum number of iterations before a point counts as inside',
                        metavar='MAX_ITERATIONS', default=50)

    parser.add_argument('--radius', type=float,
                        dest='radius', help='squared magnitude beyond which a point has diverged',
                        metavar='RADIUS', default=4.0)

    parser.add_argument('--x0', type=float, default=0.0,
                        help='real part of the initial z for the Mandelbrot formula')
    parser.add_argument('--y0', type=float, default=0.0,
                        help='imaginary part of the initial z for the Mandelbrot formula')

    parser.add_argument('--lambda-x', type=float, dest='lambda_x', default=0.8,
                        help='real part of lambda for the Julia formula')
    parser.add_argument('--lambda-y', type=float, dest='lambda_y', default=-0.156,
                        help='imaginary part of lambda for the Julia formula')

    parser.add_argument('--x', type=float, dest='x', metavar='X', default=-0.75,
                        help='left edge of the viewport in the complex plane')
    parser.add_argument('--y', type=float, dest='y', metavar='Y', default=-1.5,
                        help='bottom edge of the viewport in the complex plane')
    parser.add_argument('--width', type=float, dest='width', metavar='WIDTH', default=3.0,
                        help='width of the viewport in the complex plane')
    parser.add_argument('--height', type=float, dest='height', metavar='HEIGHT', default=3.0,
                        help='height of the viewport in the complex plane')

    parser.add_argument('--lock-aspect', action='store_true',
                        help='Recompute the height as width * (y_res/x_res) so pixels stay square.')

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='width of the output image in pixels',
                        metavar='X_RES', default=512)
    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='height of the output image in pixels',
                        metavar='Y_RES', default=512)

    parser.add_argument('--start-color', type=str, dest='start_color', default='#000000',
                        help='gradient color for points diverging at the first iteration (any matplotlib color)')
    parser.add_argument('--end-color', type=str, dest='end_color', default='#ffffff',
                        help='gradient color for the iteration cap (any matplotlib color)')
    parser.add_argument('--interior-color', type=str, dest='interior_color', default=None,
                        help='fixed color for points that never diverge; defaults to the end color')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames to generate; more than one renders a zoom sequence',
                        metavar='FRAMES', default=1)

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='the factor by which to multiply the window size each frame. Choose < 1 for zoom in, >1 for zoom out',
                        metavar='ZOOM_FACTOR', default=0.8)

    parser.add_argument('--final-zoom', type=float, default=None,
                        help='Overall scale applied by the last frame (e.g., 1e-4 narrows the window by 10000x). If set, overrides --zoom-factor.')

    parser.add_argument('--easing', type=str, choices=['linear', 'ease'], default='ease',
                        help='Temporal curve used for variable zoom: "linear" or "ease" for smooth ease-in-out.')

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: gif, image, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store numbered frames.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--rows-per-batch', type=int, dest='rows_per_batch', default=64,
                        help='number of pixel rows evaluated per TensorFlow batch')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"gif", "image", "frames"}
    modes = list(opt.modes or [])
    if not modes:
        modes = ["gif"] if opt.frames > 1 else ["image"]

    normalized_modes: list[str] = []
    for mode in modes:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in normalized_modes:
            normalized_modes.append(mode)
    modes_tuple = tuple(normalized_modes)

    frame_dir_path: Path | None = None
    if "frames" in modes_tuple:
        frame_dir_path = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    file_modes = [mode for mode in modes_tuple if mode in {"gif", "image"}]
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        mode = file_modes[0]
        if opt.output:
            output_path = Path(opt.output).expanduser()
            if opt.output.endswith(("/", os.sep)) or output_path.is_dir():
                parser.error("--output must be a file path when a single file-based mode is selected.")
            expected_suffix = ".gif" if mode == "gif" else f".{image_format}"
            if output_path.suffix:
                if output_path.suffix.lower() != expected_suffix:
                    parser.error(f"--output extension {output_path.suffix} does not match the {mode} output ({expected_suffix}).")
            else:
                output_path = output_path.with_suffix(expected_suffix)
            output_path = output_path.resolve()
        else:
            output_path = Path("movie.gif" if mode == "gif" else f"fractal.{image_format}").resolve()
        if mode == "gif":
            gif_path = output_path
        else:
            image_path = output_path
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "movie.gif").resolve()
        image_path = (base_dir / f"fractal.{image_format}").resolve()

    return OutputConfig(
        modes=modes_tuple,
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def build_request(opt, parser: ArgumentParser) -> FractalRequest:
    colors = {}
    for name in ("start_color", "end_color", "interior_color"):
        value = getattr(opt, name)
        if value is None:
            colors[name] = None
            continue
        try:
            colors[name] = parse_color(value)
        except ValueError as exc:
            parser.error(f"--{name.replace('_', '-')}: {exc}")

    try:
        request = FractalRequest(
            viewport=Viewport(opt.x, opt.y, opt.width, opt.height),
            output_size=(opt.x_res, opt.y_res),
            max_iterations=opt.max_iterations,
            radius=opt.radius,
            formula=Formula.parse(opt.formula),
            origin=(opt.x0, opt.y0),
            lambda_point=(opt.lambda_x, opt.lambda_y),
            **colors,
        )
    except InvalidRequest as exc:
        parser.error(f"invalid request: {exc}")
    return request


def write_frame_sequence(image: RenderedImage, frame_dir: Path, index: int, digits: int, image_format: str) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    return image.save(frame_dir / f"frame{index:0{digits}d}.{image_format}", image_format)


class OutputWriters:
    def __init__(self, config: OutputConfig, frame_digits: int) -> None:
        self.config = config
        self.frame_digits = frame_digits
        self._gif_writer: Any = None
        if "gif" in config.modes and config.gif_path is not None:
            config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(config.gif_path), mode='I', duration=0.1, loop=0)

    def write_frame(self, index: int, image: RenderedImage) -> None:
        if self._gif_writer is not None:
            self._gif_writer.append_data(np.asarray(image.to_pil()))
        if self.config.frame_dir is not None:
            write_frame_sequence(image, self.config.frame_dir, index, self.frame_digits, self.config.image_format)

    def finalize(self, final_image: RenderedImage | None) -> None:
        if final_image is not None and self.config.image_path is not None:
            final_image.save(self.config.image_path, self.config.image_format)
            log("Saved %s" % self.config.image_path)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None
            log("Saved %s" % self.config.gif_path)


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    log("TensorFlow version: %s" % tf.__version__)

    if opt.frames < 1:
        parser.error("--frames must be at least 1.")
    if opt.zoom_factor <= 0:
        parser.error("--zoom-factor must be positive.")
    if opt.rows_per_batch < 1:
        parser.error("--rows-per-batch must be at least 1.")

    output_config = resolve_output_config(opt, parser)
    planner = ZoomPlanner(lock_aspect=bool(opt.lock_aspect))
    request = planner.enforce_aspect(build_request(opt, parser))
    device = select_device()

    if opt.frames > 1:
        focus_result = render_frame(request, rows_per_batch=opt.rows_per_batch, device=device)
        request = planner.initialize_focus(request, focus_result)

    per_frame_factors = compute_zoom_factors(opt.frames, opt.zoom_factor, final_zoom=opt.final_zoom, easing=opt.easing)
    writers = OutputWriters(output_config, frame_digits=max(3, len(str(opt.frames - 1))))

    final_image: RenderedImage | None = None
    try:
        for i in range(opt.frames):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            result = render_frame(request, rows_per_batch=opt.rows_per_batch, device=device)
            writers.write_frame(i, result.image)
            final_image = result.image
            if i < opt.frames - 1:
                request = planner.update_after_frame(request, result, per_frame_factors[i])
    finally:
        writers.close()
    print()

    writers.finalize(final_image)


if __name__ == '__main__':
    main()
