import logging
import os
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

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

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

from fractal import (
    AnimationSettings,
    ColorMode,
    EscapeColoring,
    FractalError,
    JuliaEscape,
    MultibrotEscape,
    PlaneWindow,
    RasterDimensions,
    compute_zoom_factor,
    palette_by_name,
    render_animation,
    render_image,
    sweep_parameter,
)
from fractal.output import write_frame_sequence, write_gif, write_image

from argparse import ArgumentParser


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Optional[Path]
    image_path: Optional[Path]
    frame_dir: Optional[Path]
    image_format: str


def build_parser():
    parser = ArgumentParser(description="Render escape-time fractals as images or animations.")

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='maximum number of iterations per point',
                        metavar='MAX_ITERATIONS', default=1000)

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='width of the rendered image in pixels',
                        metavar='X_RES', default=512)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='height of the rendered image in pixels',
                        metavar='Y_RES', default=512)

    parser.add_argument('--x-center', type=float,
                        dest='x_center', help='real part of the plot center',
                        metavar='X_CENTER', default=0.0)

    parser.add_argument('--y-center', type=float,
                        dest='y_center', help='imaginary part of the plot center',
                        metavar='Y_CENTER', default=0.0)

    parser.add_argument('--x-width', type=float,
                        dest='x_width', help='width of the complex plot (x_max - x_min)',
                        metavar='X_WIDTH', default=4.0)

    parser.add_argument('--y-width', type=float,
                        dest='y_width', help='height of the complex plot (y_max - y_min)',
                        metavar='Y_WIDTH', default=4.0)

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='the factor by which to multiply the plot size each frame. Choose < 1 for zoom in, >1 for zoom out, 1 for none',
                        metavar='ZOOM_FACTOR', default=0.9)

    parser.add_argument('--final-zoom', type=float, default=None,
                        help='Overall scale applied by the last frame (e.g., 1e-4 narrows the window by 10000x). If set, overrides --zoom-factor.')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames in the animation',
                        metavar='FRAMES', default=100)

    parser.add_argument('--frame-delay', type=int,
                        dest='frame_delay', help='delay between animation frames, in hundredths of a second',
                        metavar='FRAME_DELAY', default=8)

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: image, gif, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store the numbered frames of the frames mode.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--palette', type=str,
                        dest='palette', help='color palette: "bw", "bw-inv", "uf", "gb" or any matplotlib colormap name',
                        metavar='PALETTE', default='uf')

    parser.add_argument('--bw-contrast', type=int, dest='bw_contrast', default=15,
                        help='contrast step of the bw palettes')

    parser.add_argument('--inside-color', type=str, default='#000000',
                        help='Hex color for points that never escape (matplotlib palettes only).')

    parser.add_argument('--direct-color', dest='direct_color', action='store_true',
                        help='Store RGB colors in the raster instead of palette indices.')

    parser.add_argument('--exponent', type=int, dest='exponent', default=2,
                        help='exponent of the iterated map f(z) = z**exponent + c')

    parser.add_argument('--escape-radius', type=float, dest='escape_radius', default=2.0,
                        help='escape radius of the iterates')

    parser.add_argument('--init-iterate-x', type=float, dest='init_iterate_x', default=0.0,
                        help='real part of the initial iterate (parameter-plane renders)')

    parser.add_argument('--init-iterate-y', type=float, dest='init_iterate_y', default=0.0,
                        help='imaginary part of the initial iterate (parameter-plane renders)')

    parser.add_argument('--julia-cx', type=float, dest='julia_cx', default=None,
                        help='real part of c; renders the Julia set of c instead of the parameter plane')

    parser.add_argument('--julia-cy', type=float, dest='julia_cy', default=None,
                        help='imaginary part of c for Julia set renders')

    parser.add_argument('--sweep-radius', type=float, dest='sweep_radius', default=None,
                        help='Render a Julia set animation whose c travels once around the circle of this radius.')

    parser.add_argument('--max-jobs', type=int, dest='max_jobs', default=2 * (os.cpu_count() or 1),
                        help='number of frames rendered concurrently; 0 renders frames sequentially')

    parser.add_argument('--slice-width', type=int, dest='slice_width', default=None,
                        help='width of the vertical slices rendered in parallel (default: x-res / CPU count)')

    parser.add_argument('--per-point', dest='per_point', action='store_true',
                        help='Evaluate points one at a time instead of with the TensorFlow grid kernel.')

    parser.add_argument('--progress', action='store_true',
                        help='display render progress (frame count)')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics.')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    valid_modes = {"gif", "image", "frames"}
    modes = opt.modes or ["image"]

    normalized_modes: list[str] = []
    for mode in modes:
        if mode not in valid_modes:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(sorted(valid_modes))}.")
        if mode not in normalized_modes:
            normalized_modes.append(mode)
    modes_tuple = tuple(normalized_modes)

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    frame_dir_path: Optional[Path] = None
    if "frames" in modes_tuple:
        frame_dir_path = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    file_modes = [mode for mode in modes_tuple if mode in {"gif", "image"}]
    gif_path: Optional[Path] = None
    image_path: Optional[Path] = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        output_path = Path(opt.output) if opt.output else None
        if file_modes[0] == "gif":
            output_path = output_path or Path("render.gif")
            if output_path.suffix and output_path.suffix.lower() != ".gif":
                parser.error("GIF outputs must end with .gif.")
            gif_path = output_path.with_suffix(".gif").expanduser().resolve()
        else:
            expected_suffix = f".{image_format}"
            output_path = output_path or Path(f"render{expected_suffix}")
            if output_path.suffix and output_path.suffix.lower() != expected_suffix:
                parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
            image_path = output_path.with_suffix(expected_suffix).expanduser().resolve()
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "render.gif").resolve()
        image_path = (base_dir / f"render.{image_format}").resolve()

    if (opt.julia_cx is None) != (opt.julia_cy is None):
        parser.error("--julia-cx and --julia-cy must be given together.")
    if opt.sweep_radius is not None and opt.julia_cx is not None:
        parser.error("--sweep-radius cannot be combined with --julia-cx/--julia-cy.")
    if opt.max_jobs < 0:
        parser.error("--max-jobs must not be negative.")

    return OutputConfig(
        modes=modes_tuple,
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir_path,
        image_format=image_format,
    )


def _hex_rgb(hex_color):
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError('inside_color must be in the form #RRGGBB.')
    try:
        return tuple(int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError('inside_color must contain only hexadecimal digits.') from exc


def build_coloring_generator(opt, palette, mode):
    """Return the per-frame coloring function generator described by ``opt``."""

    escape_options = dict(
        exponent=opt.exponent,
        max_iters=opt.max_iterations,
        escape_radius=opt.escape_radius,
    )
    vectorized = not opt.per_point

    if opt.sweep_radius is not None:
        def sweep(frame_id):
            c = sweep_parameter(opt.sweep_radius, frame_id, opt.frames)
            return EscapeColoring(JuliaEscape(c=c, **escape_options), palette, mode, vectorized)
        return sweep

    if opt.julia_cx is not None:
        escape = JuliaEscape(c=complex(opt.julia_cx, opt.julia_cy), **escape_options)
    else:
        escape = MultibrotEscape(init_iterate=complex(opt.init_iterate_x, opt.init_iterate_y), **escape_options)
    coloring = EscapeColoring(escape, palette, mode, vectorized)
    return lambda frame_id: coloring


def report_progress(emitted, total):
    print("frame {0} out of {1}".format(emitted, total), end='\r')


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    output_config = resolve_output_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose) or VERBOSE
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log("TensorFlow version: %s" % tf.__version__)

    try:
        inside_rgb = _hex_rgb(opt.inside_color)
    except ValueError:
        print(f"Invalid inside_color '{opt.inside_color}', defaulting to black.")
        inside_rgb = (0, 0, 0)

    mode = ColorMode.DIRECT if opt.direct_color else ColorMode.INDEXED

    try:
        palette = palette_by_name(opt.palette, opt.max_iterations, contrast=opt.bw_contrast, inside_color=inside_rgb)
        dims = RasterDimensions(opt.x_res, opt.y_res)
        window = PlaneWindow(opt.x_center, opt.y_center, opt.x_width, opt.y_width)
        coloring_fn_gen = build_coloring_generator(opt, palette, mode)

        if set(output_config.modes) == {"image"}:
            raster = render_image(dims, window, coloring_fn_gen(0), mode=mode, slice_width=opt.slice_width)
            write_image(raster, palette.palette(), output_config.image_path, output_config.image_format, mode)
            return 0

        settings = AnimationSettings(
            n_frames=opt.frames,
            dims=dims,
            window=window,
            coloring_fn_gen=coloring_fn_gen,
            frame_delay_fn=lambda frame_id: opt.frame_delay,
            zoom_factor=compute_zoom_factor(opt.frames, opt.zoom_factor, final_zoom=opt.final_zoom),
            palette=palette.palette(),
            mode=mode,
            slice_width=opt.slice_width,
            progress=report_progress if opt.progress else None,
        )
        log("rendering %d frames, zoom factor %g" % (settings.n_frames, settings.zoom_factor))
        buffer = render_animation(settings, opt.max_jobs or None)
    except FractalError as exc:
        print(f"render failed: {exc}", file=sys.stderr)
        return 1

    if opt.progress:
        print()
    if output_config.gif_path is not None:
        write_gif(buffer, output_config.gif_path)
    if output_config.frame_dir is not None:
        write_frame_sequence(buffer, output_config.frame_dir, output_config.image_format)
    if output_config.image_path is not None:
        write_image(buffer.frames[-1], buffer.palette, output_config.image_path, output_config.image_format, buffer.mode)
    return 0


if __name__ == '__main__':
    sys.exit(main())
