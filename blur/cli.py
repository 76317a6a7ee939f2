import argparse
import contextlib
import logging
import math
import sys

from . import __version__, image_io
from .config import (DEFAULT_MATSIZE, DEFAULT_SIGMA, DEFAULT_SOBEL_TYPE, DEFAULT_THRESHOLD,
                     MAX_CHANNELS, RunConfig)
from .custom_matrix import matrix_size, parse_custom_matrix
from .errors import BlurError, ConfigError, CustomMatrixError
from .filters import SOBEL_TYPES
from .kernels import average_kernel, format_kernel, gaussian_kernel
from .pipeline import Algorithm, apply_filter

logger = logging.getLogger(__name__)

EPILOG = """\
a dash (-) can be used instead of INFILE or OUTFILE to use stdin and stdout
respectively. -.extension forces a particular input or output format, e.g.:
    blur -.jpg -.png -a none    # convert image from jpg to png

if no extension is given, the input format is read from the file signature
and the output format is the same as the input format.

custom matrix format:
    cells are separated by commas (,), rows by bars (|)
    cells may only be numbers (integer or floating point)
    the matrix has to be a square with odd side length
    if the cells do not sum to zero, the matrix is normalised
e.g. 1,2,1|2,4,2|1,2,1
"""

CUSTOM_MATRIX_FLAGS = ("-x", "--custom-matrix")


class ArgumentParser(argparse.ArgumentParser):
    """argparse that raises ConfigError instead of exiting with status 2."""

    def error(self, message):
        raise ConfigError(message)


# -----------------------
# Option value types
# -----------------------
def _int(text):
    try:
        return int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{text}'") from None


def odd_size(text):
    value = _int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("Matrix size has to be at least 1")
    if value % 2 == 0:
        raise argparse.ArgumentTypeError("Matrix size has to be odd")
    return value


def positive_float(text):
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{text}'") from None
    if not value > 0:
        raise argparse.ArgumentTypeError("sigma has to be positive")
    # 2*pi*sigma^2 has to be a normal float for the Gaussian to normalise
    spread = 2.0 * math.pi * value * value
    if not (math.isfinite(spread) and spread >= sys.float_info.min):
        raise argparse.ArgumentTypeError(f"sigma {text} is out of range")
    return value


def sobel_type(text):
    value = _int(text)
    if value not in SOBEL_TYPES:
        raise argparse.ArgumentTypeError(
            f"Sobel filter type has to be between 0 and {len(SOBEL_TYPES) - 1} inclusive")
    return value


def threshold_pair(text):
    low, sep, high = text.partition(",")
    if not sep:
        raise argparse.ArgumentTypeError("expected threshold in the format lo,hi")
    low, high = _int(low), _int(high)
    if not (0 <= low <= 255 and 0 <= high <= 255):
        raise argparse.ArgumentTypeError("threshold values have to be 0-255 inclusive")
    if low > high:
        raise argparse.ArgumentTypeError(
            "first threshold value has to be lower (or equal to) the second one")
    return low, high


def channel_count(text):
    value = _int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("Cannot have fewer than 1 channel")
    if value > MAX_CHANNELS:
        raise argparse.ArgumentTypeError(f"Cannot have more than {MAX_CHANNELS} channels")
    return value


def algorithm(text):
    try:
        return Algorithm(text.lower())
    except ValueError:
        raise argparse.ArgumentTypeError(f"Unknown algorithm {text}") from None


def build_parser():
    parser = ArgumentParser(
        prog="blur",
        usage="%(prog)s INFILE OUTFILE [OPTS]",
        description="Apply a spatial filter to an image.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("infile", metavar="INFILE", help="input image, - for stdin")
    parser.add_argument("outfile", metavar="OUTFILE", help="output image, - for stdout")
    parser.add_argument("-m", "--matsize", type=odd_size, default=DEFAULT_MATSIZE, metavar="N",
                        help="set matrix size, default: %(default)s")
    parser.add_argument("-s", "--sigma", type=positive_float, default=DEFAULT_SIGMA, metavar="N",
                        help="set sigma, default: %(default)s")
    parser.add_argument("--sobel-type", type=sobel_type, default=DEFAULT_SOBEL_TYPE, metavar="N",
                        help="Sobel filter type (0, 1 or 2), default: %(default)s")
    parser.add_argument("-t", "--threshold", type=threshold_pair, default=DEFAULT_THRESHOLD,
                        metavar="N,N", help="lower and upper threshold values, default: 0,255")
    parser.add_argument(*CUSTOM_MATRIX_FLAGS, dest="custom_matrix", metavar="MAT",
                        help="matrix to use with the custom algorithm, default: none")
    parser.add_argument("-a", "--alg", type=algorithm, default=Algorithm.NONE, metavar="ENUM",
                        help="one of gauss, sobel, avg, custom or none, default: none")
    parser.add_argument("-c", "--channels", type=channel_count, default=0, metavar="N",
                        help="number of channels to output, default: same as input image")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output and timing")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _glue_values(options):
    """Turn "-x VALUE" into "--custom-matrix=VALUE" so VALUE may start with a dash."""
    out = []
    tokens = iter(options)
    for token in tokens:
        if token in CUSTOM_MATRIX_FLAGS:
            value = next(tokens, None)
            if value is None:
                raise ConfigError(f"Expected an argument after {token}")
            token = f"--custom-matrix={value}"
        out.append(token)
    return out


def parse_args(argv):
    """argv without the program name -> RunConfig, raises ConfigError."""
    parser = build_parser()
    if len(argv) < 2 or argv[0] in ("-h", "--help", "--version"):
        # help, version or a missing positional
        args = parser.parse_args(argv)
    else:
        # INFILE and OUTFILE always come first and may look like options ("-.png")
        args = parser.parse_args(_glue_values(argv[2:]) + ["--"] + argv[:2])

    matsize = args.matsize
    if args.custom_matrix is not None:
        matsize = matrix_size(args.custom_matrix)
        if matsize % 2 == 0:
            raise ConfigError("Matrix size has to be odd")
    if args.alg is Algorithm.CUSTOM and args.custom_matrix is None:
        raise ConfigError("custom algorithm requires specifying a matrix")

    # unknown extensions are configuration errors, reported before any file is opened
    image_io.encoding_from_name(args.infile)
    image_io.encoding_from_name(args.outfile)

    return RunConfig(
        infile=args.infile,
        outfile=args.outfile,
        matsize=matsize,
        channels=args.channels,
        sobel_type=args.sobel_type,
        sigma=args.sigma,
        threshold=args.threshold,
        custom_matrix=args.custom_matrix,
        algorithm=args.alg,
        verbose=args.verbose,
    )


def build_kernel(config):
    if config.algorithm is Algorithm.GAUSS:
        return gaussian_kernel(config.matsize, config.sigma)
    if config.algorithm is Algorithm.AVG:
        return average_kernel(config.matsize)
    if config.algorithm is Algorithm.CUSTOM:
        return parse_custom_matrix(config.custom_matrix)
    return None


def describe(config, kernel):
    if config.algorithm is Algorithm.GAUSS:
        return f"Gaussian blur, σ = {config.sigma}, size = {config.matsize}."
    if config.algorithm is Algorithm.SOBEL:
        return f"Sobel filter, type {config.sobel_type}."
    if config.algorithm is Algorithm.CUSTOM:
        return "custom matrix:\n" + format_kernel(kernel)
    if config.algorithm is Algorithm.AVG:
        return "averaging."
    return "nothing."


def run(config):
    kernel = build_kernel(config)

    with contextlib.ExitStack() as stack:
        source = stack.enter_context(image_io.open_input(config.infile))
        target = stack.enter_context(image_io.open_output(config.outfile, source.encoding))

        pixels = image_io.read_image(source, config.channels)
        height, width, channels = pixels.shape
        logger.info("input image %s: (%dx%d)@%d. Using %s",
                    source.display_name, width, height, channels, describe(config, kernel))

        out = apply_filter(pixels, config.algorithm, kernel, config.sobel_type, config.threshold)
        image_io.write_image(target, out)


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    logging.basicConfig(stream=sys.stderr, format="%(message)s")
    package_logger = logging.getLogger(__package__)
    package_logger.setLevel(logging.INFO)

    try:
        config = parse_args(argv)
        if config.verbose:
            package_logger.setLevel(logging.DEBUG)
        run(config)
    except CustomMatrixError as exc:
        logger.error(exc.render())
        return 1
    except BlurError as exc:
        logger.error(str(exc))
        return 1
    return 0
