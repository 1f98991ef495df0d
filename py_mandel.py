#!/usr/bin/env python3
# file: py_mandel.py
# This code is covered by the MIT open source license.

# Command line front end: parse the image size and complex corners,
# render with N threads and write a grayscale PNG.
#
#   py_mandel.py mandel.png 800x600 -2.5,1.2 1,-1.2 4

import sys
import math
import time
import logging
import argparse
import numpy as np
import matplotlib.pyplot as plt
from PIL import Image
from mandel_functions import ComplexWindow, PixelWindow, log_color
from mandel_parallel import parallel_render

FLAGS = {"-h", "--help", "-v", "--verbose", "--show"}


def parse_pair(text, sep, kind):  # {{{
    """Split ``text`` at the first ``sep`` and convert both halves with
    ``kind``.  None if the separator is missing or either half fails.
    """
    left, found, right = text.partition(sep)
    if not found:
        return None
    try:
        return kind(left), kind(right)
    except ValueError:
        return None


# }}}
def parse_complex(text):  # {{{
    pair = parse_pair(text, ",", float)
    if pair is None:
        return None
    return complex(*pair)


# }}}
def parse_px_window(text):  # {{{
    pair = parse_pair(text, "x", int)
    if pair is None:
        return None
    return PixelWindow(*pair)


# }}}
def px_window_arg(text):  # {{{
    px_win = parse_px_window(text)
    if px_win is None or px_win.width < 1 or px_win.height < 1:
        raise argparse.ArgumentTypeError(
            f"incorrect image size {text!r}, expected WIDTHxHEIGHT"
        )
    return px_win


# }}}
def complex_arg(text):  # {{{
    c = parse_complex(text)
    if c is None or not (math.isfinite(c.real) and math.isfinite(c.imag)):
        raise argparse.ArgumentTypeError(
            f"incorrect complex corner {text!r}, expected RE,IM"
        )
    return c


# }}}
def threads_arg(text):  # {{{
    try:
        threads = int(text)
    except ValueError:
        threads = 0
    if threads < 1:
        raise argparse.ArgumentTypeError(
            f"incorrect thread count {text!r}, expected a positive integer"
        )
    return threads


# }}}
def parse_args(argv):  # {{{
    parser = argparse.ArgumentParser(
        prog="py-mandel",
        description="Render the Mandelbrot set as an 8-bit grayscale PNG.",
        epilog="Example: py-mandel mandel.png 800x600 -4,3 4,-3 4",
    )
    parser.add_argument("filename", metavar="FILENAME", help="Output PNG file.")
    parser.add_argument(
        "px_win",
        metavar="IMG_SIZE",
        type=px_window_arg,
        help="Image size in pixels, WIDTHxHEIGHT.",
    )
    parser.add_argument(
        "upper_left",
        metavar="UPPER_LEFT",
        type=complex_arg,
        help="Upper left corner of the complex window, RE,IM.",
    )
    parser.add_argument(
        "lower_right",
        metavar="LOWER_RIGHT",
        type=complex_arg,
        help="Lower right corner of the complex window, RE,IM.",
    )
    parser.add_argument(
        "threads",
        metavar="THREADS",
        type=threads_arg,
        help="Number of render threads.",
    )
    parser.add_argument(
        "--show",
        dest="show",
        action="store_true",
        default=False,
        help="Display the image with matplotlib after writing it.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbose",
        action="store_true",
        default=False,
        help="Log band layout and timing.",
    )

    # corners such as -4,3 would otherwise be taken for options
    flags = [a for a in argv if a in FLAGS]
    positional = [a for a in argv if a not in FLAGS]
    args = parser.parse_args(flags + ["--"] + positional)

    c_win = ComplexWindow(args.upper_left, args.lower_right)
    if not c_win.is_valid():
        parser.error(
            f"upper left corner {args.upper_left} must be above and to the "
            f"left of lower right corner {args.lower_right}"
        )
    return args, c_win


# }}}
def save_image(filename, pixels, px_win):  # {{{
    """Write ``pixels`` as a single channel 8-bit PNG."""
    img = np.asarray(pixels, dtype=np.uint8).reshape(px_win.height, px_win.width)
    Image.fromarray(img).save(filename, format="PNG")


# }}}
def show_image(pixels, px_win, title=None):  # {{{
    img = np.asarray(pixels, dtype=np.uint8).reshape(px_win.height, px_win.width)
    fig, ax = plt.subplots()
    ax.imshow(img, cmap="gray", vmin=0, vmax=255)
    ax.set_xticks([])
    ax.set_yticks([])
    if title is not None:
        ax.set_title(title, fontsize=8)
    plt.show()


# }}}
def main(argv=None):  # {{{
    if argv is None:
        argv = sys.argv[1:]
    args, c_win = parse_args(argv)
    logging.basicConfig()
    # basicConfig ignores level= once the root logger has a handler
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else logging.WARNING)

    px_win = args.px_win
    pixels = np.zeros(px_win.width * px_win.height, dtype=np.uint8)

    T_s = time.time()
    parallel_render(pixels, px_win, c_win, log_color, args.threads)
    print(
        f"rendered {px_win.width} x {px_win.height} with {args.threads} "
        f"thread(s) in {time.time() - T_s:.3f} seconds"
    )

    try:
        save_image(args.filename, pixels, px_win)
    except OSError as e:
        print(f"Error exporting image: {e}", file=sys.stderr)
        return 1
    print(f"wrote {args.filename}")

    if args.show:
        show_image(pixels, px_win, title=f"{c_win.upper_left} .. {c_win.lower_right}")
    return 0


# }}}

if __name__ == "__main__":
    sys.exit(main())
