#!/usr/bin/env python3
# file: mandel_functions.py
# This code is covered by the MIT open source license.

# Numeric core of the Mandelbrot renderer: pixel <-> complex plane
# mapping, escape-time iteration, the grayscale ramp, and the
# single-threaded renderer that fills one pixel buffer.

import logging
from typing import NamedTuple

import numpy as np
from numba import jit, uint8, int64, float64, complex128

logger = logging.getLogger(__name__)

COLOR_BITS = 8  # bits per grayscale sample in the output image
COLOR_DEPTH = 255  # iteration ceiling, and the shade of points in the set
MAX_INTENSITY = 2**COLOR_BITS - 1
LOG_COEFF = COLOR_DEPTH / np.log(COLOR_DEPTH)  # 46.018385143...


class PixelWindow(NamedTuple):  # {{{
    width: int
    height: int


# }}}
class PixelPoint(NamedTuple):  # {{{
    col: int
    row: int


# }}}
class ComplexWindow(NamedTuple):  # {{{
    """Rectangle of the complex plane shown by an image.

    upper_left must lie above and to the left of lower_right.
    """

    upper_left: complex
    lower_right: complex

    @classmethod
    def from_center_scale(cls, center, scale, aspect_ratio):
        # aspect_ratio == width / height
        width = scale
        height = scale / aspect_ratio
        return cls(
            center + complex(-width / 2.0, height / 2.0),
            center + complex(width / 2.0, -height / 2.0),
        )

    @classmethod
    def from_corner_w_h(cls, upper_left, width, height):
        return cls(upper_left, upper_left + complex(width, -height))

    @property
    def width(self):
        return self.lower_right.real - self.upper_left.real

    @property
    def height(self):
        return self.upper_left.imag - self.lower_right.imag

    @property
    def center(self):
        return (self.upper_left + self.lower_right) / 2.0

    def is_valid(self):
        return self.width > 0 and self.height > 0


# }}}
def pixel_to_point(pixel, px_win, c_win):  # {{{
    """Complex point at the upper-left corner of ``pixel``.

    Row 0 is the top of the image, i.e. the largest imaginary part.
    """
    return complex(
        c_win.upper_left.real + c_win.width * pixel.col / px_win.width,
        c_win.upper_left.imag - c_win.height * pixel.row / px_win.height,
    )


# }}}
def px_to_index(pixel, px_win):  # {{{
    return pixel.col + pixel.row * px_win.width


# }}}
# jit def escape_count(c, iters)                             # {{{
@jit(
    int64(complex128, int64),
    nopython=True,
    nogil=True,
    cache=True,
)
def escape_count(c, iters):
    # -1 means the orbit stayed inside |z| <= 2 for all iters steps
    z = complex(0.0, 0.0)
    for i in range(iters):
        if z.real * z.real + z.imag * z.imag > 4.0:
            return i
        z = z * z + c
    return -1


# }}}
def escape_time(c, iters):  # {{{
    """Number of iterations before the orbit of ``c`` leaves the
    radius-2 disk, or None if it is still inside after ``iters`` steps.
    """
    n = escape_count(complex(c), iters)
    if n < 0:
        return None
    return int(n)


# }}}
# jit def escape_grid(counts, upper_left, c_width, c_height, iters) # {{{
@jit(
    uint8(int64[:, :], complex128, float64, float64, int64),
    nopython=True,
    nogil=True,
    cache=True,
)
def escape_grid(counts, upper_left, c_width, c_height, iters):
    # counts updated in-place, one escape count per pixel (-1 = in set).
    # Inlined copy of pixel_to_point (the reference mapping); keep the two
    # expressions identical.  No fastmath so they agree bit for bit.
    height, width = counts.shape
    for row in range(height):
        im = upper_left.imag - c_height * row / height
        for col in range(width):
            re = upper_left.real + c_width * col / width
            counts[row, col] = escape_count(complex(re, im), iters)
    return 0


# }}}
def log_color(x):  # {{{
    return LOG_COEFF * np.log(x + 1.0)


# }}}
def to_intensity(value):  # {{{
    """Narrow color function output to uint8.

    Saturating: NaN -> 0, fractional part truncated, then clamped to
    [0, MAX_INTENSITY]. Out of range values never wrap around.
    """
    value = np.nan_to_num(np.asarray(value, dtype=np.float64), nan=0.0)
    return np.clip(np.trunc(value), 0, MAX_INTENSITY).astype(np.uint8)


# }}}
def render(pixels, px_win, c_win, color_fn=log_color):  # {{{
    """Fill ``pixels`` (flat, row-major, uint8) with the image of ``c_win``.

    ``color_fn`` maps one escape count (as a float) to a brightness; points
    that never escape get COLOR_DEPTH.  It is tabulated once per call for
    every possible count, so any plain scalar function will do.
    """
    if len(pixels) != px_win.width * px_win.height:
        raise ValueError(
            f"buffer holds {len(pixels)} pixels, window "
            f"{px_win.width}x{px_win.height} needs {px_win.width * px_win.height}"
        )

    counts = np.empty((px_win.height, px_win.width), dtype=np.int64)
    escape_grid(
        counts,
        complex(c_win.upper_left),
        float(c_win.width),
        float(c_win.height),
        COLOR_DEPTH,
    )

    # escape counts are always < COLOR_DEPTH
    lut = to_intensity([color_fn(float(k)) for k in range(COLOR_DEPTH)])

    escaped = counts >= 0
    shade = np.full(counts.shape, COLOR_DEPTH, dtype=np.uint8)
    shade[escaped] = lut[counts[escaped]]
    pixels[:] = shade.ravel()
    logger.debug(
        "rendered %dx%d, %d of %d points escaped",
        px_win.width,
        px_win.height,
        np.count_nonzero(escaped),
        escaped.size,
    )


# }}}
