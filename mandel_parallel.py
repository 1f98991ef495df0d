#!/usr/bin/env python3
# file: mandel_parallel.py
# This code is covered by the MIT open source license.

# Band-parallel rendering.  The pixel buffer is cut into horizontal bands
# of whole rows, each band gets its own slice of the complex window, and
# one thread renders each band.  Bands are numpy views over disjoint
# index ranges of the one buffer, so the threads never share writes.

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import numpy as np

from mandel_functions import (
    ComplexWindow,
    PixelPoint,
    PixelWindow,
    log_color,
    pixel_to_point,
    render,
)

logger = logging.getLogger(__name__)


class Band(NamedTuple):  # {{{
    top_row: int
    row_count: int
    pixels: np.ndarray  # view into the full buffer
    px_win: PixelWindow
    c_win: ComplexWindow


# }}}
def band_rows(height, threads):  # {{{
    """(top_row, row_count) for every band of an image ``height`` rows tall.

    Each band is ceil(height / threads) rows except possibly the last,
    so there are at most ``threads`` bands.
    """
    if threads < 1:
        raise ValueError(f"thread count must be positive, got {threads}")
    if height < 1:
        raise ValueError(f"image height must be positive, got {height}")
    rows_per_band = -(-height // threads)  # rounds up
    return [
        (top, min(rows_per_band, height - top))
        for top in range(0, height, rows_per_band)
    ]


# }}}
def split_bands(pixels, px_win, c_win, threads):  # {{{
    bands = []
    for top, rows in band_rows(px_win.height, threads):
        band_pixels = pixels[top * px_win.width : (top + rows) * px_win.width]
        band_c_win = ComplexWindow(
            pixel_to_point(PixelPoint(0, top), px_win, c_win),
            pixel_to_point(PixelPoint(px_win.width, top + rows), px_win, c_win),
        )
        bands.append(
            Band(top, rows, band_pixels, PixelWindow(px_win.width, rows), band_c_win)
        )
    return bands


# }}}
def parallel_render(pixels, px_win, c_win, color_fn=log_color, threads=1):  # {{{
    """Render the full image into ``pixels`` using up to ``threads`` threads.

    Returns once every band is done.  If any band raises, the exception
    propagates and the buffer contents are undefined.
    """
    if len(pixels) != px_win.width * px_win.height:
        raise ValueError(
            f"buffer holds {len(pixels)} pixels, window "
            f"{px_win.width}x{px_win.height} needs {px_win.width * px_win.height}"
        )
    bands = split_bands(pixels, px_win, c_win, threads)
    logger.info(
        "rendering %dx%d in %d band(s) of up to %d rows",
        px_win.width,
        px_win.height,
        len(bands),
        bands[0].row_count if bands else 0,
    )

    T_s = time.time()
    with ThreadPoolExecutor(max_workers=max(len(bands), 1)) as pool:
        futures = [
            pool.submit(render, band.pixels, band.px_win, band.c_win, color_fn)
            for band in bands
        ]
        for future in futures:
            future.result()
    logger.info("bands joined after %.3f s", time.time() - T_s)


# }}}
