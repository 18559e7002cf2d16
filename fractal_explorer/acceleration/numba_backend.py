"""
Numba JIT kernels for escape-time computation.

The kernels are compiled with ``nogil=True`` so that the row worker pool can
run them from several threads at once without serialising on the GIL.
"""

import math
import logging
import time

import numba
import numpy as np
from numba import njit

logger = logging.getLogger(__name__)

ESCAPE_RADIUS = 2.0
LN_2 = math.log(2.0)


@njit(cache=True, nogil=True)
def escape_time_point(c_real, c_imag, max_iter):
    """
    Smoothed escape time of a single point of the Mandelbrot set.

    Args:
        c_real: Real component of c
        c_imag: Imaginary component of c
        max_iter: Iteration cap

    Returns:
        floor of the smoothed iteration count in [0, max_iter]. Points that
        never reach the escape radius report max_iter.
    """
    zr = 0.0
    zi = 0.0
    modulus = 0.0
    n = 0
    diverged = False

    while n < max_iter:
        # z = z^2 + c
        zr_sq = zr * zr
        zi_sq = zi * zi
        zi = 2.0 * zr * zi + c_imag
        zr = zr_sq - zi_sq + c_real
        n += 1

        modulus = math.hypot(zr, zi)
        if modulus >= ESCAPE_RADIUS:
            diverged = True
            break

    if not diverged:
        return max_iter

    mu_log = 0.0
    if modulus > math.e:
        mu_log = math.log(math.log(modulus)) / LN_2
    mu = n + 1.0 - mu_log

    if mu > max_iter:
        mu = float(max_iter)
    elif mu < 0.0:
        mu = 0.0
    return int(math.floor(mu))


@njit(cache=True, nogil=True)
def escape_time_row(out, left, imag, pitch, max_iter):
    """
    Fill one grid row with escape times.

    Args:
        out: 1-D uint32 array receiving the row, one cell per column
        left: Real coordinate of column 0
        imag: Imaginary coordinate shared by the whole row
        pitch: Distance between neighbouring columns
        max_iter: Iteration cap
    """
    for col in range(out.shape[0]):
        out[col] = escape_time_point(left + col * pitch, imag, max_iter)


def compile_kernels() -> float:
    """Force JIT compilation and return the time it took in seconds."""
    start_time = time.time()
    scratch = np.zeros(2, dtype=np.uint32)
    escape_time_row(scratch, -2.0, 0.0, 1.0, 4)
    elapsed = time.time() - start_time
    logger.info(f"Numba {numba.__version__} kernels ready in {elapsed:.3f}s")
    return elapsed
