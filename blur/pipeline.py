import enum
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .convolution import convolve_row, narrow
from .filters import SOBEL_TYPES, sobel_row, threshold as apply_threshold

logger = logging.getLogger(__name__)


class Algorithm(enum.Enum):
    NONE = "none"
    GAUSS = "gauss"
    SOBEL = "sobel"
    CUSTOM = "custom"
    AVG = "avg"

    @property
    def uses_kernel(self):
        return self in (Algorithm.GAUSS, Algorithm.AVG, Algorithm.CUSTOM)


# -----------------------
# Row operators
# -----------------------
def _row_operator(algorithm, kernel, sobel_type, channels):
    """Pick the per-row function once, outside the pixel loop."""
    if algorithm.uses_kernel:
        if kernel is None:
            raise ValueError(f"{algorithm.value} needs a kernel")
        return lambda samples, y: narrow(convolve_row(samples, kernel, y, channels))
    if algorithm is Algorithm.SOBEL:
        if sobel_type not in SOBEL_TYPES:
            raise ValueError(f"Sobel filter type has to be between 0 and {len(SOBEL_TYPES) - 1} inclusive")
        return lambda samples, y: narrow(sobel_row(samples, y, channels, sobel_type))
    if algorithm is Algorithm.NONE:
        return lambda samples, y: samples[y].copy()
    raise ValueError(f"Unknown algorithm {algorithm!r}")


# -----------------------
# Driver
# -----------------------
def apply_filter(image, algorithm=Algorithm.NONE, kernel=None, sobel_type=0,
                 threshold=(0, 255), workers=None):
    """
    image     : uint8 array (H x W x C), C in 1..4
    algorithm : Algorithm
    kernel    : N x N float array for GAUSS / AVG / CUSTOM, ignored otherwise
    threshold : (low, high) applied to every output sample, alpha included
    workers   : thread count for the row loop, default os.cpu_count()

    Returns a new uint8 array with the same shape as image.
    """
    height, width, channels = image.shape
    low, high = threshold
    operator = _row_operator(algorithm, kernel, sobel_type, channels)

    samples = np.ascontiguousarray(image, dtype=np.uint8).reshape(height, width * channels)
    out = np.empty_like(samples)

    def process_row(y):
        out[y] = apply_threshold(operator(samples, y), low, high)

    workers = workers or os.cpu_count() or 1
    logger.debug("Processing %d rows with %d workers", height, workers)

    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # list() re-raises the first worker exception here
        list(pool.map(process_row, range(height)))
    logger.debug("Took %.6fs", time.perf_counter() - start)

    return out.reshape(height, width, channels)
