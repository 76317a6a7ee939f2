import math
import shutil

import numpy as np

# Terminal size used when stdout is not a terminal (e.g. part of a pipeline)
FALLBACK_TERMINAL_SIZE = (150, 40)

# Sobel pairs, indexed by the --sobel-type selector
SOBEL_X = np.array([
    [[1, 0, -1],
     [2, 0, -2],
     [1, 0, -1]],
    [[3, 0, -3],
     [10, 0, -10],
     [3, 0, -3]],
    [[47, 0, -47],
     [162, 0, -162],
     [47, 0, -47]],
], dtype=np.float64)
SOBEL_Y = SOBEL_X.transpose(0, 2, 1).copy()


def gaussian_kernel(size=5, sigma=1.4):
    """Return a square Gaussian kernel normalized to sum=1."""
    assert size % 2 == 1 and size >= 1, "size must be odd"
    assert sigma > 0, "sigma must be positive"
    ax = np.arange(size, dtype=np.float64) - size // 2
    xx, yy = np.meshgrid(ax, ax)
    kernel = np.exp(-(xx**2 + yy**2) / (2.0 * sigma**2)) / (2.0 * math.pi * sigma**2)
    kernel /= np.sum(kernel)
    return kernel


def average_kernel(size=5):
    assert size % 2 == 1 and size >= 1, "size must be odd"
    return np.full((size, size), 1.0 / (size * size), dtype=np.float64)


def terminal_width():
    return shutil.get_terminal_size(FALLBACK_TERMINAL_SIZE).columns


def format_kernel(kernel, width=None):
    """
    Box drawing of the kernel, two significant digits per cell, right aligned.

    Returns "Matrix too big to display" when the box would not fit in `width`
    columns (defaults to the current terminal width).
    """
    if width is None:
        width = terminal_width()

    cells = [[f"{value:.2g}" for value in row] for row in kernel]
    cell_w = max(len(cell) for row in cells for cell in row)
    lines = ["".join(f" {cell:>{cell_w}} " for cell in row) for row in cells]
    inner_w = max(len(line) for line in lines)

    if inner_w + 2 > width:
        return "Matrix too big to display"

    out = ["┌" + " " * inner_w + "┐"]
    out += ["│" + line + "│" for line in lines]
    out.append("└" + " " * inner_w + "┘")
    return "\n".join(out)
