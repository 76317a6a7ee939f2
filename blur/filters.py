import math

import numpy as np

from .convolution import convolve_at, convolve_row
from .kernels import SOBEL_X, SOBEL_Y

SOBEL_TYPES = range(len(SOBEL_X))


def sobel_at(samples, x, y, channel, channels, sobel_type=0):
    """Gradient magnitude sqrt(gx^2 + gy^2) of one sample, as float."""
    gx = convolve_at(samples, SOBEL_X[sobel_type], x, y, channel, channels)
    gy = convolve_at(samples, SOBEL_Y[sobel_type], x, y, channel, channels)
    return math.sqrt(gx * gx + gy * gy)


def sobel_row(samples, y, channels, sobel_type=0):
    gx = convolve_row(samples, SOBEL_X[sobel_type], y, channels)
    gy = convolve_row(samples, SOBEL_Y[sobel_type], y, channels)
    return np.hypot(gx, gy)


def threshold(values, low=0, high=255):
    """
    values : uint8 scalar or array
    low    : everything <= low becomes 0
    high   : everything >= high becomes 255

    Values strictly between the two are returned unchanged.
    """
    if isinstance(values, np.ndarray):
        out = values.copy()
        out[values >= high] = 255
        out[values <= low] = 0
        return out
    if values <= low:
        return 0
    if values >= high:
        return 255
    return values
