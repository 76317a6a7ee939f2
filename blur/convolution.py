import numpy as np


def reflect(x, extent):
    """
    x      : coordinate (int or integer numpy array), may be out of range
    extent : number of valid positions; valid range is [0, extent - 1]

    Mirror x about 0 and about extent - 1 (no edge repetition, the
    d c b | a b c d | c b a layout). Coordinates more than one extent away
    keep bouncing between the two edges.
    """
    top = extent - 1
    if top == 0:
        return x * 0
    period = 2 * top
    m = abs(x) % period
    if isinstance(m, np.ndarray):
        return np.where(m > top, period - m, m)
    return period - m if m > top else m


def convolve_at(samples, kernel, x, y, channel, channels):
    """
    Single output sample at pixel (x, y), channel `channel`.

    samples  : 2D uint8 array (H x W*channels), the byte-stride view of the image
    kernel   : 2D float array (N x N), N odd
    channels : number of interleaved channels per pixel

    Kernel rows follow the horizontal offset, kernel columns the vertical one.
    The horizontal reflection is done on the byte-stride coordinate.
    Returns the unclamped float sum.
    """
    height, stride = samples.shape
    size = kernel.shape[0]
    half = size // 2

    total = 0.0
    for i in range(-half, half + 1):
        xc = reflect(x * channels + i * channels + channel, stride)
        for j in range(-half, half + 1):
            yc = reflect(y + j, height)
            total += float(samples[yc, xc]) * kernel[i + half, j + half]
    return total


def convolve_row(samples, kernel, y, channels):
    """Same as convolve_at for every sample of row y at once (float64 vector)."""
    height, stride = samples.shape
    size = kernel.shape[0]
    half = size // 2

    # x*channels + c for every sample of the row
    base = np.arange(stride)
    out = np.zeros(stride, dtype=np.float64)
    for i in range(-half, half + 1):
        cols = reflect(base + i * channels, stride)
        for j in range(-half, half + 1):
            row = samples[reflect(y + j, height)]
            out += row[cols] * kernel[i + half, j + half]
    return out


def narrow(values):
    """float -> uint8: clamp to [0, 255] then truncate toward zero."""
    return np.clip(values, 0, 255).astype(np.uint8)
