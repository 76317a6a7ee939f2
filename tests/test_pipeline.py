import numpy as np
import pytest

from blur.convolution import convolve_row, narrow
from blur.custom_matrix import parse_custom_matrix
from blur.kernels import SOBEL_X, average_kernel, gaussian_kernel
from blur.pipeline import Algorithm, apply_filter


def step_edge(rows, cols, edge, vertical=True):
    image = np.zeros((rows, cols), dtype=np.uint8)
    if vertical:
        image[:, edge:] = 255
    else:
        image[:edge, :] = 255
    return image[:, :, np.newaxis]


def kernel_for(algorithm):
    if algorithm is Algorithm.GAUSS:
        return gaussian_kernel(3, 1.4)
    if algorithm is Algorithm.AVG:
        return average_kernel(3)
    if algorithm is Algorithm.CUSTOM:
        return parse_custom_matrix("0,-1,0|-1,5,-1|0,-1,0")
    return None


def test_identity_passthrough(rgb_2x2):
    out = apply_filter(rgb_2x2, Algorithm.NONE)
    np.testing.assert_array_equal(out, rgb_2x2)
    assert out is not rgb_2x2


def test_threshold_only(rgb_2x2):
    out = apply_filter(rgb_2x2, Algorithm.NONE, threshold=(25, 200))
    expected = np.array([0, 0, 0, 255, 255, 255, 0, 0, 30, 40, 50, 60], dtype=np.uint8)
    np.testing.assert_array_equal(out.ravel(), expected)


def test_average_of_centre_impulse():
    image = np.zeros((3, 3, 1), dtype=np.uint8)
    image[1, 1] = 255
    out = apply_filter(image, Algorithm.AVG, average_kernel(3))
    # mirrored neighbourhoods see the impulse once (centre), twice (edges)
    # or four times (corners): 255/9 -> 28, 2*255/9 -> 56, 4*255/9 -> 113
    expected = [[113, 56, 113],
                [56, 28, 56],
                [113, 56, 113]]
    np.testing.assert_array_equal(out[:, :, 0], expected)


def test_gaussian_unit_impulse():
    image = np.zeros((5, 5, 1), dtype=np.uint8)
    image[2, 2] = 255
    kernel = gaussian_kernel(5, 1.0)
    out = apply_filter(image, Algorithm.GAUSS, kernel)[:, :, 0]

    assert out[2, 2] == int(255 * kernel[2, 2])
    diff = np.abs(out.astype(int) - np.rot90(out).astype(int))
    assert diff.max() <= 1


def test_sobel_step_edge():
    image = step_edge(5, 5, 2)
    out = apply_filter(image, Algorithm.SOBEL, sobel_type=0)[:, :, 0]
    for row in out:
        np.testing.assert_array_equal(row, [0, 255, 255, 0, 0])


@pytest.mark.parametrize("sobel_type", [0, 1, 2])
def test_sobel_ignores_kernel_size(sobel_type):
    image = step_edge(6, 6, 3)
    with_kernel = apply_filter(image, Algorithm.SOBEL, kernel=average_kernel(7), sobel_type=sobel_type)
    without = apply_filter(image, Algorithm.SOBEL, sobel_type=sobel_type)
    np.testing.assert_array_equal(with_kernel, without)


@pytest.mark.parametrize("vertical", [True, False])
def test_zero_sum_custom_kernel_is_the_sobel_x_component(vertical):
    image = step_edge(5, 5, 2, vertical=vertical)
    kernel = parse_custom_matrix("1,0,-1|2,0,-2|1,0,-1")
    out = apply_filter(image, Algorithm.CUSTOM, kernel)

    samples = image.reshape(5, 5)
    gx = np.array([narrow(convolve_row(samples, SOBEL_X[0], y, 1)) for y in range(5)])
    np.testing.assert_array_equal(out[:, :, 0], gx)


def test_custom_kernel_on_horizontal_edge():
    out = apply_filter(step_edge(5, 5, 2, vertical=False), Algorithm.CUSTOM,
                       parse_custom_matrix("1,0,-1|2,0,-2|1,0,-1"))
    for column in out[:, :, 0].T:
        np.testing.assert_array_equal(column, [0, 255, 255, 0, 0])


@pytest.mark.parametrize("algorithm", list(Algorithm))
@pytest.mark.parametrize("channels", [1, 2, 3, 4])
def test_dimensions_preserved(random_image, algorithm, channels):
    image = random_image(6, 7, channels)
    out = apply_filter(image, algorithm, kernel_for(algorithm))
    assert out.shape == image.shape
    assert out.dtype == np.uint8


@pytest.mark.parametrize("algorithm", [Algorithm.GAUSS, Algorithm.SOBEL, Algorithm.CUSTOM])
def test_worker_count_does_not_change_output(random_image, algorithm):
    image = random_image(23, 17, 3)
    kernel = kernel_for(algorithm)
    serial = apply_filter(image, algorithm, kernel, threshold=(10, 240), workers=1)
    parallel = apply_filter(image, algorithm, kernel, threshold=(10, 240), workers=8)
    np.testing.assert_array_equal(serial, parallel)


def test_threshold_applies_to_alpha():
    image = np.array([[[100, 100, 100, 10], [100, 100, 100, 250]]], dtype=np.uint8)
    out = apply_filter(image, Algorithm.NONE, threshold=(20, 200))
    np.testing.assert_array_equal(out[0, :, 3], [0, 255])


def test_average_of_flat_image_is_flat():
    image = np.full((5, 6, 3), 64, dtype=np.uint8)
    out = apply_filter(image, Algorithm.AVG, average_kernel(5))
    assert np.all(np.abs(out.astype(int) - 64) <= 1)


@pytest.mark.parametrize("algorithm", [Algorithm.GAUSS, Algorithm.AVG, Algorithm.CUSTOM])
def test_kernel_algorithms_need_a_kernel(algorithm):
    with pytest.raises(ValueError):
        apply_filter(np.zeros((2, 2, 1), dtype=np.uint8), algorithm)


def test_unknown_sobel_type():
    with pytest.raises(ValueError):
        apply_filter(np.zeros((2, 2, 1), dtype=np.uint8), Algorithm.SOBEL, sobel_type=3)
