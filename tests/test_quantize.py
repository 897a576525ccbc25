# tests/test_quantize.py
import numpy as np
import pytest
from kq import quantize
from kq.centers import select_centers
from kq.errors import InvalidArgumentError

# KMeans warns when there are fewer distinct colors than clusters
pytestmark = pytest.mark.filterwarnings("ignore:.*Number of distinct clusters.*")


def random_colors(n, seed=0):
    return np.random.default_rng(seed).integers(0, 256, size=(n, 3), dtype=np.uint8)


def test_assign_to_centers_picks_nearest_center():
    pixel_colors = [(10, 10, 10), (200, 200, 200), (12, 11, 9)]
    fixed_centers = [(10, 10, 10), (200, 200, 200)]

    labels, result = quantize.assign_to_centers(pixel_colors, fixed_centers)

    assert labels.tolist() == [0, 1, 0]
    assert result.tolist() == [[10, 10, 10], [200, 200, 200], [10, 10, 10]]


def test_assign_to_centers_ties_go_to_lowest_index():
    labels, _ = quantize.assign_to_centers([(0, 0, 0)], [(0, 0, 0), (0, 0, 0)])
    assert labels.tolist() == [0]

    # equidistant but different centers
    labels, result = quantize.assign_to_centers([(10, 10, 10)], [(20, 10, 10), (0, 10, 10)])
    assert labels.tolist() == [0]
    assert result.tolist() == [[20, 10, 10]]

    labels, result = quantize.assign_to_centers([(10, 10, 10)], [(0, 10, 10), (20, 10, 10)])
    assert labels.tolist() == [0]
    assert result.tolist() == [[0, 10, 10]]


def test_assign_to_centers_is_deterministic_for_fixed_centers():
    pixel_colors = random_colors(500, seed=1)
    fixed_centers = random_colors(6, seed=2)

    first = quantize.assign_to_centers(pixel_colors, fixed_centers)
    second = quantize.assign_to_centers(pixel_colors, fixed_centers)

    assert np.array_equal(first[0], second[0])
    assert np.array_equal(first[1], second[1])


def test_assign_to_centers_same_result_for_any_chunking_or_workers():
    pixel_colors = random_colors(1000, seed=3)
    fixed_centers = random_colors(9, seed=4)

    labels, result = quantize.assign_to_centers(pixel_colors, fixed_centers)
    threaded_labels, threaded_result = quantize.assign_to_centers(
        pixel_colors, fixed_centers, workers=4, chunk_size=37
    )

    assert np.array_equal(labels, threaded_labels)
    assert np.array_equal(result, threaded_result)


def test_assign_to_centers_reproduces_colors_when_centers_are_the_distinct_values():
    pixel_colors = np.array([(1, 2, 3), (9, 9, 9), (1, 2, 3), (250, 0, 4), (9, 9, 9)], dtype=np.uint8)
    distinct = np.unique(pixel_colors, axis=0)

    _, result = quantize.assign_to_centers(pixel_colors, distinct)

    assert np.array_equal(result, pixel_colors)


@pytest.mark.parametrize("kwargs", [{"workers": 0}, {"chunk_size": 0}])
def test_assign_to_centers_rejects_bad_options(kwargs):
    with pytest.raises(InvalidArgumentError):
        quantize.assign_to_centers([(1, 1, 1)], [(1, 1, 1)], **kwargs)


def test_assign_to_centers_requires_a_center():
    with pytest.raises(InvalidArgumentError):
        quantize.assign_to_centers([(1, 1, 1)], [])


def test_quantize_preserves_length_and_uses_only_sampled_centers():
    pixel_colors = random_colors(2000, seed=5)

    result = quantize.quantize(8, pixel_colors, seed=7)
    expected_centers = {tuple(c) for c in select_centers(8, pixel_colors, seed=7).tolist()}

    assert result.shape == pixel_colors.shape
    assert result.dtype == np.uint8
    assert {tuple(c) for c in result.tolist()} <= expected_centers


def test_quantize_keeps_pixel_order():
    # two well separated groups; every pixel must land on a center from its own group
    dark = np.full((10, 3), 5, dtype=np.uint8)
    light = np.full((10, 3), 250, dtype=np.uint8)
    pixel_colors = np.concatenate([dark, light, dark])

    # 21 of 30 positions: at least one center from each group
    result = quantize.quantize(21, pixel_colors, seed=0)

    assert result[:10].tolist() == dark.tolist()
    assert result[10:20].tolist() == light.tolist()
    assert result[20:].tolist() == dark.tolist()


def test_quantize_with_k_equal_to_length_is_lossless():
    pixel_colors = random_colors(64, seed=8)
    result = quantize.quantize(len(pixel_colors), pixel_colors)
    assert np.array_equal(result, pixel_colors)


def test_quantize_is_reproducible_with_seed():
    pixel_colors = random_colors(300, seed=9)
    assert np.array_equal(
        quantize.quantize(5, pixel_colors, seed=123),
        quantize.quantize(5, pixel_colors, seed=123),
    )


def test_quantize_does_not_modify_input():
    pixel_colors = random_colors(100, seed=10)
    original = pixel_colors.copy()
    quantize.quantize(4, pixel_colors, seed=1)
    assert np.array_equal(pixel_colors, original)


def test_quantize_handles_duplicate_colors():
    pixel_colors = [(3, 3, 3)] * 6
    result = quantize.quantize(3, pixel_colors, seed=2)
    assert result.tolist() == [[3, 3, 3]] * 6


def test_quantize_k_greater_than_colors_raises():
    with pytest.raises(InvalidArgumentError, match="greater than colors"):
        quantize.quantize(5, [(1, 1, 1), (2, 2, 2), (3, 3, 3)])


@pytest.mark.parametrize("k", [0, -3])
def test_quantize_k_below_one_raises(k):
    with pytest.raises(InvalidArgumentError):
        quantize.quantize(k, [(1, 1, 1)])


def test_quantize_empty_image_raises():
    with pytest.raises(InvalidArgumentError):
        quantize.quantize(1, [])


def test_quantize_unknown_method_raises():
    with pytest.raises(InvalidArgumentError, match="Unknown quantization method"):
        quantize.quantize(1, [(1, 1, 1)], method="octree")


def test_quantize_kmeans_method_returns_cluster_centroids():
    red = np.tile([[250, 10, 10]], (30, 1)).astype(np.uint8)
    blue = np.tile([[10, 10, 250]], (30, 1)).astype(np.uint8)
    pixel_colors = np.concatenate([red, blue])

    result = quantize.quantize(2, pixel_colors, seed=0, method="kmeans")

    assert np.array_equal(result, pixel_colors)


def test_palette_of_orders_colors_by_frequency():
    result = np.array([(9, 9, 9), (1, 1, 1), (9, 9, 9), (5, 5, 5), (9, 9, 9), (1, 1, 1)], dtype=np.uint8)
    palette = quantize.palette_of(result)
    assert palette.tolist() == [[9, 9, 9], [1, 1, 1], [5, 5, 5]]


def test_palette_of_empty_result():
    assert quantize.palette_of([]).shape == (0, 3)


def test_quantize_rejects_fractional_channels():
    with pytest.raises(InvalidArgumentError, match="whole numbers"):
        quantize.quantize(2, [(10.7, 0, 0), (200, 5, 5)], seed=0)
