import numpy as np
from concurrent.futures import ThreadPoolExecutor
from sklearn.cluster import KMeans
from typing import Optional, Tuple

from kq.centers import check_k, make_rng, select_centers
from kq.colors import ColorArrayLike, as_color_array, distances_to_centers
from kq.errors import InvalidArgumentError

QUANTIZE_METHODS = ("random", "kmeans")
DEFAULT_CHUNK_SIZE = 65536


def _pixel_slices(num_pixels: int, chunk_size: int):
    return [slice(start, min(start + chunk_size, num_pixels)) for start in range(0, num_pixels, chunk_size)]


def assign_to_centers(
    colors: ColorArrayLike,
    centers: ColorArrayLike,
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map every pixel to its nearest center.

    The pixels are processed in contiguous slices of at most `chunk_size` so the
    distance matrix stays bounded. With workers > 1 the slices run on a thread pool;
    each slice writes to its own rows of the output and centers are only read.

    Args:
        colors: Nx3 pixel colors.
        centers: Kx3 center colors, K >= 1.
        workers (int): Number of threads used for the assignment.
        chunk_size (int): Maximum number of pixels per slice.

    Returns:
        Tuple[np.ndarray, np.ndarray]:
            - Center index for each pixel (length N). Ties go to the lowest index.
            - Nx3 uint8 array where row i is centers[index[i]].
    """
    color_array = as_color_array(colors)
    center_array = as_color_array(centers)
    if len(center_array) == 0:
        raise InvalidArgumentError("At least one center is required.")
    if workers < 1:
        raise InvalidArgumentError(f"workers ({workers}) must be at least 1.")
    if chunk_size < 1:
        raise InvalidArgumentError(f"chunk_size ({chunk_size}) must be at least 1.")

    num_pixels = len(color_array)
    labels = np.empty(num_pixels, dtype=np.intp)
    result = np.empty((num_pixels, 3), dtype=np.uint8)

    def assign_slice(pixel_slice: slice) -> None:
        # argmin returns the first minimum, i.e. the lowest center index on ties
        nearest = np.argmin(distances_to_centers(color_array[pixel_slice], center_array), axis=1)
        labels[pixel_slice] = nearest
        result[pixel_slice] = center_array[nearest]

    slices = _pixel_slices(num_pixels, chunk_size)
    if workers == 1 or len(slices) < 2:
        for pixel_slice in slices:
            assign_slice(pixel_slice)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(assign_slice, pixel_slice) for pixel_slice in slices]
            for future in futures:
                future.result()

    return labels, result


def quantize_kmeans(k: int, colors: ColorArrayLike, seed: Optional[int] = None) -> np.ndarray:
    """
    Replace every pixel with the centroid of its scikit-learn KMeans cluster.

    Unlike quantize(..., method="random"), the output colors are refined centroids
    and need not occur in the input.
    """
    color_array = as_color_array(colors)
    check_k(k, len(color_array))

    kmeans = KMeans(n_clusters=k, random_state=seed, n_init="auto")
    labels = kmeans.fit_predict(color_array.astype(np.float64))
    palette = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)
    return palette[labels]


def quantize(
    k: int,
    colors: ColorArrayLike,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    method: str = "random",
    workers: int = 1,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> np.ndarray:
    """
    Reduce the pixel colors to k representative colors.

    The default "random" method samples k pixels as centers and assigns each pixel
    to its nearest one in a single pass; centers are not recomputed afterwards.
    "kmeans" runs scikit-learn KMeans to convergence instead.

    Args:
        k (int): Number of representative colors, 1 <= k <= len(colors).
        colors: Nx3 pixel colors in any fixed order. Not modified.
        seed (int, optional): Seed for center selection / KMeans.
        rng (np.random.Generator, optional): Source of randomness for center selection.
        method (str): One of QUANTIZE_METHODS.
        workers (int): Threads used for the assignment pass.
        chunk_size (int): Maximum pixels per assignment slice.

    Returns:
        np.ndarray: New Nx3 uint8 array, same order as `colors`.

    Raises:
        InvalidArgumentError: if k is out of range, the colors are malformed or the method is unknown.
    """
    if method not in QUANTIZE_METHODS:
        raise InvalidArgumentError(f"Unknown quantization method '{method}'. Expected one of: {', '.join(QUANTIZE_METHODS)}.")

    color_array = as_color_array(colors)
    check_k(k, len(color_array))

    if method == "kmeans":
        return quantize_kmeans(k, color_array, seed=seed)

    centers = select_centers(k, color_array, rng=make_rng(seed, rng))
    _, result = assign_to_centers(color_array, centers, workers=workers, chunk_size=chunk_size)
    return result


def palette_of(result: ColorArrayLike) -> np.ndarray:
    """
    Distinct colors of a quantized result, most frequent first.

    Returns:
        np.ndarray: Mx3 uint8 array. Colors with equal counts keep ascending RGB order.
    """
    result_array = as_color_array(result)
    if len(result_array) == 0:
        return np.empty((0, 3), dtype=np.uint8)
    unique_colors, counts = np.unique(result_array, axis=0, return_counts=True)
    order = np.argsort(-counts, kind="stable")
    return unique_colors[order]
