import math
import numpy as np
from typing import Sequence, Union

from kq.errors import InvalidArgumentError

ColorArrayLike = Union[np.ndarray, Sequence[Sequence[int]]]


def distance(color1, color2) -> float:
    """
    Euclidean distance between two RGB colors.

    Args:
        color1: (r, g, b) triple, tuple/list or ndarray row.
        color2: (r, g, b) triple, tuple/list or ndarray row.

    Returns:
        float: sqrt((r1-r2)^2 + (g1-g2)^2 + (b1-b2)^2). No perceptual weighting.
    """
    r1, g1, b1 = (int(c) for c in color1)
    r2, g2, b2 = (int(c) for c in color2)
    return math.sqrt((r1 - r2) ** 2 + (g1 - g2) ** 2 + (b1 - b2) ** 2)


def as_color_array(colors: ColorArrayLike) -> np.ndarray:
    """
    Convert a sequence of RGB triples into an (N, 3) uint8 array.

    Raises:
        InvalidArgumentError: if the data is not shaped (N, 3) or a channel is not an integer in [0, 255].
    """
    if isinstance(colors, np.ndarray) and colors.dtype == np.uint8:
        arr = colors
    else:
        arr = np.asarray(colors)
        if arr.size == 0:
            return np.empty((0, 3), dtype=np.uint8)
        if not np.issubdtype(arr.dtype, np.number) or np.issubdtype(arr.dtype, np.complexfloating):
            raise InvalidArgumentError(f"Colors must be numeric, got dtype {arr.dtype}.")
        if not np.issubdtype(arr.dtype, np.integer):
            # floats are accepted only when they hold whole numbers
            if not np.all(np.isfinite(arr)) or not np.array_equal(arr, np.round(arr)):
                raise InvalidArgumentError("Color channels must be whole numbers.")
        if arr.min() < 0 or arr.max() > 255:
            raise InvalidArgumentError("Color channels must be within [0, 255].")
        arr = arr.astype(np.uint8)

    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidArgumentError(f"Colors must have shape (N, 3), got {arr.shape}.")
    return arr


def distances_to_centers(colors: np.ndarray, centers: np.ndarray) -> np.ndarray:
    """
    Distance from every color to every center.

    Args:
        colors (np.ndarray): Nx3 color array
        centers (np.ndarray): Kx3 center array

    Returns:
        np.ndarray: NxK float64 array; entry [i, j] equals distance(colors[i], centers[j])
    """
    # int32 so the channel differences cannot wrap around like uint8 would
    diffs = colors.astype(np.int32)[:, None, :] - centers.astype(np.int32)[None, :, :]
    return np.sqrt(np.sum(diffs * diffs, axis=2, dtype=np.float64))
