import numpy as np
from typing import Optional

from kq.colors import ColorArrayLike, as_color_array
from kq.errors import InvalidArgumentError


def check_k(k: int, num_colors: int) -> None:
    """Raise InvalidArgumentError unless 1 <= k <= num_colors."""
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidArgumentError(f"K must be an integer, got {k!r}.")
    if k < 1:
        raise InvalidArgumentError(f"K ({k}) must be at least 1.")
    if k > num_colors:
        raise InvalidArgumentError(f"K ({k}) is greater than colors ({num_colors}).")


def make_rng(seed: Optional[int] = None, rng: Optional[np.random.Generator] = None) -> np.random.Generator:
    """Return `rng` if given, else a new Generator seeded with `seed` (OS entropy when None)."""
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def select_centers(
    k: int,
    colors: ColorArrayLike,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Pick k initial centers from the pixel colors.

    Positions are sampled uniformly without replacement, so the same color value
    can be picked twice if it occurs at two different positions.

    Args:
        k (int): Number of centers, 1 <= k <= len(colors).
        colors: Nx3 pixel colors. Not modified.
        seed (int, optional): Seed for a fresh generator. Ignored when `rng` is given.
        rng (np.random.Generator, optional): Source of randomness.

    Returns:
        np.ndarray: New kx3 uint8 array of centers.

    Raises:
        InvalidArgumentError: if k < 1 or k > len(colors).
    """
    color_array = as_color_array(colors)
    check_k(k, len(color_array))

    positions = make_rng(seed, rng).choice(len(color_array), size=k, replace=False)
    return color_array[positions]
