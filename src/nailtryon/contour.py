from __future__ import annotations

from typing import List, Tuple

import numpy as np


def boundary_mask(mask: np.ndarray) -> np.ndarray:
    """
    Mark skin pixels that touch a non-skin 4-neighbour.

    Only interior pixels are considered; the outer one-pixel border is never boundary.
    """

    mask = np.asarray(mask, dtype=bool)
    out = np.zeros(mask.shape, dtype=bool)
    h, w = mask.shape[:2]
    if h < 3 or w < 3:
        return out

    center = mask[1:-1, 1:-1]
    all_neighbours_skin = mask[:-2, 1:-1] & mask[2:, 1:-1] & mask[1:-1, :-2] & mask[1:-1, 2:]
    out[1:-1, 1:-1] = center & ~all_neighbours_skin
    return out


def boundary_points(mask: np.ndarray) -> List[Tuple[int, int]]:
    """Boundary pixels as (x, y), in row-major order. Not a traced polygon."""
    ys, xs = np.nonzero(boundary_mask(mask))
    return [(int(x), int(y)) for y, x in zip(ys, xs)]
