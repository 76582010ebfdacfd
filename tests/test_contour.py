"""
Tests for the boundary-pixel extractor.
"""
import numpy as np

from nailtryon.contour import boundary_mask, boundary_points


def test_filled_square_boundary_is_its_ring():
    mask = np.zeros((7, 7), dtype=bool)
    mask[1:6, 1:6] = True

    pts = boundary_points(mask)

    # 5x5 square -> 16 ring pixels, interior 3x3 excluded
    assert len(pts) == 16
    assert (3, 3) not in pts
    assert (1, 1) in pts and (5, 5) in pts


def test_points_are_row_major_xy():
    mask = np.zeros((5, 6), dtype=bool)
    mask[2, 1] = True
    mask[1, 4] = True
    mask[2, 3] = True
    assert boundary_points(mask) == [(4, 1), (1, 2), (3, 2)]


def test_outer_border_is_never_boundary():
    mask = np.ones((5, 5), dtype=bool)
    mask[2, 2] = False

    out = boundary_mask(mask)

    assert not out[0, :].any() and not out[-1, :].any()
    assert not out[:, 0].any() and not out[:, -1].any()
    # the four 4-neighbours of the hole
    assert sorted(boundary_points(mask)) == [(1, 2), (2, 1), (2, 3), (3, 2)]


def test_diagonal_neighbours_do_not_count():
    mask = np.ones((5, 5), dtype=bool)
    mask[1, 1] = False
    assert not boundary_mask(mask)[2, 2]


def test_all_skin_or_no_skin_is_empty():
    assert boundary_points(np.ones((10, 10), dtype=bool)) == []
    assert boundary_points(np.zeros((10, 10), dtype=bool)) == []


def test_tiny_masks():
    assert boundary_points(np.ones((2, 10), dtype=bool)) == []
    assert boundary_points(np.ones((10, 2), dtype=bool)) == []
    assert boundary_points(np.zeros((0, 0), dtype=bool)) == []
