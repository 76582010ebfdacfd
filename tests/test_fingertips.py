"""
Tests for the fallback fingertip estimator.

Verifies:
- Non-maximum suppression (distance threshold, candidate cap, tip cap)
- Naming by left-to-right rank
- Nail rectangles for detected and undetected hands
"""
import pytest

from nailtryon.fingertips import (
    MAX_CANDIDATES,
    estimate_fingertips,
    fingertip_by_name,
    nail_positions,
    synthetic_nail_positions,
)
from nailtryon.types import FINGER_NAMES, Fingertip


class TestEstimateFingertips:

    def test_points_within_30px_collapse(self):
        tips = estimate_fingertips([(100, 10), (120, 15)])
        assert len(tips) == 1
        assert (tips[0].x, tips[0].y) == (100, 10)

    def test_exactly_30px_apart_is_too_close(self):
        assert len(estimate_fingertips([(0, 0), (30, 0)])) == 1
        assert len(estimate_fingertips([(0, 0), (31, 0)])) == 2

    def test_five_separated_points_sorted_by_x(self):
        points = [(300, 5), (50, 10), (200, 0), (120, 20), (400, 15), (250, 100)]
        tips = estimate_fingertips(points)

        assert len(tips) == 5
        assert [t.x for t in tips] == [50, 120, 200, 300, 400]
        assert [t.id for t in tips] == [0, 1, 2, 3, 4]
        assert [t.name for t in tips] == list(FINGER_NAMES)

    def test_at_most_five_tips(self):
        points = [(i * 100, i) for i in range(8)]
        assert len(estimate_fingertips(points)) == 5

    def test_only_topmost_candidates_considered(self):
        # 20 points crowded on one row, a well separated one just below
        crowd = [(i, 0) for i in range(MAX_CANDIDATES)]
        tips = estimate_fingertips(crowd + [(500, 1)])
        assert len(tips) == 1

    def test_stable_order_within_a_row(self):
        tips = estimate_fingertips([(15, 0), (5, 0)])
        assert (tips[0].x, tips[0].y) == (15, 0)

    def test_empty(self):
        assert estimate_fingertips([]) == []

    def test_fingertip_by_name(self):
        tips = estimate_fingertips([(0, 0), (100, 0)])
        assert fingertip_by_name(tips, "index").x == 100
        assert fingertip_by_name(tips, "pinky") is None


class TestNailPositions:

    def test_box_above_each_tip(self):
        pos = nail_positions([Fingertip(id=1, x=40, y=60, name="index")])
        assert len(pos) == 1
        p = pos[0]
        assert (p.x, p.y, p.width, p.height, p.rotation) == (40, 50, 20, 25, 0)
        assert (p.finger_id, p.finger_name) == (1, "index")

    def test_synthetic_layout(self):
        pos = synthetic_nail_positions(1000, 800)

        assert [p.finger_name for p in pos] == list(FINGER_NAMES)
        assert pos[0].width == pytest.approx(40)
        assert pos[0].height == pytest.approx(60)
        # middle half of the image, evenly spaced
        assert [p.x for p in pos] == pytest.approx([300, 400, 500, 600, 700])
        # outer fingers lower than inner ones, middle finger on the base row
        assert pos[2].y == pytest.approx(520)
        assert pos[0].y == pos[4].y == pytest.approx(520 + 18)
        assert pos[1].y == pos[3].y == pytest.approx(520 + 6)

    def test_synthetic_degenerate_size(self):
        assert synthetic_nail_positions(0, 100) == []
