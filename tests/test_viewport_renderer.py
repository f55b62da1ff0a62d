"""
Tests for the viewport placement function.
"""
import pytest

from transform_state import TransformState
from viewport_renderer import compute_placement


def test_center_follows_translation():
    state = TransformState(translate_x=50, translate_y=-30, scale=2.0, base_width=800, base_height=600)
    placement = compute_placement(state, (540, 540))
    assert (placement.center_x, placement.center_y) == (590, 510)
    assert (placement.width, placement.height) == (800, 600)
    assert placement.displayed_size == (1600, 1200)


def test_placement_is_pure():
    state = TransformState(translate_x=12, scale=1.3, rotation_deg=180)
    first = compute_placement(state, (300, 300))
    compute_placement(TransformState(translate_x=-999), (0, 0))
    assert compute_placement(state, (300, 300)) == first


def test_corners_rotate_clockwise():
    state = TransformState(base_width=200, base_height=100, rotation_deg=90)
    tl, tr, br, bl = compute_placement(state, (0, 0)).corners()
    assert tl == pytest.approx((50, -100))
    assert tr == pytest.approx((50, 100))
    assert br == pytest.approx((-50, 100))
    assert bl == pytest.approx((-50, -100))


def test_bounds_of_rotated_image():
    state = TransformState(base_width=200, base_height=100, rotation_deg=270, scale=2.0)
    assert compute_placement(state, (500, 500)).bounds() == pytest.approx((400, 300, 600, 700))


def test_local_round_trip():
    state = TransformState(translate_x=7, translate_y=-3, scale=1.5, rotation_deg=90)
    placement = compute_placement(state, (540, 540))
    x, y = placement.map_from_local(33, -21)
    assert placement.map_to_local(x, y) == pytest.approx((33, -21))


def test_contains():
    state = TransformState(base_width=200, base_height=100)
    placement = compute_placement(state, (0, 0))
    assert placement.contains(90, 40)
    assert not placement.contains(90, 60)
