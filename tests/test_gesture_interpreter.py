"""
Tests for the gesture interpreter: drag, pinch, wheel, slider, resize,
rotate, reset and cross-channel ordering.
"""
import random
import pytest

from editor_config import EditorConfig
from gesture_interpreter import GestureInterpreter, GestureMode, TouchPoint
from transform_state import TransformState
from viewport_renderer import compute_placement


def world_point(interpreter, x, y):
    """Image-local point currently under viewport point (x, y)."""
    placement = compute_placement(interpreter.state, interpreter.viewport_center)
    return placement.map_to_local(x, y)


class TestDrag:

    def test_drag_offsets_translation(self, interpreter):
        interpreter.pointer_down(1, 100, 100)
        assert interpreter.mode is GestureMode.DRAGGING
        assert interpreter.pointer_move(1, 150, 70)
        assert (interpreter.state.translate_x, interpreter.state.translate_y) == (50, -30)

    def test_drag_is_relative_to_start_snapshot(self, interpreter, state):
        state.translate_x, state.translate_y = 10, 20
        interpreter.pointer_down(1, 0, 0)
        interpreter.pointer_move(1, 5, 5)
        interpreter.pointer_move(1, 3, -2)
        assert (state.translate_x, state.translate_y) == (13, 18)

    def test_drag_ignores_rotation_and_scale(self, interpreter, state):
        state.rotation_deg = 90
        state.scale = 3.0
        interpreter.pointer_down(1, 0, 0)
        interpreter.pointer_move(1, 10, 0)
        assert (state.translate_x, state.translate_y) == (10, 0)

    def test_foreign_pointer_is_ignored(self, interpreter, state):
        interpreter.pointer_down(1, 0, 0)
        assert not interpreter.pointer_move(2, 300, 300)
        assert (state.translate_x, state.translate_y) == (0, 0)

    def test_second_pointer_down_does_not_steal_session(self, interpreter):
        interpreter.pointer_down(1, 0, 0)
        interpreter.pointer_down(2, 50, 50)
        assert interpreter.session.pointer_id == 1

    def test_release_returns_to_idle(self, interpreter, state):
        interpreter.pointer_down(1, 0, 0)
        interpreter.pointer_up(1)
        assert interpreter.mode is GestureMode.IDLE
        assert not interpreter.pointer_move(1, 40, 40)
        assert state.translate_x == 0

    def test_cancel_returns_to_idle(self, interpreter):
        interpreter.pointer_down(1, 0, 0)
        interpreter.cancel()
        assert interpreter.mode is GestureMode.IDLE
        assert interpreter.session is None


class TestPinch:

    def test_two_touches_start_pinch(self, interpreter):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        assert interpreter.mode is GestureMode.PINCHING
        assert interpreter.session.reference_distance == 100

    def test_delta_mode_scales_by_sensitivity(self, interpreter, state):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        assert interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 200, 0)])
        assert state.scale == pytest.approx(1.0 + 100 * 0.005)
        assert interpreter.session.reference_distance == 200

    def test_reference_updates_every_frame(self, interpreter, state):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 150, 0)])
        interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 150, 0)])
        assert state.scale == pytest.approx(1.25)

    def test_ratio_mode_multiplies(self, state):
        interpreter = GestureInterpreter(state, EditorConfig(pinch_mode="ratio"))
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 150, 0)])
        interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 300, 0)])
        assert state.scale == pytest.approx(3.0)

    def test_zero_reference_distance_skips_frame(self, state):
        interpreter = GestureInterpreter(state, EditorConfig(pinch_mode="ratio"))
        interpreter.touch_start([TouchPoint(1, 50, 50), TouchPoint(2, 50, 50)])
        assert not interpreter.touch_move([TouchPoint(1, 0, 50), TouchPoint(2, 100, 50)])
        assert state.scale == 1.0
        # The next frame compares against the recorded distance
        interpreter.touch_move([TouchPoint(1, 0, 50), TouchPoint(2, 200, 50)])
        assert state.scale == pytest.approx(2.0)

    def test_pinch_is_clamped(self, interpreter, state):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 1000, 0)])
        interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, 0, 0)])
        assert state.scale == state.min_scale

    def test_lifting_one_finger_switches_to_drag(self, interpreter, state):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        interpreter.touch_end([TouchPoint(2, 100, 0)])
        assert interpreter.mode is GestureMode.DRAGGING
        interpreter.touch_move([TouchPoint(2, 120, 10)])
        assert (state.translate_x, state.translate_y) == (20, 10)

    def test_second_finger_during_drag_starts_pinch(self, interpreter, state):
        interpreter.touch_start([TouchPoint(1, 0, 0)])
        interpreter.touch_move([TouchPoint(1, 10, 0)])
        interpreter.touch_move([TouchPoint(1, 10, 0), TouchPoint(2, 110, 0)])
        assert interpreter.mode is GestureMode.PINCHING
        assert state.scale == 1.0

    def test_touch_cancel_returns_to_idle(self, interpreter):
        interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, 100, 0)])
        interpreter.touch_cancel()
        assert interpreter.mode is GestureMode.IDLE

    def test_all_fingers_lifted_returns_to_idle(self, interpreter):
        interpreter.touch_start([TouchPoint(1, 0, 0)])
        interpreter.touch_end([])
        assert interpreter.mode is GestureMode.IDLE


class TestWheel:

    def test_zoom_in_at_center_keeps_translation(self, interpreter, state):
        center = interpreter.viewport_center
        assert interpreter.wheel(120, *center)
        assert state.scale == pytest.approx(1.12)
        assert (state.translate_x, state.translate_y) == (0, 0)

    def test_zoom_out(self, interpreter, state):
        interpreter.wheel(-120, 540, 540)
        assert state.scale == pytest.approx(0.88)

    def test_partial_notch_is_proportional(self, interpreter, state):
        interpreter.wheel(30, 540, 540)
        assert state.scale == pytest.approx(1.03)

    def test_large_delta_is_one_step(self, interpreter, state):
        interpreter.wheel(1200, 540, 540)
        assert state.scale == pytest.approx(1.12)
        interpreter.wheel(-960, 540, 540)
        assert state.scale == pytest.approx(1.12 * 0.88)

    def test_zero_delta_is_ignored(self, interpreter, state):
        assert not interpreter.wheel(0, 100, 100)
        assert state.scale == 1.0

    @pytest.mark.parametrize("delta", [120, -120])
    @pytest.mark.parametrize("cursor", [(100, 900), (540, 540), (1000, 20)])
    def test_point_under_cursor_stays_put(self, interpreter, state, delta, cursor):
        state.translate_x, state.translate_y = 35, -80
        state.scale = 1.7
        state.rotation_deg = 90
        before = world_point(interpreter, *cursor)
        interpreter.wheel(delta, *cursor)
        after = world_point(interpreter, *cursor)
        assert after[0] == pytest.approx(before[0], abs=0.01)
        assert after[1] == pytest.approx(before[1], abs=0.01)

    def test_anchor_holds_when_clamped(self, interpreter, state):
        state.scale = 7.9
        before = world_point(interpreter, 200, 300)
        interpreter.wheel(120, 200, 300)
        assert state.scale == state.max_scale
        after = world_point(interpreter, 200, 300)
        assert after == pytest.approx(before, abs=0.01)

    def test_no_change_at_limit(self, interpreter, state):
        state.scale = state.max_scale
        assert not interpreter.wheel(120, 0, 0)
        assert (state.translate_x, state.translate_y) == (0, 0)

    def test_wheel_during_drag_is_kept(self, interpreter, state):
        interpreter.pointer_down(1, 100, 100)
        interpreter.pointer_move(1, 110, 100)
        interpreter.wheel(120, 300, 300)
        after_wheel = (state.translate_x, state.translate_y)
        # Pointer has not moved: the drag must not undo the anchor correction
        interpreter.pointer_move(1, 110, 100)
        assert (state.translate_x, state.translate_y) == pytest.approx(after_wheel)
        interpreter.pointer_move(1, 120, 100)
        assert state.translate_x == pytest.approx(after_wheel[0] + 10)


def test_scale_never_leaves_bounds(interpreter, state):
    rng = random.Random(7)
    for _ in range(500):
        action = rng.choice(("wheel", "slider", "pinch"))
        if action == "wheel":
            interpreter.wheel(rng.choice((120, -120)), rng.uniform(0, 1080), rng.uniform(0, 1080))
        elif action == "slider":
            interpreter.set_zoom(rng.uniform(-5, 20))
        else:
            interpreter.touch_start([TouchPoint(1, 0, 0), TouchPoint(2, rng.uniform(1, 500), 0)])
            interpreter.touch_move([TouchPoint(1, 0, 0), TouchPoint(2, rng.uniform(0, 2000), 0)])
            interpreter.touch_end([])
        assert state.min_scale <= state.scale <= state.max_scale


class TestSlider:

    def test_absolute_set(self, interpreter, state):
        state.translate_x = 25
        assert interpreter.set_zoom(2.5)
        assert state.scale == 2.5
        assert state.translate_x == 25

    def test_clamped(self, interpreter, state):
        interpreter.set_zoom(0)
        assert state.scale == state.min_scale


class TestResize:

    def test_width_drag_derives_height(self, interpreter, state):
        state.base_width, state.base_height = 400, 200
        interpreter.begin_resize(1, 500, 500)
        interpreter.pointer_move(1, 600, 510)
        assert state.base_width == pytest.approx(500)
        assert state.base_height == pytest.approx(250)

    def test_height_drag_derives_width(self, interpreter, state):
        state.base_width, state.base_height = 400, 200
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, 0, 100)
        assert state.base_height == pytest.approx(300)
        assert state.base_width == pytest.approx(600)

    def test_shrink_follows_larger_relative_change(self, interpreter, state):
        state.base_width, state.base_height = 800, 600
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, -100, -10)
        assert state.base_width == pytest.approx(700)
        assert state.base_height == pytest.approx(525)

    def test_shrink_height_dominant(self, interpreter, state):
        state.base_width, state.base_height = 800, 600
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, 10, -150)
        assert state.base_height == pytest.approx(450)
        assert state.base_width == pytest.approx(600)

    def test_delta_is_divided_by_scale(self, interpreter, state):
        state.base_width, state.base_height = 400, 200
        state.scale = 2.0
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, 100, 0)
        assert state.base_width == pytest.approx(450)
        assert state.base_height == pytest.approx(225)

    def test_delta_follows_rotation(self, interpreter, state):
        # Turned a quarter clockwise, the image's width runs down the screen
        state.base_width, state.base_height = 400, 200
        state.rotation_deg = 90
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, 0, 100)
        assert state.base_width == pytest.approx(500)
        assert state.base_height == pytest.approx(250)

    def test_minimum_size_floor(self, interpreter, state):
        state.base_width, state.base_height = 100, 100
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, -500, -500)
        assert (state.base_width, state.base_height) == (40, 40)

    def test_scale_untouched(self, interpreter, state):
        state.scale = 2.0
        interpreter.begin_resize(1, 0, 0)
        interpreter.pointer_move(1, 30, 30)
        assert state.scale == 2.0

    def test_resize_replaces_drag(self, interpreter):
        interpreter.pointer_down(1, 0, 0)
        interpreter.begin_resize(1, 0, 0)
        assert interpreter.mode is GestureMode.RESIZING


class TestActions:

    def test_rotate(self, interpreter, state):
        interpreter.rotate()
        assert state.rotation_deg == 90

    def test_nudge_uses_step(self, state):
        interpreter = GestureInterpreter(state, EditorConfig(nudge_step=5))
        interpreter.nudge(-1, 1)
        assert (state.translate_x, state.translate_y) == (-5, 5)

    def test_reset_cancels_session(self, interpreter, state):
        interpreter.pointer_down(1, 0, 0)
        interpreter.pointer_move(1, 40, 40)
        interpreter.reset(1600, 1200)
        assert interpreter.mode is GestureMode.IDLE
        assert (state.base_width, state.base_height) == pytest.approx((800, 600))
        assert (state.translate_x, state.translate_y) == (0, 0)


def test_upload_drag_zoom_scenario():
    config = EditorConfig()
    state = TransformState(min_scale=config.min_scale, max_scale=config.max_scale)
    interpreter = GestureInterpreter(state, config)

    interpreter.reset(1600, 1200)
    assert (state.base_width, state.base_height, state.scale) == pytest.approx((800, 600, 1))

    interpreter.pointer_down("mouse", 400, 400)
    interpreter.pointer_move("mouse", 450, 370)
    interpreter.pointer_up("mouse")
    assert (state.translate_x, state.translate_y) == (50, -30)

    # Zoom with the cursor over the image center: no anchor correction needed
    center_x, center_y = interpreter.viewport_center
    interpreter.wheel(120, center_x + 50, center_y - 30)
    assert state.scale == pytest.approx(1.12)
    assert (state.translate_x, state.translate_y) == pytest.approx((50, -30))
