"""
Tests for the compositing surface.

Verifies:
- State machine (empty / background loaded / composited / disposed)
- Background replacement, idempotence and layer invalidation
- Layer upsert, invalid-transform fallback, opacity rules
- Handle interaction (move, rotate, uniform scale)
- Resize and rendering
"""
import math

import numpy as np
import pytest

from nailtryon.config import TryOnConfig
from nailtryon.errors import SurfaceDisposed
from nailtryon.images import DecodedImage
from nailtryon.surface import RenderSurface
from nailtryon.types import NailTransform, SurfaceState


def nt(left=125.0, top=200.0, scale=0.5, angle=0.0):
    return NailTransform(left=left, top=top, scale_x=scale, scale_y=scale, angle=angle)


@pytest.fixture
def surface():
    s = RenderSurface(width=250)
    yield s
    s.dispose()


@pytest.fixture
def composited(surface, hand_500x800, nail_100x300):
    """250x400 surface with a 50x150 nail centred at (125, 200)."""
    surface.set_background(hand_500x800)
    surface.upsert_active_layer(nail_100x300, nt())
    return surface


# ══════════════════════════════════════════════════════════════════════════
# Lifecycle
# ══════════════════════════════════════════════════════════════════════════

class TestLifecycle:

    def test_defaults(self):
        with RenderSurface() as s:
            assert s.viewport_size == (500, 375)
            assert s.state == SurfaceState.EMPTY
            assert s.layers == ()
            assert s.active_layer is None

    def test_state_transitions(self, surface, hand_500x800, other_hand_500x800, nail_100x300):
        assert surface.state == SurfaceState.EMPTY
        surface.set_background(hand_500x800)
        assert surface.state == SurfaceState.BACKGROUND_LOADED
        surface.upsert_active_layer(nail_100x300, nt())
        assert surface.state == SurfaceState.COMPOSITED
        surface.set_background(other_hand_500x800)
        assert surface.state == SurfaceState.BACKGROUND_LOADED
        surface.dispose()
        assert surface.state == SurfaceState.DISPOSED

    def test_dispose_is_idempotent_and_terminal(self, composited):
        observer = composited.observer
        composited.dispose()
        composited.dispose()
        assert not observer.connected
        assert composited.observer is None
        assert composited.layers == ()
        with pytest.raises(SurfaceDisposed):
            composited.render()
        with pytest.raises(SurfaceDisposed):
            composited.set_opacity(0.5)

    def test_bad_width_raises(self):
        with pytest.raises(ValueError):
            RenderSurface(width=-5)

    def test_bad_config_raises(self):
        with pytest.raises(ValueError):
            RenderSurface(config=TryOnConfig(corner_size=0))


# ══════════════════════════════════════════════════════════════════════════
# Background
# ══════════════════════════════════════════════════════════════════════════

class TestBackground:

    def test_viewport_follows_aspect(self, surface, hand_500x800):
        assert surface.set_background(hand_500x800)
        assert surface.viewport_size == (250, 400)

    def test_same_image_twice_is_a_noop(self, composited, hand_500x800):
        assert not composited.set_background(hand_500x800)
        assert len(composited.layers) == 1
        assert not composited.active_layer.stale
        assert composited.state == SurfaceState.COMPOSITED

    def test_same_key_counts_as_same_image(self, composited, hand_500x800):
        copy = DecodedImage(pixels=hand_500x800.pixels.copy(), key=hand_500x800.key)
        assert not composited.set_background(copy)

    def test_new_image_marks_layers_stale(self, composited, other_hand_500x800):
        before = composited.active_layer.transform
        assert composited.set_background(other_hand_500x800)
        layer = composited.active_layer
        assert layer.stale
        assert layer.transform == before


# ══════════════════════════════════════════════════════════════════════════
# Layers
# ══════════════════════════════════════════════════════════════════════════

class TestLayers:

    def test_upsert_replaces_in_place(self, composited, nail_100x300):
        first = composited.active_layer
        second = composited.upsert_active_layer(nail_100x300, nt(left=50))
        assert second is not first
        assert composited.layers == (second,)
        assert second.transform.left == 50

    def test_upsert_clears_stale(self, composited, other_hand_500x800, nail_100x300):
        composited.set_background(other_hand_500x800)
        layer = composited.upsert_active_layer(nail_100x300, nt(left=60))
        assert not layer.stale
        assert composited.state == SurfaceState.COMPOSITED

    def test_invalid_transform_without_fallback_is_skipped(self, surface, hand_500x800, nail_100x300):
        surface.set_background(hand_500x800)
        assert surface.upsert_active_layer(nail_100x300, nt(scale=0)) is None
        assert surface.layers == ()

    def test_invalid_transform_uses_last_good(self, composited, nail_100x300):
        good = composited.active_layer.transform
        layer = composited.upsert_active_layer(nail_100x300, nt(left=math.nan))
        assert layer.transform == good

    def test_invalid_transform_never_revives_stale_layer(self, composited, other_hand_500x800, nail_100x300):
        old = composited.active_layer
        composited.set_background(other_hand_500x800)

        assert composited.upsert_active_layer(nail_100x300, nt(scale=0)) is None
        assert composited.active_layer is old
        assert old.stale
        assert composited.state == SurfaceState.BACKGROUND_LOADED
        assert tuple(composited.render(show_controls=False)[200, 125]) == (90, 90, 90)

    def test_upsert_keeps_previous_opacity_on_bad_value(self, composited, nail_100x300):
        composited.set_opacity(0.4)
        layer = composited.upsert_active_layer(nail_100x300, nt(), opacity=2.0)
        assert layer.opacity == pytest.approx(0.4)

    def test_upsert_default_opacity(self, surface, nail_100x300):
        assert surface.upsert_active_layer(nail_100x300, nt(), opacity=-1).opacity == 1.0

    def test_select_layer_at_picks_topmost(self, composited, nail_100x300):
        top = composited.add_layer(nail_100x300, nt(left=140), name="second", activate=False)
        assert composited.select_layer_at(135, 200) is top
        assert composited.active_layer is top
        assert composited.select_layer_at(5, 5) is None

    def test_select_layer_by_name(self, composited, nail_100x300):
        composited.add_layer(nail_100x300, nt(left=40), name="second")
        assert composited.active_layer.name == "second"
        assert composited.select_layer("nailDesign").name == "nailDesign"
        assert composited.select_layer("missing") is None


class TestOpacity:

    def test_set_and_reject(self, composited):
        assert composited.set_opacity(0.5)
        assert not composited.set_opacity(1.3)
        assert composited.active_layer.opacity == pytest.approx(0.5)

    @pytest.mark.parametrize("bad", [-0.1, math.nan, math.inf, "half"])
    def test_rejects_invalid(self, composited, bad):
        assert not composited.set_opacity(bad)
        assert composited.active_layer.opacity == 1.0

    def test_bounds_accepted(self, composited):
        assert composited.set_opacity(0.0)
        assert composited.set_opacity(1.0)

    def test_no_active_layer(self, surface):
        assert not surface.set_opacity(0.5)


class TestManualTransform:

    def test_applies_directly(self, composited):
        assert composited.apply_manual_transform(nt(left=10, angle=400))
        t = composited.active_layer.transform
        assert t.left == 10
        assert t.angle == pytest.approx(40)

    def test_invalid_keeps_previous(self, composited):
        before = composited.active_layer.transform
        assert not composited.apply_manual_transform(nt(scale=-1))
        assert composited.active_layer.transform == before

    def test_no_active_layer(self, surface):
        assert not surface.apply_manual_transform(nt())


# ══════════════════════════════════════════════════════════════════════════
# Handles
# ══════════════════════════════════════════════════════════════════════════

class TestInteraction:

    def test_move(self, composited):
        assert composited.begin_interaction(125, 200) == "move"
        t = composited.drag_interaction(135, 190)
        assert (t.left, t.top) == (135, 190)
        assert composited.end_interaction() == t
        assert composited.interaction is None

    def test_rotate(self, composited):
        # rotation handle sits 30px above the top edge (200 - 75 - 30)
        assert composited.begin_interaction(125, 95) == "rotate"
        t = composited.drag_interaction(230, 200)
        assert t.angle == pytest.approx(90)
        assert (t.left, t.top) == (125, 200)

    def test_rotate_snaps_to_45(self, composited):
        composited.begin_interaction(125, 95)
        rad = math.radians(-40)
        t = composited.drag_interaction(125 + 100 * math.cos(rad), 200 + 100 * math.sin(rad), snap=True)
        assert t.angle == pytest.approx(45)

    def test_corner_scales_uniformly(self, composited):
        assert composited.begin_interaction(150, 275) == "br"
        t = composited.drag_interaction(175, 350)
        assert t.scale_x == pytest.approx(1.0)
        assert t.scale_y == pytest.approx(1.0)
        assert (t.left, t.top) == (125, 200)

    def test_top_left_corner(self, composited):
        assert composited.begin_interaction(101, 126) == "tl"

    def test_collapsing_scale_is_rejected(self, composited):
        composited.begin_interaction(150, 275)
        composited.drag_interaction(175, 350)
        t = composited.drag_interaction(125, 200)
        assert t.scale_x == pytest.approx(1.0)

    def test_miss(self, composited):
        assert composited.begin_interaction(5, 5) is None
        assert composited.drag_interaction(10, 10) is None

    def test_stale_layer_has_no_handles(self, composited, other_hand_500x800):
        composited.set_background(other_hand_500x800)
        assert composited.begin_interaction(125, 200) is None


# ══════════════════════════════════════════════════════════════════════════
# Resize / render
# ══════════════════════════════════════════════════════════════════════════

class TestResize:

    def test_height_follows_background(self, composited):
        before = composited.active_layer.transform
        composited.resize(100)
        assert composited.viewport_size == (100, 160)
        assert composited.active_layer.transform == before

    def test_without_background(self, surface):
        surface.resize(200, 50)
        assert surface.viewport_size == (200, 50)
        surface.resize(400)
        assert surface.viewport_size == (400, 300)

    def test_non_positive_ignored(self, surface):
        surface.resize(0)
        assert surface.viewport_size == (250, 188)

    def test_observer_drives_resize(self, composited):
        composited.observer.notify(500)
        assert composited.viewport_size == (500, 800)


class TestRender:

    def test_empty_surface_is_light_grey(self, surface):
        out = surface.render()
        assert out.shape == (188, 250, 3)
        assert (out == 240).all()

    def test_render_returns_copy(self, surface):
        out = surface.render()
        out[:] = 0
        assert (surface.render() == 240).all()

    def test_nail_over_background(self, composited):
        out = composited.render(show_controls=False)
        assert out.shape == (400, 250, 3)
        assert tuple(out[200, 125]) == (0, 0, 255)
        assert tuple(out[10, 10]) == (180, 180, 180)

    def test_opacity_blends(self, composited):
        composited.set_opacity(0.5)
        b, g, r = composited.render(show_controls=False)[200, 125]
        assert abs(int(b) - 90) <= 1
        assert abs(int(r) - 218) <= 1

    def test_rotation_is_about_center(self, surface, hand_500x800):
        surface.set_background(hand_500x800)
        pixels = np.zeros((30, 10, 4), dtype=np.uint8)
        pixels[:, :] = (0, 0, 255, 255)
        bar = DecodedImage(pixels=pixels, key="bar")

        surface.upsert_active_layer(bar, nt(scale=1.0, angle=0))
        upright = surface.render(show_controls=False)
        surface.apply_manual_transform(nt(scale=1.0, angle=90))
        turned = surface.render(show_controls=False)

        assert tuple(upright[200, 137]) == (180, 180, 180)
        assert tuple(turned[200, 137]) == (0, 0, 255)
        assert tuple(upright[212, 125]) == (0, 0, 255)
        assert tuple(turned[212, 125]) == (180, 180, 180)

    def test_stale_layer_not_drawn(self, composited, other_hand_500x800):
        composited.set_background(other_hand_500x800)
        out = composited.render(show_controls=False)
        assert tuple(out[200, 125]) == (90, 90, 90)

    def test_controls_drawn_for_active_layer(self, composited):
        plain = composited.render(show_controls=False)
        with_controls = composited.render()
        assert not np.array_equal(plain, with_controls)
