"""Tests for the SlippyMap viewport and drag state machine."""

import pytest

from toiletmap.visualizer2d.projection import geo_to_pixels
from toiletmap.visualizer2d.viewport import (
    DEFAULT_CENTER_LAT,
    DEFAULT_CENTER_LON,
    DEFAULT_ZOOM,
    MapMode,
    SlippyMap,
    Viewport,
)


def _center(smap):
    return smap.viewport.center_lat, smap.viewport.center_lon


class TestViewport:

    def test_defaults(self):
        vp = Viewport()
        assert (vp.center_lat, vp.center_lon, vp.zoom) == (DEFAULT_CENTER_LAT, DEFAULT_CENTER_LON, DEFAULT_ZOOM)

    def test_zoom_clamped_on_construction(self):
        assert Viewport(zoom=25).zoom == 18
        assert Viewport(zoom=0).zoom == 3

    def test_latitude_clamped(self):
        vp = Viewport(89.0, 0.0)
        assert vp.center_lat < 85.06


class TestZoom:

    def test_zoom_out_floor(self):
        smap = SlippyMap(Viewport(zoom=5))
        for _ in range(30):
            smap.zoom_out()
        assert smap.viewport.zoom == 3

    def test_zoom_in_ceiling(self):
        smap = SlippyMap(Viewport(zoom=16))
        for _ in range(30):
            smap.zoom_in()
        assert smap.viewport.zoom == 18

    def test_zoom_keeps_center(self, smap):
        before = _center(smap)
        smap.zoom_in()
        smap.zoom_out()
        smap.zoom_out()
        assert _center(smap) == before
        assert smap.viewport.zoom == 12

    def test_zoom_during_drag_keeps_drag(self, smap):
        smap.pointer_down(10, 10)
        drag = smap.drag
        smap.zoom_in()
        assert smap.mode is MapMode.DRAGGING
        assert smap.drag is drag
        assert smap.viewport.zoom == 14


class TestDrag:

    def test_modes(self, smap):
        assert smap.mode is MapMode.IDLE
        smap.pointer_down(100, 100)
        assert smap.mode is MapMode.DRAGGING
        assert smap.drag.start_center.lat == smap.viewport.center_lat
        smap.pointer_up(100, 100)
        assert smap.mode is MapMode.IDLE
        assert smap.drag is None

    def test_move_without_drag_is_ignored(self, smap):
        before = _center(smap)
        assert smap.pointer_move(300, 300) is False
        assert smap.pointer_up(300, 300) is None
        assert _center(smap) == before

    def test_zero_delta_drag_is_bit_identical(self, smap):
        smap.render(800, 600)
        before = _center(smap)
        smap.pointer_down(100, 100)
        smap.pointer_move(100, 100)
        smap.pointer_up(100, 100)
        assert _center(smap) == before
        assert smap.selected is None

    def test_drag_moves_center_by_exact_pixel_delta(self):
        smap = SlippyMap(Viewport(54.71, 20.51, 13))
        sx, sy = geo_to_pixels(54.71, 20.51, 13)
        smap.pointer_down(100, 100)
        smap.pointer_move(220, 25)
        nx, ny = geo_to_pixels(*_center(smap), 13)
        # the map follows the pointer, so the center moves the other way
        assert nx == pytest.approx(sx - 120, abs=1e-3)
        assert ny == pytest.approx(sy + 75, abs=1e-3)

    def test_moves_are_relative_to_drag_start(self):
        smap = SlippyMap(Viewport(54.71, 20.51, 13))
        sx, sy = geo_to_pixels(54.71, 20.51, 13)
        smap.pointer_down(0, 0)
        for step in range(1, 11):
            smap.pointer_move(step * 10, step * 5)
        nx, ny = geo_to_pixels(*_center(smap), 13)
        assert (nx, ny) == pytest.approx((sx - 100, sy - 50), abs=1e-3)

    def test_drag_right_goes_west(self, smap):
        lon = smap.viewport.center_lon
        smap.pointer_down(100, 100)
        smap.pointer_move(200, 100)
        assert smap.viewport.center_lon < lon

    def test_stale_drag_is_released_on_next_press(self, smap):
        smap.pointer_down(10, 10)
        smap.pointer_move(60, 10)
        with pytest.warns(UserWarning):
            smap.pointer_down(300, 300)
        assert smap.mode is MapMode.DRAGGING
        assert (smap.drag.start_x, smap.drag.start_y) == (300, 300)
        assert smap.drag.start_center.lon == smap.viewport.center_lon
        smap.pointer_up(300, 300)
        assert smap.mode is MapMode.IDLE


class TestLocation:

    def test_center_on_user_without_location_is_noop(self, smap):
        requested = []
        smap.add_center_request_handler(lambda: requested.append(True))
        before = _center(smap)
        assert smap.center_on_user() is False
        assert _center(smap) == before
        assert requested == [True]

    def test_location_update_recenters(self, smap):
        smap.on_location_update(54.72, 20.49)
        assert _center(smap) == (54.72, 20.49)
        assert smap.user_location.lat == 54.72

    def test_center_on_user_after_pan(self, smap):
        smap.on_location_update(54.72, 20.49)
        smap.pointer_down(0, 0)
        smap.pointer_move(200, 200)
        smap.pointer_up(200, 200)
        assert _center(smap) != (54.72, 20.49)
        assert smap.center_on_user() is True
        assert _center(smap) == (54.72, 20.49)


class TestSelection:

    def _click(self, smap, x, y, to=None):
        tx, ty = to or (x, y)
        smap.pointer_down(x, y)
        smap.pointer_move(tx, ty)
        return smap.pointer_up(tx, ty)

    def test_click_on_pin_selects(self, smap):
        selected = []
        smap.add_marker_selected_handler(selected.append)
        smap.render(800, 600)
        poi = self._click(smap, 400, 290)
        assert poi.id == 1
        assert smap.selected_id == 1
        assert selected == [1]

    def test_small_jitter_still_clicks(self, smap):
        smap.render(800, 600)
        assert self._click(smap, 400, 290, to=(402, 291)).id == 1

    def test_drag_starting_on_pin_does_not_select(self, smap):
        selected = []
        smap.add_marker_selected_handler(selected.append)
        smap.render(800, 600)
        assert self._click(smap, 400, 290, to=(460, 290)) is None
        assert smap.selected_id is None
        assert selected == []

    def test_click_elsewhere_clears(self, smap):
        smap.render(800, 600)
        smap.select(2)
        assert self._click(smap, 50, 50) is None
        assert smap.selected is None

    def test_select_unknown_id(self, smap):
        assert smap.select(99) is False
        assert smap.selected_id is None

    def test_selection_cleared_when_point_disappears(self, smap, toilets):
        smap.select(3)
        smap.set_points(toilets)
        assert smap.selected_id == 3
        smap.set_points([p for p in toilets if p.id != 3])
        assert smap.selected_id is None

    def test_render_reports_selection(self, smap):
        smap.select(1)
        frame = smap.render(800, 600)
        assert frame.selected.id == 1
        smap.deselect()
        assert smap.render(800, 600).selected is None

    def test_points_are_not_mutated(self, toilets):
        copy = list(toilets)
        smap = SlippyMap(Viewport(54.71, 20.51, 13), toilets)
        smap.render(800, 600)
        smap.select(1)
        assert toilets == copy


class TestRender:

    def test_frame_contents(self, smap):
        smap.on_location_update(54.710, 20.510)
        frame = smap.render(800, 600)
        assert frame.width == 800 and frame.height == 600
        assert len(frame.tiles) == 42
        assert {m.kind for m in frame.markers} == {"poi", "user"}
        assert all(t.key.zoom == 13 for t in frame.tiles)

    def test_frame_is_a_snapshot(self, smap):
        frame = smap.render(800, 600)
        smap.zoom_in()
        assert frame.viewport.zoom == 13

    def test_constants_are_configurable(self, toilets):
        smap = SlippyMap(Viewport(54.71, 20.51, 13), toilets, overscan=0, cull_margin=0)
        assert len(smap.render(800, 600).tiles) == 20
