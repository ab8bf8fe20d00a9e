import pytest

from loop_algo import GeoPoint
from map_canvas import FoliumCanvas, MapSurface, SurfaceUnavailable

POINTS = [GeoPoint(48.85, 2.35), GeoPoint(48.86, 2.37), GeoPoint(48.84, 2.36)]


def test_draw_before_initialize_raises():
    canvas = FoliumCanvas()
    assert not canvas.ready
    with pytest.raises(SurfaceUnavailable):
        canvas.draw_path(POINTS, "#ff6b6b")


def test_drawn_path_keeps_point_order():
    canvas = FoliumCanvas()
    canvas.initialize()
    handle = canvas.draw_path(POINTS, "#4ecdc4")
    layer = canvas.layer(handle)
    assert list(layer.points) == POINTS
    assert layer.color == "#4ecdc4"


def test_fit_bounds_uses_path_extent():
    canvas = FoliumCanvas()
    canvas.initialize()
    first = canvas.draw_path(POINTS, "#ff6b6b")
    second = canvas.draw_path([GeoPoint(10.0, 20.0), GeoPoint(11.0, 21.0)], "#4ecdc4")
    canvas.fit_bounds(first)
    assert canvas.viewport == ((48.84, 2.35), (48.86, 2.37))
    canvas.fit_bounds(second)
    assert canvas.viewport == ((10.0, 20.0), (11.0, 21.0))


def test_closed_canvas_is_unavailable():
    canvas = FoliumCanvas()
    canvas.initialize()
    canvas.close()
    with pytest.raises(SurfaceUnavailable):
        canvas.draw_path(POINTS, "#ff6b6b")


def test_render_contains_drawn_paths():
    canvas = FoliumCanvas()
    canvas.initialize()
    canvas.fit_bounds(canvas.draw_path(POINTS, "#f9ca24"))
    html = canvas.render()
    assert "<html" in html.lower()
    assert "#f9ca24" in html
    assert "fitBounds" in html


def test_partial_surface_cannot_be_created():
    class DrawOnly(MapSurface):
        @property
        def ready(self):
            return True

        def draw_path(self, points, color):
            return 0

    with pytest.raises(TypeError):
        DrawOnly()
