"""Tests for the pocket (offset) fill strategy."""

import numpy as np
import pytest
from shapely.geometry import Point


SCALE = 100000 / 96.0

SQUARE = [(0, 0), (100, 0), (100, 100), (0, 100)]


class TestClipperConversion:
    """Tests for integer coordinate conversion."""

    def test_round_trip(self):
        """Test that converting to clipper units and back keeps the ring."""
        from autopaint.fill.pocket import from_clipper, to_clipper

        ring = [(0.5, 0.25), (100.125, 0), (50, 80.75)]
        back = from_clipper(to_clipper([ring], SCALE), SCALE)

        assert len(back) == 1
        assert np.allclose(back[0], ring, atol=1e-3)

    def test_short_rings_dropped(self):
        """Test that rings with fewer than three points are ignored."""
        from autopaint.fill.pocket import to_clipper

        assert to_clipper([[(0, 0), (1, 1)]], SCALE) == []


class TestPocketRings:
    """Tests for the offset pass generator."""

    def test_square_passes_innermost_first(self):
        """Test concentric passes of a square with a 10 unit tool."""
        from autopaint.fill.pocket import pocket_rings

        rings, bounds = pocket_rings([SQUARE], diameter=10, scale=SCALE)

        assert len(rings) == 5
        assert len(bounds) == 1
        inner = rings[0]
        assert inner[:, 0].min() == pytest.approx(45, abs=0.01)
        assert inner[:, 0].max() == pytest.approx(55, abs=0.01)
        outer = bounds[0]
        assert outer[:, 0].min() == pytest.approx(5, abs=0.01)
        assert outer[:, 1].max() == pytest.approx(95, abs=0.01)

    def test_too_small_for_tool(self):
        """Test that an area narrower than the tool is degenerate."""
        from autopaint.errors import DegenerateGeometry
        from autopaint.fill.pocket import pocket_rings

        with pytest.raises(DegenerateGeometry):
            pocket_rings([[(0, 0), (5, 0), (5, 5), (0, 5)]], diameter=13, scale=SCALE)

    def test_no_area(self):
        """Test that rings without area are degenerate."""
        from autopaint.errors import DegenerateGeometry
        from autopaint.fill.pocket import pocket_rings

        with pytest.raises(DegenerateGeometry):
            pocket_rings([[(0, 0), (10, 0)]], diameter=1, scale=SCALE)

    def test_rotate_to_nearest(self):
        """Test that a ring is restarted at the vertex nearest a point and closed."""
        from autopaint.fill.pocket import rotate_to_nearest

        ring = np.array(SQUARE, dtype=float)
        rotated = rotate_to_nearest(ring, (98, 97))

        assert rotated[0].tolist() == [100, 100]
        assert rotated[-1].tolist() == [100, 100]
        assert len(rotated) == 5


class TestPocketFill:
    """Tests for PocketFill."""

    def test_square_one_polyline_inside(self, make_scene, make_rect, palette, default_config, fill_run):
        """Test that a square pocket chains into one polyline inside the area."""
        from autopaint.fill.pocket import PocketFill
        from autopaint.models import PathRole

        default_config.fill.pocket_tool_diameter = 10
        scene = make_scene([make_rect(0, 0, 100, 100, fill_color="#662d91")])
        strategy, actions = fill_run(PocketFill(), scene, palette, default_config)

        assert len(actions) == 1
        action = actions[0]
        assert action.tool_id == "color6"
        assert action.role == PathRole.FILL
        for x, y in action.points:
            assert 5 - 0.01 <= x <= 95 + 0.01
            assert 5 - 0.01 <= y <= 95 + 0.01
        assert strategy.units_done == 1
        assert strategy.paths_done == 1

    def test_fine_tool_reaches_corners(self, make_scene, make_rect, palette, default_config, fill_run):
        """Test that the outermost pass of a thin tool hugs the boundary."""
        from autopaint.fill.pocket import PocketFill

        default_config.fill.pocket_tool_diameter = 1
        scene = make_scene([make_rect(0, 0, 40, 40, fill_color="#000000")])
        _, actions = fill_run(PocketFill(), scene, palette, default_config)

        points = np.array([p for action in actions for p in action.points])
        for corner in [(0, 0), (40, 0), (40, 40), (0, 40)]:
            assert np.min(np.linalg.norm(points - corner, axis=1)) < 1.0
        assert points.min() >= 0 and points.max() <= 40

    def test_degenerate_path_completes_without_output(self, make_scene, make_rect, palette,
                                                     default_config, fill_run):
        """Test that a path too small for the tool is consumed silently."""
        from autopaint.fill.pocket import PocketFill

        scene = make_scene([make_rect(0, 0, 5, 5, fill_color="#000000")])
        strategy, actions = fill_run(PocketFill(), scene, palette, default_config)

        assert actions == []
        assert strategy.units_done == 1
        assert len(strategy.context.layer) == 0

    def test_hole_left_unpainted(self, make_scene, make_rect, palette, default_config, fill_run):
        """Test that a donut is pocketed around its hole."""
        from autopaint.fill.pocket import PocketFill
        from autopaint.models import CompoundNode

        default_config.fill.pocket_tool_diameter = 8
        donut = CompoundNode(
            components=[make_rect(0, 0, 100, 100), make_rect(35, 35, 65, 65)],
            fill_color="#000000",
        )
        _, actions = fill_run(PocketFill(), make_scene([donut]), palette, default_config)

        assert actions
        for action in actions:
            for p in action.points:
                assert not (35 < p[0] < 65 and 35 < p[1] < 65), f"{p} inside the hole"
                assert 0 <= p[0] <= 100 and 0 <= p[1] <= 100

    def test_connectors_stay_in_cut_area(self, make_scene, make_polygon, palette, default_config, fill_run):
        """Test that every chained segment lies inside the area the tool may cut."""
        from autopaint.fill.pocket import PocketFill
        from autopaint.geometry.vector_path import VectorPath

        ring = [(0, 0), (90, 0), (90, 90), (60, 90), (60, 30), (30, 30), (30, 90), (0, 90)]
        default_config.fill.pocket_tool_diameter = 6
        scene = make_scene([make_polygon(ring, fill_color="#000000")])
        _, actions = fill_run(PocketFill(), scene, palette, default_config)

        area = VectorPath([ring], closed=True, fill_tool_id="color0").polygon.buffer(0.01)
        assert actions
        for action in actions:
            for a, b in zip(action.points, action.points[1:]):
                mid = ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)
                assert area.covers(Point(mid))
