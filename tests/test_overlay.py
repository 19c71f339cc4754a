"""Tests for the overlay spiral fill strategy."""

import math

import numpy as np
import pytest
from shapely.geometry import Point, box


@pytest.fixture
def overlay_config(default_config):
    """Overlay fill with a coarse spiral."""
    default_config.fill.strategy = "overlay"
    default_config.fill.spacing = 20
    return default_config


class TestSpiral:
    """Tests for spiral construction."""

    def test_control_points_follow_radius(self):
        """Test that control points lie on r = spacing * theta."""
        from autopaint.fill.overlay import SPIRAL_STEP, spiral_points

        points = spiral_points(2.0, turns=3)
        theta = np.arange(len(points)) * SPIRAL_STEP

        assert len(points) >= 24
        assert np.allclose(np.hypot(points[:, 0], points[:, 1]), 2.0 * theta)

    def test_catmull_rom_passes_through_controls(self):
        """Test that the smoothed curve keeps every control point."""
        from autopaint.fill.overlay import SMOOTH_SAMPLES, catmull_rom, spiral_points

        points = spiral_points(3.0, turns=2)
        smooth = catmull_rom(points)

        assert len(smooth) == (len(points) - 1) * SMOOTH_SAMPLES + 1
        assert np.allclose(smooth[::SMOOTH_SAMPLES], points)

    def test_catmull_rom_drops_tail(self):
        """Test that dropped spans shorten the curve to an earlier control point."""
        from autopaint.fill.overlay import catmull_rom, spiral_points

        points = spiral_points(3.0, turns=2)
        smooth = catmull_rom(points, drop_spans=4)

        assert np.allclose(smooth[-1], points[-5])

    def test_spiral_reaches_past_diagonal(self):
        """Test that the template covers the whole view from any origin inside it."""
        from autopaint.fill.overlay import build_spiral

        view = (0, 0, 200, 100)
        spiral = build_spiral(4.0, view)

        assert np.allclose(spiral[0], (0, 0))
        assert np.hypot(*spiral[-1]) > math.hypot(200, 100)


class TestOverlayFill:
    """Tests for OverlayFill."""

    def test_ticks_multiplier(self):
        """Test that overlay runs twice the steps per tick."""
        from autopaint.fill.hatch import HatchFill
        from autopaint.fill.overlay import OverlayFill

        assert OverlayFill.ticks_multiplier == 2
        assert HatchFill.ticks_multiplier == 1
        assert OverlayFill().step_max(3) == 3

    def test_output_inside_square(self, make_scene, make_rect, palette, overlay_config, fill_run):
        """Test that only spiral pieces inside the area are kept."""
        from autopaint.fill.overlay import OverlayFill
        from autopaint.models import PathRole

        scene = make_scene([make_rect(50, 50, 150, 150, fill_color="#000000")])
        strategy, actions = fill_run(OverlayFill(), scene, palette, overlay_config)

        area = box(50, 50, 150, 150).buffer(1e-6)
        assert actions
        for action in actions:
            assert action.tool_id == "color0"
            assert action.role == PathRole.FILL
            assert all(area.covers(Point(p)) for p in action.points)

        assert strategy.units_done == 1
        assert strategy.paths_done == 1

    def test_off_center_path_recovered(self, make_scene, make_rect, palette, overlay_config, fill_run):
        """Test that a path away from the view center is still reached."""
        from autopaint.fill.overlay import OverlayFill

        scene = make_scene([make_rect(10, 10, 60, 60, fill_color="#0072bc")])
        _, actions = fill_run(OverlayFill(), scene, palette, overlay_config)

        area = box(10, 10, 60, 60).buffer(1e-6)
        assert actions
        assert all(area.covers(Point(p)) for action in actions for p in action.points)
        assert sum(action.length for action in actions) > 100

    def test_align_to_path(self, make_scene, make_rect, palette, overlay_config, fill_run):
        """Test that an aligned spiral starts at the path centroid."""
        from autopaint.fill.overlay import OverlayFill

        overlay_config.fill.overlay_align_to_path = True
        scene = make_scene([make_rect(10, 10, 60, 60, fill_color="#0072bc")])
        _, actions = fill_run(OverlayFill(), scene, palette, overlay_config)

        assert actions[0].first == pytest.approx((35, 35))
        area = box(10, 10, 60, 60).buffer(1e-6)
        assert all(area.covers(Point(p)) for action in actions for p in action.points)

    def test_exhausted_spiral_still_finishes(self, make_scene, make_rect, palette, default_config, fill_run):
        """Test that a path larger than the spiral is completed with partial coverage."""
        from autopaint.fill.overlay import OverlayFill

        default_config.debug.enabled = True
        scene = make_scene([make_rect(-500, -500, 600, 600, fill_color="#000000")], width=100, height=100)
        strategy, actions = fill_run(OverlayFill(), scene, palette, default_config)

        assert len(actions) == 1
        assert strategy.paths_done == 1
        assert len(strategy.context.layer) == 0

    def test_reset_drops_template(self, make_scene, make_rect, palette, overlay_config, fill_run):
        """Test that reset clears the spiral and a second run matches the first."""
        from autopaint.fill.overlay import OverlayFill

        scene = make_scene([make_rect(70, 70, 130, 120, fill_color="#000000")])
        strategy = OverlayFill()
        _, first = fill_run(strategy, scene, palette, overlay_config)
        strategy.reset()

        assert strategy.spiral is None
        assert strategy.units_done == 0

        _, second = fill_run(strategy, scene, palette, overlay_config)
        assert [a.points for a in first] == [a.points for a in second]
