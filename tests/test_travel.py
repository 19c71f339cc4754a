"""Tests for travel ordering and motion command translation."""

import pytest


def _action(tool_id, points, name=""):
    from autopaint.geometry.vector_path import ActionPath
    return ActionPath(tool_id, name=name, path_id=name, points=points)


class TestGroupByTool:
    """Tests for tool grouping."""

    def test_tool_order_then_first_seen(self):
        """Test that listed tools come first and unknown tools follow in order of appearance."""
        from autopaint.sequence.travel import group_by_tool

        paths = [
            _action("x", [(0, 0), (1, 0)], "x1"),
            _action("b", [(0, 0), (1, 0)], "b1"),
            _action("a", [(0, 0), (1, 0)], "a1"),
            _action("b", [(0, 0), (1, 0)], "b2"),
        ]
        groups = group_by_tool(paths, ["a", "b"])

        assert [tool for tool, _ in groups] == ["a", "b", "x"]
        assert [p.name for p in groups[1][1]] == ["b1", "b2"]


class TestNearestEndpoint:
    """Tests for endpoint selection."""

    def test_end_nearer_than_start(self):
        """Test that a path whose end is closer is picked reversed."""
        from autopaint.sequence.travel import nearest_endpoint

        candidates = [_action("a", [(100, 0), (5, 0)]), _action("a", [(50, 0), (60, 0)])]

        assert nearest_endpoint((0, 0), candidates) == (0, True)

    def test_ties_keep_earlier_start(self):
        """Test that equal distances prefer the earlier path and its start."""
        from autopaint.sequence.travel import nearest_endpoint

        candidates = [_action("a", [(10, 0), (0, 10)]), _action("a", [(-10, 0), (0, -10)])]

        assert nearest_endpoint((0, 0), candidates) == (0, False)


class TestTravelSort:
    """Tests for greedy ordering."""

    def test_greedy_reversal(self):
        """Test that the sequencer walks nearest-first and flips paths as needed."""
        from autopaint.sequence.travel import travel_sort

        paths = [
            _action("a", [(100, 0), (200, 0)], "far"),
            _action("a", [(50, 0), (10, 0)], "near"),
        ]
        ordered = travel_sort(paths, ["a"])

        assert [p.name for p in ordered] == ["near", "far"]
        assert ordered[0].points == [(10.0, 0.0), (50.0, 0.0)]
        assert ordered[1].first == (100.0, 0.0)

    def test_each_path_once(self):
        """Test that every non-empty path is placed exactly once."""
        from autopaint.sequence.travel import travel_sort

        paths = [_action("a" if i % 2 else "b", [(i * 7 % 50, i), (i * 3 % 40, i + 5)], f"p{i}")
                 for i in range(20)]
        paths.append(_action("a", [], "empty"))
        ordered = travel_sort(paths, ["b", "a"])

        assert sorted(p.name for p in ordered) == sorted(f"p{i}" for i in range(20))
        assert [p.tool_id for p in ordered] == ["b"] * 10 + ["a"] * 10

    def test_not_worse_than_input_order(self):
        """Test that greedy travel beats a scattered input order."""
        from autopaint.sequence.travel import travel_distance, travel_sort

        paths = [
            _action("a", [(90, 90), (95, 90)]),
            _action("a", [(0, 10), (5, 10)]),
            _action("a", [(50, 50), (55, 50)]),
            _action("a", [(10, 0), (10, 5)]),
        ]
        before = travel_distance(paths)
        after = travel_distance(travel_sort(paths, ["a"]))

        assert after <= before

    def test_sequencer_steps(self):
        """Test stepping the sequencer one path at a time."""
        from autopaint.sequence.travel import TravelSequencer

        sequencer = TravelSequencer(
            [_action("a", [(0, 0), (1, 0)]), _action("b", [(5, 5), (6, 5)])], ["b", "a"],
        )
        assert sequencer.total == 2

        assert sequencer.step()
        assert sequencer.ordered[0].tool_id == "b"
        assert sequencer.step()
        assert sequencer.done
        assert sequencer.step() is False

    def test_travel_distance_resets_on_tool_change(self):
        """Test that travel restarts from the origin for every tool."""
        from autopaint.sequence.travel import travel_distance

        paths = [_action("a", [(3, 4), (10, 10)]), _action("b", [(3, 4), (0, 0)])]

        assert travel_distance(paths) == pytest.approx(10)


class TestMotion:
    """Tests for motion command translation."""

    def test_path_commands(self):
        """Test pen sequence for one polyline."""
        from autopaint.models import MoveTo, PenDown, PenUp
        from autopaint.sequence.motion import path_commands

        commands = path_commands(_action("a", [(0, 0), (10, 0), (10, 10)]))

        assert commands == [
            PenUp(), MoveTo(x=0, y=0), PenDown(), MoveTo(x=10, y=0), MoveTo(x=10, y=10), PenUp(),
        ]

    def test_tool_change_only_when_tool_differs(self):
        """Test that consecutive paths with the same tool share one tool change."""
        from autopaint.models import ToolChange
        from autopaint.sequence.motion import build_program

        program = build_program([
            _action("a", [(0, 0), (1, 0)]),
            _action("a", [(2, 0), (3, 0)]),
            _action("b", [(4, 0), (5, 0)]),
        ])
        changes = [c for c in program.commands if isinstance(c, ToolChange)]

        assert [c.tool_id for c in changes] == ["a", "b"]
        assert program.commands[0] == ToolChange(tool_id="a")
        assert sum(1 for c in program.commands if c.kind == "pen-down") == 3

    def test_program_serializes(self):
        """Test that a program dumps to tagged JSON commands."""
        from autopaint.models import MotionProgram
        from autopaint.sequence.motion import build_program

        program = build_program([_action("a", [(0, 0), (1, 2)])])
        data = program.model_dump(mode="json")

        assert [c["kind"] for c in data["commands"]] == [
            "tool-change", "pen-up", "move-to", "pen-down", "move-to", "pen-up",
        ]
        assert MotionProgram.model_validate(data) == program
