"""
Travel ordering for autopaint.

Groups finished polylines by tool and orders each group greedily so the pen
travels as little as possible between strokes.
"""

from autopaint.geometry.layers import distance
from autopaint.tracer import get_tracer, trace


def group_by_tool(paths, tool_order):
    """
    Bucket paths by tool id.

    Tools are returned in tool_order; tools missing from it follow in the
    order they first appear. Paths keep their input order within a group.

    Returns:
        list of (tool_id, [paths])
    """
    groups = {}
    for path in paths:
        groups.setdefault(path.tool_id, []).append(path)

    ordered = [tool for tool in tool_order if tool in groups]
    ordered += [tool for tool in groups if tool not in ordered]
    return [(tool, groups[tool]) for tool in ordered]


def nearest_endpoint(cursor, candidates):
    """
    Candidate with the endpoint nearest to cursor.

    Ties go to the earlier candidate, and to its start over its end.

    Returns:
        (index, use_end)
    """
    best_index = 0
    best_end = False
    best = distance(cursor, candidates[0].first)
    for i, path in enumerate(candidates):
        for use_end, point in ((False, path.first), (True, path.last)):
            d = distance(cursor, point)
            if d < best:
                best, best_index, best_end = d, i, use_end
    return best_index, best_end


class TravelSequencer:
    """
    Incremental greedy ordering; one path is placed per step.

    Every tool group starts from origin.
    """

    def __init__(self, paths, tool_order, origin=(0.0, 0.0)):
        self.origin = tuple(origin)
        self.ordered = []
        self._groups = group_by_tool([p for p in paths if len(p)], tool_order)
        self._remaining = []
        self._cursor = self.origin
        self.total = sum(len(g) for _, g in self._groups)

    @property
    def done(self):
        return not self._remaining and not self._groups

    def step(self):
        """
        Place the next path.

        Returns:
            False once every path has been placed, True otherwise
        """
        if not self._remaining:
            if not self._groups:
                return False
            _, self._remaining = self._groups.pop(0)
            self._remaining = list(self._remaining)
            self._cursor = self.origin

        index, use_end = nearest_endpoint(self._cursor, self._remaining)
        path = self._remaining.pop(index)
        if use_end:
            path.reverse()
        self._cursor = path.last
        self.ordered.append(path)
        return True


@trace(label="travel_sort")
def travel_sort(paths, tool_order, origin=(0.0, 0.0)):
    """
    Order paths for drawing in one call.

    Args:
        paths: ActionPaths; reversed in place where their end is nearer
        tool_order: tool ids in drawing order
        origin: where the pen starts for each tool group

    Returns:
        list of the same paths in drawing order
    """
    sequencer = TravelSequencer(paths, tool_order, origin)
    while sequencer.step():
        pass

    get_tracer().event(
        f"Ordered {len(sequencer.ordered)} paths, travel {travel_distance(sequencer.ordered, origin):.1f}"
    )
    return sequencer.ordered


def travel_distance(paths, origin=(0.0, 0.0)):
    """
    Pen-up travel for drawing paths in the given order.

    The cursor returns to origin whenever the tool changes.
    """
    total = 0.0
    cursor = tuple(origin)
    tool = None
    for path in paths:
        if not len(path):
            continue
        if path.tool_id != tool:
            tool = path.tool_id
            cursor = tuple(origin)
        total += distance(cursor, path.first)
        cursor = path.last
    return total
