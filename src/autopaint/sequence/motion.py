"""
Motion command translation.

Turns ordered ActionPaths into the primitive pen commands a plotter
controller consumes.
"""

from autopaint.models import MotionProgram, MoveTo, PenDown, PenUp, ToolChange


def path_commands(path):
    """
    Commands drawing one polyline.

    The pen is lifted, moved to the first point, lowered, dragged through
    the rest and lifted again.
    """
    commands = [PenUp()]
    for i, (x, y) in enumerate(path.points):
        commands.append(MoveTo(x=x, y=y))
        if i == 0:
            commands.append(PenDown())
    commands.append(PenUp())
    return commands


class MotionWriter:
    """Tracks the loaded tool so a change is emitted only when it differs."""

    def __init__(self):
        self.tool_id = None

    def commands_for(self, path):
        commands = []
        if path.tool_id != self.tool_id:
            self.tool_id = path.tool_id
            commands.append(ToolChange(tool_id=path.tool_id))
        commands.extend(path_commands(path))
        return commands


def build_program(paths):
    """Complete motion program for paths already in drawing order."""
    writer = MotionWriter()
    commands = []
    for path in paths:
        commands.extend(writer.commands_for(path))
    return MotionProgram(commands=commands)
