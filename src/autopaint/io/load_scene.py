"""
Scene loading for autopaint.

Reads vector artwork exported by the editor as JSON and validates it into
the pydantic scene model.
"""

import json
import os

from pydantic import ValidationError

from autopaint.models import Scene
from autopaint.tracer import get_tracer, trace


@trace(label="load_scene")
def load_scene(path):
    """
    Load a scene from a JSON file.

    Raises FileNotFoundError if path does not exist.
    Raises ValueError if the file is not a valid scene.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Scene not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Scene is not valid JSON: {path}: {e}") from e

    scene = parse_scene(data)
    tracer.event(f"Loaded scene: {scene.width}x{scene.height}, {count_nodes(scene.children)} nodes")

    return scene


def parse_scene(data):
    """Validate a scene mapping; raises ValueError listing every problem."""
    try:
        return Scene.model_validate(data)
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValueError(f"Invalid scene: {'; '.join(problems)}") from e


def count_nodes(nodes):
    """Number of nodes in a scene tree, groups included."""
    total = 0
    for node in nodes:
        total += 1
        if node.kind == "group":
            total += count_nodes(node.children)
    return total
