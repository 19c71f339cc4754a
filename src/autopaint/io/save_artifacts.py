"""
Artifact saving utilities for autopaint.

Handles writing JSON and SVG outputs of a job.
"""

import json
import os

from autopaint.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump()

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def save_svg(svg_content, path):
    """
    Save SVG content (an svgwrite Drawing or a string) to file.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(svg_content, "tostring"):
        content = svg_content.tostring()
    else:
        content = str(svg_content)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    tracer.event(f"Saved SVG: {path}")
