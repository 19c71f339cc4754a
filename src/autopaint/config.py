"""
Configuration management for autopaint.

Loads YAML configuration with sensible defaults for every pipeline stage and
validates it before a job is allowed to touch any layer.
"""

import os
from dataclasses import dataclass, field

import yaml

from autopaint.errors import InvalidConfiguration


FILL_STRATEGIES = ("hatch", "pocket", "overlay")


def _default_tools():
    return [
        {"tool_id": "color0", "color": "#000000", "name": "Black"},
        {"tool_id": "color1", "color": "#e4001b", "name": "Red"},
        {"tool_id": "color2", "color": "#ff7f00", "name": "Orange"},
        {"tool_id": "color3", "color": "#ffe600", "name": "Yellow"},
        {"tool_id": "color4", "color": "#00a651", "name": "Green"},
        {"tool_id": "color5", "color": "#0072bc", "name": "Blue"},
        {"tool_id": "color6", "color": "#662d91", "name": "Violet"},
        {"tool_id": "color7", "color": "#8b5a2b", "name": "Brown"},
        {"tool_id": "color8", "color": "#ffffff", "name": "Paper"},
    ]


@dataclass
class FillConfig:
    """Configuration for the fill engine."""
    strategy: str = "hatch"  # "hatch", "pocket" or "overlay"
    spacing: float = 13.0
    angle: float = -155.0  # direction of hatch lines, degrees
    threshold: float = 40.0  # hatch chord grouping distance
    join_max_crossings: int = 2
    overlay_align_to_path: bool = False
    pocket_tool_diameter: float = None  # defaults to spacing


@dataclass
class PaletteConfig:
    """Configuration for the tool palette."""
    tools: list = field(default_factory=_default_tools)
    background: str = "color8"
    translucent: str = None


@dataclass
class ViewConfig:
    """Printable area; None falls back to the scene size."""
    width: float = None
    height: float = None


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class DebugConfig:
    """Verbose geometry diagnostics."""
    enabled: bool = False


@dataclass
class SpoolConfig:
    """Complete autopaint configuration."""
    flatten_resolution: float = 10.0
    line_width: float = 10.0
    units_per_inch: float = 96.0
    steps_per_tick: int = 2
    fill: FillConfig = field(default_factory=FillConfig)
    palette: PaletteConfig = field(default_factory=PaletteConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    @property
    def pocket_diameter(self):
        """Effective pocket tool diameter in device units."""
        if self.fill.pocket_tool_diameter is None:
            return self.fill.spacing
        return self.fill.pocket_tool_diameter


_SECTIONS = ("fill", "palette", "view", "tracing", "debug")
_SCALARS = ("flatten_resolution", "line_width", "units_per_inch", "steps_per_tick")


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = SpoolConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = merge_config(config, yaml_data)

    return config


def merge_config(config, yaml_data):
    """Merge a parsed YAML mapping into the config dataclasses."""
    for section in _SECTIONS:
        if section in yaml_data:
            target = getattr(config, section)
            for key, value in (yaml_data[section] or {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

    for key in _SCALARS:
        if key in yaml_data:
            setattr(config, key, yaml_data[key])

    return config


def config_to_dict(config):
    """Plain-dict view of a config, in YAML section order."""
    return {
        "flatten_resolution": config.flatten_resolution,
        "line_width": config.line_width,
        "units_per_inch": config.units_per_inch,
        "steps_per_tick": config.steps_per_tick,
        "fill": {
            "strategy": config.fill.strategy,
            "spacing": config.fill.spacing,
            "angle": config.fill.angle,
            "threshold": config.fill.threshold,
            "join_max_crossings": config.fill.join_max_crossings,
            "overlay_align_to_path": config.fill.overlay_align_to_path,
            "pocket_tool_diameter": config.fill.pocket_tool_diameter,
        },
        "palette": {
            "tools": [dict(t) for t in config.palette.tools],
            "background": config.palette.background,
            "translucent": config.palette.translucent,
        },
        "view": {
            "width": config.view.width,
            "height": config.view.height,
        },
        "tracing": {
            "enabled": config.tracing.enabled,
            "level": config.tracing.level,
        },
        "debug": {
            "enabled": config.debug.enabled,
        },
    }


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = config_to_dict(SpoolConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)


def validate_config(config):
    """
    Reject settings the pipeline cannot run with.

    Raises InvalidConfiguration with every problem found, so a job is
    refused before any layer is touched.
    """
    problems = []

    if not _positive(config.flatten_resolution):
        problems.append(f"flatten_resolution must be > 0, got {config.flatten_resolution!r}")
    if not _positive(config.line_width):
        problems.append(f"line_width must be > 0, got {config.line_width!r}")
    if not _positive(config.units_per_inch):
        problems.append(f"units_per_inch must be > 0, got {config.units_per_inch!r}")
    if not isinstance(config.steps_per_tick, int) or config.steps_per_tick < 1:
        problems.append(f"steps_per_tick must be a positive integer, got {config.steps_per_tick!r}")

    fill = config.fill
    if fill.strategy not in FILL_STRATEGIES:
        problems.append(f"fill.strategy must be one of {FILL_STRATEGIES}, got {fill.strategy!r}")
    if not _positive(fill.spacing):
        problems.append(f"fill.spacing must be > 0, got {fill.spacing!r}")
    if not _positive(fill.threshold):
        problems.append(f"fill.threshold must be > 0, got {fill.threshold!r}")
    if not isinstance(fill.angle, (int, float)):
        problems.append(f"fill.angle must be a number, got {fill.angle!r}")
    if not isinstance(fill.join_max_crossings, int) or fill.join_max_crossings < 0:
        problems.append(f"fill.join_max_crossings must be >= 0, got {fill.join_max_crossings!r}")
    if fill.pocket_tool_diameter is not None and not _positive(fill.pocket_tool_diameter):
        problems.append(f"fill.pocket_tool_diameter must be > 0, got {fill.pocket_tool_diameter!r}")

    for axis in ("width", "height"):
        value = getattr(config.view, axis)
        if value is not None and not _positive(value):
            problems.append(f"view.{axis} must be > 0, got {value!r}")

    if problems:
        raise InvalidConfiguration("; ".join(problems))


def _positive(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
