"""
Color snapping for autopaint.

Every stroke and fill color is mapped to exactly one pen of the palette by
Euclidean distance in CIE L*a*b*. Ties go to the lowest palette index, so the
mapping is total and deterministic.
"""

import re

import numpy as np

from autopaint.errors import InvalidConfiguration
from autopaint.models import Tool
from autopaint.tracer import get_tracer


# Preview color for the translucent (wash) tool
TRANSLUCENT_PREVIEW = "#256d7b"

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgba?\(\s*([^)]*)\)$")

# sRGB to XYZ matrix (D65)
_RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])
_D65 = np.array([0.95047, 1.0, 1.08883])


def parse_color(value):
    """
    Parse a color into sRGB components in [0, 1].

    Accepts "#rgb", "#rrggbb", "rgb(r, g, b)" / "rgba(...)" strings and
    3-sequences of 0-255 integers.

    Raises ValueError for anything else.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 3:
            raise ValueError(f"Expected 3 color components, got {value!r}")
        return np.clip(np.asarray(value, dtype=float) / 255.0, 0.0, 1.0)

    if not isinstance(value, str):
        raise ValueError(f"Unsupported color value: {value!r}")

    text = value.strip()
    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return np.array([int(digits[i:i + 2], 16) for i in (0, 2, 4)], dtype=float) / 255.0

    match = _RGB_RE.match(text)
    if match:
        parts = [p.strip() for p in match.group(1).split(",")]
        if len(parts) < 3:
            raise ValueError(f"Malformed rgb() color: {value!r}")
        channels = []
        for part in parts[:3]:
            if part.endswith("%"):
                channels.append(float(part[:-1]) * 2.55)
            else:
                channels.append(float(part))
        return np.clip(np.array(channels) / 255.0, 0.0, 1.0)

    raise ValueError(f"Unsupported color value: {value!r}")


def srgb_to_linear(rgb):
    """Undo the sRGB transfer curve."""
    rgb = np.asarray(rgb, dtype=float)
    return np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)


def rgb_to_lab(rgb):
    """
    Convert sRGB in [0, 1] to CIE L*a*b* (D65).

    Works on a single color (3,) or a stack (N, 3).
    """
    xyz = srgb_to_linear(rgb) @ _RGB_TO_XYZ.T
    xyz_norm = xyz / _D65

    delta = 6.0 / 29.0
    f = np.where(
        xyz_norm <= delta ** 3,
        xyz_norm / (3.0 * delta ** 2) + 4.0 / 29.0,
        np.cbrt(xyz_norm),
    )
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    return np.stack([116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)], axis=-1)


def luminance(rgb):
    """Relative luminance of an sRGB color."""
    lin = srgb_to_linear(rgb)
    return float(0.2126 * lin[0] + 0.7152 * lin[1] + 0.0722 * lin[2])


class Palette:
    """
    The fixed set of pens available to a job.

    background names the tool that is never drawn (usually the paper color);
    translucent, when set, is assigned to every color with opacity below 1.
    """

    def __init__(self, tools, background=None, translucent=None):
        if not tools:
            raise InvalidConfiguration("Palette must contain at least one tool")

        self.tools = list(tools)
        self.background = background
        self.translucent = translucent
        self._ids = [t.tool_id for t in self.tools]

        if len(set(self._ids)) != len(self._ids):
            raise InvalidConfiguration(f"Palette tool ids must be unique, got {self._ids}")
        if background is not None and background not in self._ids:
            raise InvalidConfiguration(f"Background tool {background!r} is not in the palette")
        if translucent is not None and translucent in self._ids:
            raise InvalidConfiguration(f"Translucent tool {translucent!r} must not be a palette color")

        rgb = []
        for tool in self.tools:
            try:
                rgb.append(parse_color(tool.color))
            except ValueError as e:
                raise InvalidConfiguration(f"Tool {tool.tool_id!r}: {e}") from e
        self._rgb = np.array(rgb)
        self._lab = rgb_to_lab(self._rgb)

    @classmethod
    def from_config(cls, palette_config):
        """Build a palette from a PaletteConfig, rejecting malformed entries."""
        tools = []
        for entry in palette_config.tools or []:
            if isinstance(entry, Tool):
                tools.append(entry)
                continue
            if not isinstance(entry, dict) or "tool_id" not in entry or "color" not in entry:
                raise InvalidConfiguration(f"Malformed palette entry: {entry!r}")
            tools.append(Tool(
                tool_id=str(entry["tool_id"]),
                color=str(entry["color"]),
                name=str(entry.get("name", "")),
            ))
        return cls(tools, palette_config.background, palette_config.translucent)

    def snap_id(self, color, opacity=1.0):
        """Tool id nearest to color; translucent colors go to the wash tool."""
        if self.translucent is not None and opacity < 1:
            return self.translucent

        lab = rgb_to_lab(parse_color(color))
        dists = ((self._lab - lab) ** 2).sum(axis=1)
        return self._ids[int(np.argmin(dists))]

    def color_of(self, tool_id):
        """Display color of a tool."""
        if tool_id == self.translucent:
            return TRANSLUCENT_PREVIEW
        return self.tools[self._ids.index(tool_id)].color

    def snap_color(self, color, opacity=1.0):
        """Display color of the tool nearest to color."""
        return self.color_of(self.snap_id(color, opacity))

    def is_background(self, tool_id):
        return tool_id is not None and tool_id == self.background

    def sorted_tool_ids(self):
        """
        Tool ids in drawing order: lightest first, palette order on ties.

        The translucent tool, if any, goes last.
        """
        order = sorted(
            range(len(self.tools)),
            key=lambda i: (-luminance(self._rgb[i]), i),
        )
        ids = [self._ids[i] for i in order]
        if self.translucent is not None:
            ids.append(self.translucent)

        get_tracer().event(f"Tool order: {ids}", level="DEBUG")
        return ids
