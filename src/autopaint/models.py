"""
Pydantic data models for autopaint.

The input scene, the tool palette and the motion commands all flow through
these validated models. Scene nodes are a tagged variant (path, compound,
group) resolved by the flattener before any geometry code sees them.
"""

import hashlib
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def check_color(value):
    """Reject color strings the palette cannot parse."""
    from autopaint.palette.snap import parse_color

    if value is not None:
        parse_color(value)
    return value


class PathRole(str, Enum):
    """What a path contributes to the drawing."""
    STROKE = "stroke"
    FILL = "fill"


class Segment(BaseModel):
    """An anchor point with optional cubic handles, relative to the anchor."""
    point: List[float] = Field(..., min_length=2, max_length=2)
    handle_in: List[float] = Field(default_factory=lambda: [0.0, 0.0], min_length=2, max_length=2)
    handle_out: List[float] = Field(default_factory=lambda: [0.0, 0.0], min_length=2, max_length=2)

    model_config = ConfigDict(extra="forbid")

    @property
    def is_linear(self):
        return not any(self.handle_in) and not any(self.handle_out)


class PathNode(BaseModel):
    """A single path in the scene."""
    kind: Literal["path"] = "path"
    name: str = ""
    segments: List[Segment] = Field(default_factory=list)
    closed: bool = False
    stroke_color: Optional[str] = None
    stroke_width: float = 0.0
    fill_color: Optional[str] = None
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("stroke_color", "fill_color")
    @classmethod
    def color_parses(cls, value):
        return check_color(value)

    model_config = ConfigDict(extra="forbid")


class CompoundNode(BaseModel):
    """Several sub-paths painted as one shape (even-odd)."""
    kind: Literal["compound"] = "compound"
    name: str = ""
    components: List[PathNode] = Field(default_factory=list)
    stroke_color: Optional[str] = None
    stroke_width: float = 0.0
    fill_color: Optional[str] = None
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("stroke_color", "fill_color")
    @classmethod
    def color_parses(cls, value):
        return check_color(value)

    model_config = ConfigDict(extra="forbid")


class GroupNode(BaseModel):
    """A group of nodes; dissolved by the flattener."""
    kind: Literal["group"] = "group"
    name: str = ""
    children: List["SceneNode"] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


SceneNode = Annotated[Union[PathNode, CompoundNode, GroupNode], Field(discriminator="kind")]

GroupNode.model_rebuild()


class Scene(BaseModel):
    """Root of the input artwork. Children are listed bottom to top."""
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    children: List[SceneNode] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class Tool(BaseModel):
    """One pen the plotter can hold."""
    tool_id: str
    color: str
    name: str = ""

    model_config = ConfigDict(extra="forbid")


# Motion commands, emitted to the downstream motion controller

class PenUp(BaseModel):
    kind: Literal["pen-up"] = "pen-up"

    model_config = ConfigDict(frozen=True, extra="forbid")


class PenDown(BaseModel):
    kind: Literal["pen-down"] = "pen-down"

    model_config = ConfigDict(frozen=True, extra="forbid")


class MoveTo(BaseModel):
    """Travel or draw to (x, y), depending on the pen state."""
    kind: Literal["move-to"] = "move-to"
    x: float
    y: float

    model_config = ConfigDict(frozen=True, extra="forbid")


class ToolChange(BaseModel):
    """Swap to another pen before the next stroke."""
    kind: Literal["tool-change"] = "tool-change"
    tool_id: str

    model_config = ConfigDict(frozen=True, extra="forbid")


MotionCommand = Annotated[Union[PenUp, PenDown, MoveTo, ToolChange], Field(discriminator="kind")]


class MotionProgram(BaseModel):
    """A complete, ordered motion stream."""
    commands: List[MotionCommand] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


# ID generation functions for deterministic outputs

def generate_path_id(points, index, round_digits=2):
    """
    Generate deterministic path ID from its flattened coordinates.

    Rounds coordinates to avoid floating point instability.
    """
    if len(points) == 0:
        return f"path_{index}_empty"

    rounded = [[round(float(p[0]), round_digits), round(float(p[1]), round_digits)] for p in points]
    data = f"{index}:{rounded}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"path_{h}"
