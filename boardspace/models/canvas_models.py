"""
Canvas Models for Boardspace
============================

Canonical element records, geometry value objects and viewport state.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """A point in canvas or screen space."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(x=self.x + other.x, y=self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(x=self.x - other.x, y=self.y - other.y)


class Size(BaseModel):
    """Width/height in canvas units."""
    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class Rect(BaseModel):
    """Axis-aligned rectangle in canvas space."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, point: Point) -> bool:
        """Edges are inclusive."""
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


class ElementProperties(BaseModel):
    """Positional sub-object of an element plus any per-type extras."""
    model_config = ConfigDict(extra="allow")

    position: Point
    size: Size
    z_index: Optional[int] = None
    rotation: float = 0.0
    relative_position: Optional[Point] = None  # only while anchored in a container


class CanvasElement(BaseModel):
    """An element placed on the board, in canonical shape."""
    id: str
    type: str
    properties: ElementProperties
    parent_id: Optional[str] = None
    hidden: bool = False
    content: Any = None

    @property
    def position(self) -> Point:
        return self.properties.position

    @property
    def size(self) -> Size:
        return self.properties.size

    @property
    def rect(self) -> Rect:
        return Rect(
            x=self.position.x,
            y=self.position.y,
            width=self.size.width,
            height=self.size.height,
        )

    def container_ids(self) -> List[str]:
        """Member ids when this element carries container content."""
        if isinstance(self.content, dict):
            ids = self.content.get("element_ids")
            if isinstance(ids, list):
                return [str(i) for i in ids]
        return []


class ContainerContent(BaseModel):
    """Content payload of container-type elements."""
    title: str = "New Container"
    element_ids: List[str] = Field(default_factory=list)
    layout: str = "single"  # single | two-columns


class Viewport(BaseModel):
    """Scale plus scroll offset. Pure value; operations return new instances."""
    model_config = ConfigDict(frozen=True)

    scale: float = 1.0
    scroll_offset: Point = Field(default_factory=Point)


class DeviceProfile(BaseModel):
    """Screen frame of the board and device class."""
    model_config = ConfigDict(frozen=True)

    is_mobile: bool = False
    client_width: float = 1280.0
    client_height: float = 800.0


class Transform(BaseModel):
    """Snapshot returned to sibling UI (toolbars, last-view persistence)."""
    scale: float
    x: float
    y: float


class ElementPatch(BaseModel):
    """A shallow-merge patch addressed to the host."""
    element_id: str
    changes: Dict[str, Any]
