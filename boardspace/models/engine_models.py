"""
Engine Models for Boardspace
============================

Interaction state and input events consumed by the spatial engine.
"""

from enum import Enum
from typing import Optional, Tuple, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from .canvas_models import Point, Size


class PointerRegion(str, Enum):
    """Where on an element a pointer-down landed."""
    HANDLE = "handle"        # dedicated drag handle
    BODY = "body"            # content area (text editing lives here)
    RESIZE = "resize"        # bottom-right resize grip


class GestureKind(str, Enum):
    """Kind of captured pointer gesture."""
    MOVE = "move"
    RESIZE = "resize"
    PAN = "pan"


class Modifiers(BaseModel):
    """Keyboard modifiers held during a pointer or wheel event."""
    model_config = ConfigDict(frozen=True)

    ctrl: bool = False
    meta: bool = False
    alt: bool = False
    shift: bool = False

    @property
    def multi_select(self) -> bool:
        return self.ctrl or self.meta or self.alt or self.shift


class WheelEvent(BaseModel):
    """A wheel event in screen space."""
    delta_x: float = 0.0
    delta_y: float = 0.0
    client_x: float = 0.0
    client_y: float = 0.0
    modifiers: Modifiers = Field(default_factory=Modifiers)


class EngineState(BaseModel):
    """
    Interaction state threaded through the engine.

    Replaces scattered UI singletons: the current selection, the element whose
    gesture is captured, and the pan-mode flags.
    """
    model_config = ConfigDict(frozen=True)

    selected_ids: Tuple[str, ...] = ()
    active_drag_id: Optional[str] = None
    activated_element_id: Optional[str] = None
    pan_mode: bool = False               # toggled from the toolbar
    space_panning: bool = False          # held space bar

    @property
    def sole_selection(self) -> Optional[str]:
        if len(self.selected_ids) == 1:
            return self.selected_ids[0]
        return None

    @property
    def panning_enabled(self) -> bool:
        return self.pan_mode or self.space_panning


class ExternalDropPayload(BaseModel):
    """Payload delivered by an external drag source such as the gallery panel."""
    element_type: str = "image"
    url: str = ""
    filename: Optional[str] = None
    size: Size = Field(default_factory=lambda: Size(width=300, height=200))
    content: Dict[str, Any] = Field(default_factory=dict)


class DropResult(BaseModel):
    """Outcome of an external drop."""
    element_id: str
    position: Point
