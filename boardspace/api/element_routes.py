"""
Element Routes
===============

API routes for element management, pointer gestures and stacking.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel, Field

from ..canvas.normalize import to_record
from ..models.canvas_models import CanvasElement, Point, Size
from ..models.engine_models import Modifiers, PointerRegion

router = APIRouter(prefix="/api/element", tags=["elements"])

# Injected by server
state_manager = None


class AddElementRequest(BaseModel):
    """Request to add an element; positional keys may also arrive inside ``properties``."""
    type: str
    position: Optional[Point] = None
    size: Optional[Size] = None
    content: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any] = Field(default_factory=dict)


class ElementResponse(BaseModel):
    """Response for element operations."""
    element_id: str
    type: str
    message: str


class RotateRequest(BaseModel):
    degrees: Optional[float] = None
    step: Optional[int] = None       # +1 / -1 applies the variant's rotation step


class SelectRequest(BaseModel):
    multi: bool = False


class ZOrderRequest(BaseModel):
    action: Literal["front", "back", "backward"]


class PointerRequest(BaseModel):
    """A pointer event in screen space."""
    phase: Literal["down", "move", "up"]
    x: float
    y: float
    element_id: Optional[str] = None
    region: PointerRegion = PointerRegion.BODY
    button: int = 0
    modifiers: Modifiers = Field(default_factory=Modifiers)


def _get_engine(board_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    engine = state_manager.get_engine(board_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Board not found")
    return engine


def _element_or_404(engine, element_id: str) -> CanvasElement:
    element = engine.registry.get(element_id)
    if not element:
        raise HTTPException(status_code=404, detail="Element not found")
    return element


@router.post("/{board_id}")
async def add_element(board_id: str, request: AddElementRequest) -> ElementResponse:
    """Add element to board."""
    engine = _get_engine(board_id)

    props = dict(request.properties)
    raw_position = props.pop("position", None)
    raw_size = props.pop("size", None)
    z_index = props.pop("z_index", None)
    rotation = props.pop("rotation", 0.0)
    try:
        position = request.position or (Point(**raw_position) if raw_position else None)
        size = request.size or (Size(**raw_size) if raw_size else None)
        element_id = await engine.create_element(
            request.type,
            position=position,
            size=size,
            content=request.content,
            properties=props,
            z_index=z_index,
            rotation=rotation,
        )
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ElementResponse(element_id=element_id, type=request.type, message="Element added")


@router.get("/{board_id}/{element_id}")
async def get_element(board_id: str, element_id: str):
    engine = _get_engine(board_id)
    element = _element_or_404(engine, element_id)
    return {
        "element": to_record(element),
        "render_position": engine.registry.render_position(element).model_dump(),
    }


@router.patch("/{board_id}/{element_id}")
async def update_element(board_id: str, element_id: str, changes: Dict[str, Any]):
    """Shallow-merge a patch into an element."""
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    try:
        engine.update_element(element_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Element updated", "element_id": element_id}


@router.delete("/{board_id}/{element_id}")
async def remove_element(board_id: str, element_id: str):
    """Remove element from board."""
    engine = _get_engine(board_id)

    if not await engine.delete_element(element_id):
        raise HTTPException(status_code=404, detail="Element not found")

    return {"message": "Element removed", "element_id": element_id}


@router.post("/{board_id}/pointer")
async def pointer_event(board_id: str, request: PointerRequest):
    """Feed a pointer event through the gesture capture."""
    engine = _get_engine(board_id)

    point = Point(x=request.x, y=request.y)
    gesture = None
    if request.phase == "down":
        gesture = engine.pointer_down(
            request.element_id, point, request.region, request.modifiers, request.button
        )
    elif request.phase == "move":
        engine.pointer_move(point)
    else:
        engine.pointer_up(point)

    preview = engine.transform.preview
    return {
        "gesture": gesture.value if gesture else None,
        "preview": preview.model_dump() if preview else None,
        "state": engine.state.model_dump(mode="json"),
        "transform": engine.get_transform().model_dump(),
    }


@router.post("/{board_id}/deselect")
async def deselect(board_id: str):
    engine = _get_engine(board_id)
    state = engine.select(None)
    return {"selected_ids": list(state.selected_ids)}


@router.post("/{board_id}/{element_id}/move")
async def move_element(board_id: str, element_id: str, position: Point):
    """Move to an absolute position; the drop may anchor the element in a container."""
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    element = engine.move_element(element_id, position)
    return {"element_id": element_id, "parent_id": element.parent_id, "hidden": element.hidden}


@router.post("/{board_id}/{element_id}/resize")
async def resize_element(board_id: str, element_id: str, size: Size):
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    element = engine.resize_element(element_id, size)
    return {"element_id": element_id, "size": element.size.model_dump()}


@router.post("/{board_id}/{element_id}/rotate")
async def rotate_element(board_id: str, element_id: str, request: RotateRequest):
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    if request.degrees is not None:
        element = engine.rotate_element(element_id, request.degrees)
    elif request.step is not None:
        element = engine.rotate_step(element_id, request.step)
        if element is None:
            raise HTTPException(status_code=400, detail="Element type has no rotation step")
    else:
        raise HTTPException(status_code=400, detail="Provide degrees or step")

    return {"element_id": element_id, "rotation": element.properties.rotation}


@router.post("/{board_id}/{element_id}/select")
async def select_element(board_id: str, element_id: str, request: SelectRequest):
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    state = engine.select(element_id, multi=request.multi)
    return {"selected_ids": list(state.selected_ids)}


@router.post("/{board_id}/{element_id}/click")
async def click_element(board_id: str, element_id: str):
    """Plain click; notebook-like elements are raised for a short time."""
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    raised = engine.click(element_id)
    return {"element_id": element_id, "raised": raised}


@router.post("/{board_id}/{container_id}/release/{element_id}")
async def release_element(board_id: str, container_id: str, element_id: str):
    """Take an element out of a container."""
    engine = _get_engine(board_id)

    element = engine.release(container_id, element_id)
    if not element:
        raise HTTPException(status_code=404, detail="Container or element not found")

    return {"element_id": element_id, "position": element.position.model_dump()}


@router.post("/{board_id}/{element_id}/z-order")
async def change_z_order(board_id: str, element_id: str, request: ZOrderRequest):
    engine = _get_engine(board_id)
    _element_or_404(engine, element_id)

    if request.action == "front":
        z_index = engine.bring_to_front(element_id)
    elif request.action == "back":
        z_index = engine.send_to_back(element_id)
    else:
        z_index = engine.move_backward(element_id)
    return {"element_id": element_id, "z_index": z_index}
