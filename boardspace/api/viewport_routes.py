"""
Viewport Routes
===============

API routes for zoom, pan, centering and external drops. Every route returns
the resulting transform.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional, List, Literal
from pydantic import BaseModel

from ..models.canvas_models import Point, Transform
from ..models.engine_models import ExternalDropPayload, WheelEvent

router = APIRouter(prefix="/api/viewport", tags=["viewport"])

# Injected by server
state_manager = None


class ZoomRequest(BaseModel):
    """Absolute zoom (``scale``, optional screen ``pivot``) or a toolbar step."""
    scale: Optional[float] = None
    pivot: Optional[Point] = None
    direction: Optional[Literal["in", "out"]] = None


class ScrollRequest(BaseModel):
    x: float
    y: float
    user: bool = True


class CenterRequest(BaseModel):
    element_id: Optional[str] = None
    point: Optional[Point] = None
    zoom: Optional[float] = None
    offset: Optional[Point] = None


class FitRequest(BaseModel):
    element_ids: Optional[List[str]] = None


class PanModeRequest(BaseModel):
    enabled: Optional[bool] = None


class DropRequest(BaseModel):
    """External drop at a screen point."""
    payload: ExternalDropPayload
    x: float
    y: float


def _get_engine(board_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    engine = state_manager.get_engine(board_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Board not found")
    return engine


@router.get("/{board_id}")
async def get_transform(board_id: str) -> Transform:
    return _get_engine(board_id).get_transform()


@router.post("/{board_id}/zoom")
async def zoom(board_id: str, request: ZoomRequest) -> Transform:
    engine = _get_engine(board_id)

    if request.scale is not None:
        engine.set_zoom(request.scale, request.pivot)
    elif request.direction == "in":
        engine.zoom_in()
    elif request.direction == "out":
        engine.zoom_out()
    else:
        raise HTTPException(status_code=400, detail="Provide scale or direction")
    return engine.get_transform()


@router.post("/{board_id}/wheel")
async def wheel(board_id: str, event: WheelEvent) -> Transform:
    engine = _get_engine(board_id)
    engine.wheel(event)
    return engine.get_transform()


@router.post("/{board_id}/pan")
async def pan(board_id: str, delta: Point) -> Transform:
    engine = _get_engine(board_id)
    engine.pan(delta)
    return engine.get_transform()


@router.post("/{board_id}/scroll")
async def scroll(board_id: str, request: ScrollRequest) -> Transform:
    """Scroll offset reported by the client layout."""
    engine = _get_engine(board_id)
    engine.on_layout_scroll(Point(x=request.x, y=request.y), user=request.user)
    return engine.get_transform()


@router.post("/{board_id}/center")
async def center(board_id: str, request: CenterRequest) -> Transform:
    engine = _get_engine(board_id)

    if request.element_id is not None:
        zoom = request.zoom if request.zoom is not None else 1.0
        if engine.center_on_element(request.element_id, zoom, request.offset) is None:
            raise HTTPException(status_code=404, detail="Element not found")
    elif request.point is not None:
        engine.center_on_point(request.point, request.zoom)
    else:
        raise HTTPException(status_code=400, detail="Provide element_id or point")
    return engine.get_transform()


@router.post("/{board_id}/fit")
async def fit(board_id: str, request: FitRequest) -> Transform:
    engine = _get_engine(board_id)
    engine.center_on_elements(request.element_ids)
    return engine.get_transform()


@router.post("/{board_id}/home")
async def go_home(board_id: str) -> Transform:
    engine = _get_engine(board_id)
    engine.go_to_home()
    return engine.get_transform()


@router.post("/{board_id}/reset")
async def reset_zoom(board_id: str) -> Transform:
    engine = _get_engine(board_id)
    engine.reset_zoom()
    return engine.get_transform()


@router.post("/{board_id}/pan-mode")
async def pan_mode(board_id: str, request: PanModeRequest):
    engine = _get_engine(board_id)
    return {"pan_mode": engine.activate_pan_mode(request.enabled)}


@router.post("/{board_id}/drop")
async def drop(board_id: str, request: DropRequest):
    """Create an element from an external drag source under the drop point."""
    engine = _get_engine(board_id)

    try:
        result = await engine.drop_external(request.payload, Point(x=request.x, y=request.y))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result
