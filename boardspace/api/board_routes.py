"""
Board Routes
============

API routes for board lifecycle and state.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from ..models.canvas_models import DeviceProfile

router = APIRouter(prefix="/api/board", tags=["boards"])

# Injected by server
state_manager = None


class CreateBoardRequest(BaseModel):
    """Request to create a board."""
    board_id: Optional[str] = None
    device: DeviceProfile = Field(default_factory=DeviceProfile)
    elements: List[Dict[str, Any]] = Field(default_factory=list)


class BoardStateResponse(BaseModel):
    """Response for board state."""
    board_id: str
    elements: List[Dict[str, Any]]
    transform: Dict[str, float]
    state: Dict[str, Any]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@router.post("")
async def create_board(request: CreateBoardRequest):
    """Create a new board."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    try:
        board_id = state_manager.create_board(
            board_id=request.board_id,
            elements=request.elements,
            device=request.device,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"board_id": board_id, "message": "Board created"}


@router.get("")
async def list_boards():
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    return {"boards": state_manager.list_boards()}


@router.get("/{board_id}")
async def get_board(board_id: str) -> BoardStateResponse:
    """Get canonical elements, viewport and interaction state of a board."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    engine = state_manager.get_engine(board_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Board not found")

    board = state_manager.get_board(board_id)
    snapshot = engine.snapshot()
    return BoardStateResponse(
        board_id=board_id,
        elements=snapshot["elements"],
        transform=snapshot["transform"],
        state=snapshot["state"],
        created_at=board.get("created_at"),
        updated_at=board.get("updated_at"),
    )


@router.delete("/{board_id}/elements")
async def clear_board(board_id: str):
    """Clear all elements from a board."""
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    if not state_manager.clear_board(board_id):
        raise HTTPException(status_code=404, detail="Board not found")

    return {"message": "Board cleared", "board_id": board_id}


@router.delete("/{board_id}")
async def delete_board(board_id: str):
    if not state_manager:
        raise HTTPException(status_code=500, detail="State manager not initialized")

    if not state_manager.delete_board(board_id):
        raise HTTPException(status_code=404, detail="Board not found")

    return {"message": "Board deleted", "board_id": board_id}
