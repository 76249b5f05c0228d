"""
Engine State Transitions
========================

Reducer-style transitions over EngineState. Each function returns a new
state and leaves its input untouched.
"""

from typing import Optional

from ..models.engine_models import EngineState


def select(state: EngineState, element_id: Optional[str], multi: bool = False) -> EngineState:
    """Click selection; ``None`` (background click) clears the selection."""
    if element_id is None:
        return state.model_copy(update={"selected_ids": ()})
    if not multi:
        return state.model_copy(update={"selected_ids": (element_id,)})
    if element_id in state.selected_ids:
        remaining = tuple(i for i in state.selected_ids if i != element_id)
        return state.model_copy(update={"selected_ids": remaining})
    return state.model_copy(update={"selected_ids": state.selected_ids + (element_id,)})


def forget_element(state: EngineState, element_id: str) -> EngineState:
    """Drop every reference to a deleted element."""
    return state.model_copy(update={
        "selected_ids": tuple(i for i in state.selected_ids if i != element_id),
        "active_drag_id": None if state.active_drag_id == element_id else state.active_drag_id,
        "activated_element_id": (
            None if state.activated_element_id == element_id else state.activated_element_id
        ),
    })


def begin_drag(state: EngineState, element_id: str) -> EngineState:
    return state.model_copy(update={"active_drag_id": element_id})


def end_drag(state: EngineState) -> EngineState:
    return state.model_copy(update={"active_drag_id": None})


def activate(state: EngineState, element_id: Optional[str]) -> EngineState:
    return state.model_copy(update={"activated_element_id": element_id})


def toggle_pan_mode(state: EngineState) -> EngineState:
    return state.model_copy(update={"pan_mode": not state.pan_mode})


def set_space_panning(state: EngineState, held: bool) -> EngineState:
    return state.model_copy(update={"space_panning": held})
