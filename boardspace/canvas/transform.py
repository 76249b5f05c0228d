"""
Transform Engine
================

Drag, resize and rotate handling for individual elements.

Gestures use a capture pattern: pointer-down installs global move/up
listeners, pointer-up (or cancel/teardown) removes them. Pointer deltas are
screen pixels and are divided by the live scale, so elements track the
pointer at any zoom level.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from ..config import EngineSettings
from ..models.canvas_models import CanvasElement, Point, Size, Viewport
from ..models.element_types import resolve_variant
from ..models.engine_models import GestureKind, PointerRegion
from .normalize import normalize_rotation, positional_patch
from .registry import ElementRegistry

logger = logging.getLogger(__name__)

POINTER_MOVE = "pointermove"
POINTER_UP = "pointerup"


class ListenerRegistry:
    """Global (window-level) pointer listeners."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Point], Any]]] = {}

    def add(self, event: str, callback: Callable[[Point], Any]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove(self, event: str, callback: Callable[[Point], Any]) -> None:
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    def dispatch(self, event: str, point: Point) -> None:
        # Copy: callbacks may remove themselves
        for callback in list(self._listeners.get(event, [])):
            callback(point)


class PointerCapture:
    """Installs one move/up listener pair for the duration of a gesture."""

    def __init__(self, listeners: ListenerRegistry):
        self.listeners = listeners
        self._on_move: Optional[Callable[[Point], Any]] = None
        self._on_up: Optional[Callable[[Point], Any]] = None

    @property
    def installed(self) -> bool:
        return self._on_move is not None

    def install(self, on_move: Callable[[Point], Any], on_up: Callable[[Point], Any]) -> None:
        self.release()
        self._on_move = on_move
        self._on_up = on_up
        self.listeners.add(POINTER_MOVE, on_move)
        self.listeners.add(POINTER_UP, on_up)

    def release(self) -> None:
        if self._on_move is not None:
            self.listeners.remove(POINTER_MOVE, self._on_move)
        if self._on_up is not None:
            self.listeners.remove(POINTER_UP, self._on_up)
        self._on_move = None
        self._on_up = None


class DragSession(BaseModel):
    """Geometry captured at pointer-down."""
    element_id: str
    kind: GestureKind
    start_pointer: Point
    start_position: Point          # relative to the parent when anchored
    start_size: Size
    parent_id: Optional[str] = None


class GestureOutcome(BaseModel):
    """Result of a finished gesture, before it is committed."""
    element_id: str
    kind: GestureKind
    anchor: Point                  # absolute top-left in canvas space
    size: Size
    relative_position: Optional[Point] = None


class TransformEngine:
    """
    Per-element drag/resize/rotate math.

    The engine never writes ``parent_id`` or ``hidden``: a finished move is
    handed to ``on_gesture_end`` so the containment resolver can decide
    anchoring before anything is committed.
    """

    def __init__(
        self,
        registry: ElementRegistry,
        get_viewport: Callable[[], Viewport],
        listeners: ListenerRegistry,
        on_gesture_end: Callable[[GestureOutcome], None],
        settings: Optional[EngineSettings] = None,
    ):
        self.registry = registry
        self.get_viewport = get_viewport
        self.on_gesture_end = on_gesture_end
        self.settings = settings or EngineSettings()
        self.capture = PointerCapture(listeners)
        self.session: Optional[DragSession] = None
        self.preview: Optional[GestureOutcome] = None

    @property
    def active(self) -> bool:
        return self.session is not None

    def pointer_down(self, element_id: str, pointer: Point, region: PointerRegion) -> Optional[GestureKind]:
        """
        Start a gesture if the pointer-down landed on a drag affordance.

        Returns the started gesture kind, or None when the pointer-down is a
        plain selection (e.g. inside an editable body).
        """
        element = self.registry.get(element_id)
        if element is None:
            return None
        variant = resolve_variant(element.type)
        if variant is None:
            return None

        if region == PointerRegion.RESIZE:
            kind = GestureKind.RESIZE
        elif region == PointerRegion.HANDLE or not variant.drag_handle:
            kind = GestureKind.MOVE
        else:
            return None

        parent = self.registry.get(element.parent_id)
        relative = element.properties.relative_position
        start = relative if parent is not None and relative is not None else element.position
        self.session = DragSession(
            element_id=element_id,
            kind=kind,
            start_pointer=pointer,
            start_position=start,
            start_size=element.size,
            parent_id=parent.id if parent is not None else None,
        )
        self.preview = None
        self.capture.install(self._on_move, self._on_up)
        logger.debug(f"[TRANSFORM] {kind.value} started on {element_id}")
        return kind

    def _delta(self, pointer: Point) -> Point:
        scale = self.get_viewport().scale
        start = self.session.start_pointer
        return Point(x=(pointer.x - start.x) / scale, y=(pointer.y - start.y) / scale)

    def _compute(self, pointer: Point) -> Optional[GestureOutcome]:
        session = self.session
        element = self.registry.get(session.element_id)
        if element is None:
            return None
        delta = self._delta(pointer)
        parent = self.registry.get(session.parent_id)

        if session.kind == GestureKind.MOVE:
            position = session.start_position + delta
            size = session.start_size
            if parent is not None:
                position = Point(
                    x=_bound(position.x, 0.0, parent.size.width - size.width),
                    y=_bound(position.y, 0.0, parent.size.height - size.height),
                )
        else:
            position = session.start_position
            size = bounded_size(
                Size(width=session.start_size.width + delta.x, height=session.start_size.height + delta.y),
                self.settings,
                parent=parent,
                position=position,
            )

        if parent is not None:
            return GestureOutcome(
                element_id=element.id,
                kind=session.kind,
                anchor=parent.position + position,
                size=size,
                relative_position=position,
            )
        return GestureOutcome(element_id=element.id, kind=session.kind, anchor=position, size=size)

    def _on_move(self, pointer: Point) -> None:
        if self.session is None:
            return
        outcome = self._compute(pointer)
        if outcome is None:
            logger.info(f"[TRANSFORM] {self.session.element_id} deleted mid-gesture, dropping it")
            self._finish()
            return
        self.preview = outcome

    def _on_up(self, pointer: Point) -> None:
        if self.session is None:
            return
        outcome = self._compute(pointer)
        self._finish()
        if outcome is not None:
            self.on_gesture_end(outcome)

    def _finish(self) -> None:
        self.capture.release()
        self.session = None
        self.preview = None

    def cancel(self) -> None:
        """Abort the current gesture without committing anything."""
        if self.session is not None:
            logger.info(f"[TRANSFORM] Cancelled {self.session.kind.value} on {self.session.element_id}")
        self._finish()

    def teardown(self) -> None:
        self.cancel()

    # Patches

    def resize_patch(self, outcome: GestureOutcome) -> Optional[Dict[str, Any]]:
        element = self.registry.get(outcome.element_id)
        if element is None:
            return None
        if outcome.relative_position is not None:
            return positional_patch(element, size=outcome.size, relative_position=outcome.relative_position)
        return positional_patch(element, size=outcome.size, position=outcome.anchor)

    def rotate_to(self, element_id: str, degrees: float) -> Optional[Dict[str, Any]]:
        """Rotation about the element's own center; position and size are untouched."""
        element = self.registry.get(element_id)
        if element is None:
            return None
        return positional_patch(element, rotation=normalize_rotation(degrees))

    def rotate_step(self, element_id: str, direction: int = 1) -> Optional[Dict[str, Any]]:
        """Apply the variant's fixed rotation step (e.g. +15 for stickies)."""
        element = self.registry.get(element_id)
        if element is None:
            return None
        variant = resolve_variant(element.type)
        if variant is None or variant.rotation_step is None:
            return None
        return self.rotate_to(element_id, element.properties.rotation + direction * variant.rotation_step)


def _bound(value: float, low: float, high: float) -> float:
    if high < low:
        return low
    return max(low, min(value, high))


def bounded_size(
    size: Size,
    settings: EngineSettings,
    parent: Optional[CanvasElement] = None,
    position: Optional[Point] = None,
) -> Size:
    """
    Apply the minimum size and, for anchored elements, keep the far edges
    inside the parent. ``position`` is relative to the parent.
    """
    width = max(settings.min_element_width, size.width)
    height = max(settings.min_element_height, size.height)
    if parent is not None and position is not None:
        width = max(settings.min_element_width, min(width, parent.size.width - position.x))
        height = max(settings.min_element_height, min(height, parent.size.height - position.y))
    return Size(width=width, height=height)
