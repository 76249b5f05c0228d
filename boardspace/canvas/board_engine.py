"""
Board Engine
============

Facade that wires the spatial engine (viewport, transform, containment,
z-order) to a host. The host owns persistence; the engine mirrors every patch
locally and forwards it with ``update_element``.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..config import EngineSettings
from ..models.canvas_models import (
    CanvasElement, DeviceProfile, ElementPatch, Point, Rect, Size, Transform, Viewport,
)
from ..models.element_types import NOTEBOOK_LAYER_Z, is_container_type, is_notebook_type, resolve_variant
from ..models.engine_models import (
    DropResult, EngineState, ExternalDropPayload, GestureKind, Modifiers, PointerRegion, WheelEvent,
)
from . import engine_state
from .containment import ContainmentResolver
from .normalize import normalize_record, normalize_rotation, positional_patch
from .registry import ElementRegistry
from .scheduling import LoopScheduler, Scheduler
from .transform import (
    POINTER_MOVE, POINTER_UP, GestureOutcome, ListenerRegistry, PointerCapture, TransformEngine, bounded_size,
)
from .viewport import HomeCorrection, OffsetMirror, PanDrag, ViewportController
from .zorder import ZOrderManager

logger = logging.getLogger(__name__)

MIDDLE_BUTTON = 1


class BoardHost(Protocol):
    """Persistence boundary the engine talks to."""

    async def add_element(self, element_type: str, initial_props: Dict[str, Any]) -> str:
        ...

    def update_element(self, element_id: str, changes: Dict[str, Any]) -> None:
        ...

    async def delete_element(self, element_id: str) -> None:
        ...


class BoardEngine:
    """
    Headless spatial engine for one board.

    All interaction state lives in ``self.state`` (an EngineState value) and
    ``self.viewport`` (a Viewport value); both are replaced, never mutated.
    """

    def __init__(
        self,
        registry: ElementRegistry,
        host: BoardHost,
        device: Optional[DeviceProfile] = None,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.registry = registry
        self.host = host
        self.settings = settings or EngineSettings()
        self.scheduler = scheduler or LoopScheduler()
        self.viewports = ViewportController(device, self.settings)
        self.viewport: Viewport = self.viewports.initial()
        self.state = EngineState()

        self.listeners = ListenerRegistry()
        self.transform = TransformEngine(
            registry, lambda: self.viewport, self.listeners, self._on_gesture_end, self.settings
        )
        self.containment = ContainmentResolver(registry, self.settings)
        self.zorder = ZOrderManager(registry, self._commit, self.scheduler, self.settings)
        self.home_correction = HomeCorrection(self.scheduler, self.settings.home_retry_delays)
        self.offset_mirror = OffsetMirror(self.settings.offset_debounce, self.settings.offset_threshold)
        self._pan_capture = PointerCapture(self.listeners)
        self._pan_drag: Optional[PanDrag] = None

    @property
    def device(self) -> DeviceProfile:
        return self.viewports.device

    # Host boundary

    def _commit(self, element_id: str, changes: Dict[str, Any]) -> Optional[CanvasElement]:
        updated = self.registry.apply_patch(element_id, changes)
        if updated is None:
            logger.debug(f"[BOARD-ENGINE] Dropping patch for missing element {element_id}")
            return None
        self.host.update_element(element_id, changes)
        return updated

    def _commit_all(self, patches: Iterable[ElementPatch]) -> None:
        for patch in patches:
            self._commit(patch.element_id, patch.changes)

    def _set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport
        self.offset_mirror.observe(viewport.scroll_offset, self.scheduler.time())

    # Pointer input

    def pointer_down(
        self,
        element_id: Optional[str],
        pointer: Point,
        region: PointerRegion = PointerRegion.BODY,
        modifiers: Optional[Modifiers] = None,
        button: int = 0,
    ) -> Optional[GestureKind]:
        """
        Pointer-down on an element (or on the background when ``element_id`` is None).

        Middle button, Alt + drag and pan mode start a pan drag; otherwise the
        element is selected and, on a drag affordance, a move/resize starts.
        """
        modifiers = modifiers or Modifiers()
        if button == MIDDLE_BUTTON or modifiers.alt or self.state.panning_enabled:
            self._start_pan(pointer)
            return GestureKind.PAN

        if element_id is None or self.registry.get(element_id) is None:
            self.select(None)
            return None

        self.select(element_id, multi=modifiers.multi_select)
        kind = self.transform.pointer_down(element_id, pointer, region)
        if kind is not None:
            self.state = engine_state.begin_drag(self.state, element_id)
        return kind

    def pointer_move(self, pointer: Point) -> None:
        self.listeners.dispatch(POINTER_MOVE, pointer)

    def pointer_up(self, pointer: Point) -> None:
        self.listeners.dispatch(POINTER_UP, pointer)
        self.state = engine_state.end_drag(self.state)

    def _on_gesture_end(self, outcome: GestureOutcome) -> None:
        self.state = engine_state.end_drag(self.state)
        if outcome.kind == GestureKind.MOVE:
            self._commit_all(self.containment.resolve_drop(outcome.element_id, outcome.anchor, outcome.size))
        elif outcome.kind == GestureKind.RESIZE:
            changes = self.transform.resize_patch(outcome)
            if changes is not None:
                self._commit(outcome.element_id, changes)

    def cancel_gesture(self) -> None:
        self.transform.cancel()
        self._end_pan()
        self.state = engine_state.end_drag(self.state)

    def teardown(self) -> None:
        """Release every listener and timer the engine installed."""
        self.cancel_gesture()
        self.home_correction.cancel()
        self.zorder.cancel_all()

    # Panning

    def _start_pan(self, pointer: Point) -> None:
        self.home_correction.user_scrolled()
        self._pan_drag = PanDrag(pointer, self.viewport.scroll_offset, self.settings.pan_sensitivity)
        self._pan_capture.install(self._on_pan_move, self._on_pan_up)

    def _on_pan_move(self, pointer: Point) -> None:
        if self._pan_drag is not None:
            self._set_viewport(self.viewports.scroll_to(self.viewport, self._pan_drag.scroll_for(pointer)))

    def _on_pan_up(self, pointer: Point) -> None:
        self._on_pan_move(pointer)
        self._end_pan()

    def _end_pan(self) -> None:
        self._pan_capture.release()
        self._pan_drag = None

    def wheel(self, event: WheelEvent) -> Viewport:
        updated = self.viewports.handle_wheel(self.viewport, event)
        if updated != self.viewport:
            self.home_correction.user_scrolled()
            self._set_viewport(updated)
        return self.viewport

    def pan(self, delta: Point) -> Viewport:
        self.home_correction.user_scrolled()
        self._set_viewport(self.viewports.pan(self.viewport, delta))
        return self.viewport

    def on_layout_scroll(self, offset: Point, user: bool = True) -> None:
        """
        Scroll offset reported by the host layout.

        ``user=False`` marks a reflow (content growing, fonts loading) rather
        than an intentional scroll; it does not stop home correction.
        """
        if user:
            self.home_correction.user_scrolled()
        self._set_viewport(self.viewports.scroll_to(self.viewport, offset))

    def mirrored_offset(self) -> Point:
        return self.offset_mirror.value(self.scheduler.time())

    def set_space_panning(self, held: bool) -> None:
        self.state = engine_state.set_space_panning(self.state, held)

    # Imperative viewport surface

    def get_transform(self) -> Transform:
        return self.viewports.get_transform(self.viewport)

    def set_zoom(self, scale: float, pivot: Optional[Point] = None) -> Viewport:
        self._set_viewport(self.viewports.set_zoom(self.viewport, scale, pivot))
        return self.viewport

    def zoom_in(self) -> Viewport:
        self._set_viewport(self.viewports.zoom_in(self.viewport))
        return self.viewport

    def zoom_out(self) -> Viewport:
        self._set_viewport(self.viewports.zoom_out(self.viewport))
        return self.viewport

    def reset_zoom(self) -> Viewport:
        self._set_viewport(self.viewports.reset_zoom(self.viewport))
        return self.viewport

    def center_on_point(self, point: Point, scale: Optional[float] = None) -> Viewport:
        self._set_viewport(self.viewports.center_on_point(self.viewport, point, scale))
        return self.viewport

    def center_on_element(self, element_id: str, zoom: Optional[float] = 1.0,
                          offset: Optional[Point] = None) -> Optional[Viewport]:
        element = self.registry.get(element_id)
        if element is None:
            logger.warning(f"[BOARD-ENGINE] Cannot center on missing element {element_id}")
            return None
        rect = self.registry.render_rect(element)
        self._set_viewport(self.viewports.center_on_rect(self.viewport, rect, zoom, offset))
        return self.viewport

    def center_on_elements(self, element_ids: Optional[List[str]] = None) -> Viewport:
        """Fit the given elements (default: every visible element) in view."""
        if element_ids is None:
            elements = self.registry.visible()
        else:
            elements = [e for e in (self.registry.get(i) for i in element_ids) if e is not None and not e.hidden]
        rects: List[Rect] = [self.registry.render_rect(e) for e in elements]
        self._set_viewport(self.viewports.fit_all(self.viewport, rects))
        return self.viewport

    def go_to_home(self) -> Viewport:
        """Home scale at the origin; an in-flight gesture is cancelled first."""
        self.cancel_gesture()
        self._set_viewport(self.viewports.home(self.viewport))
        self.home_correction.start(self._force_origin)
        return self.viewport

    def _force_origin(self) -> bool:
        if self.viewport.scroll_offset == Point():
            return False
        self._set_viewport(self.viewports.scroll_to(self.viewport, Point()))
        return True

    def activate_pan_mode(self, enabled: Optional[bool] = None) -> bool:
        if enabled is None or enabled != self.state.pan_mode:
            self.state = engine_state.toggle_pan_mode(self.state)
        logger.info(f"[BOARD-ENGINE] Pan mode {'on' if self.state.pan_mode else 'off'}")
        return self.state.pan_mode

    # Selection and stacking

    def select(self, element_id: Optional[str], multi: bool = False) -> EngineState:
        self.state = engine_state.select(self.state, element_id, multi)
        self.zorder.sync_selection(self.state.selected_ids)
        return self.state

    def click(self, element_id: str) -> bool:
        """Plain click: temporary raise for notebook-like elements."""
        self.state = engine_state.activate(self.state, element_id)
        return self.zorder.notebook_click(element_id)

    def bring_to_front(self, element_id: str) -> Optional[int]:
        return self.zorder.bring_to_front(element_id)

    def send_to_back(self, element_id: str) -> Optional[int]:
        return self.zorder.send_to_back(element_id)

    def move_backward(self, element_id: str) -> Optional[int]:
        return self.zorder.move_backward(element_id)

    # Programmatic transforms

    def move_element(self, element_id: str, position: Point) -> Optional[CanvasElement]:
        """Move to an absolute anchor; containment is resolved as for a drag."""
        if self.registry.get(element_id) is None:
            return None
        self._commit_all(self.containment.resolve_drop(element_id, position))
        return self.registry.get(element_id)

    def resize_element(self, element_id: str, size: Size) -> Optional[CanvasElement]:
        element = self.registry.get(element_id)
        if element is None:
            return None
        parent = self.registry.get(element.parent_id)
        relative = None
        if parent is not None:
            relative = element.properties.relative_position or (element.position - parent.position)
        size = bounded_size(size, self.settings, parent=parent, position=relative)
        return self._commit(element_id, positional_patch(element, size=size))

    def rotate_element(self, element_id: str, degrees: float) -> Optional[CanvasElement]:
        changes = self.transform.rotate_to(element_id, degrees)
        return self._commit(element_id, changes) if changes is not None else None

    def rotate_step(self, element_id: str, direction: int = 1) -> Optional[CanvasElement]:
        changes = self.transform.rotate_step(element_id, direction)
        return self._commit(element_id, changes) if changes is not None else None

    def release(self, container_id: str, element_id: str) -> Optional[CanvasElement]:
        patches = self.containment.release(container_id, element_id)
        self._commit_all(patches)
        return self.registry.get(element_id) if patches else None

    def update_element(self, element_id: str, changes: Dict[str, Any]) -> Optional[CanvasElement]:
        """Host-style shallow merge for non-positional fields (content, extras)."""
        element = self.registry.get(element_id)
        if element is None:
            return None
        changes = dict(changes)
        if "properties" in changes and isinstance(changes["properties"], dict):
            merged = positional_patch(element)["properties"]
            merged.update(changes["properties"])
            changes["properties"] = merged
        return self._commit(element_id, changes)

    # Lifecycle

    async def create_element(
        self,
        element_type: str,
        position: Optional[Point] = None,
        size: Optional[Size] = None,
        content: Optional[Dict[str, Any]] = None,
        properties: Optional[Dict[str, Any]] = None,
        z_index: Optional[int] = None,
        rotation: float = 0.0,
    ) -> str:
        """
        Create an element through the host and mirror it locally.

        Without an explicit position the element is centered on the visible
        part of the board. Without an explicit z_index, notebook-like types go
        to the background layer and everything else above the current top.

        Raises:
            ValueError: if ``element_type`` is not a known variant.
        """
        variant = resolve_variant(element_type)
        if variant is None:
            raise ValueError(f"Unknown element type: {element_type}")

        if size is None:
            width, height = variant.default_size
            size = Size(width=variant.fixed_width or width, height=height)
        if position is None:
            center = self.viewports.viewport_center(self.viewport)
            position = Point(x=center.x - size.width / 2, y=center.y - size.height / 2)
        if z_index is None:
            z_index = NOTEBOOK_LAYER_Z if is_notebook_type(element_type) else self.zorder.next_z_index()

        element_content = copy.deepcopy(variant.default_content)
        element_content.update(content or {})
        props: Dict[str, Any] = dict(properties or {})
        props.update({
            "position": position.model_dump(),
            "size": size.model_dump(),
            "z_index": z_index,
            "rotation": normalize_rotation(rotation),
        })
        initial = {"properties": props, "content": element_content or None}

        element_id = await self.host.add_element(element_type, copy.deepcopy(initial))
        self.registry.add(normalize_record({"id": element_id, "type": element_type, **initial}))
        logger.info(f"[BOARD-ENGINE] Created {element_type} {element_id} at ({position.x}, {position.y})")
        return element_id

    async def delete_element(self, element_id: str) -> bool:
        element = self.registry.get(element_id)
        if element is None:
            return False

        parent = self.registry.get(element.parent_id)
        if parent is not None:
            members = [m for m in parent.container_ids() if m != element_id]
            content = dict(parent.content) if isinstance(parent.content, dict) else {}
            content["element_ids"] = members
            self._commit(parent.id, {"content": content})
        if is_container_type(element.type):
            self._free_members(element)

        session = self.transform.session
        if session is not None and session.element_id == element_id:
            self.transform.cancel()
        self.zorder.forget(element_id)
        self.state = engine_state.forget_element(self.state, element_id)
        self.registry.remove(element_id)
        await self.host.delete_element(element_id)
        logger.info(f"[BOARD-ENGINE] Deleted {element_id}")
        return True

    def _free_members(self, container: CanvasElement) -> None:
        """Children of a deleted container stay where they were rendered."""
        for member_id in container.container_ids():
            member = self.registry.get(member_id)
            if member is None:
                continue
            position = self.registry.render_position(member)
            changes = positional_patch(member, position=position, relative_position=None)
            changes.update({"parent_id": None, "hidden": False})
            self._commit(member_id, changes)

    async def drop_external(self, payload: ExternalDropPayload, screen_point: Point) -> DropResult:
        """Create an element from an external drag source at the drop point."""
        position = self.viewports.screen_to_canvas(self.viewport, screen_point)
        properties = {"label": payload.filename or "Image"}
        content = dict(payload.content)
        if payload.url:
            content["url"] = payload.url
        element_id = await self.create_element(
            payload.element_type, position=position, size=payload.size,
            content=content, properties=properties,
        )
        return DropResult(element_id=element_id, position=position)

    # Views

    def elements(self) -> List[Dict[str, Any]]:
        return self.registry.records()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "elements": self.registry.records(),
            "transform": self.get_transform().model_dump(),
            "state": self.state.model_dump(mode="json"),
        }
