"""
Viewport Controller
===================

Coordinate conversion, zoom and pan over an immutable Viewport value.

Screen space is the scrolled client frame (pointer coordinates); canvas space
is where element positions are stored:

    canvas = (screen + scroll_offset) / scale
    screen = canvas * scale - scroll_offset
"""

import logging
import math
from typing import Callable, Iterable, List, Optional

from ..config import EngineSettings
from ..models.canvas_models import DeviceProfile, Point, Rect, Transform, Viewport
from ..models.engine_models import WheelEvent
from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ViewportController:
    """
    Stateless operations over Viewport values.

    Every method returns a new Viewport; callers own the current value. Zoom
    input is clamped silently to [min_scale, max_scale].
    """

    def __init__(self, device: Optional[DeviceProfile] = None, settings: Optional[EngineSettings] = None):
        self.device = device or DeviceProfile()
        self.settings = settings or EngineSettings()

    # Device defaults

    @property
    def home_scale(self) -> float:
        if self.device.is_mobile:
            return self.settings.home_scale_mobile
        return self.settings.home_scale_desktop

    @property
    def overview_scale(self) -> float:
        if self.device.is_mobile:
            return self.settings.overview_scale_mobile
        return self.settings.overview_scale_desktop

    @property
    def frame_center(self) -> Point:
        return Point(x=self.device.client_width / 2, y=self.device.client_height / 2)

    def initial(self) -> Viewport:
        """Viewport a freshly loaded board starts with."""
        return Viewport(scale=self.home_scale, scroll_offset=Point())

    def clamp_scale(self, scale: float, fallback: float = 1.0) -> float:
        if not isinstance(scale, (int, float)) or not math.isfinite(scale):
            return fallback
        return max(self.settings.min_scale, min(float(scale), self.settings.max_scale))

    # Coordinate conversion

    def screen_to_canvas(self, viewport: Viewport, point: Point) -> Point:
        return Point(
            x=(point.x + viewport.scroll_offset.x) / viewport.scale,
            y=(point.y + viewport.scroll_offset.y) / viewport.scale,
        )

    def canvas_to_screen(self, viewport: Viewport, point: Point) -> Point:
        return Point(
            x=point.x * viewport.scale - viewport.scroll_offset.x,
            y=point.y * viewport.scale - viewport.scroll_offset.y,
        )

    def viewport_center(self, viewport: Viewport) -> Point:
        """Canvas-space center of the visible frame, never left of/above the origin frame."""
        half_w = self.device.client_width / 2
        half_h = self.device.client_height / 2
        center = self.screen_to_canvas(viewport, Point(x=half_w, y=half_h))
        return Point(
            x=max(half_w / viewport.scale, center.x),
            y=max(half_h / viewport.scale, center.y),
        )

    def get_transform(self, viewport: Viewport) -> Transform:
        return Transform(scale=viewport.scale, x=viewport.scroll_offset.x, y=viewport.scroll_offset.y)

    # Zoom

    def set_zoom(self, viewport: Viewport, new_scale: float, pivot: Optional[Point] = None) -> Viewport:
        """
        Change the scale keeping the canvas point under ``pivot`` fixed.

        ``pivot`` is in screen space and defaults to the center of the frame.
        """
        new_scale = self.clamp_scale(new_scale, fallback=viewport.scale)
        old_scale = viewport.scale
        origin = pivot or self.frame_center
        ratio = new_scale / old_scale
        scroll = Point(
            x=(viewport.scroll_offset.x + origin.x) * ratio - origin.x,
            y=(viewport.scroll_offset.y + origin.y) * ratio - origin.y,
        )
        return Viewport(scale=new_scale, scroll_offset=scroll)

    def zoom_in(self, viewport: Viewport, pivot: Optional[Point] = None) -> Viewport:
        return self.set_zoom(viewport, viewport.scale + self.settings.zoom_step, pivot)

    def zoom_out(self, viewport: Viewport, pivot: Optional[Point] = None) -> Viewport:
        return self.set_zoom(viewport, viewport.scale - self.settings.zoom_step, pivot)

    def reset_zoom(self, viewport: Viewport) -> Viewport:
        return self.set_zoom(viewport, 1.0)

    # Pan

    def pan(self, viewport: Viewport, delta: Point) -> Viewport:
        return viewport.model_copy(update={"scroll_offset": viewport.scroll_offset + delta})

    def scroll_to(self, viewport: Viewport, offset: Point) -> Viewport:
        return viewport.model_copy(update={"scroll_offset": offset})

    def handle_wheel(self, viewport: Viewport, event: WheelEvent) -> Viewport:
        """
        Ctrl/Cmd + wheel zooms about the pointer, Alt + wheel pans.

        A plain wheel is native scrolling and leaves the viewport unchanged.
        """
        mods = event.modifiers
        if mods.ctrl or mods.meta:
            step = -self.settings.zoom_step if event.delta_y > 0 else self.settings.zoom_step
            return self.set_zoom(viewport, viewport.scale + step, Point(x=event.client_x, y=event.client_y))
        if mods.alt:
            return self.pan(viewport, Point(x=-event.delta_x, y=-event.delta_y))
        return viewport

    # Centering

    def center_on_point(self, viewport: Viewport, point: Point, scale: Optional[float] = None) -> Viewport:
        final_scale = self.clamp_scale(scale, fallback=viewport.scale) if scale is not None else viewport.scale
        scroll = Point(
            x=point.x * final_scale - self.device.client_width / 2,
            y=point.y * final_scale - self.device.client_height / 2,
        )
        return Viewport(scale=final_scale, scroll_offset=scroll)

    def center_on_rect(self, viewport: Viewport, rect: Rect, zoom: Optional[float] = 1.0,
                       offset: Optional[Point] = None) -> Viewport:
        shift = offset or Point()
        center = Point(
            x=rect.x + rect.width / 2 + shift.x,
            y=rect.y + rect.height / 2 + shift.y,
        )
        return self.center_on_point(viewport, center, zoom)

    def fit_all(self, viewport: Viewport, rects: Iterable[Rect]) -> Viewport:
        """
        Center on the bounding box of ``rects`` at the device overview scale.

        With nothing to show this is go-home; a box with no width or height
        centers on its corner at scale 1.
        """
        rects = list(rects)
        if not rects:
            return self.home(viewport)
        min_x = min(r.x for r in rects)
        min_y = min(r.y for r in rects)
        max_x = max(r.right for r in rects)
        max_y = max(r.bottom for r in rects)
        width = max_x - min_x
        height = max_y - min_y
        if width == 0 or height == 0:
            return self.center_on_point(viewport, Point(x=min_x, y=min_y), 1.0)
        center = Point(x=min_x + width / 2, y=min_y + height / 2)
        return self.center_on_point(viewport, center, self.overview_scale)

    def home(self, viewport: Viewport) -> Viewport:
        return Viewport(scale=self.home_scale, scroll_offset=Point())


class PanDrag:
    """Captured drag-to-pan gesture (middle button, Alt + drag, or pan mode)."""

    def __init__(self, start: Point, initial_scroll: Point, sensitivity: float = 0.7):
        self.start = start
        self.initial_scroll = initial_scroll
        self.sensitivity = sensitivity

    def scroll_for(self, pointer: Point) -> Point:
        dx = (pointer.x - self.start.x) * self.sensitivity
        dy = (pointer.y - self.start.y) * self.sensitivity
        return Point(x=self.initial_scroll.x - dx, y=self.initial_scroll.y - dy)


class HomeCorrection:
    """
    Re-applies the scroll-to-origin correction after go-home.

    Late layout reflows can silently move the scroll offset, so the correction
    runs synchronously, on the next paint, and after each configured delay.
    An intentional user scroll ends the retries; after the last delay the
    correction is finished either way.
    """

    def __init__(self, scheduler: Scheduler, delays: Iterable[float] = (0.1, 0.5)):
        self.scheduler = scheduler
        self.delays = tuple(delays)
        self._apply: Optional[Callable[[], bool]] = None
        self._handles: List[TimerHandle] = []
        self._remaining = 0

    @property
    def active(self) -> bool:
        return self._remaining > 0

    def start(self, apply: Callable[[], bool]) -> None:
        """``apply`` forces the origin and returns True when it had to correct."""
        self.cancel()
        self._apply = apply
        apply()
        self._remaining = 1 + len(self.delays)
        self._handles.append(self.scheduler.call_soon(self._retry))
        for delay in self.delays:
            self._handles.append(self.scheduler.call_later(delay, self._retry))

    def _retry(self) -> None:
        if not self.active or self._apply is None:
            return
        self._remaining -= 1
        if self._apply():
            logger.warning("[VIEWPORT] Scroll drifted from origin after go-home, correcting")
        if not self.active:
            self._handles = []

    def user_scrolled(self) -> None:
        if self.active:
            logger.info("[VIEWPORT] User scrolled, stopping home correction")
        self.cancel()

    def cancel(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles = []
        self._remaining = 0


class OffsetMirror:
    """
    Debounced snapshot of the scroll offset for child consumers.

    The published value lags the live offset by at most ``debounce`` seconds
    after scrolling settles, and only moves when the change exceeds
    ``threshold`` pixels. Drag and zoom math never read it.
    """

    def __init__(self, debounce: float = 0.05, threshold: float = 10.0):
        self.debounce = debounce
        self.threshold = threshold
        self._published = Point()
        self._pending: Optional[Point] = None
        self._pending_since = 0.0

    def observe(self, offset: Point, now: float) -> None:
        self._pending = offset
        self._pending_since = now

    def value(self, now: float) -> Point:
        if self._pending is not None and now - self._pending_since >= self.debounce:
            dx = abs(self._pending.x - self._published.x)
            dy = abs(self._pending.y - self._published.y)
            if dx > self.threshold or dy > self.threshold:
                self._published = self._pending
            self._pending = None
        return self._published
