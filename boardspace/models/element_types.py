"""
Element Types for Boardspace
============================

Closed registry of element variants. Every type-driven decision (default size,
containment, stacking layer, drag affordance, rotation controls) is resolved
here once instead of being scattered across the engine.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ElementType(str, Enum):
    """Element variants known to this engine version."""
    NOTEPAD = "notepad"
    STICKY = "sticky"
    TODO = "todo"
    IMAGE = "image"
    TEXT = "text"
    COMMENT = "comment"
    COMMENT_SMALL = "comment-small"
    COMMENT_R = "comment-r"
    MOODBOARD = "moodboard"
    GALLERY = "gallery"
    YELLOW_NOTEPAD = "yellow-notepad"
    STOPWATCH = "stopwatch"
    HIGHLIGHT_TEXT = "highlight-text"
    POMODORO_TIMER = "pomodoro-timer"
    WEEKLY_PLANNER = "weekly-planner"
    VERTICAL_WEEKLY_PLANNER = "vertical-weekly-planner"
    WEEKLY_MENU = "weekly-menu"
    CONTAINER = "container"
    TWO_COLUMNS = "two-columns"
    LOCATOR = "locator"
    IMAGE_FRAME = "image-frame"
    PHOTO_GRID = "photo-grid"
    PHOTO_GRID_HORIZONTAL = "photo-grid-horizontal"
    PHOTO_GRID_ADAPTIVE = "photo-grid-adaptive"
    PHOTO_GRID_FREE = "photo-grid-free"
    LIBRETA = "libreta"
    NOTES = "notes"
    MINI_NOTES = "mini-notes"
    MINI = "mini"
    COUNTDOWN = "countdown"


class ElementVariant(BaseModel):
    """Type-level capabilities of an element variant."""
    renderer: str                               # name of the external widget renderer
    default_size: Tuple[float, float] = (200, 150)
    accepts_containment: bool = False           # other elements may be anchored inside
    notebook: bool = False                      # background stacking layer + click raise
    drag_handle: bool = True                    # drag only from the handle region
    rotation_step: Optional[float] = None       # fixed-step rotation control, degrees
    fixed_width: Optional[float] = None
    default_content: Dict[str, Any] = Field(default_factory=dict)


# Notebook-like variants sit in the background layer and are raised
# temporarily when clicked. Containers share that layer.
ELEMENT_CONFIG: Dict[ElementType, ElementVariant] = {
    ElementType.NOTEPAD: ElementVariant(
        renderer="NotepadElement",
        default_size=(794, 978),  # letter
        notebook=True,
        default_content={"title": "New Notebook", "pages": ["", ""], "current_page": 0},
    ),
    ElementType.STICKY: ElementVariant(
        renderer="StickyNoteElement", default_size=(224, 224), rotation_step=15,
    ),
    ElementType.TODO: ElementVariant(
        renderer="TodoListElement", default_size=(300, 150),
        default_content={"title": "To-do", "items": []},
    ),
    ElementType.IMAGE: ElementVariant(
        renderer="ImageElement", default_size=(300, 200), drag_handle=False,
        default_content={"url": ""},
    ),
    ElementType.TEXT: ElementVariant(renderer="TextElement", default_size=(200, 150)),
    ElementType.COMMENT: ElementVariant(
        renderer="CommentElement", default_size=(32, 32), drag_handle=False,
    ),
    ElementType.COMMENT_SMALL: ElementVariant(renderer="CommentSmallElement", default_size=(150, 60)),
    ElementType.COMMENT_R: ElementVariant(renderer="CommentRElement", default_size=(240, 140)),
    ElementType.MOODBOARD: ElementVariant(
        renderer="MoodboardElement", default_size=(600, 500),
        default_content={"title": "New Moodboard", "images": [], "annotations": [], "layout": "grid"},
    ),
    ElementType.GALLERY: ElementVariant(
        renderer="GalleryElement", default_size=(378, 800),
        default_content={"title": "Gallery", "images": []},
    ),
    ElementType.YELLOW_NOTEPAD: ElementVariant(
        renderer="YellowNotepadElement", default_size=(400, 600), notebook=True,
    ),
    ElementType.STOPWATCH: ElementVariant(
        renderer="StopwatchElement", default_size=(200, 120),
        default_content={"time": 0, "is_running": False},
    ),
    ElementType.HIGHLIGHT_TEXT: ElementVariant(renderer="HighlightTextElement", default_size=(300, 150)),
    ElementType.POMODORO_TIMER: ElementVariant(
        renderer="PomodoroTimerElement", default_size=(260, 200), fixed_width=180,
        default_content={"duration_seconds": 1500, "remaining_seconds": 1500, "running": False},
    ),
    ElementType.WEEKLY_PLANNER: ElementVariant(renderer="WeeklyPlannerElement", default_size=(794, 567)),
    ElementType.VERTICAL_WEEKLY_PLANNER: ElementVariant(
        renderer="VerticalWeeklyPlannerElement", default_size=(794, 567),
    ),
    ElementType.WEEKLY_MENU: ElementVariant(renderer="WeeklyMenuElement", default_size=(1200, 900)),
    ElementType.CONTAINER: ElementVariant(
        renderer="ContainerElement", default_size=(378, 567),
        accepts_containment=True, notebook=True,
        default_content={"title": "New Container", "element_ids": [], "layout": "single"},
    ),
    ElementType.TWO_COLUMNS: ElementVariant(
        renderer="ContainerElement", default_size=(378, 567),
        accepts_containment=True, notebook=True,
        default_content={"title": "New Container", "element_ids": [], "layout": "two-columns"},
    ),
    ElementType.LOCATOR: ElementVariant(
        renderer="LocatorElement", default_size=(120, 120), default_content={"label": "Locator"},
    ),
    ElementType.IMAGE_FRAME: ElementVariant(
        renderer="ImageFrameElement", default_size=(300, 300), rotation_step=90,
        default_content={"url": "", "zoom": 1, "pan_x": 0, "pan_y": 0, "rotation": 0},
    ),
    ElementType.PHOTO_GRID: ElementVariant(renderer="PhotoGridElement", default_size=(400, 400)),
    ElementType.PHOTO_GRID_HORIZONTAL: ElementVariant(
        renderer="PhotoGridHorizontalElement", default_size=(560, 360),
    ),
    ElementType.PHOTO_GRID_ADAPTIVE: ElementVariant(
        renderer="PhotoGridAdaptiveElement", default_size=(480, 420),
    ),
    ElementType.PHOTO_GRID_FREE: ElementVariant(renderer="PhotoGridFreeElement", default_size=(600, 500)),
    ElementType.LIBRETA: ElementVariant(renderer="LibretaElement", default_size=(378, 567), notebook=True),
    ElementType.NOTES: ElementVariant(renderer="NotesElement", default_size=(794, 567), notebook=True),
    ElementType.MINI_NOTES: ElementVariant(renderer="MiniNotesElement", default_size=(227, 378), notebook=True),
    ElementType.MINI: ElementVariant(renderer="MiniElement", default_size=(302, 529), notebook=True),
    ElementType.COUNTDOWN: ElementVariant(
        renderer="CountdownElement", default_size=(200, 180),
        default_content={"time_left": 0, "selected_minutes": 5, "is_running": False},
    ),
}


_warned_types = set()


def resolve_variant(element_type: str) -> Optional[ElementVariant]:
    """
    Look up the variant for a type tag.

    Unknown tags (e.g. written by a newer host) return None and log a single
    warning per tag; callers treat them as a silent no-op.
    """
    try:
        return ELEMENT_CONFIG[ElementType(element_type)]
    except ValueError:
        if element_type not in _warned_types:
            _warned_types.add(element_type)
            logger.warning(f"[ELEMENT-TYPES] Unknown element type {element_type!r}, rendering skipped")
        return None


def is_container_type(element_type: str) -> bool:
    variant = resolve_variant(element_type)
    return bool(variant and variant.accepts_containment)


def is_notebook_type(element_type: str) -> bool:
    variant = resolve_variant(element_type)
    return bool(variant and variant.notebook)


# Baseline stacking layers used when an element carries no explicit z_index
NOTEBOOK_LAYER_Z = -1
NEUTRAL_LAYER_Z = 1


def baseline_z_index(element_type: str, explicit: Optional[int] = None) -> int:
    """Explicit values win; otherwise the type decides the layer."""
    if explicit is not None:
        return explicit
    return NOTEBOOK_LAYER_Z if is_notebook_type(element_type) else NEUTRAL_LAYER_Z
