"""
Record Normalization
====================

Single pass that turns any stored element record (current, legacy flat, or
partially corrupt) into the canonical CanvasElement shape. The input dict is
never mutated, so the pass can be repeated on the same record.
"""

import copy
import logging
import math
from typing import Any, Dict, Optional

from ..models.canvas_models import CanvasElement, ElementProperties, Point, Size

logger = logging.getLogger(__name__)

DEFAULT_POSITION = Point(x=100, y=100)
DEFAULT_SIZE = Size(width=200, height=150)

# Keys that belong to the positional sub-object in either naming style
_POSITIONAL_KEYS = {
    "position", "size", "z_index", "zIndex", "rotation",
    "relative_position", "relativePosition",
}


def safe_number(value: Any, default: Optional[float]) -> Optional[float]:
    """Coerce ints, floats and numeric strings ("120", "120px"); reject NaN/inf."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().removesuffix("px"))
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def _point(raw: Any, legacy_x: Any = None, legacy_y: Any = None,
           default: Optional[Point] = DEFAULT_POSITION) -> Optional[Point]:
    if isinstance(raw, dict):
        legacy_x = raw.get("x", legacy_x)
        legacy_y = raw.get("y", legacy_y)
    elif legacy_x is None and legacy_y is None:
        return default
    fallback = default if default is not None else Point()
    return Point(
        x=safe_number(legacy_x, fallback.x),
        y=safe_number(legacy_y, fallback.y),
    )


def _size(raw: Any, legacy_w: Any = None, legacy_h: Any = None) -> Size:
    if isinstance(raw, dict):
        legacy_w = raw.get("width", legacy_w)
        legacy_h = raw.get("height", legacy_h)
    width = safe_number(legacy_w, None)
    height = safe_number(legacy_h, None)
    # Zero or negative sizes cannot be laid out
    if width is None or width <= 0:
        width = DEFAULT_SIZE.width
    if height is None or height <= 0:
        height = DEFAULT_SIZE.height
    return Size(width=width, height=height)


def normalize_rotation(value: Any) -> float:
    degrees = safe_number(value, 0.0)
    return degrees % 360.0


def _z_index(*candidates: Any) -> Optional[int]:
    for candidate in candidates:
        number = safe_number(candidate, None)
        if number is not None:
            return int(number)
    return None


def normalize_record(record: Dict[str, Any]) -> CanvasElement:
    """
    Build the canonical element for a stored record.

    Accepts structured records (``properties.position``/``properties.size``),
    legacy flat records (top-level ``x``/``y``/``width``/``height``/``zIndex``)
    and camelCase keys (``parentId``, ``relativePosition``). Missing or
    non-finite geometry is replaced by safe defaults.

    Raises:
        ValueError: if the record has no id or no type.
    """
    if not isinstance(record, dict):
        raise ValueError(f"Element record must be a mapping, got {type(record).__name__}")
    element_id = record.get("id")
    element_type = record.get("type")
    if not element_id or not element_type:
        raise ValueError("Element record requires 'id' and 'type'")

    raw_props = record.get("properties")
    props: Dict[str, Any] = raw_props if isinstance(raw_props, dict) else {}

    position = _point(props.get("position"), record.get("x"), record.get("y"))
    size = _size(props.get("size"), record.get("width"), record.get("height"))
    z_index = _z_index(props.get("z_index"), props.get("zIndex"), record.get("z_index"), record.get("zIndex"))
    rotation = normalize_rotation(props.get("rotation", record.get("rotation")))

    parent_id = record.get("parent_id", record.get("parentId")) or None
    relative = None
    if parent_id:
        raw_relative = props.get("relative_position", props.get("relativePosition"))
        relative = _point(raw_relative, default=None)

    extras = {
        key: copy.deepcopy(value)
        for key, value in props.items()
        if key not in _POSITIONAL_KEYS
    }

    properties = ElementProperties(
        position=position,
        size=size,
        z_index=z_index,
        rotation=rotation,
        relative_position=relative,
        **extras,
    )

    hidden = record.get("hidden", False)
    return CanvasElement(
        id=str(element_id),
        type=str(element_type),
        properties=properties,
        parent_id=str(parent_id) if parent_id else None,
        hidden=bool(hidden) if hidden is not None else False,
        content=copy.deepcopy(record.get("content")),
    )


def to_record(element: CanvasElement) -> Dict[str, Any]:
    """Serialize an element to the canonical stored shape."""
    record = element.model_dump(mode="json")
    if record["properties"].get("relative_position") is None:
        record["properties"].pop("relative_position", None)
    return record


def properties_dict(properties: ElementProperties) -> Dict[str, Any]:
    """Complete positional sub-object (and extras) for an update patch."""
    data = properties.model_dump(mode="json")
    if data.get("relative_position") is None:
        data.pop("relative_position", None)
    return data


def positional_patch(element: CanvasElement, **updates: Any) -> Dict[str, Any]:
    """
    Patch carrying the element's complete properties with ``updates`` applied.

    Hosts merge patches shallowly, so a sparse ``properties`` dict would
    clobber the sibling keys it leaves out.
    """
    properties = element.properties.model_copy(update=updates)
    return {"properties": properties_dict(properties)}
