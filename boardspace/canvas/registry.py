"""
Element Registry
================

Ordered set of canonical element records. Records enter through the
normalization pass and container membership is reconciled on load, so the
engine never branches on record shape.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Iterable

from ..models.canvas_models import CanvasElement, Point, Rect
from ..models.element_types import baseline_z_index, is_container_type, resolve_variant
from .normalize import normalize_record, to_record

logger = logging.getLogger(__name__)


class ElementRegistry:
    """Insertion-ordered mapping of element id to canonical element."""

    def __init__(self, elements: Optional[Iterable[CanvasElement]] = None):
        self._elements: Dict[str, CanvasElement] = {}
        for element in elements or []:
            self._elements[element.id] = element

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "ElementRegistry":
        """Normalize stored records; unreadable records are skipped with a warning."""
        elements = []
        for record in records:
            try:
                elements.append(normalize_record(record))
            except ValueError as e:
                logger.warning(f"[REGISTRY] Skipping unreadable record: {e}")
        return cls(reconcile_membership(elements))

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._elements

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[CanvasElement]:
        return iter(list(self._elements.values()))

    def get(self, element_id: Optional[str]) -> Optional[CanvasElement]:
        if element_id is None:
            return None
        return self._elements.get(element_id)

    def insertion_index(self, element_id: str) -> int:
        for index, key in enumerate(self._elements):
            if key == element_id:
                return index
        return len(self._elements)

    def add(self, element: CanvasElement) -> None:
        self._elements[element.id] = element

    def remove(self, element_id: str) -> bool:
        return self._elements.pop(element_id, None) is not None

    def apply_patch(self, element_id: str, changes: Dict[str, Any]) -> Optional[CanvasElement]:
        """Shallow-merge a patch the same way the host does, then renormalize."""
        element = self._elements.get(element_id)
        if element is None:
            return None
        record = to_record(element)
        record.update(changes)
        updated = normalize_record(record)
        self._elements[element_id] = updated
        return updated

    def records(self) -> List[Dict[str, Any]]:
        return [to_record(element) for element in self._elements.values()]

    # Queries

    def containers(self) -> List[CanvasElement]:
        return [e for e in self.stacking_order() if is_container_type(e.type)]

    def visible(self) -> List[CanvasElement]:
        """Elements rendered on the free canvas: not hidden, known variant."""
        return [
            e for e in self.stacking_order()
            if not e.hidden and resolve_variant(e.type) is not None
        ]

    def stacking_order(self) -> List[CanvasElement]:
        """Ascending z-index; type baseline for unset values; insertion order breaks ties."""
        indexed = list(enumerate(self._elements.values()))
        indexed.sort(key=lambda pair: (baseline_z_index(pair[1].type, pair[1].properties.z_index), pair[0]))
        return [element for _, element in indexed]

    def render_position(self, element: CanvasElement) -> Point:
        """Absolute position; anchored elements follow their container."""
        parent = self.get(element.parent_id)
        relative = element.properties.relative_position
        if parent is not None and relative is not None:
            return parent.position + relative
        return element.position

    def render_rect(self, element: CanvasElement) -> Rect:
        position = self.render_position(element)
        return Rect(x=position.x, y=position.y, width=element.size.width, height=element.size.height)


def reconcile_membership(elements: List[CanvasElement]) -> List[CanvasElement]:
    """
    Enforce the container membership invariant over a loaded element set.

    ``content.element_ids`` is the source of truth: listed ids are deduplicated,
    dangling or container ids are dropped, listed elements are anchored to
    their container, and elements claiming a parent that does not list them
    are freed. Returns new element instances; inputs are left untouched.
    """
    by_id = {e.id: e for e in elements}
    owner: Dict[str, str] = {}
    fixed: Dict[str, CanvasElement] = {}

    for container in elements:
        if not is_container_type(container.type) or not isinstance(container.content, dict):
            continue
        listed = container.container_ids()
        kept: List[str] = []
        for member_id in listed:
            member = by_id.get(member_id)
            if member is None or member_id in kept or is_container_type(member.type):
                continue
            if member_id in owner:
                logger.warning(
                    f"[REGISTRY] {member_id} listed by {owner[member_id]} and {container.id}, keeping first"
                )
                continue
            kept.append(member_id)
            owner[member_id] = container.id
        if kept != listed:
            logger.warning(f"[REGISTRY] Repaired element_ids of container {container.id}")
            content = dict(container.content)
            content["element_ids"] = kept
            fixed[container.id] = container.model_copy(update={"content": content})

    result = []
    for element in elements:
        element = fixed.get(element.id, element)
        parent_id = owner.get(element.id)
        if parent_id is not None:
            parent = fixed.get(parent_id, by_id[parent_id])
            relative = element.properties.relative_position
            if relative is None:
                relative = element.position - parent.position
            if element.parent_id != parent_id or not element.hidden or element.properties.relative_position is None:
                properties = element.properties.model_copy(update={"relative_position": relative})
                element = element.model_copy(
                    update={"parent_id": parent_id, "hidden": True, "properties": properties}
                )
        elif element.parent_id is not None:
            logger.warning(f"[REGISTRY] Freeing {element.id}: not listed by container {element.parent_id}")
            properties = element.properties.model_copy(update={"relative_position": None})
            element = element.model_copy(update={"parent_id": None, "hidden": False, "properties": properties})
        result.append(element)
    return result
