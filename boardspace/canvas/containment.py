"""
Containment Resolver
====================

Decides, at the end of a move gesture, whether an element is anchored inside
a container. Only the element's anchor (top-left) corner is tested against
container rectangles; the result is not re-validated on resize.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import EngineSettings
from ..models.canvas_models import CanvasElement, ContainerContent, ElementPatch, Point, Size
from ..models.element_types import is_container_type, resolve_variant
from .normalize import positional_patch
from .registry import ElementRegistry

logger = logging.getLogger(__name__)


class ContainmentResolver:
    """Turns a candidate anchor into the patches that (un)anchor an element."""

    def __init__(self, registry: ElementRegistry, settings: Optional[EngineSettings] = None):
        self.registry = registry
        self.settings = settings or EngineSettings()

    def find_container(self, element_id: str, anchor: Point) -> Optional[CanvasElement]:
        """First container in stacking order whose rectangle holds ``anchor``."""
        for container in self.registry.containers():
            if container.id == element_id:
                continue
            if container.rect.contains(anchor):
                return container
        return None

    def resolve_drop(self, element_id: str, anchor: Point, size: Optional[Size] = None) -> List[ElementPatch]:
        """
        Patches for an element dropped with its anchor corner at ``anchor``.

        Containers themselves never nest; dropping one only moves it. The
        result depends only on the inputs and current membership, so
        re-resolving the same drop yields the same element state.
        """
        element = self.registry.get(element_id)
        if element is None:
            return []
        if resolve_variant(element.type) is None:
            return []

        size = size or element.size
        container = None
        if not is_container_type(element.type):
            container = self.find_container(element_id, anchor)

        patches: List[ElementPatch] = []
        previous = self.registry.get(element.parent_id)
        if previous is not None and (container is None or previous.id != container.id):
            patches.extend(self._without_member(previous, element_id))

        if container is None:
            if previous is not None:
                logger.info(f"[CONTAINMENT] {element_id} left container {previous.id}")
            changes = positional_patch(element, position=anchor, size=size, relative_position=None)
            changes.update({"parent_id": None, "hidden": False})
            patches.append(ElementPatch(element_id=element_id, changes=changes))
            return patches

        members = _content(container).get("element_ids", [])
        if element_id not in members:
            patches.append(self._membership(container, list(members) + [element_id]))
        relative = anchor - container.position
        changes = positional_patch(element, position=anchor, size=size, relative_position=relative)
        changes.update({"parent_id": container.id, "hidden": True})
        patches.append(ElementPatch(element_id=element_id, changes=changes))
        logger.info(
            f"[CONTAINMENT] Anchored {element_id} in {container.id} at ({relative.x}, {relative.y})"
        )
        return patches

    def release(self, container_id: str, element_id: str) -> List[ElementPatch]:
        """Free an element from a container and place it just to its right."""
        container = self.registry.get(container_id)
        element = self.registry.get(element_id)
        if container is None or element is None:
            logger.warning(f"[CONTAINMENT] Cannot release {element_id} from {container_id}: not found")
            return []
        if element.parent_id != container_id and element_id not in container.container_ids():
            logger.warning(f"[CONTAINMENT] Cannot release {element_id} from {container_id}: not a member")
            return []

        patches = self._without_member(container, element_id)
        position = Point(
            x=container.position.x + container.size.width + self.settings.release_gap,
            y=container.position.y,
        )
        changes = positional_patch(element, position=position, relative_position=None)
        changes.update({"parent_id": None, "hidden": False})
        patches.append(ElementPatch(element_id=element_id, changes=changes))
        logger.info(f"[CONTAINMENT] Released {element_id} from {container_id}")
        return patches

    def _without_member(self, container: CanvasElement, element_id: str) -> List[ElementPatch]:
        members = _content(container).get("element_ids", [])
        if element_id not in members:
            return []
        return [self._membership(container, [m for m in members if m != element_id])]

    def _membership(self, container: CanvasElement, members: List[str]) -> ElementPatch:
        content = _content(container)
        content["element_ids"] = members
        return ElementPatch(element_id=container.id, changes={"content": content})


def _content(container: CanvasElement) -> Dict[str, Any]:
    """Copy of a container's content, rebuilt from defaults when unreadable."""
    if isinstance(container.content, dict):
        content = dict(container.content)
        content["element_ids"] = container.container_ids()
        return content
    layout = "two-columns" if container.type == "two-columns" else "single"
    return ContainerContent(layout=layout).model_dump()
