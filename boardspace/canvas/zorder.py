"""
Z-Order Manager
===============

Stacking rules on top of the type baselines:

- the sole selected element is promoted to the reserved front value and gets
  its exact previous value back when the selection moves on;
- a plain click on a notebook-like element raises it to an intermediate value
  for a short time, then reverts unless the element has been selected.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import BaseModel

from ..config import EngineSettings
from ..models.element_types import baseline_z_index, is_notebook_type
from .normalize import positional_patch
from .registry import ElementRegistry
from .scheduling import Scheduler

logger = logging.getLogger(__name__)


class ClickRaise(BaseModel):
    """A pending notebook click raise."""
    original: Optional[int] = None
    handle: Any = None


class ZOrderManager:
    """Owns promotion state; every change is committed through ``commit``."""

    def __init__(
        self,
        registry: ElementRegistry,
        commit: Callable[[str, Dict[str, Any]], None],
        scheduler: Scheduler,
        settings: Optional[EngineSettings] = None,
    ):
        self.registry = registry
        self.commit = commit
        self.scheduler = scheduler
        self.settings = settings or EngineSettings()
        self.promoted_id: Optional[str] = None
        self._captured: Optional[int] = None
        self._raised: Dict[str, ClickRaise] = {}

    # Selection promotion

    def sync_selection(self, selected_ids: Iterable[str]) -> None:
        """
        Apply a new selection.

        The pre-promotion value is captured once per selection episode: re-syncing
        the same sole selection never recaptures the promoted value.
        """
        selected = tuple(selected_ids)
        sole = selected[0] if len(selected) == 1 else None
        if sole == self.promoted_id:
            self.refresh()
            return

        self._restore_promoted()
        if sole is None or self.registry.get(sole) is None:
            return

        pending = self._raised.pop(sole, None)
        if pending is not None:
            pending.handle.cancel()
            self._captured = pending.original
        else:
            self._captured = self.registry.get(sole).properties.z_index
        self.promoted_id = sole
        self._set(sole, self.settings.front_z_index)
        logger.debug(f"[Z-ORDER] Promoted {sole} (captured z={self._captured})")

    def refresh(self) -> None:
        """Re-assert the front value on the promoted element if it drifted."""
        if self.promoted_id is None:
            return
        element = self.registry.get(self.promoted_id)
        if element is None:
            self.forget(self.promoted_id)
            return
        if element.properties.z_index != self.settings.front_z_index:
            self._set(self.promoted_id, self.settings.front_z_index)

    def _restore_promoted(self) -> None:
        if self.promoted_id is None:
            return
        element_id, captured = self.promoted_id, self._captured
        self.promoted_id = None
        self._captured = None
        if self.registry.get(element_id) is not None:
            self._set(element_id, captured)
            logger.debug(f"[Z-ORDER] Restored {element_id} to z={captured}")

    # Notebook click raise

    def notebook_click(self, element_id: str) -> bool:
        """Temporarily raise a notebook-like element; returns True if raised."""
        element = self.registry.get(element_id)
        if element is None or not is_notebook_type(element.type):
            return False
        if element_id == self.promoted_id:
            return False

        pending = self._raised.get(element_id)
        if pending is not None:
            pending.handle.cancel()
            original = pending.original
        else:
            original = element.properties.z_index
        handle = self.scheduler.call_later(
            self.settings.notebook_click_duration, lambda: self._revert_click(element_id)
        )
        self._raised[element_id] = ClickRaise(original=original, handle=handle)
        self._set(element_id, self.settings.notebook_click_z_index)
        return True

    def _revert_click(self, element_id: str) -> None:
        pending = self._raised.pop(element_id, None)
        if pending is None or element_id == self.promoted_id:
            return
        if self.registry.get(element_id) is not None:
            self._set(element_id, pending.original)

    # Explicit ordering

    def next_z_index(self) -> int:
        """One above the highest explicit value; the front value is not counted."""
        values = []
        for element in self.registry:
            z = self.effective_z_index(element.id)
            if z is not None and z < self.settings.front_z_index:
                values.append(z)
        return max(values) + 1 if values else 1

    def effective_z_index(self, element_id: str) -> Optional[int]:
        """Stored value, or the value an active promotion/raise will restore."""
        if element_id == self.promoted_id:
            return self._captured
        if element_id in self._raised:
            return self._raised[element_id].original
        element = self.registry.get(element_id)
        return element.properties.z_index if element is not None else None

    def bring_to_front(self, element_id: str) -> Optional[int]:
        if self.registry.get(element_id) is None:
            return None
        z = self.next_z_index()
        self._set_effective(element_id, z)
        return z

    def send_to_back(self, element_id: str) -> Optional[int]:
        if self.registry.get(element_id) is None:
            return None
        others = [
            baseline_z_index(e.type, self.effective_z_index(e.id))
            for e in self.registry if e.id != element_id
        ]
        z = min(others) - 1 if others else baseline_z_index(self.registry.get(element_id).type) - 1
        self._set_effective(element_id, z)
        return z

    def move_backward(self, element_id: str) -> Optional[int]:
        element = self.registry.get(element_id)
        if element is None:
            return None
        z = baseline_z_index(element.type, self.effective_z_index(element_id)) - 1
        self._set_effective(element_id, z)
        return z

    def _set_effective(self, element_id: str, z: int) -> None:
        # A promoted or raised element keeps its display value; the new value
        # is what it returns to.
        if element_id == self.promoted_id:
            self._captured = z
        elif element_id in self._raised:
            self._raised[element_id].original = z
        else:
            self._set(element_id, z)

    # Lifecycle

    def forget(self, element_id: str) -> None:
        if element_id == self.promoted_id:
            self.promoted_id = None
            self._captured = None
        pending = self._raised.pop(element_id, None)
        if pending is not None:
            pending.handle.cancel()

    def cancel_all(self) -> None:
        for pending in self._raised.values():
            pending.handle.cancel()
        self._raised.clear()

    def _set(self, element_id: str, z: Optional[int]) -> None:
        element = self.registry.get(element_id)
        if element is None or element.properties.z_index == z:
            return
        self.commit(element_id, positional_patch(element, z_index=z))
