"""
Shared fixtures: a manually advanced scheduler, a recording host and record
builders.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from boardspace.canvas.board_engine import BoardEngine
from boardspace.canvas.registry import ElementRegistry
from boardspace.config import EngineSettings
from boardspace.models.canvas_models import DeviceProfile


class ManualHandle:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test advances it."""

    def __init__(self):
        self.now = 0.0
        self._handles: List[ManualHandle] = []
        self._seq = itertools.count()

    def call_soon(self, callback: Callable[[], None]) -> ManualHandle:
        return self._push(self.now, callback)

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        return self._push(self.now + delay, callback)

    def time(self) -> float:
        return self.now

    def _push(self, when: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(when, next(self._seq), callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float = 0.0) -> None:
        """Run every callback due within ``seconds``, in time order."""
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = target


class RecordingHost:
    """In-memory host that records every call."""

    def __init__(self):
        self.added: List[Tuple[str, str, Dict[str, Any]]] = []
        self.updates: List[Tuple[str, Dict[str, Any]]] = []
        self.deleted: List[str] = []
        self._ids = itertools.count(1)

    async def add_element(self, element_type: str, initial_props: Dict[str, Any]) -> str:
        element_id = f"{element_type}-{next(self._ids)}"
        self.added.append((element_id, element_type, initial_props))
        return element_id

    def update_element(self, element_id: str, changes: Dict[str, Any]) -> None:
        self.updates.append((element_id, changes))

    async def delete_element(self, element_id: str) -> None:
        self.deleted.append(element_id)

    def updates_for(self, element_id: str) -> List[Dict[str, Any]]:
        return [changes for target, changes in self.updates if target == element_id]


def build_record(
    element_id: str,
    element_type: str = "sticky",
    x: float = 100,
    y: float = 100,
    width: float = 200,
    height: float = 150,
    z_index: Optional[int] = None,
    **extra: Any,
) -> Dict[str, Any]:
    properties = {
        "position": {"x": x, "y": y},
        "size": {"width": width, "height": height},
        "rotation": 0,
    }
    if z_index is not None:
        properties["z_index"] = z_index
    properties.update(extra.pop("properties", {}))
    record = {"id": element_id, "type": element_type, "properties": properties}
    record.update(extra)
    return record


def build_container(element_id: str, x: float, y: float, width: float = 300, height: float = 300,
                    members: Optional[List[str]] = None, **extra: Any) -> Dict[str, Any]:
    return build_record(
        element_id, "container", x, y, width, height,
        content={"title": "Box", "element_ids": list(members or []), "layout": "single"},
        **extra,
    )


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_container():
    return build_container


@pytest.fixture
def make_engine(host, scheduler, settings):
    """Factory for a BoardEngine over the given stored records."""

    def _make(records=(), device: Optional[DeviceProfile] = None) -> BoardEngine:
        registry = ElementRegistry.from_records(list(records))
        return BoardEngine(registry, host, device=device, settings=settings, scheduler=scheduler)

    return _make
