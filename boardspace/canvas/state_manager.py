"""
Board State Manager
===================

Manages boards with JSON persistence and acts as the host for each board's
engine: elements are created, patched and deleted here, and every change is
written back to ``<boards_dir>/<board_id>.json``.
"""

import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import EngineSettings
from ..models.canvas_models import DeviceProfile
from .board_engine import BoardEngine
from .registry import ElementRegistry
from .scheduling import Scheduler

logger = logging.getLogger(__name__)

# Board ids double as file names under boards_dir
BOARD_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_board_id(board_id: str) -> bool:
    return bool(BOARD_ID_PATTERN.fullmatch(board_id))


class LocalBoardHost:
    """Host boundary for one board stored by a StateManager."""

    def __init__(self, manager: "StateManager", board_id: str):
        self.manager = manager
        self.board_id = board_id

    async def add_element(self, element_type: str, initial_props: Dict[str, Any]) -> str:
        return self.manager.add_element(self.board_id, element_type, initial_props)

    def update_element(self, element_id: str, changes: Dict[str, Any]) -> None:
        self.manager.update_element(self.board_id, element_id, changes)

    async def delete_element(self, element_id: str) -> None:
        self.manager.remove_element(self.board_id, element_id)


class StateManager:
    """Manages board documents and their engines."""

    def __init__(
        self,
        boards_dir: Optional[Path] = None,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.settings = settings or EngineSettings()
        self.boards_dir = boards_dir or self.settings.boards_dir
        self.boards_dir.mkdir(parents=True, exist_ok=True)
        self.scheduler = scheduler
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._engines: Dict[str, BoardEngine] = {}
        logger.info(f"[STATE-MANAGER] Initialized with boards_dir={self.boards_dir}")

    # Boards

    def create_board(
        self,
        board_id: Optional[str] = None,
        elements: Optional[List[Dict[str, Any]]] = None,
        device: Optional[DeviceProfile] = None,
    ) -> str:
        """Create a board with optional ID; an existing board is left as is."""
        if board_id is None:
            board_id = str(uuid.uuid4())
        elif not is_valid_board_id(board_id):
            raise ValueError(f"Invalid board id: {board_id!r}")

        if self.get_board(board_id) is None:
            self._cache[board_id] = {
                "id": board_id,
                "created_at": datetime.now().isoformat(),
                "device": (device or DeviceProfile()).model_dump(),
                "elements": list(elements or []),
            }
            self._save_board(board_id)
            logger.info(f"[STATE-MANAGER] Created board {board_id}")
        return board_id

    def get_board(self, board_id: str) -> Optional[Dict[str, Any]]:
        """Get the raw board document."""
        if not is_valid_board_id(board_id):
            return None
        if board_id in self._cache:
            return self._cache[board_id]

        board_path = self._board_path(board_id)
        if board_path.exists():
            with open(board_path) as f:
                self._cache[board_id] = json.load(f)
                return self._cache[board_id]
        return None

    def list_boards(self) -> List[str]:
        on_disk = {path.stem for path in self.boards_dir.glob("*.json")}
        return sorted(on_disk | set(self._cache))

    def get_engine(self, board_id: str) -> Optional[BoardEngine]:
        """
        Engine for a board, built on first use.

        Stored records go through normalization and membership reconciliation;
        when that changes anything the canonical records are written back.
        """
        if board_id in self._engines:
            return self._engines[board_id]

        board = self.get_board(board_id)
        if board is None:
            return None

        registry = ElementRegistry.from_records(board.get("elements", []))
        canonical = registry.records()
        if canonical != board.get("elements", []):
            logger.info(f"[STATE-MANAGER] Migrated stored records of board {board_id}")
            board["elements"] = canonical
            board["updated_at"] = datetime.now().isoformat()
            self._save_board(board_id)

        device = DeviceProfile(**board.get("device", {}))
        engine = BoardEngine(
            registry,
            LocalBoardHost(self, board_id),
            device=device,
            settings=self.settings,
            scheduler=self.scheduler,
        )
        self._engines[board_id] = engine
        return engine

    def clear_board(self, board_id: str) -> bool:
        """Clear all elements from a board."""
        board = self.get_board(board_id)
        if not board:
            return False

        engine = self._engines.pop(board_id, None)
        if engine is not None:
            engine.teardown()
        board["elements"] = []
        board["updated_at"] = datetime.now().isoformat()
        self._save_board(board_id)
        return True

    def delete_board(self, board_id: str) -> bool:
        if self.get_board(board_id) is None:
            return False
        engine = self._engines.pop(board_id, None)
        if engine is not None:
            engine.teardown()
        self._cache.pop(board_id, None)
        self._board_path(board_id).unlink(missing_ok=True)
        logger.info(f"[STATE-MANAGER] Deleted board {board_id}")
        return True

    # Host operations

    def add_element(self, board_id: str, element_type: str, initial_props: Dict[str, Any]) -> str:
        board = self.get_board(board_id)
        if board is None:
            raise KeyError(f"Board not found: {board_id}")

        element_id = f"{element_type}-{uuid.uuid4().hex[:12]}"
        record = {"id": element_id, "type": element_type}
        record.update(initial_props)
        board["elements"].append(record)
        board["updated_at"] = datetime.now().isoformat()
        self._save_board(board_id)
        return element_id

    def update_element(self, board_id: str, element_id: str, changes: Dict[str, Any]) -> bool:
        """Shallow-merge ``changes`` into the stored record."""
        board = self.get_board(board_id)
        if not board:
            return False

        for record in board["elements"]:
            if record.get("id") == element_id:
                record.update(changes)
                board["updated_at"] = datetime.now().isoformat()
                self._save_board(board_id)
                return True
        logger.warning(f"[STATE-MANAGER] Update for unknown element {element_id} on board {board_id}")
        return False

    def remove_element(self, board_id: str, element_id: str) -> bool:
        board = self.get_board(board_id)
        if not board:
            return False

        before = len(board["elements"])
        board["elements"] = [e for e in board["elements"] if e.get("id") != element_id]
        board["updated_at"] = datetime.now().isoformat()
        self._save_board(board_id)
        return len(board["elements"]) < before

    def close(self):
        """Tear down every live engine (listeners and pending timers)."""
        for engine in self._engines.values():
            engine.teardown()
        self._engines.clear()

    def _board_path(self, board_id: str) -> Path:
        if not is_valid_board_id(board_id):
            raise ValueError(f"Invalid board id: {board_id!r}")
        return self.boards_dir / f"{board_id}.json"

    def _save_board(self, board_id: str):
        """Save board to disk."""
        if board_id in self._cache:
            with open(self._board_path(board_id), "w") as f:
                json.dump(self._cache[board_id], f, indent=2)
