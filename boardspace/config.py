"""
Boardspace Configuration
========================

Tunables for the spatial engine, read from BOARDSPACE_* environment variables.
"""

import os
import logging
from pathlib import Path
from typing import Optional, Tuple
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EngineSettings(BaseModel):
    """Configuration for the board engine."""
    # Viewport
    min_scale: float = 0.1
    max_scale: float = 5.0
    zoom_step: float = 0.1              # zoom toolbar and ctrl+wheel step
    home_scale_desktop: float = 1.0
    home_scale_mobile: float = 0.3      # constrained devices start zoomed out
    overview_scale_desktop: float = 0.4
    overview_scale_mobile: float = 0.3
    pan_sensitivity: float = 0.7        # drag-pan moves 70% of the pointer delta
    home_retry_delays: Tuple[float, ...] = (0.1, 0.5)  # seconds after go_home

    # Debounced offset mirror
    offset_debounce: float = 0.05       # seconds the scroll must be stable
    offset_threshold: float = 10.0      # pixels before a new snapshot publishes

    # Transform
    min_element_width: float = 50.0
    min_element_height: float = 50.0

    # Z-order
    front_z_index: int = 999            # sole selection
    notebook_click_z_index: int = 0     # temporary raise on plain click
    notebook_click_duration: float = 2.0

    # Containment
    release_gap: float = 20.0           # released elements land right of the container

    # Persistence
    boards_dir: Path = Field(default_factory=lambda: Path("boards"))


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring non-numeric {name}={raw!r}")
        return default


def load_settings(boards_dir: Optional[Path] = None) -> EngineSettings:
    """Build settings from the environment, falling back to defaults."""
    defaults = EngineSettings()
    settings = EngineSettings(
        min_scale=_env_float("BOARDSPACE_MIN_SCALE", defaults.min_scale),
        max_scale=_env_float("BOARDSPACE_MAX_SCALE", defaults.max_scale),
        zoom_step=_env_float("BOARDSPACE_ZOOM_STEP", defaults.zoom_step),
        home_scale_desktop=_env_float("BOARDSPACE_HOME_SCALE", defaults.home_scale_desktop),
        home_scale_mobile=_env_float("BOARDSPACE_HOME_SCALE_MOBILE", defaults.home_scale_mobile),
        notebook_click_duration=_env_float(
            "BOARDSPACE_NOTEBOOK_CLICK_SECONDS", defaults.notebook_click_duration
        ),
        boards_dir=boards_dir or Path(os.getenv("BOARDSPACE_BOARDS_DIR", str(defaults.boards_dir))),
    )
    if settings.min_scale > settings.max_scale:
        logger.warning("[CONFIG] min_scale above max_scale, using defaults for both")
        settings = settings.model_copy(
            update={"min_scale": defaults.min_scale, "max_scale": defaults.max_scale}
        )
    return settings
