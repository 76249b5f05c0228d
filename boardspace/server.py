"""
Boardspace Server
=================

FastAPI server for the infinite-canvas board engine.

Features:
- Board storage with JSON persistence
- Element gestures (drag, resize, rotate) with container anchoring
- Viewport zoom, pan, centering and go-home
- Selection-driven z-order promotion
"""

import os
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
logging.basicConfig(
    level=os.getenv("BOARDSPACE_LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

from .config import load_settings
from .models.element_types import ELEMENT_CONFIG

# Import board manager
from .canvas.state_manager import StateManager

# Import API routers
from .api import board_routes, element_routes, viewport_routes


# Shared service instances
state_manager: StateManager = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global state_manager

    logger.info("[BOARDSPACE] Starting up...")

    settings = load_settings()
    boards_dir = settings.boards_dir
    if not boards_dir.is_absolute():
        boards_dir = Path(__file__).parent.parent / boards_dir
    state_manager = StateManager(boards_dir=boards_dir, settings=settings)

    # Inject into route modules
    board_routes.state_manager = state_manager
    element_routes.state_manager = state_manager
    viewport_routes.state_manager = state_manager

    logger.info("[BOARDSPACE] Services initialized")

    yield

    # Cleanup
    logger.info("[BOARDSPACE] Shutting down...")
    if state_manager:
        state_manager.close()


# Create FastAPI app
app = FastAPI(
    title="Boardspace",
    description="Spatial engine for infinite-canvas boards",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(board_routes.router)
app.include_router(element_routes.router)
app.include_router(viewport_routes.router)


@app.get("/")
async def root():
    """Return API info."""
    return {
        "service": "Boardspace",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "boards": "/api/board/{board_id}",
            "elements": "/api/element/{board_id}/{element_id}",
            "viewport": "/api/viewport/{board_id}"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "boardspace"}


@app.get("/api/info")
async def api_info():
    """Get API information and element types."""
    return {
        "service": "Boardspace",
        "version": "1.0.0",
        "element_types": [
            {
                "type": element_type.value,
                "renderer": variant.renderer,
                "default_size": {"width": variant.default_size[0], "height": variant.default_size[1]},
                "container": variant.accepts_containment,
                "notebook": variant.notebook,
                "rotation_step": variant.rotation_step,
            }
            for element_type, variant in ELEMENT_CONFIG.items()
        ],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "boardspace.server:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True
    )
