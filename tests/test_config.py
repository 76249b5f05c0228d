"""
Settings loaded from BOARDSPACE_* environment variables.
"""

import logging
from pathlib import Path

import pytest

from boardspace.config import EngineSettings, load_settings
from boardspace.canvas.viewport import ViewportController
from boardspace.models.canvas_models import Viewport


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "BOARDSPACE_MIN_SCALE", "BOARDSPACE_MAX_SCALE", "BOARDSPACE_ZOOM_STEP",
        "BOARDSPACE_HOME_SCALE", "BOARDSPACE_HOME_SCALE_MOBILE",
        "BOARDSPACE_NOTEBOOK_CLICK_SECONDS", "BOARDSPACE_BOARDS_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings == EngineSettings()
    assert settings.boards_dir == Path("boards")


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("BOARDSPACE_MAX_SCALE", "8")
    monkeypatch.setenv("BOARDSPACE_NOTEBOOK_CLICK_SECONDS", "0.5")
    monkeypatch.setenv("BOARDSPACE_BOARDS_DIR", str(tmp_path))

    settings = load_settings()

    assert settings.max_scale == 8.0
    assert settings.notebook_click_duration == 0.5
    assert settings.boards_dir == tmp_path


def test_explicit_boards_dir_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("BOARDSPACE_BOARDS_DIR", "/elsewhere")

    assert load_settings(boards_dir=tmp_path).boards_dir == tmp_path


def test_non_numeric_value_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("BOARDSPACE_ZOOM_STEP", "fast")

    with caplog.at_level(logging.WARNING):
        settings = load_settings()

    assert settings.zoom_step == 0.1
    assert "BOARDSPACE_ZOOM_STEP" in caplog.text


def test_inverted_scale_bounds_are_reset(monkeypatch, caplog):
    monkeypatch.setenv("BOARDSPACE_MIN_SCALE", "6")
    monkeypatch.setenv("BOARDSPACE_MAX_SCALE", "2")

    with caplog.at_level(logging.WARNING):
        settings = load_settings()

    assert (settings.min_scale, settings.max_scale) == (0.1, 5.0)
    assert "min_scale" in caplog.text


def test_scale_bounds_drive_clamping(monkeypatch):
    monkeypatch.setenv("BOARDSPACE_MAX_SCALE", "8")
    controller = ViewportController(settings=load_settings())

    assert controller.set_zoom(Viewport(), 20).scale == 8.0
