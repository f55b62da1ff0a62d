"""
Shared fixtures for the Frame Editor tests.

Provides editor configs, transform states, interpreters and on-disk sample images.
"""
import sys
import os
import pytest

# Ensure the repository root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Qt widgets are created without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PIL import Image

from editor_config import EditorConfig
from gesture_interpreter import GestureInterpreter
from transform_state import TransformState


@pytest.fixture
def config():
    return EditorConfig()


@pytest.fixture
def state(config):
    return TransformState(min_scale=config.min_scale, max_scale=config.max_scale)


@pytest.fixture
def interpreter(state, config):
    return GestureInterpreter(state, config)


@pytest.fixture
def make_image(tmp_path):
    """Write a solid RGBA image to tmp_path and return its path."""
    def _make(name="photo.png", size=(1600, 1200), color=(255, 0, 0, 255)):
        path = tmp_path / name
        Image.new("RGBA", size, color).save(path)
        return path
    return _make


@pytest.fixture
def frame_path(tmp_path):
    """Square frame with an opaque black border and a transparent window."""
    frame = Image.new("RGBA", (540, 540), (0, 0, 0, 255))
    frame.paste((0, 0, 0, 0), (60, 60, 480, 480))
    path = tmp_path / "frame.png"
    frame.save(path)
    return path
