"""
Application paths for the frame editor.
Resolves config.yaml and the frames directory for both source checkouts and
frozen (PyInstaller) builds.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """Directory holding config.yaml and the frames folder."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def get_config_path() -> Path:
    return get_app_dir() / "config.yaml"


def get_frames_dir() -> Path:
    return get_app_dir() / "frames"
