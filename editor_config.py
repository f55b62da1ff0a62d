"""
Editor configuration.
Loads the `editor` and `frames` sections of config.yaml and exposes them as an
EditorConfig plus a name -> file mapping for the frame templates.
"""

import logging
import math
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

PINCH_MODES = ("delta", "ratio")
BACKGROUNDS = ("white", "transparent")


class ConfigError(ValueError):
    """Raised when config.yaml holds an unusable value."""


def _coerce(key: str, default, value):
    """Convert a YAML value to the type of the option's default, without lossy casts."""
    if value is None or isinstance(value, bool):
        raise ConfigError(f"Invalid value for {key}: {value!r}")
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return value
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e
    if not math.isfinite(number):
        raise ConfigError(f"{key} must be a finite number, got {value!r}")
    if isinstance(default, int):
        if not number.is_integer():
            raise ConfigError(f"{key} must be a whole number, got {value!r}")
        return int(number)
    return number


@dataclass
class EditorConfig:
    export_size: int = 1080
    viewport_size: float = 1080.0  # Logical side of the editing surface
    fit_bound: float = 800.0  # Max initial image dimension inside the viewport
    min_scale: float = 0.05
    max_scale: float = 8.0
    zoom_factor: float = 0.12  # Wheel step, fraction of the current scale
    pinch_sensitivity: float = 0.005  # Scale change per unit of finger travel (delta mode)
    pinch_mode: str = "delta"
    resize_min_size: float = 40.0
    nudge_step: float = 1.0  # Arrow key step in logical units
    export_filename: str = "framed-image.png"
    background: str = "white"

    def __post_init__(self):
        self.validate()

    @property
    def export_ratio(self) -> float:
        """Export canvas units per viewport unit."""
        return self.export_size / self.viewport_size

    def validate(self):
        if int(self.export_size) != self.export_size or self.export_size <= 0:
            raise ConfigError(f"export_size must be a positive integer, got {self.export_size!r}")
        self.export_size = int(self.export_size)
        for name in ("viewport_size", "fit_bound", "min_scale", "max_scale",
                     "zoom_factor", "pinch_sensitivity", "resize_min_size", "nudge_step"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.min_scale > self.max_scale:
            raise ConfigError(f"min_scale ({self.min_scale}) exceeds max_scale ({self.max_scale})")
        if self.zoom_factor >= 1:
            raise ConfigError(f"zoom_factor must be below 1, got {self.zoom_factor}")
        if self.pinch_mode not in PINCH_MODES:
            raise ConfigError(f"pinch_mode must be one of {PINCH_MODES}, got {self.pinch_mode!r}")
        if self.background not in BACKGROUNDS:
            raise ConfigError(f"background must be one of {BACKGROUNDS}, got {self.background!r}")
        if not self.export_filename:
            raise ConfigError("export_filename must not be empty")

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "EditorConfig":
        """Build a config from the `editor` section, ignoring unknown keys."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"editor section must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown editor option %r", key)
                continue
            values[key] = _coerce(key, getattr(cls, key), value)
        return cls(**values)

    def to_mapping(self) -> dict:
        return asdict(self)


def load_yaml(path: Path) -> dict:
    """Read a YAML file, returning an empty dict for an empty document."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_frame_templates(cfg: dict, base_dir: Path) -> Dict[str, Path]:
    """Resolve the `frames` section against `paths.frames_dir`."""
    paths = cfg.get("paths") or {}
    if not isinstance(paths, dict):
        raise ConfigError(f"paths section must be a mapping, got {type(paths).__name__}")
    frames_dir = paths.get("frames_dir") or "./frames"
    if not isinstance(frames_dir, str):
        raise ConfigError(f"paths.frames_dir must be a string, got {frames_dir!r}")
    frames_dir = (base_dir / frames_dir).resolve()

    frames = cfg.get("frames") or {}
    if not isinstance(frames, dict):
        raise ConfigError(f"frames section must be a mapping, got {type(frames).__name__}")

    templates = {}
    for name, entry in frames.items():
        frame_file = entry.get("frame_file") if isinstance(entry, dict) else entry
        if not frame_file or not isinstance(frame_file, str):
            logger.warning("Frame template %r has no usable frame_file, skipping", name)
            continue
        templates[str(name)] = frames_dir / frame_file
    return templates


def load_config(path: Optional[Path]) -> Tuple[EditorConfig, Dict[str, Path]]:
    """Load editor settings and frame templates; defaults when the file is missing."""
    if path is None or not Path(path).exists():
        logger.info("No config file at %s, using defaults", path)
        return EditorConfig(), {}

    path = Path(path)
    cfg = load_yaml(path)
    config = EditorConfig.from_mapping(cfg.get("editor"))
    templates = load_frame_templates(cfg, path.parent)
    logger.info("Loaded config from %s (%d frame templates)", path, len(templates))
    return config, templates


def save_editor_settings(path: Path, config: EditorConfig):
    """Rewrite the `editor` section of config.yaml, keeping the other sections."""
    path = Path(path)
    cfg = load_yaml(path) if path.exists() else {}
    cfg["editor"] = config.to_mapping()
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f, sort_keys=False)
    logger.info("Saved editor settings to %s", path)
