"""
Options Dialog for the Frame Editor
Handles export size, viewport size, zoom limits and gesture sensitivity settings
"""
from pathlib import Path
from typing import Optional
import logging

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QPushButton, QLineEdit, QSpinBox, QDoubleSpinBox, QFileDialog,
    QGroupBox, QDialogButtonBox, QMessageBox, QComboBox
)

from editor_config import BACKGROUNDS, PINCH_MODES, ConfigError, EditorConfig, save_editor_settings

logger = logging.getLogger(__name__)


class OptionsDialog(QDialog):
    """Options dialog for configuring the frame editor."""

    def __init__(self, parent=None, config: Optional[EditorConfig] = None, config_path=""):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setMinimumWidth(420)

        # Store initial values
        self.config_value = config or EditorConfig()
        self.config_path_value = str(config_path)

        self._setup_ui()

    def _double_spin(self, value: float, minimum: float, maximum: float,
                     decimals: int = 2, step: float = 0.01) -> QDoubleSpinBox:
        spin = QDoubleSpinBox()
        spin.setDecimals(decimals)
        spin.setRange(minimum, maximum)
        spin.setSingleStep(step)
        spin.setValue(value)
        return spin

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(16)
        cfg = self.config_value

        # Config Group
        config_group = QGroupBox("Configuration")
        config_layout = QFormLayout()
        config_layout.setSpacing(12)

        config_row = QHBoxLayout()
        self.config_path = QLineEdit(self.config_path_value)
        btn_browse = QPushButton("Browse...")
        btn_browse.clicked.connect(self._browse_config)
        config_row.addWidget(self.config_path, 1)
        config_row.addWidget(btn_browse)
        config_layout.addRow("Config File:", config_row)

        config_group.setLayout(config_layout)
        layout.addWidget(config_group)

        # Canvas Group
        canvas_group = QGroupBox("Canvas")
        canvas_layout = QFormLayout()
        canvas_layout.setSpacing(12)

        self.export_size = QSpinBox()
        self.export_size.setRange(64, 8192)
        self.export_size.setValue(cfg.export_size)
        canvas_layout.addRow("Export Size (px):", self.export_size)

        self.viewport_size = self._double_spin(cfg.viewport_size, 64, 8192, decimals=0, step=10)
        canvas_layout.addRow("Editor Size (units):", self.viewport_size)

        self.fit_bound = self._double_spin(cfg.fit_bound, 16, 8192, decimals=0, step=10)
        canvas_layout.addRow("Initial Fit Bound:", self.fit_bound)

        self.background = QComboBox()
        self.background.addItems(BACKGROUNDS)
        self.background.setCurrentText(cfg.background)
        canvas_layout.addRow("Background:", self.background)

        self.export_filename = QLineEdit(cfg.export_filename)
        canvas_layout.addRow("Export File Name:", self.export_filename)

        canvas_group.setLayout(canvas_layout)
        layout.addWidget(canvas_group)

        # Zoom & Gestures Group
        gesture_group = QGroupBox("Zoom && Gestures")
        gesture_layout = QFormLayout()
        gesture_layout.setSpacing(12)

        self.min_scale = self._double_spin(cfg.min_scale, 0.01, 100)
        gesture_layout.addRow("Min Zoom:", self.min_scale)

        self.max_scale = self._double_spin(cfg.max_scale, 0.01, 100)
        gesture_layout.addRow("Max Zoom:", self.max_scale)

        self.zoom_factor = self._double_spin(cfg.zoom_factor, 0.01, 0.9)
        gesture_layout.addRow("Wheel Zoom Step:", self.zoom_factor)

        self.pinch_mode = QComboBox()
        self.pinch_mode.addItems(PINCH_MODES)
        self.pinch_mode.setCurrentText(cfg.pinch_mode)
        self.pinch_mode.currentTextChanged.connect(self._on_pinch_mode_changed)
        gesture_layout.addRow("Pinch Mode:", self.pinch_mode)

        self.pinch_sensitivity = self._double_spin(cfg.pinch_sensitivity, 0.0001, 1, decimals=4, step=0.0005)
        gesture_layout.addRow("Pinch Sensitivity:", self.pinch_sensitivity)

        self.resize_min_size = self._double_spin(cfg.resize_min_size, 1, 1000, decimals=0, step=5)
        gesture_layout.addRow("Min Resize Size:", self.resize_min_size)

        self.nudge_step = self._double_spin(cfg.nudge_step, 0.1, 100, decimals=1, step=0.5)
        gesture_layout.addRow("Arrow Key Step:", self.nudge_step)

        gesture_group.setLayout(gesture_layout)
        layout.addWidget(gesture_group)

        help_label = QLabel("Pinch sensitivity only applies to the \"delta\" pinch mode.")
        help_label.setStyleSheet("font-size: 10px; color: #888;")
        help_label.setWordWrap(True)
        layout.addWidget(help_label)

        # Save row
        save_row = QHBoxLayout()
        btn_save_config = QPushButton("Save to config.yaml")
        btn_save_config.setToolTip("Write these settings to the editor section of config.yaml")
        btn_save_config.clicked.connect(self._save_to_config)
        save_row.addStretch()
        save_row.addWidget(btn_save_config)
        layout.addLayout(save_row)

        # Dialog buttons
        button_box = QDialogButtonBox(
            QDialogButtonBox.Ok | QDialogButtonBox.Cancel
        )
        button_box.accepted.connect(self._accept_if_valid)
        button_box.rejected.connect(self.reject)
        layout.addWidget(button_box)

        self._on_pinch_mode_changed(self.pinch_mode.currentText())

    def _on_pinch_mode_changed(self, mode: str):
        """Enable/disable the sensitivity spinbox based on the pinch mode."""
        self.pinch_sensitivity.setEnabled(mode == "delta")

    def _browse_config(self):
        """Browse for config file."""
        path, _ = QFileDialog.getOpenFileName(
            self, "Select Config File", str(Path.home()), "YAML (*.yaml *.yml)"
        )
        if path:
            self.config_path.setText(path)

    def get_config_path(self):
        """Get the selected config path."""
        return self.config_path.text()

    def get_config(self) -> EditorConfig:
        """Build an EditorConfig from the dialog fields. Raises ConfigError if invalid."""
        return EditorConfig(
            export_size=self.export_size.value(),
            viewport_size=self.viewport_size.value(),
            fit_bound=self.fit_bound.value(),
            min_scale=self.min_scale.value(),
            max_scale=self.max_scale.value(),
            zoom_factor=self.zoom_factor.value(),
            pinch_sensitivity=self.pinch_sensitivity.value(),
            pinch_mode=self.pinch_mode.currentText(),
            resize_min_size=self.resize_min_size.value(),
            nudge_step=self.nudge_step.value(),
            export_filename=self.export_filename.text().strip(),
            background=self.background.currentText(),
        )

    def _save_to_config(self):
        """Save the current settings to the config file."""
        try:
            config = self.get_config()
            save_editor_settings(Path(self.get_config_path()), config)
        except ConfigError as e:
            QMessageBox.warning(self, "Invalid Settings", str(e))
            return
        except OSError as e:
            logger.exception("Failed to save settings")
            QMessageBox.critical(self, "Error", f"Failed to save settings:\n{e}")
            return
        QMessageBox.information(self, "Settings Saved", f"Settings saved to:\n{self.get_config_path()}")

    def _accept_if_valid(self):
        try:
            self.config_value = self.get_config()
        except ConfigError as e:
            QMessageBox.warning(self, "Invalid Settings", str(e))
            return
        self.accept()
