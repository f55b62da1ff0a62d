"""
Frame Editor Tab
Upload a photo, position it under a square frame overlay and export the composite.
The preview and the export are both driven by one TransformState.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple
import logging

from PIL import Image, ImageQt
from PySide6.QtCore import Qt, QEvent, QPointF, QRectF, Signal
from PySide6.QtGui import (
    QPixmap, QPainter, QPen, QBrush, QColor, QCursor, QEventPoint, QPolygonF,
    QKeyEvent, QMouseEvent, QWheelEvent
)
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QFileDialog,
    QGroupBox, QComboBox, QMessageBox, QSizePolicy, QSlider, QScrollArea
)

import compositor
from app_paths import get_config_path, get_frames_dir
from editor_config import ConfigError, EditorConfig, load_config
from gesture_interpreter import GestureInterpreter, GestureMode, TouchPoint
from image_assets import AssetNotReadyError, FrameAsset, ImageAsset
from transform_state import TransformState
from viewport_renderer import Placement, compute_placement

logger = logging.getLogger(__name__)

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.webp);;All Files (*)"


def pil_to_pixmap(img: Image.Image) -> QPixmap:
    return QPixmap.fromImage(ImageQt.ImageQt(img))


class FrameEditorView(QWidget):
    """
    Square editing surface. Maps widget pixels to viewport logical units,
    paints the live preview and forwards input to the gesture interpreter.
    """

    transform_changed = Signal()

    MOUSE_ID = "mouse"

    def __init__(self, interpreter: GestureInterpreter, parent=None):
        super().__init__(parent)
        self.interpreter = interpreter
        self.setAttribute(Qt.WA_AcceptTouchEvents, True)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)

        self.image_pixmap: Optional[QPixmap] = None
        self.frame_pixmap: Optional[QPixmap] = None

        # Resize handle visual properties (widget pixels)
        self.handle_size = 16
        self.handle_color = QColor(0, 120, 215)
        self.handle_hover_color = QColor(0, 150, 255)
        self.handle_active_color = QColor(255, 165, 0)
        self.bounds_color = QColor(0, 120, 215, 180)
        self.handle_hovered = False

    def set_interpreter(self, interpreter: GestureInterpreter):
        self.interpreter = interpreter
        self.update()

    def set_image(self, img: Optional[Image.Image]):
        self.image_pixmap = pil_to_pixmap(img) if img is not None else None
        self.update()

    def set_frame(self, img: Optional[Image.Image]):
        self.frame_pixmap = pil_to_pixmap(img) if img is not None else None
        self.update()

    # Coordinate mapping -----------------------------------------------------

    def viewport_rect(self) -> QRectF:
        """Largest centered square inside the widget."""
        side = min(self.width(), self.height())
        return QRectF((self.width() - side) / 2, (self.height() - side) / 2, side, side)

    def display_scale(self) -> float:
        """Widget pixels per viewport logical unit."""
        return self.viewport_rect().width() / self.interpreter.config.viewport_size

    def to_logical(self, pos: QPointF) -> Tuple[float, float]:
        rect = self.viewport_rect()
        scale = self.display_scale() or 1.0
        return (pos.x() - rect.left()) / scale, (pos.y() - rect.top()) / scale

    def to_widget(self, x: float, y: float) -> QPointF:
        rect = self.viewport_rect()
        scale = self.display_scale()
        return QPointF(rect.left() + x * scale, rect.top() + y * scale)

    def placement(self) -> Placement:
        return compute_placement(self.interpreter.state, self.interpreter.viewport_center)

    def handle_position(self) -> QPointF:
        """Bottom-right corner of the image, following its rotation."""
        return self.to_widget(*self.placement().corners()[2])

    def hit_handle(self, pos: QPointF) -> bool:
        if self.image_pixmap is None:
            return False
        center = self.handle_position()
        half_size = self.handle_size / 2 + 4  # Add padding for easier clicking
        return abs(pos.x() - center.x()) <= half_size and abs(pos.y() - center.y()) <= half_size

    def hit_image(self, pos: QPointF) -> bool:
        return self.image_pixmap is not None and self.placement().contains(*self.to_logical(pos))

    # Painting ---------------------------------------------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        painter.setRenderHint(QPainter.SmoothPixmapTransform, True)
        painter.fillRect(self.rect(), Qt.darkGray)

        rect = self.viewport_rect()
        if rect.isEmpty():
            painter.end()
            return

        size = self.interpreter.config.viewport_size
        painter.setClipRect(rect)
        painter.translate(rect.topLeft())
        painter.scale(self.display_scale(), self.display_scale())
        painter.fillRect(QRectF(0, 0, size, size), Qt.white)

        if self.image_pixmap is not None:
            place = self.placement()
            painter.save()
            painter.translate(place.center_x, place.center_y)
            painter.rotate(place.rotation_deg)
            painter.scale(place.scale, place.scale)
            target = QRectF(-place.width / 2, -place.height / 2, place.width, place.height)
            painter.drawPixmap(target, self.image_pixmap, QRectF(self.image_pixmap.rect()))
            painter.restore()

        if self.frame_pixmap is not None:
            painter.drawPixmap(QRectF(0, 0, size, size), self.frame_pixmap,
                               QRectF(self.frame_pixmap.rect()))

        painter.resetTransform()
        painter.setClipping(False)
        if self.image_pixmap is not None:
            self._paint_handle(painter)
        painter.end()

    def _paint_handle(self, painter: QPainter):
        corners = [self.to_widget(x, y) for x, y in self.placement().corners()]
        painter.setPen(QPen(self.bounds_color, 1, Qt.DashLine))
        painter.setBrush(Qt.NoBrush)
        painter.drawPolygon(QPolygonF(corners))

        if self.interpreter.mode is GestureMode.RESIZING:
            color = self.handle_active_color
        elif self.handle_hovered:
            color = self.handle_hover_color
        else:
            color = self.handle_color
        pos = corners[2]
        size = self.handle_size
        painter.setPen(QPen(color.darker(120), 2))
        painter.setBrush(QBrush(color))
        painter.drawRect(QRectF(pos.x() - size / 2, pos.y() - size / 2, size, size))

    # Input ------------------------------------------------------------------

    def _changed(self, changed: bool):
        if changed:
            self.transform_changed.emit()
        self.update()

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.LeftButton or self.image_pixmap is None:
            event.ignore()
            return
        pos = event.position()
        x, y = self.to_logical(pos)
        if self.hit_handle(pos):
            self._changed(self.interpreter.begin_resize(self.MOUSE_ID, x, y))
        elif self.hit_image(pos):
            self._changed(self.interpreter.pointer_down(self.MOUSE_ID, x, y))
            self.setCursor(QCursor(Qt.ClosedHandCursor))
        else:
            event.ignore()
            return
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent):
        pos = event.position()
        if self.interpreter.mode is GestureMode.IDLE:
            # Just hovering - update cursor
            hovered = self.hit_handle(pos)
            if hovered != self.handle_hovered:
                self.handle_hovered = hovered
                self.update()
            if hovered:
                self.setCursor(QCursor(Qt.SizeFDiagCursor))
            elif self.hit_image(pos):
                self.setCursor(QCursor(Qt.OpenHandCursor))
            else:
                self.unsetCursor()
            return
        self._changed(self.interpreter.pointer_move(self.MOUSE_ID, *self.to_logical(pos)))

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.LeftButton:
            self.interpreter.pointer_up(self.MOUSE_ID)
            self.unsetCursor()
            self.update()

    def wheelEvent(self, event: QWheelEvent):
        """Zoom the photo around the cursor."""
        if self.image_pixmap is None:
            event.ignore()
            return
        x, y = self.to_logical(event.position())
        self._changed(self.interpreter.wheel(event.angleDelta().y(), x, y))
        event.accept()

    def keyPressEvent(self, event: QKeyEvent):
        """Arrow keys for fine positioning."""
        steps = {
            Qt.Key_Left: (-1, 0),
            Qt.Key_Right: (1, 0),
            Qt.Key_Up: (0, -1),
            Qt.Key_Down: (0, 1),
        }
        if self.image_pixmap is None or event.key() not in steps:
            super().keyPressEvent(event)
            return
        self._changed(self.interpreter.nudge(*steps[event.key()]))
        event.accept()

    def event(self, event):
        if event.type() in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd):
            if self.image_pixmap is None:
                return False
            points = [
                TouchPoint(p.id(), *self.to_logical(p.position()))
                for p in event.points()
                if p.state() != QEventPoint.State.Released
            ]
            if event.type() == QEvent.Type.TouchBegin:
                changed = self.interpreter.touch_start(points)
            elif event.type() == QEvent.Type.TouchUpdate:
                changed = self.interpreter.touch_move(points)
            else:
                changed = self.interpreter.touch_end(points)
            self._changed(changed)
            event.accept()
            return True
        if event.type() == QEvent.Type.TouchCancel:
            self.interpreter.touch_cancel()
            self.update()
            event.accept()
            return True
        return super().event(event)

    def focusOutEvent(self, event):
        # A release may never arrive once focus is gone
        self.interpreter.cancel()
        self.update()
        super().focusOutEvent(event)


class FrameEditorTab(QWidget):
    """Tab for placing a photo inside a frame template and exporting the result."""

    def __init__(self, config: Optional[EditorConfig] = None,
                 templates: Optional[Dict[str, Path]] = None):
        super().__init__()

        if config is None:
            config, loaded_templates = self._load_config()
            templates = loaded_templates if templates is None else templates
        self.config = config
        self.templates: Dict[str, Path] = templates or {}

        # Editing session
        self.state = TransformState(min_scale=config.min_scale, max_scale=config.max_scale)
        self.interpreter = GestureInterpreter(self.state, config)
        self.image_asset: Optional[ImageAsset] = None
        self.frame_asset: Optional[FrameAsset] = None
        self.current_frame_name: Optional[str] = None

        self._setup_ui()
        self._sync_controls()
        self._check_export_ready()

    def _load_config(self) -> Tuple[EditorConfig, Dict[str, Path]]:
        """Load editor settings and frame templates from config.yaml."""
        try:
            return load_config(get_config_path())
        except (ConfigError, OSError) as e:
            logger.warning("Could not load config, using defaults: %s", e)
            return EditorConfig(), {}

    def _setup_ui(self):
        """Setup the user interface."""
        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(10)

        # Left panel - Controls
        scroll_area = QScrollArea()
        scroll_area.setWidgetResizable(True)
        scroll_area.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        scroll_area.setMinimumWidth(280)
        scroll_area.setMaximumWidth(320)

        left_panel = QWidget()
        left_layout = QVBoxLayout(left_panel)
        left_layout.setSpacing(8)
        left_layout.setContentsMargins(5, 5, 5, 5)

        # Photo section
        photo_group = QGroupBox("Photo")
        photo_layout = QVBoxLayout(photo_group)
        photo_layout.setSpacing(6)
        photo_layout.setContentsMargins(8, 12, 8, 8)

        self.upload_btn = QPushButton("Upload Photo")
        self.upload_btn.setMinimumHeight(32)
        self.upload_btn.clicked.connect(self._upload_image)
        photo_layout.addWidget(self.upload_btn)

        self.image_info = QLabel("No photo loaded")
        self.image_info.setStyleSheet("font-size: 10px; color: #888;")
        self.image_info.setWordWrap(True)
        photo_layout.addWidget(self.image_info)

        left_layout.addWidget(photo_group)

        # Frame section
        frame_group = QGroupBox("Frame")
        frame_layout = QVBoxLayout(frame_group)
        frame_layout.setSpacing(6)
        frame_layout.setContentsMargins(8, 12, 8, 8)

        self.frame_combo = QComboBox()
        self.frame_combo.setMinimumHeight(28)
        self._populate_frame_combo()
        self.frame_combo.currentIndexChanged.connect(self._on_frame_changed)
        frame_layout.addWidget(self.frame_combo)

        self.import_frame_btn = QPushButton("Import Custom Frame...")
        self.import_frame_btn.setMinimumHeight(28)
        self.import_frame_btn.clicked.connect(self._import_custom_frame)
        frame_layout.addWidget(self.import_frame_btn)

        self.frame_info = QLabel("No frame selected")
        self.frame_info.setStyleSheet("font-size: 10px; color: #888;")
        self.frame_info.setWordWrap(True)
        frame_layout.addWidget(self.frame_info)

        left_layout.addWidget(frame_group)

        # Adjust section
        adjust_group = QGroupBox("Adjust")
        adjust_layout = QVBoxLayout(adjust_group)
        adjust_layout.setSpacing(6)
        adjust_layout.setContentsMargins(8, 12, 8, 8)

        zoom_row = QHBoxLayout()
        zoom_row.setSpacing(8)
        zoom_lbl = QLabel("Zoom:")
        zoom_lbl.setStyleSheet("font-size: 11px;")
        zoom_lbl.setMinimumWidth(40)
        zoom_row.addWidget(zoom_lbl)
        self.zoom_slider = QSlider(Qt.Horizontal)
        self._update_slider_range()
        self.zoom_slider.valueChanged.connect(self._on_zoom_slider)
        zoom_row.addWidget(self.zoom_slider, 1)
        self.zoom_label = QLabel("100%")
        self.zoom_label.setStyleSheet("font-size: 11px;")
        self.zoom_label.setMinimumWidth(40)
        self.zoom_label.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        zoom_row.addWidget(self.zoom_label)
        adjust_layout.addLayout(zoom_row)

        button_row = QHBoxLayout()
        self.rotate_btn = QPushButton("Rotate 90°")
        self.rotate_btn.setMinimumHeight(28)
        self.rotate_btn.clicked.connect(self._rotate)
        button_row.addWidget(self.rotate_btn)
        self.reset_btn = QPushButton("Reset")
        self.reset_btn.setMinimumHeight(28)
        self.reset_btn.clicked.connect(self._reset)
        button_row.addWidget(self.reset_btn)
        adjust_layout.addLayout(button_row)

        self.transform_info = QLabel("")
        self.transform_info.setStyleSheet("font-size: 10px; color: #888;")
        adjust_layout.addWidget(self.transform_info)

        left_layout.addWidget(adjust_group)

        # Export section
        export_group = QGroupBox("Export")
        export_layout = QVBoxLayout(export_group)
        export_layout.setSpacing(6)
        export_layout.setContentsMargins(8, 12, 8, 8)

        self.export_btn = QPushButton()
        self.export_btn.setMinimumHeight(36)
        self.export_btn.clicked.connect(self._export_image)
        export_layout.addWidget(self.export_btn)

        self.export_info = QLabel("")
        self.export_info.setStyleSheet("font-size: 10px; color: #888;")
        self.export_info.setWordWrap(True)
        export_layout.addWidget(self.export_info)

        left_layout.addWidget(export_group)
        left_layout.addStretch()
        scroll_area.setWidget(left_panel)

        # Right panel - Preview
        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(10, 5, 10, 10)
        right_layout.setSpacing(8)

        preview_label = QLabel("Preview")
        preview_label.setStyleSheet("font-size: 14px; font-weight: bold;")
        right_layout.addWidget(preview_label)

        self.preview_view = FrameEditorView(self.interpreter)
        self.preview_view.setMinimumSize(400, 400)
        self.preview_view.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.preview_view.transform_changed.connect(self._sync_controls)
        right_layout.addWidget(self.preview_view, 1)

        preview_help = QLabel("Drag to move | Scroll or pinch to zoom | Corner handle to resize | Arrow keys for fine adjust")
        preview_help.setStyleSheet("font-size: 10px; color: #666;")
        preview_help.setAlignment(Qt.AlignCenter)
        right_layout.addWidget(preview_help)

        layout.addWidget(scroll_area, 0)
        layout.addWidget(right_panel, 1)

    def _populate_frame_combo(self):
        self.frame_combo.blockSignals(True)
        self.frame_combo.clear()
        self.frame_combo.addItem("Select Frame...", None)
        for name in sorted(self.templates):
            self.frame_combo.addItem(name, name)
        self.frame_combo.blockSignals(False)

    def _update_slider_range(self):
        self.zoom_slider.blockSignals(True)
        self.zoom_slider.setMinimum(max(1, round(self.config.min_scale * 100)))
        self.zoom_slider.setMaximum(round(self.config.max_scale * 100))
        self.zoom_slider.blockSignals(False)

    # Loading ----------------------------------------------------------------

    def _upload_image(self):
        """Open file dialog to upload the photo."""
        file_path, _ = QFileDialog.getOpenFileName(self, "Upload Photo", "", IMAGE_FILTER)
        if not file_path:
            return
        if not self.load_image_file(file_path):
            QMessageBox.warning(self, "Upload Failed", f"Could not read an image from:\n{file_path}")

    def load_image_file(self, file_path) -> bool:
        """Decode a photo and reset the transform to fit it. Returns False on decode failure."""
        asset = ImageAsset.from_source(Path(file_path))
        if not asset.is_ready:
            self.image_info.setText(f"Could not load {Path(file_path).name}")
            return False

        self.image_asset = asset
        img_w, img_h = asset.natural_size
        self.interpreter.reset(img_w, img_h)
        self.preview_view.set_image(asset.image)

        self.image_info.setText(f"Loaded: {asset.name}\nOriginal: {img_w}x{img_h}")
        logger.info("Loaded photo %s (%dx%d)", file_path, img_w, img_h)
        self._sync_controls()
        self._check_export_ready()
        return True

    def _on_frame_changed(self, index: int):
        """Handle frame template selection change."""
        name = self.frame_combo.itemData(index)
        if name is None:
            return
        frame_path = self.templates.get(name)
        if frame_path is None or not frame_path.exists():
            self.frame_info.setText(f"Frame file not found: {frame_path}")
            return
        self.load_frame_file(frame_path, name)

    def _import_custom_frame(self):
        """Import a custom frame image."""
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Import Custom Frame", str(get_frames_dir()), IMAGE_FILTER
        )
        if not file_path:
            return
        if not self.load_frame_file(file_path):
            QMessageBox.warning(self, "Import Failed", f"Could not read a frame image from:\n{file_path}")
        else:
            self.frame_combo.blockSignals(True)
            self.frame_combo.setCurrentIndex(0)
            self.frame_combo.blockSignals(False)

    def load_frame_file(self, file_path, name: Optional[str] = None) -> bool:
        """Swap the frame overlay. The photo's transform is left untouched."""
        asset = FrameAsset.from_source(Path(file_path), name)
        if not asset.is_ready:
            self.frame_info.setText(f"Could not load {Path(file_path).name}")
            return False

        self.frame_asset = asset
        self.current_frame_name = asset.name
        self.preview_view.set_frame(asset.image)
        frame_w, frame_h = asset.natural_size
        note = "" if frame_w == frame_h else " (will be stretched to square)"
        self.frame_info.setText(f"Frame: {asset.name}{note}")
        self._check_export_ready()
        return True

    # Adjustments ------------------------------------------------------------

    def _on_zoom_slider(self, value: int):
        if self.interpreter.set_zoom(value / 100.0):
            self.preview_view.update()
        self._sync_controls()

    def _rotate(self):
        self.interpreter.rotate()
        self.preview_view.update()
        self._sync_controls()

    def _reset(self):
        if self.image_asset is None:
            return
        self.interpreter.reset(*self.image_asset.natural_size)
        self.preview_view.update()
        self._sync_controls()

    def _sync_controls(self):
        """Update the zoom slider and transform labels from the state."""
        # Block signals to prevent feedback loop when updating the slider
        self.zoom_slider.blockSignals(True)
        self.zoom_slider.setValue(round(self.state.scale * 100))
        self.zoom_slider.blockSignals(False)
        self.zoom_label.setText(f"{self.state.scale * 100:.0f}%")
        self.transform_info.setText(
            f"Position: ({self.state.translate_x:.0f}, {self.state.translate_y:.0f})  "
            f"Rotation: {self.state.rotation_deg}°"
        )

    def apply_config(self, config: EditorConfig):
        """Use new editor settings without losing the current placement."""
        self.config = config
        self.state.min_scale = config.min_scale
        self.state.max_scale = config.max_scale
        self.state.set_scale(self.state.scale)
        self.interpreter = GestureInterpreter(self.state, config)
        self.preview_view.set_interpreter(self.interpreter)
        self._update_slider_range()
        self._sync_controls()
        self._check_export_ready()

    # Export -----------------------------------------------------------------

    def _check_export_ready(self):
        """Check if export is ready and update button state."""
        size = self.config.export_size
        self.export_btn.setText(f"Export Image ({size}x{size})")
        has_image = self.image_asset is not None and self.image_asset.is_ready
        has_frame = self.frame_asset is not None and self.frame_asset.is_ready
        ready = has_image and has_frame

        self.export_btn.setEnabled(ready)
        if ready:
            self.export_info.setText(f"Ready to export at {size}x{size}")
        elif not has_image:
            self.export_info.setText("Upload a photo to export")
        else:
            self.export_info.setText("Select a frame to export")

    def export_to(self, file_path) -> Path:
        """Write the composite PNG. Raises AssetNotReadyError if an asset is missing."""
        return compositor.save_png(Path(file_path), self.state, self.image_asset,
                                   self.frame_asset, self.config)

    def _export_image(self):
        """Export the final image with the frame at full resolution."""
        if not self.export_btn.isEnabled():
            return

        file_path, _ = QFileDialog.getSaveFileName(
            self, "Export Image", self.config.export_filename, "PNG Image (*.png);;All Files (*)"
        )
        if not file_path:
            return

        try:
            self.export_to(file_path)
        except AssetNotReadyError as e:
            QMessageBox.warning(self, "Not Ready", str(e))
            return
        except OSError as e:
            logger.exception("Export to %s failed", file_path)
            QMessageBox.critical(self, "Export Error", f"Failed to export image:\n{e}")
            return

        size = self.config.export_size
        QMessageBox.information(
            self,
            "Export Complete",
            f"Image exported successfully at {size}x{size} to:\n{file_path}"
        )
