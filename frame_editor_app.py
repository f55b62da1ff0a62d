"""
Frame Editor application entry point.
"""

import logging
import sys

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QMainWindow

from app_paths import get_config_path
from frame_editor_tab import FrameEditorTab
from options_dialog import OptionsDialog

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Frame Editor")
        self.resize(1200, 800)

        self.editor_tab = FrameEditorTab()
        self.setCentralWidget(self.editor_tab)

        settings_action = QAction("Settings...", self)
        settings_action.triggered.connect(self._open_settings)
        self.menuBar().addMenu("File").addAction(settings_action)

    def _open_settings(self):
        dialog = OptionsDialog(self, self.editor_tab.config, get_config_path())
        if dialog.exec():
            self.editor_tab.apply_config(dialog.config_value)
            logger.info("Applied new editor settings")


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
