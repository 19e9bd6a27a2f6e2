from __future__ import annotations

import sys
from pathlib import Path


def launch_gui(startup_file: Path | None = None) -> None:
    from PyQt6.QtWidgets import QApplication

    from thumbcanvas.gui.editor import ThumbnailEditorWindow

    app = QApplication.instance() or QApplication(sys.argv)
    window = ThumbnailEditorWindow(startup_file=startup_file)
    window.show()
    app.exec()
