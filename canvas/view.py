"""
canvas/view.py

QGraphicsView showing one page scene at its raster size.
"""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QFrame, QGraphicsView

from canvas.scene import FieldScene


class PageView(QGraphicsView):
    """
    View for one page.

    The view is sized to the page raster and never scrolls; zoom is done by
    re-rasterizing at another scale so field items are rebuilt against the
    new extent.  Escape asks for the field tool to be disarmed through
    ``tool_cancelled``; the owner decides which scenes that applies to.
    """

    tool_cancelled = pyqtSignal()

    def __init__(self, scene: FieldScene, parent=None):
        super().__init__(scene, parent)
        self.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        self.setDragMode(QGraphicsView.DragMode.NoDrag)
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        scene.sceneRectChanged.connect(self.fit_to_scene)

    def page_scene(self) -> FieldScene:
        return self.scene()

    def fit_to_scene(self, *_):
        """Resize the widget to the page raster."""
        r = self.sceneRect()
        if not r.isEmpty():
            self.setFixedSize(int(r.width()), int(r.height()))

    def set_field_tool_cursor(self, armed: bool):
        if armed:
            self.viewport().setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.viewport().unsetCursor()

    def wheelEvent(self, event):
        # Let the enclosing scroll area scroll the pages
        event.ignore()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self.page_scene().field_tool:
            self.tool_cancelled.emit()
            event.accept()
            return
        super().keyPressEvent(event)
