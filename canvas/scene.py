"""
canvas/scene.py

QGraphicsScene for one document page: the page raster as background and one
field item per field on the page.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional

from PyQt6.QtCore import Qt, QRectF
from PyQt6.QtGui import QImage, QPixmap, QTransform
from PyQt6.QtWidgets import QGraphicsPixmapItem, QGraphicsScene

from canvas.events import PlaceFieldRequested, SceneEvent, SelectionChanged
from canvas.items import FieldItem, create_item
from canvas.mixins import field_id_of
from canvas.reconcile import CreateOp, RemoveOp, SceneObjectSpec, SceneOp, UpdateOp
from coordinates import Dimensions
from debug_trace import trace


class FieldScene(QGraphicsScene):
    """
    Scene for one page.

    Items and the scene itself report user actions through *on_event*; the
    scene never talks to the document store directly.
    """

    def __init__(self, page: int, on_event: Optional[Callable[[SceneEvent], None]] = None, parent=None):
        super().__init__(parent)
        self.page = page
        self.on_event = on_event
        self.objects: Dict[str, FieldItem] = {}
        self.extent: Optional[Dimensions] = None
        self.field_tool: Optional[str] = None
        self.geometry_locked = False
        self._syncing = False

        self._background = QGraphicsPixmapItem()
        self._background.setZValue(-1)
        self._background.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self.addItem(self._background)

        self.selectionChanged.connect(self._on_selection_changed)

    def _post(self, event: SceneEvent):
        if self.on_event:
            self.on_event(event)

    # ---- background / viewport ----

    def set_background(self, image: QImage) -> None:
        """Show *image* as the page and size the scene to it."""
        self._background.setPixmap(QPixmap.fromImage(image))
        self.extent = Dimensions(float(image.width()), float(image.height()))
        self.setSceneRect(QRectF(0, 0, image.width(), image.height()))

    # ---- objects ----

    def snapshot(self) -> Dict[str, SceneObjectSpec]:
        """What every field item shows, keyed by field id."""
        return {fid: item.spec() for fid, item in self.objects.items()}

    def gesture_field_id(self) -> Optional[str]:
        """Id of the item being moved, resized or edited, if any."""
        for fid, item in self.objects.items():
            if item.in_gesture:
                return fid
        return None

    def apply_ops(self, ops: Iterable[SceneOp]) -> None:
        """Apply reconciliation ops to the items."""
        self._syncing = True
        try:
            for op in ops:
                if isinstance(op, RemoveOp):
                    self._remove_object(op.field_id)
                elif isinstance(op, CreateOp):
                    self._remove_object(op.spec.field_id)
                    item = create_item(op.spec, self.on_event)
                    item.set_locked(self.geometry_locked)
                    self.addItem(item)
                    self.objects[op.spec.field_id] = item
                elif isinstance(op, UpdateOp):
                    item = self.objects.get(op.spec.field_id)
                    if item is not None:
                        item.apply_spec(op.spec)
        finally:
            self._syncing = False
        self.update()

    def _remove_object(self, field_id: str) -> None:
        item = self.objects.pop(field_id, None)
        if item is not None:
            trace(f"page {self.page}: removing {field_id}", "SCENE")
            self.removeItem(item)

    def clear_objects(self) -> None:
        """Remove every field item (the background stays)."""
        self.apply_ops([RemoveOp(fid) for fid in list(self.objects)])

    # ---- modes ----

    def set_field_tool(self, field_type: Optional[str]) -> None:
        """Arm (or disarm with None) click-to-place for *field_type*."""
        self.field_tool = field_type

    def set_geometry_locked(self, locked: bool) -> None:
        self.geometry_locked = locked
        for item in self.objects.values():
            item.set_locked(locked)

    # ---- selection ----

    def selected_field_id(self) -> Optional[str]:
        for item in self.selectedItems():
            fid = field_id_of(item)
            if fid is not None:
                return fid
        return None

    def select_field(self, field_id: Optional[str]) -> None:
        """Select the item for *field_id* (or nothing) without reporting it."""
        self._syncing = True
        try:
            target = self.objects.get(field_id) if field_id else None
            for item in self.selectedItems():
                if item is not target:
                    item.setSelected(False)
            if target is not None and not target.isSelected():
                target.setSelected(True)
        finally:
            self._syncing = False

    def _on_selection_changed(self):
        if self._syncing:
            return
        self._post(SelectionChanged(self.selected_field_id()))

    # ---- mouse ----

    def mousePressEvent(self, event):
        if self.field_tool and event.button() == Qt.MouseButton.LeftButton:
            views = self.views()
            transform = views[0].transform() if views else QTransform()
            if field_id_of(self.itemAt(event.scenePos(), transform)) is None:
                p = event.scenePos()
                self._post(PlaceFieldRequested(self.field_tool, p.x(), p.y()))
                event.accept()
                return
        super().mousePressEvent(event)
