"""
canvas/items.py

Graphics items for fields: one QGraphicsRectItem subclass per scene kind
(placeholder rectangle, image, editable text), all movable and resizable
through corner/side handles.
"""

from __future__ import annotations

from typing import Dict, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, QLineF
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen, QPixmap, QTextCursor
from PyQt6.QtWidgets import (
    QGraphicsItem,
    QGraphicsPixmapItem,
    QGraphicsRectItem,
    QGraphicsSimpleTextItem,
    QGraphicsTextItem,
    QStyle,
    QStyleOptionGraphicsItem,
)

from canvas.events import TextEdited
from canvas.mixins import FieldLinkMixin
from canvas.reconcile import SceneKind, SceneObjectSpec
from debug_trace import trace
from models import FIELD_ID_KEY, FieldType
from settings import get_settings
from utils import DataUrlError, hex_to_qcolor, parse_data_url


# =============================================================================
# Cached canvas settings - initialized once at first access to avoid
# repeated settings lookups during paint operations.
# =============================================================================

class _CachedCanvasSettings:
    """Cache for canvas settings values to avoid repeated lookups during paint."""

    _instance = None

    def __init__(self):
        s = get_settings().settings.canvas
        self.handle_size = s.handles.size
        self.hit_distance = s.handles.hit_distance
        self.min_size = s.min_size
        self.handle_border_color = hex_to_qcolor(s.handles.border_color, QColor("#0071E3"))
        self.handle_fill_color = hex_to_qcolor(s.handles.fill_color, QColor("#FFFFFF"))
        self.selection_color = hex_to_qcolor(s.selection_color, QColor("#0071E3"))
        self.border_color = hex_to_qcolor(s.colors.border, QColor("#0071E3"))
        self.fill_colors = {
            FieldType.SIGNATURE: hex_to_qcolor(s.colors.signature, QColor(0, 113, 227, 34)),
            FieldType.TEXT: hex_to_qcolor(s.colors.text, QColor(52, 199, 89, 34)),
            FieldType.DATE: hex_to_qcolor(s.colors.date, QColor(255, 149, 0, 34)),
            FieldType.STAMP: hex_to_qcolor(s.colors.stamp, QColor(175, 82, 222, 34)),
        }

    @classmethod
    def get(cls) -> "_CachedCanvasSettings":
        """Get the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls):
        """Drop the cache so the next access re-reads settings."""
        cls._instance = None


def draw_handles(painter: QPainter, handle_positions: Dict[str, QPointF], handle_size: Optional[float] = None):
    """Draw resize handles at the given positions."""
    cached = _CachedCanvasSettings.get()
    if handle_size is None:
        handle_size = cached.handle_size
    painter.setPen(QPen(cached.handle_border_color, 1))
    painter.setBrush(QBrush(cached.handle_fill_color))

    half = handle_size / 2
    for pos in handle_positions.values():
        painter.drawRect(QRectF(pos.x() - half, pos.y() - half, handle_size, handle_size))


def shape_with_handles(base_shape: QPainterPath, handle_positions: Dict[str, QPointF], handle_size: Optional[float] = None) -> QPainterPath:
    """Create a shape path that includes handle hit areas."""
    if handle_size is None:
        handle_size = _CachedCanvasSettings.get().hit_distance
    result = QPainterPath(base_shape)
    half = handle_size / 2
    for pos in handle_positions.values():
        result.addRect(QRectF(pos.x() - half, pos.y() - half, handle_size, handle_size))
    return result


_TYPE_LABELS = {
    FieldType.SIGNATURE: "Signature",
    FieldType.TEXT: "Text",
    FieldType.DATE: "Date",
    FieldType.STAMP: "Stamp",
}


class _InlineTextItem(QGraphicsTextItem):
    """Text child that reports back to its field item when editing ends."""

    def __init__(self, owner: "FieldItem"):
        super().__init__(owner)
        self._owner = owner
        self.set_editable(False)

    def set_editable(self, editable: bool):
        if editable:
            self.setTextInteractionFlags(Qt.TextInteractionFlag.TextEditorInteraction)
            self.setAcceptedMouseButtons(Qt.MouseButton.LeftButton)
        else:
            self.setTextInteractionFlags(Qt.TextInteractionFlag.NoTextInteraction)
            # Clicks fall through to the field item
            self.setAcceptedMouseButtons(Qt.MouseButton.NoButton)

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        self._owner.finish_text_edit()

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter, Qt.Key.Key_Escape):
            self.clearFocus()
            event.accept()
            return
        super().keyPressEvent(event)


class FieldItem(QGraphicsRectItem, FieldLinkMixin):
    """
    Base item for a field: a rectangle in scene pixels with eight resize
    handles.  Subclasses fill the rectangle with their kind's content.
    """

    KIND: str = ""

    def __init__(self, spec: SceneObjectSpec, on_event=None):
        QGraphicsRectItem.__init__(self, QRectF(0, 0, spec.width, spec.height))
        FieldLinkMixin.__init__(self, spec.field_id, on_event)
        trace(f"{type(self).__name__}.__init__: id={spec.field_id}", "ITEM_INIT")

        self._spec = spec
        self._locked = False
        self._active_handle: Optional[str] = None
        self._resizing = False
        self._press_scene: Optional[QPointF] = None
        self._start_pos: Optional[QPointF] = None
        self._start_rect: Optional[QRectF] = None
        self._editor: Optional[_InlineTextItem] = None
        self._editing = False

        self.setPos(QPointF(spec.left, spec.top))
        self.setData(FIELD_ID_KEY, spec.field_id)
        self.setAcceptHoverEvents(True)
        self.setFlags(
            QGraphicsItem.GraphicsItemFlag.ItemIsSelectable
            | QGraphicsItem.GraphicsItemFlag.ItemIsMovable
            | QGraphicsItem.GraphicsItemFlag.ItemSendsGeometryChanges
        )

        self._apply_pen_brush()
        self._build_content()
        self._refresh_content()

    # ---- spec <-> item ----

    def spec(self) -> SceneObjectSpec:
        """What this item shows right now, with its live geometry."""
        left, top, width, height = self.current_geometry()
        s = self._spec
        return SceneObjectSpec(
            field_id=self.field_id,
            kind=self.KIND,
            field_type=s.field_type,
            required=s.required,
            left=left,
            top=top,
            width=width,
            height=height,
            value=s.value,
        )

    def apply_spec(self, spec: SceneObjectSpec) -> None:
        """Move/resize to *spec* and refresh the content if it changed."""
        content_changed = (
            spec.value != self._spec.value
            or spec.required != self._spec.required
            or spec.field_type != self._spec.field_type
        )
        self._spec = spec
        self._cancel_gesture()
        self.setPos(QPointF(spec.left, spec.top))
        self.setRect(QRectF(0, 0, spec.width, spec.height))
        if content_changed:
            self._apply_pen_brush()
            self._refresh_content()

    @property
    def field_type(self) -> str:
        return self._spec.field_type

    @property
    def in_gesture(self) -> bool:
        return self._geometry_before_gesture is not None or self._editing

    def set_locked(self, locked: bool) -> None:
        """Lock geometry (no move or resize). Selection stays possible."""
        self._locked = locked
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIsMovable, not locked)
        self.prepareGeometryChange()
        self.update()

    # ---- content hooks ----

    def _build_content(self):
        """Create child items. Called once."""

    def _refresh_content(self):
        """Update child items from ``self._spec``."""

    def _layout_content(self):
        """Fit child items to the current rect."""

    def _apply_pen_brush(self):
        cached = _CachedCanvasSettings.get()
        pen = QPen(cached.border_color, 1)
        self.setPen(pen)
        self.setBrush(QBrush(Qt.BrushStyle.NoBrush))

    def setRect(self, r: QRectF):
        super().setRect(r)
        self._layout_content()

    # ---- inline text editing ----

    def _font_for_height(self, height: float) -> QFont:
        font = QFont("Helvetica")
        font.setPixelSize(max(6, int(height * 0.6)))
        return font

    def can_edit_text(self) -> bool:
        return self._spec.field_type in FieldType.TEXT_TYPES

    def begin_text_edit(self) -> None:
        """Make the text editable in place and give it focus."""
        if not self.can_edit_text() or self._editing:
            return
        if self._editor is None:
            self._editor = _InlineTextItem(self)
            self._layout_content()
        self._editing = True
        self._on_edit_started()
        self._editor.set_editable(True)
        self._editor.setFocus(Qt.FocusReason.MouseFocusReason)
        cursor = self._editor.textCursor()
        cursor.select(QTextCursor.SelectionType.Document)
        self._editor.setTextCursor(cursor)

    def finish_text_edit(self) -> None:
        """End inline editing and post the new text if it changed."""
        if not self._editing or self._editor is None:
            return
        self._editing = False
        self._editor.set_editable(False)
        text = self._editor.toPlainText().strip()
        self._on_edit_finished(text)
        if text != (self._spec.value or ""):
            self._post(TextEdited(self.field_id, text))

    def _on_edit_started(self):
        pass

    def _on_edit_finished(self, text: str):
        pass

    def mouseDoubleClickEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.can_edit_text():
            self.begin_text_edit()
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    # ---- handles ----

    def _should_paint_handles(self) -> bool:
        return self.isSelected() and not self._locked

    def _handle_points_scene(self) -> Dict[str, QPointF]:
        """Return handle positions in scene coordinates (corners and sides)."""
        p = self.pos()
        return {k: QPointF(p.x() + v.x(), p.y() + v.y()) for k, v in self._handle_points_local().items()}

    def _handle_points_local(self) -> Dict[str, QPointF]:
        """Return handle positions in local coordinates for painting."""
        r = self.rect()
        cx = r.left() + r.width() / 2
        cy = r.top() + r.height() / 2
        return {
            "tl": QPointF(r.left(), r.top()),
            "tr": QPointF(r.right(), r.top()),
            "bl": QPointF(r.left(), r.bottom()),
            "br": QPointF(r.right(), r.bottom()),
            "t":  QPointF(cx, r.top()),
            "b":  QPointF(cx, r.bottom()),
            "l":  QPointF(r.left(), cy),
            "r":  QPointF(r.right(), cy),
        }

    def _hit_test_handle(self, scene_pt: QPointF) -> Optional[str]:
        if not self._should_paint_handles():
            return None
        hit_dist = _CachedCanvasSettings.get().hit_distance
        for k, hp in self._handle_points_scene().items():
            if QLineF(scene_pt, hp).length() <= hit_dist:
                return k
        return None

    def hoverMoveEvent(self, event):
        h = self._hit_test_handle(event.scenePos())
        if h in ("tl", "br"):
            self.setCursor(Qt.CursorShape.SizeFDiagCursor)
        elif h in ("tr", "bl"):
            self.setCursor(Qt.CursorShape.SizeBDiagCursor)
        elif h in ("t", "b"):
            self.setCursor(Qt.CursorShape.SizeVerCursor)
        elif h in ("l", "r"):
            self.setCursor(Qt.CursorShape.SizeHorCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)
        super().hoverMoveEvent(event)

    # ---- mouse: move and resize gestures ----

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            scene = self.scene()
            if scene is not None and not self.isSelected():
                scene.clearSelection()
            h = self._hit_test_handle(event.scenePos())
            if h:
                self._begin_gesture()
                self._active_handle = h
                self._resizing = True
                self._press_scene = event.scenePos()
                self._start_pos = QPointF(self.pos())
                self._start_rect = QRectF(self.rect())
                event.accept()
                return
            if not self._locked:
                self._begin_gesture()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._resizing and self._active_handle and self._press_scene and self._start_pos and self._start_rect:
            cur = event.scenePos()
            dx = cur.x() - self._press_scene.x()
            dy = cur.y() - self._press_scene.y()

            left = self._start_pos.x()
            top = self._start_pos.y()
            right = left + self._start_rect.width()
            bottom = top + self._start_rect.height()

            if "l" in self._active_handle:
                left += dx
            if "r" in self._active_handle:
                right += dx
            if "t" in self._active_handle:
                top += dy
            if "b" in self._active_handle:
                bottom += dy

            min_size = _CachedCanvasSettings.get().min_size
            if (right - left) < min_size:
                if "l" in self._active_handle:
                    left = right - min_size
                else:
                    right = left + min_size
            if (bottom - top) < min_size:
                if "t" in self._active_handle:
                    top = bottom - min_size
                else:
                    bottom = top + min_size

            self.setPos(QPointF(left, top))
            self.setRect(QRectF(0, 0, right - left, bottom - top))
            event.accept()
            return

        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if self._resizing:
            self._resizing = False
            self._active_handle = None
            self._press_scene = None
            self._start_pos = None
            self._start_rect = None
            self._end_gesture()
            event.accept()
            return
        super().mouseReleaseEvent(event)
        self._end_gesture()

    # ---- painting ----

    def shape(self) -> QPainterPath:
        """Return shape including handle areas when selected."""
        base = super().shape()
        if self._should_paint_handles():
            return shape_with_handles(base, self._handle_points_local())
        return base

    def boundingRect(self) -> QRectF:
        """Expand bounding rect to include resize handles."""
        r = super().boundingRect()
        margin = _CachedCanvasSettings.get().handle_size / 2 + 1
        return r.adjusted(-margin, -margin, margin, margin)

    def paint(self, painter: QPainter, option, widget=None):
        # Suppress the default selection rectangle
        my_option = QStyleOptionGraphicsItem(option)
        my_option.state &= ~QStyle.StateFlag.State_Selected
        super().paint(painter, my_option, widget)

        if self.isSelected():
            painter.setPen(QPen(_CachedCanvasSettings.get().selection_color, 1, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(self.rect())
        if self._should_paint_handles():
            draw_handles(painter, self._handle_points_local())

    def itemChange(self, change, value):
        out = super().itemChange(change, value)
        if change == QGraphicsItem.GraphicsItemChange.ItemSelectedHasChanged:
            # Update shape when selection changes to include/exclude handle areas
            self.prepareGeometryChange()
        return out


class PlaceholderFieldItem(FieldItem):
    """Tinted, dashed rectangle with the field type as label."""

    KIND = SceneKind.PLACEHOLDER

    def _apply_pen_brush(self):
        cached = _CachedCanvasSettings.get()
        pen = QPen(cached.border_color, 1)
        if self._spec.required:
            pen.setStyle(Qt.PenStyle.DashLine)
        self.setPen(pen)
        fill = cached.fill_colors.get(self._spec.field_type, QColor(0, 0, 0, 0))
        self.setBrush(QBrush(fill))

    def _build_content(self):
        self._label_item = QGraphicsSimpleTextItem(self)
        self._label_item.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self._label_item.setBrush(QBrush(_CachedCanvasSettings.get().border_color))

    def _refresh_content(self):
        label = _TYPE_LABELS.get(self._spec.field_type, self._spec.field_type)
        if self._spec.required:
            label += " *"
        self._label_item.setText(label)
        self._layout_content()

    def _layout_content(self):
        r = self.rect()
        font = self._font_for_height(r.height())
        font.setPixelSize(min(font.pixelSize(), 13))
        self._label_item.setFont(font)
        br = self._label_item.boundingRect()
        self._label_item.setPos(4, max(0.0, (r.height() - br.height()) / 2))
        if self._editor is not None:
            self._editor.setFont(self._font_for_height(r.height()))
            self._editor.setTextWidth(max(10.0, r.width()))
            self._editor.setPos(0, 0)

    def _on_edit_started(self):
        self._label_item.setVisible(False)

    def _on_edit_finished(self, text: str):
        if not text and self._editor is not None:
            self._editor.setParentItem(None)
            if self._editor.scene() is not None:
                self._editor.scene().removeItem(self._editor)
            self._editor = None
            self._label_item.setVisible(True)


class ImageFieldItem(FieldItem):
    """Signature/stamp image stretched over the field rectangle."""

    KIND = SceneKind.IMAGE

    def _build_content(self):
        self._pixmap = QPixmap()
        self._pixmap_item = QGraphicsPixmapItem(self)
        self._pixmap_item.setAcceptedMouseButtons(Qt.MouseButton.NoButton)
        self._pixmap_item.setTransformationMode(Qt.TransformationMode.SmoothTransformation)

    def _refresh_content(self):
        self._pixmap = QPixmap()
        try:
            _, payload = parse_data_url(self._spec.value or "")
        except DataUrlError as e:
            trace(f"image decode failed for {self.field_id}: {e}", "ITEM")
        else:
            self._pixmap.loadFromData(payload)
        self._layout_content()

    def _layout_content(self):
        r = self.rect()
        if self._pixmap.isNull() or r.width() < 1 or r.height() < 1:
            self._pixmap_item.setPixmap(QPixmap())
            return
        self._pixmap_item.setPixmap(self._pixmap.scaled(
            int(round(r.width())),
            int(round(r.height())),
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))
        self._pixmap_item.setPos(0, 0)


class TextFieldItem(FieldItem):
    """Text/date value, editable in place on double click."""

    KIND = SceneKind.EDITABLE_TEXT

    def _build_content(self):
        self._editor = _InlineTextItem(self)
        self._editor.setDefaultTextColor(QColor(Qt.GlobalColor.black))

    def _refresh_content(self):
        if not self._editing:
            self._editor.setPlainText(self._spec.value or "")
        self._layout_content()

    def _layout_content(self):
        r = self.rect()
        self._editor.setFont(self._font_for_height(r.height()))
        self._editor.setTextWidth(max(10.0, r.width()))
        self._editor.setPos(0, max(0.0, (r.height() - self._editor.boundingRect().height()) / 2))


ITEM_CLASSES = {
    SceneKind.PLACEHOLDER: PlaceholderFieldItem,
    SceneKind.IMAGE: ImageFieldItem,
    SceneKind.EDITABLE_TEXT: TextFieldItem,
}


def create_item(spec: SceneObjectSpec, on_event=None) -> FieldItem:
    """Build the item class for ``spec.kind``."""
    return ITEM_CLASSES[spec.kind](spec, on_event)
