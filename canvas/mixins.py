"""
canvas/mixins.py

Mixin for graphics items that represent a field: id linking and gesture
tracking.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from PyQt6.QtWidgets import QGraphicsItem

from canvas.events import ManipulationFinished, SceneEvent
from models import FIELD_ID_KEY


Geometry = Tuple[float, float, float, float]


class FieldLinkMixin:
    """
    Links a graphics item to a field id and reports finished gestures.

    The item calls ``_begin_gesture()`` on mouse press and ``_end_gesture()``
    on release.  Only the end of a gesture that changed the geometry is
    posted, never the intermediate frames.
    """

    def __init__(self, field_id: str = "", on_event: Optional[Callable[[SceneEvent], None]] = None):
        self.field_id = field_id
        self.on_event = on_event
        self._geometry_before_gesture: Optional[Geometry] = None

    def _post(self, event: SceneEvent):
        if self.on_event:
            self.on_event(event)

    def set_field_id(self, field_id: str):
        self.field_id = field_id
        self.setData(FIELD_ID_KEY, field_id)

    def current_geometry(self) -> Geometry:
        """Scene-space ``(left, top, width, height)`` of the item."""
        p = self.pos()
        r = self.rect()
        return (p.x() + r.left(), p.y() + r.top(), r.width(), r.height())

    @property
    def in_gesture(self) -> bool:
        return self._geometry_before_gesture is not None

    def _begin_gesture(self):
        """Snapshot geometry before a move/resize."""
        self._geometry_before_gesture = self.current_geometry()

    def _end_gesture(self):
        """Post ManipulationFinished if the geometry changed."""
        before = self._geometry_before_gesture
        if before is None:
            return
        self._geometry_before_gesture = None
        after = self.current_geometry()
        if after != before:
            self._post(ManipulationFinished(self.field_id, *after))

    def _cancel_gesture(self):
        self._geometry_before_gesture = None


def field_id_of(item: QGraphicsItem) -> Optional[str]:
    """Field id of *item* or of its nearest linked ancestor."""
    while item is not None:
        if isinstance(item, FieldLinkMixin):
            return item.field_id
        item = item.parentItem()
    return None
