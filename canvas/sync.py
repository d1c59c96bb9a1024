"""
canvas/sync.py

Per-page synchronization between the document store and a FieldScene.

Store -> scene: every ``session_changed`` triggers ``reconcile()``, which
diffs the page's fields against the scene snapshot and applies the ops.
The item being dragged/resized/edited is passed as the active id so an
update can't snap it back under the pointer.

Scene -> store: items and the scene post events (see ``canvas.events``) to a
queue that is drained on the next turn of the event loop.  Only finished
gestures are posted, so intermediate drag frames never reach the store.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from canvas.events import (
    ManipulationFinished,
    PlaceFieldRequested,
    SceneEvent,
    SelectionChanged,
    TextEdited,
)
from canvas.reconcile import SceneOp, reconcile
from canvas.scene import FieldScene
from coordinates import Point, from_viewport, normalize_rect
from debug_trace import trace, trace_call
from document.rasterizer import PageRaster, PageRasterizer
from models import AppMode, create_field
from settings import get_settings
from store.document_store import DocumentSession, DocumentStore

log = logging.getLogger(__name__)


class PageSyncEngine(QObject):
    """
    Owns the FieldScene of one page and keeps it in sync with the store.

    Signals:
        field_placed(str): Emitted with the new field id after a
            click-to-place added a field
    """

    field_placed = pyqtSignal(str)

    def __init__(self, store: DocumentStore, page: int, rasterizer: Optional[PageRasterizer] = None, parent=None):
        super().__init__(parent)
        self.store = store
        self.page = page
        self.scene = FieldScene(page, on_event=self.post_event)
        self._rasterizer = rasterizer
        self._events: Deque[SceneEvent] = deque()
        self._drain_scheduled = False
        self._reconciling = False
        self._reconcile_again = False
        self._disposed = False

        store.session_changed.connect(self._on_session_changed)
        if rasterizer is not None:
            rasterizer.raster_ready.connect(self._on_raster_ready)
            rasterizer.raster_failed.connect(self._on_raster_failed)
        self.scene.set_geometry_locked(store.session.mode == AppMode.SIGNER)

    @property
    def extent(self):
        return self.scene.extent

    # ---- viewport ----

    def request_raster(self, scale: Optional[float] = None) -> None:
        """Ask the rasterizer for this page at *scale* (default from settings)."""
        doc = self.store.session.document
        if self._rasterizer is None or doc is None or self._disposed:
            return
        if scale is None:
            scale = get_settings().settings.canvas.render_scale
        self._rasterizer.request(doc.data, self.page, scale)

    def _on_raster_ready(self, page: int, raster: PageRaster) -> None:
        if page == self.page and not self._disposed:
            self.set_viewport(raster)

    def _on_raster_failed(self, page: int, message: str) -> None:
        if page == self.page:
            log.error("Page %d could not be rendered: %s", page, message.splitlines()[0] if message else "")

    @trace_call("SYNC")
    def set_viewport(self, raster: PageRaster) -> None:
        """Install a new page raster and rebuild every item against its extent."""
        self.scene.clear_objects()
        self.scene.set_background(raster.to_qimage())
        self.reconcile()

    def dispose(self) -> None:
        """Detach from the store, cancel rasterization and drop all items."""
        if self._disposed:
            return
        self._disposed = True
        self._events.clear()
        try:
            self.store.session_changed.disconnect(self._on_session_changed)
        except TypeError:
            pass
        if self._rasterizer is not None:
            self._rasterizer.cancel(self.page)
            try:
                self._rasterizer.raster_ready.disconnect(self._on_raster_ready)
                self._rasterizer.raster_failed.disconnect(self._on_raster_failed)
            except TypeError:
                pass
        self.scene.clear_objects()

    # ---- store -> scene ----

    def _on_session_changed(self, session: DocumentSession) -> None:
        self.scene.set_geometry_locked(session.mode == AppMode.SIGNER)
        self.reconcile()

    def set_field_tool(self, field_type: Optional[str]) -> None:
        """Arm click-to-place for *field_type*; None returns to selection."""
        self.scene.set_field_tool(field_type)

    def reconcile(self) -> List[SceneOp]:
        """
        Bring the scene in line with the store and mirror the selection.

        Re-entrant calls (a store change raised while ops are applied) are
        folded into one more pass.

        Returns:
            The ops applied by the last pass
        """
        if self._disposed or self.scene.extent is None:
            return []
        if self._reconciling:
            self._reconcile_again = True
            return []
        ops: List[SceneOp] = []
        self._reconciling = True
        try:
            while True:
                self._reconcile_again = False
                session = self.store.session
                gesture_id = self.scene.gesture_field_id()
                ops = reconcile(session.page_fields(self.page), self.scene.snapshot(), self.scene.extent, gesture_id)
                if ops:
                    trace(f"page {self.page}: applying {len(ops)} op(s)", "SYNC")
                    self.scene.apply_ops(ops)
                if gesture_id is None:
                    self.scene.select_field(session.active_field_id)
                if not self._reconcile_again:
                    break
        finally:
            self._reconciling = False
        return ops

    # ---- scene -> store ----

    def post_event(self, event: SceneEvent) -> None:
        """Queue *event* and schedule a drain on the event loop."""
        if self._disposed:
            return
        self._events.append(event)
        if not self._drain_scheduled:
            self._drain_scheduled = True
            QTimer.singleShot(0, self.process_events)

    def pending_events(self) -> int:
        return len(self._events)

    def process_events(self) -> None:
        """Handle every queued event, then reconcile once."""
        self._drain_scheduled = False
        if self._disposed:
            return
        handled = 0
        while self._events:
            event = self._events.popleft()
            trace(f"page {self.page}: {event}", "EVENT")
            try:
                self._handle(event)
            except ValueError as e:
                # Includes CoordinateRangeError; the scene is snapped back below
                log.warning("Ignoring %s on page %d: %s", type(event).__name__, self.page, e)
            handled += 1
        if handled:
            self.reconcile()

    def _handle(self, event: SceneEvent) -> None:
        if isinstance(event, ManipulationFinished):
            self._on_manipulation_finished(event)
        elif isinstance(event, SelectionChanged):
            self.store.set_active_field(event.field_id)
        elif isinstance(event, TextEdited):
            self.store.update_field(event.field_id, {"value": event.text or None})
        elif isinstance(event, PlaceFieldRequested):
            self._on_place_field(event)

    def _on_manipulation_finished(self, event: ManipulationFinished) -> None:
        extent = self.scene.extent
        if extent is None:
            return
        x, y, w, h = normalize_rect(event.left, event.top, event.width, event.height, extent, clamp=True)
        self.store.update_field(event.field_id, {"x": x, "y": y, "width": w, "height": h})

    def _on_place_field(self, event: PlaceFieldRequested) -> None:
        extent = self.scene.extent
        session = self.store.session
        if extent is None or session.document is None or session.mode == AppMode.SIGNER:
            return
        pos = from_viewport(Point(event.x, event.y), extent, clamp=True)
        field = create_field(event.field_type, self.page, pos.x, pos.y)
        self.store.add_field(field)
        log.info("Placed %s field %s on page %d", field.type, field.id, self.page)
        self.field_placed.emit(field.id)
