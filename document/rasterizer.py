"""
document/rasterizer.py

Background page rasterization with cancellation.

Each request runs a ``RasterWorker`` on its own ``QThread``.  The worker opens
its own PyMuPDF document from the original bytes, so no PyMuPDF object is
shared between threads.  ``PageRasterizer`` keeps at most one pending worker
per page: a newer request cancels the older one, and results from workers
that are no longer current are dropped.
"""

from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass
from typing import Dict, Optional

import fitz  # PyMuPDF
from PyQt6.QtCore import QObject, QThread, pyqtSignal
from PyQt6.QtGui import QImage

from coordinates import Dimensions
from document.loader import open_pdf

log = logging.getLogger(__name__)


class RasterizationCanceled(Exception):
    """Raised inside a worker whose task was canceled. Never surfaced to the user."""


@dataclass(frozen=True)
class PageRaster:
    """An RGB raster of one page.

    ``extent`` is the viewport size in pixels that field geometry is
    normalized against.
    """
    page: int
    scale: float
    samples: bytes
    width: int
    height: int
    stride: int

    @property
    def extent(self) -> Dimensions:
        return Dimensions(float(self.width), float(self.height))

    def to_qimage(self) -> QImage:
        """Wrap the samples in a QImage (a deep copy, safe to keep)."""
        img = QImage(self.samples, self.width, self.height, self.stride, QImage.Format.Format_RGB888)
        return img.copy()


def rasterize_page(data: bytes, page: int, scale: float, cancel_event: Optional[threading.Event] = None) -> PageRaster:
    """
    Render 1-based *page* of the PDF in *data* at *scale*.

    Args:
        data: Original PDF bytes
        page: 1-based page number
        scale: Zoom factor (1.0 = 72 dpi)
        cancel_event: Checked before and after the render

    Raises:
        RasterizationCanceled: If *cancel_event* is set
        IndexError: If *page* is out of range
    """
    def _check():
        if cancel_event is not None and cancel_event.is_set():
            raise RasterizationCanceled(f"page {page}")

    _check()
    doc = open_pdf(data)
    try:
        if not 1 <= page <= doc.page_count:
            raise IndexError(f"page {page} out of range 1..{doc.page_count}")
        pix = doc[page - 1].get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        raster = PageRaster(
            page=page,
            scale=scale,
            samples=bytes(pix.samples),
            width=pix.width,
            height=pix.height,
            stride=pix.stride,
        )
    finally:
        doc.close()
    _check()
    return raster


class RasterWorker(QObject):
    """
    Background worker that rasterizes one page.

    Signals:
        finished(object, object): Emitted with (worker, PageRaster) on success
        failed(object, str): Emitted with (worker, error message) on failure
        done(): Emitted last in every case, used to stop the thread
    """

    finished = pyqtSignal(object, object)
    failed = pyqtSignal(object, str)
    done = pyqtSignal()

    def __init__(self, data: bytes, page: int, scale: float):
        super().__init__()
        self.data = data
        self.page = page
        self.scale = scale
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def is_canceled(self) -> bool:
        return self._cancel.is_set()

    def run(self):
        """Execute the rasterization."""
        try:
            raster = rasterize_page(self.data, self.page, self.scale, self._cancel)
        except RasterizationCanceled:
            log.debug("Rasterization of page %d canceled", self.page)
        except Exception as e:
            self.failed.emit(self, f"{e}\n\n{traceback.format_exc()}")
        else:
            self.finished.emit(self, raster)
        finally:
            self.done.emit()


class PageRasterizer(QObject):
    """
    Schedules page rasterizations, one pending request per page.

    Signals:
        raster_ready(int, object): page number and PageRaster
        raster_failed(int, str): page number and error message
    """

    raster_ready = pyqtSignal(int, object)
    raster_failed = pyqtSignal(int, str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pending: Dict[int, RasterWorker] = {}
        self._threads: Dict[RasterWorker, QThread] = {}

    def request(self, data: bytes, page: int, scale: float) -> RasterWorker:
        """Rasterize *page*, canceling any earlier request for it."""
        self.cancel(page)
        worker = RasterWorker(data, page, scale)
        worker.finished.connect(self._on_worker_finished)
        worker.failed.connect(self._on_worker_failed)
        self._pending[page] = worker
        self._launch(worker)
        return worker

    def cancel(self, page: int) -> None:
        """Cancel the pending request for *page*, if any."""
        worker = self._pending.pop(page, None)
        if worker is not None:
            worker.cancel()
            log.debug("Canceled pending rasterization of page %d", page)

    def cancel_all(self) -> None:
        for page in list(self._pending):
            self.cancel(page)

    def is_pending(self, page: int) -> bool:
        return page in self._pending

    def _launch(self, worker: RasterWorker) -> None:
        thread = QThread(self)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.done.connect(thread.quit)
        thread.finished.connect(self._reap_threads)
        self._threads[worker] = thread
        thread.start()

    def _reap_threads(self) -> None:
        for worker, thread in list(self._threads.items()):
            if thread.isFinished():
                del self._threads[worker]
                worker.deleteLater()
                thread.deleteLater()

    def _is_current(self, worker: RasterWorker) -> bool:
        return not worker.is_canceled and self._pending.get(worker.page) is worker

    def _on_worker_finished(self, worker: RasterWorker, raster: PageRaster) -> None:
        if not self._is_current(worker):
            log.debug("Discarding stale raster for page %d", worker.page)
            return
        del self._pending[worker.page]
        self.raster_ready.emit(worker.page, raster)

    def _on_worker_failed(self, worker: RasterWorker, message: str) -> None:
        if not self._is_current(worker):
            return
        del self._pending[worker.page]
        log.error("Rasterization of page %d failed: %s", worker.page, message)
        self.raster_failed.emit(worker.page, message)

    def shutdown(self) -> None:
        """Cancel everything and wait for running threads to stop."""
        self.cancel_all()
        for thread in list(self._threads.values()):
            thread.quit()
            thread.wait()
