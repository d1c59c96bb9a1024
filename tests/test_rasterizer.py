"""Tests for page rasterization and request cancellation.

The scheduling tests replace ``_launch`` so workers run on the test thread
at a moment the test chooses, which makes the ordering deterministic.
"""
from __future__ import annotations

import threading

import pytest

from document.rasterizer import (
    PageRaster,
    PageRasterizer,
    RasterizationCanceled,
    rasterize_page,
)


class HeldRasterizer(PageRasterizer):
    """Rasterizer whose workers only run when ``run_held()`` is called."""

    def __init__(self):
        super().__init__()
        self.held = []

    def _launch(self, worker):
        self.held.append(worker)

    def run_held(self, order=None):
        workers = list(self.held) if order is None else [self.held[i] for i in order]
        self.held.clear()
        for w in workers:
            w.run()


@pytest.fixture
def rasterizer(qapp):
    r = HeldRasterizer()
    r.ready, r.failed = [], []
    r.raster_ready.connect(lambda page, raster: r.ready.append((page, raster)))
    r.raster_failed.connect(lambda page, msg: r.failed.append((page, msg)))
    return r


# ---------------------------------------------------------------------------
# rasterize_page
# ---------------------------------------------------------------------------

def test_rasterize_page_size(make_pdf):
    raster = rasterize_page(make_pdf(pages=((600, 800),)), 1, 1.0)
    assert (raster.width, raster.height) == (600, 800)
    assert raster.extent.width == 600.0
    assert len(raster.samples) == raster.stride * raster.height


def test_rasterize_page_scale(make_pdf):
    raster = rasterize_page(make_pdf(pages=((100, 200),)), 1, 2.0)
    assert (raster.width, raster.height) == (200, 400)
    assert raster.scale == 2.0


def test_rasterize_second_page(make_pdf):
    raster = rasterize_page(make_pdf(pages=((100, 100), (300, 150))), 2, 1.0)
    assert (raster.page, raster.width, raster.height) == (2, 300, 150)


def test_rasterize_out_of_range(pdf_bytes):
    with pytest.raises(IndexError):
        rasterize_page(pdf_bytes, 5, 1.0)


def test_rasterize_canceled_before_start(pdf_bytes):
    ev = threading.Event()
    ev.set()
    with pytest.raises(RasterizationCanceled):
        rasterize_page(pdf_bytes, 1, 1.0, ev)


def test_to_qimage(qapp, make_pdf):
    raster = rasterize_page(make_pdf(pages=((120, 90),)), 1, 1.0)
    img = raster.to_qimage()
    assert (img.width(), img.height()) == (120, 90)
    assert img.pixelColor(5, 5).name() == "#ffffff"


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

def test_request_delivers_raster(rasterizer, pdf_bytes):
    rasterizer.request(pdf_bytes, 1, 1.0)
    assert rasterizer.is_pending(1)
    rasterizer.run_held()
    assert not rasterizer.is_pending(1)
    assert len(rasterizer.ready) == 1
    page, raster = rasterizer.ready[0]
    assert page == 1
    assert isinstance(raster, PageRaster)


def test_newer_request_supersedes_older(rasterizer, pdf_bytes):
    old = rasterizer.request(pdf_bytes, 1, 1.0)
    new = rasterizer.request(pdf_bytes, 1, 2.0)
    assert old.is_canceled
    assert not new.is_canceled
    rasterizer.run_held()
    assert [r.scale for _, r in rasterizer.ready] == [2.0]


def test_stale_result_dropped_even_if_it_finishes_last(rasterizer, pdf_bytes):
    rasterizer.request(pdf_bytes, 1, 1.0)
    rasterizer.request(pdf_bytes, 1, 1.5)
    rasterizer.run_held(order=[1, 0])
    assert [r.scale for _, r in rasterizer.ready] == [1.5]


def test_pages_are_independent(rasterizer, make_pdf):
    data = make_pdf(pages=((100, 100), (100, 100)))
    rasterizer.request(data, 1, 1.0)
    rasterizer.request(data, 2, 1.0)
    rasterizer.run_held()
    assert sorted(page for page, _ in rasterizer.ready) == [1, 2]


def test_cancel_all_drops_everything(rasterizer, make_pdf):
    data = make_pdf(pages=((100, 100), (100, 100)))
    rasterizer.request(data, 1, 1.0)
    rasterizer.request(data, 2, 1.0)
    rasterizer.cancel_all()
    rasterizer.run_held()
    assert rasterizer.ready == []
    assert rasterizer.failed == []


def test_failure_is_reported(rasterizer, pdf_bytes):
    rasterizer.request(pdf_bytes, 3, 1.0)
    rasterizer.run_held()
    assert rasterizer.ready == []
    assert rasterizer.failed[0][0] == 3
    assert "out of range" in rasterizer.failed[0][1]


def test_threaded_request_completes(qapp, pdf_bytes):
    r = PageRasterizer()
    got = []
    r.raster_ready.connect(lambda page, raster: got.append(page))
    r.request(pdf_bytes, 1, 0.5)
    for _ in range(500):
        qapp.processEvents()
        if got:
            break
        threading.Event().wait(0.01)
    r.shutdown()
    assert got == [1]
