"""Shared fixtures: offscreen QApplication, isolated settings, in-memory PDFs and images."""
from __future__ import annotations

import io
import os
import sys

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import fitz  # PyMuPDF
import pytest
from PIL import Image
from PyQt6.QtWidgets import QApplication

import settings
from settings import SettingsManager
from utils import encode_data_url


# ---------------------------------------------------------------------------
# Qt / settings
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    app = QApplication.instance() or QApplication(sys.argv[:1])
    yield app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings singleton at an empty directory for each test."""
    from canvas.items import _CachedCanvasSettings

    manager = SettingsManager(settings_dir=tmp_path / "config")
    monkeypatch.setattr(settings, "_settings_manager", manager)
    _CachedCanvasSettings.reset()
    yield manager
    _CachedCanvasSettings.reset()


# ---------------------------------------------------------------------------
# Documents and images
# ---------------------------------------------------------------------------

def _make_pdf(pages=((612, 792),), text=None) -> bytes:
    doc = fitz.open()
    for i, (w, h) in enumerate(pages):
        page = doc.new_page(width=w, height=h)
        if text:
            page.insert_text((72, 72), f"{text} {i + 1}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def _make_image(fmt: str = "PNG", size=(40, 20), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_pdf():
    """Factory: ``make_pdf(pages=((w, h), ...), text=None) -> bytes``."""
    return _make_pdf


@pytest.fixture
def pdf_bytes():
    """A one-page US Letter PDF (612 x 792 pt)."""
    return _make_pdf()


@pytest.fixture
def make_image():
    """Factory: ``make_image(fmt="PNG", size=(w, h), color=(r, g, b)) -> bytes``."""
    return _make_image


@pytest.fixture
def png_data_url():
    return encode_data_url(_make_image("PNG"), "image/png")


@pytest.fixture
def jpeg_data_url():
    return encode_data_url(_make_image("JPEG"), "image/jpeg")
