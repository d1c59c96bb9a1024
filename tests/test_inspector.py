"""Tests for the field inspector panel."""
from __future__ import annotations

import pytest

from models import AppMode, Field, FieldType
from properties import InspectorPanel
from store import DocumentStore


@pytest.fixture
def store(qapp, pdf_bytes):
    s = DocumentStore()
    s.load_document(pdf_bytes, "contract.pdf")
    s.set_mode(AppMode.DESIGNER)
    return s


@pytest.fixture
def panel(store):
    return InspectorPanel(store)


def add(store, fid, ftype, **kw):
    store.add_field(Field(fid, ftype, 1, 0.1, 0.1, 0.2, 0.05, **kw))


def test_empty_without_selection(panel):
    assert not panel.body.isVisibleTo(panel)
    assert panel.empty_label.isVisibleTo(panel)


def test_shows_active_text_field(panel, store):
    add(store, "t", FieldType.TEXT, value="Jane")
    assert panel.body.isVisibleTo(panel)
    assert panel.type_label.text() == "Text"
    assert panel.value_stack.currentIndex() == 0
    assert panel.value_edit.text() == "Jane"


def test_text_edit_writes_to_store(panel, store):
    add(store, "t", FieldType.DATE)
    panel.value_edit.setText("  2024-02-29 ")
    panel._apply_text_value()
    assert store.session.field("t").value == "2024-02-29"
    panel.value_edit.setText("")
    panel._apply_text_value()
    assert store.session.field("t").value is None


def test_image_field_shows_preview(panel, store, png_data_url):
    add(store, "s", FieldType.SIGNATURE, value=png_data_url)
    assert panel.value_stack.currentIndex() == 1
    assert not panel.image_preview.pixmap().isNull()
    assert panel.clear_image_btn.isEnabled()
    panel._clear_image()
    assert store.session.field("s").value is None
    assert panel.image_preview.text() == "No image"


def test_load_image(panel, store, tmp_path, make_image, monkeypatch):
    add(store, "s", FieldType.STAMP)
    path = tmp_path / "stamp.png"
    path.write_bytes(make_image("PNG"))
    monkeypatch.setattr("properties.dock.QFileDialog.getOpenFileName",
                        lambda *a, **k: (str(path), ""))
    panel._load_image()
    assert store.session.field("s").value.startswith("data:image/png;base64,")


def test_required_toggle_and_remove(panel, store):
    add(store, "t", FieldType.TEXT)
    panel.required_check.setChecked(False)
    assert store.session.field("t").required is False
    panel._remove_field()
    assert store.session.fields == ()
    assert not panel.body.isVisibleTo(panel)


def test_signer_mode_disables_structure_edits(panel, store):
    add(store, "t", FieldType.TEXT)
    store.set_mode(AppMode.SIGNER)
    assert not panel.required_check.isEnabled()
    assert not panel.remove_btn.isEnabled()
    assert panel.value_edit.isEnabled()
