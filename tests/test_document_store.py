"""Tests for DocumentStore: document/config loading, field mutations and
change notification."""
from __future__ import annotations

import json

import pytest

from coordinates import CoordinateRangeError
from document.loader import DocumentParseError
from models import AppMode, Field, FieldType
from store import ConfigParseError, DocumentSession, DocumentStore


@pytest.fixture
def store(qapp):
    return DocumentStore()


@pytest.fixture
def changes(store):
    seen = []
    store.session_changed.connect(seen.append)
    return seen


def field(fid="f1", **kw):
    base = dict(id=fid, type=FieldType.SIGNATURE, page=1, x=0.1, y=0.1, width=0.2, height=0.05)
    base.update(kw)
    return Field(**base)


def config_text(*fields):
    return json.dumps({"documentName": "x.pdf", "fields": [f.to_dict() for f in fields]})


# ---------------------------------------------------------------------------
# Document and mode
# ---------------------------------------------------------------------------

def test_initial_session_is_empty(store):
    s = store.session
    assert s == DocumentSession()
    assert not s.is_ready


def test_load_document_clears_fields(store, pdf_bytes, changes):
    store.add_field(field())
    store.load_document(pdf_bytes, "contract.pdf")
    s = store.session
    assert s.document.name == "contract.pdf"
    assert s.document.page_count == 1
    assert s.fields == ()
    assert s.active_field_id is None
    assert changes[-1] is s


def test_load_document_page_sizes(store, make_pdf):
    handle = store.load_document(make_pdf(pages=((600, 800), (300, 400))))
    assert handle.page_count == 2
    assert handle.page_size(2).width == 300
    with pytest.raises(IndexError):
        handle.page_size(3)


def test_load_bad_document_keeps_state(store, pdf_bytes):
    store.load_document(pdf_bytes, "good.pdf")
    with pytest.raises(DocumentParseError):
        store.load_document(b"%PDF-not really", "bad.pdf")
    assert store.session.document.name == "good.pdf"


def test_load_empty_document(store):
    with pytest.raises(DocumentParseError):
        store.load_document(b"")


def test_set_mode(store, pdf_bytes):
    store.load_document(pdf_bytes)
    store.set_mode(AppMode.DESIGNER)
    assert store.session.is_ready
    store.set_mode(AppMode.SIGNER)
    assert not store.session.is_ready  # signer waits for a config
    with pytest.raises(ValueError):
        store.set_mode("admin")


def test_signer_ready_after_config(store, pdf_bytes):
    store.load_document(pdf_bytes)
    store.set_mode(AppMode.SIGNER)
    store.load_config(config_text(field()))
    assert store.session.config_loaded
    assert store.session.is_ready


def test_clear_keeps_mode(store, pdf_bytes):
    store.load_document(pdf_bytes)
    store.set_mode(AppMode.SIGNER)
    store.clear()
    assert store.session == DocumentSession(mode=AppMode.SIGNER)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_load_config_replaces_fields(store):
    store.add_field(field("old"))
    store.load_config(config_text(field("a"), field("b", page=2)))
    assert [f.id for f in store.session.fields] == ["a", "b"]
    assert store.session.active_field_id is None
    assert [f.id for f in store.session.page_fields(2)] == ["b"]


def test_bad_config_leaves_fields_untouched(store, changes):
    store.add_field(field("keep"))
    n = len(changes)
    with pytest.raises(ConfigParseError):
        store.load_config('{"fields": [{"id": "x"}]}')
    assert [f.id for f in store.session.fields] == ["keep"]
    assert len(changes) == n


def test_export_config(store, pdf_bytes):
    store.load_document(pdf_bytes, "contract.pdf")
    store.add_field(field())
    cfg = store.export_config()
    assert cfg["documentName"] == "contract.pdf"
    assert cfg["fields"] == [field().to_dict()]


# ---------------------------------------------------------------------------
# Field mutations
# ---------------------------------------------------------------------------

def test_add_field_activates(store, changes):
    store.add_field(field())
    assert store.session.active_field_id == "f1"
    assert len(changes) == 1


def test_add_duplicate_rejected(store):
    store.add_field(field())
    with pytest.raises(ValueError):
        store.add_field(field())


def test_update_field_merges(store):
    store.add_field(field(value=None))
    store.update_field("f1", {"x": 0.5, "value": "Jane"})
    f = store.session.field("f1")
    assert (f.x, f.y, f.value) == (0.5, 0.1, "Jane")


def test_update_unknown_id_is_noop(store, changes):
    store.add_field(field())
    n = len(changes)
    store.update_field("ghost", {"x": 0.3})
    assert len(changes) == n


def test_update_without_effect_does_not_notify(store, changes):
    store.add_field(field())
    n = len(changes)
    store.update_field("f1", {"x": 0.1})
    assert len(changes) == n


def test_update_violating_invariant_raises_and_keeps(store):
    store.add_field(field())
    with pytest.raises(CoordinateRangeError):
        store.update_field("f1", {"x": 4.0})
    assert store.session.field("f1").x == 0.1


def test_remove_active_field_clears_selection(store):
    store.add_field(field("a"))
    store.add_field(field("b"))
    store.remove_field("b")
    assert store.session.active_field_id is None
    assert [f.id for f in store.session.fields] == ["a"]


def test_remove_other_field_keeps_selection(store):
    store.add_field(field("a"))
    store.add_field(field("b"))
    store.remove_field("a")
    assert store.session.active_field_id == "b"


def test_set_active_field(store):
    store.add_field(field("a"))
    store.add_field(field("b"))
    store.set_active_field("a")
    assert store.session.active_field.id == "a"
    store.set_active_field("stale")
    assert store.session.active_field_id is None
    store.set_active_field(None)
    assert store.session.active_field is None


def test_every_mutation_emits_new_session(store, changes):
    store.add_field(field("a"))
    store.update_field("a", {"value": "v"})
    store.set_active_field(None)
    store.remove_field("a")
    assert len(changes) == 4
    assert len({id(s) for s in changes}) == 4
    assert changes[-1] is store.session
