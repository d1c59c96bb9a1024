"""Tests for the pure field -> scene reconciliation.

Covers:
  1. Creation, update and removal of scene objects.
  2. Kind changes replace the object instead of updating it.
  3. Idempotence: reconciling against the result yields nothing.
  4. The object under an active gesture is left alone.
"""
from __future__ import annotations

import pytest

from coordinates import Dimensions
from models import Field, FieldType
from utils import encode_data_url
from canvas.reconcile import (
    CreateOp,
    RemoveOp,
    SceneKind,
    UpdateOp,
    reconcile,
    render_spec,
    scene_kind_for,
)

EXTENT = Dimensions(600, 800)


def field(fid, **kw):
    base = dict(id=fid, type=FieldType.SIGNATURE, page=1, x=0.1, y=0.1, width=0.2, height=0.05)
    base.update(kw)
    return Field(**base)


def shown(*fields, extent=EXTENT):
    """Snapshot of a scene that already shows *fields*."""
    return {f.id: render_spec(f, extent) for f in fields}


# ---------------------------------------------------------------------------
# Scene kinds
# ---------------------------------------------------------------------------

def test_scene_kinds(png_data_url):
    assert scene_kind_for(field("a")) == SceneKind.PLACEHOLDER
    assert scene_kind_for(field("a", value=png_data_url)) == SceneKind.IMAGE
    assert scene_kind_for(field("a", value="not an image")) == SceneKind.PLACEHOLDER
    assert scene_kind_for(field("a", type=FieldType.TEXT)) == SceneKind.PLACEHOLDER
    assert scene_kind_for(field("a", type=FieldType.DATE, value="2024-01-01")) == SceneKind.EDITABLE_TEXT


def test_undecodable_image_payload_shows_placeholder(make_image):
    junk = encode_data_url(b"this is not an image", "image/png")
    assert scene_kind_for(field("a", value=junk)) == SceneKind.PLACEHOLDER
    mislabeled = encode_data_url(make_image("JPEG"), "image/png")
    assert scene_kind_for(field("a", type=FieldType.STAMP, value=mislabeled)) == SceneKind.PLACEHOLDER


def test_render_spec_scales_into_viewport():
    spec = render_spec(field("a"), EXTENT)
    assert spec.left == pytest.approx(60)
    assert spec.top == pytest.approx(80)
    assert spec.width == pytest.approx(120)
    assert spec.height == pytest.approx(40)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def test_empty_scene_creates_all_in_order():
    ops = reconcile([field("a"), field("b")], {}, EXTENT)
    assert [type(op) for op in ops] == [CreateOp, CreateOp]
    assert [op.spec.field_id for op in ops] == ["a", "b"]


def test_stale_objects_removed_first():
    ops = reconcile([field("b")], shown(field("a")), EXTENT)
    assert ops[0] == RemoveOp("a")
    assert isinstance(ops[1], CreateOp)


def test_moved_field_updates():
    ops = reconcile([field("a", x=0.5)], shown(field("a")), EXTENT)
    assert len(ops) == 1
    assert isinstance(ops[0], UpdateOp)
    assert ops[0].spec.left == pytest.approx(300)


def test_value_change_within_kind_updates():
    before = field("a", type=FieldType.TEXT, value="Jane")
    ops = reconcile([field("a", type=FieldType.TEXT, value="John")], shown(before), EXTENT)
    assert [type(op) for op in ops] == [UpdateOp]


def test_required_change_updates():
    ops = reconcile([field("a", required=False)], shown(field("a")), EXTENT)
    assert [type(op) for op in ops] == [UpdateOp]


def test_kind_change_replaces(png_data_url):
    ops = reconcile([field("a", value=png_data_url)], shown(field("a")), EXTENT)
    assert ops[0] == RemoveOp("a")
    assert isinstance(ops[1], CreateOp)
    assert ops[1].spec.kind == SceneKind.IMAGE


def test_sub_tolerance_drift_is_ignored():
    snap = shown(field("a"))
    spec = snap["a"]
    snap["a"] = type(spec)(**{**spec.__dict__, "left": spec.left + 1e-9})
    assert reconcile([field("a")], snap, EXTENT) == []


def test_extent_change_updates_everything():
    fields = [field("a"), field("b", y=0.5)]
    ops = reconcile(fields, shown(*fields), Dimensions(1200, 1600))
    assert [type(op) for op in ops] == [UpdateOp, UpdateOp]
    assert ops[0].spec.left == pytest.approx(120)


# ---------------------------------------------------------------------------
# Idempotence and gestures
# ---------------------------------------------------------------------------

def test_reconcile_is_idempotent():
    fields = [field("a"), field("b", type=FieldType.TEXT, value="x"), field("c", x=0.7)]
    snap = {}
    for op in reconcile(fields, snap, EXTENT):
        if isinstance(op, RemoveOp):
            snap.pop(op.field_id)
        else:
            snap[op.spec.field_id] = op.spec
    assert reconcile(fields, snap, EXTENT) == []


def test_active_object_geometry_not_touched():
    ops = reconcile([field("a", x=0.5)], shown(field("a")), EXTENT, active_id="a")
    assert ops == []


def test_active_object_still_removed_when_field_gone():
    assert reconcile([], shown(field("a")), EXTENT, active_id="a") == [RemoveOp("a")]


def test_empty_page_empty_scene():
    assert reconcile([], {}, EXTENT) == []
