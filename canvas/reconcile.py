"""
canvas/reconcile.py

Pure reconciliation between a page's field list and its scene objects.

``reconcile()`` compares what the scene currently shows (a snapshot of
``SceneObjectSpec`` keyed by field id) with what the fields say it should
show, and returns the ordered list of operations that bring the scene in
line.  It touches no Qt objects so it can be tested on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Union

from coordinates import Dimensions, denormalize_rect
from document.exporter import FieldEmbedError, decode_image_value
from models import Field, FieldType

# Pixel tolerance when comparing geometry
GEOMETRY_TOLERANCE = 1e-6


class SceneKind:
    """Visual variants of a scene object."""
    PLACEHOLDER = "placeholder-rect"
    IMAGE = "image"
    EDITABLE_TEXT = "editable-text"

    ALL = (PLACEHOLDER, IMAGE, EDITABLE_TEXT)


def scene_kind_for(field: Field) -> str:
    """Pick the scene object variant that represents *field*."""
    if field.type in FieldType.IMAGE_TYPES:
        if not field.value:
            return SceneKind.PLACEHOLDER
        # Only payloads the exporter can embed show as images
        try:
            decode_image_value(field.value)
        except FieldEmbedError:
            return SceneKind.PLACEHOLDER
        return SceneKind.IMAGE
    return SceneKind.EDITABLE_TEXT if field.value else SceneKind.PLACEHOLDER


@dataclass(frozen=True)
class SceneObjectSpec:
    """Everything a scene object needs to draw one field, in viewport pixels."""
    field_id: str
    kind: str
    field_type: str
    required: bool
    left: float
    top: float
    width: float
    height: float
    value: Optional[str] = None

    def matches(self, other: "SceneObjectSpec", tolerance: float = GEOMETRY_TOLERANCE) -> bool:
        """True if *other* would draw the same thing."""
        return (
            self.field_id == other.field_id
            and self.kind == other.kind
            and self.field_type == other.field_type
            and self.required == other.required
            and self.value == other.value
            and abs(self.left - other.left) <= tolerance
            and abs(self.top - other.top) <= tolerance
            and abs(self.width - other.width) <= tolerance
            and abs(self.height - other.height) <= tolerance
        )


def render_spec(field: Field, extent: Dimensions) -> SceneObjectSpec:
    """Project *field* onto a viewport of *extent* pixels."""
    left, top, width, height = denormalize_rect(field.x, field.y, field.width, field.height, extent)
    return SceneObjectSpec(
        field_id=field.id,
        kind=scene_kind_for(field),
        field_type=field.type,
        required=field.required,
        left=left,
        top=top,
        width=width,
        height=height,
        value=field.value,
    )


@dataclass(frozen=True)
class CreateOp:
    spec: SceneObjectSpec


@dataclass(frozen=True)
class UpdateOp:
    spec: SceneObjectSpec


@dataclass(frozen=True)
class RemoveOp:
    field_id: str


SceneOp = Union[CreateOp, UpdateOp, RemoveOp]


def reconcile(
    page_fields: Sequence[Field],
    snapshot: Mapping[str, SceneObjectSpec],
    extent: Dimensions,
    active_id: Optional[str] = None,
) -> List[SceneOp]:
    """
    Compute the operations that make the scene show *page_fields*.

    Args:
        page_fields: Fields of one page, in display order
        snapshot: What the scene currently shows, keyed by field id
        extent: Viewport size in pixels
        active_id: Id of the object being manipulated right now. Its
            geometry is left alone so an update can't snap it back mid-drag.

    Returns:
        Ordered list of CreateOp / UpdateOp / RemoveOp. Removals of objects
        whose field is gone come first, then one entry per field in order.
    """
    ops: List[SceneOp] = []
    wanted = {f.id for f in page_fields}

    for field_id in snapshot:
        if field_id not in wanted:
            ops.append(RemoveOp(field_id))

    for field in page_fields:
        desired = render_spec(field, extent)
        current = snapshot.get(field.id)
        if current is None:
            ops.append(CreateOp(desired))
        elif current.kind != desired.kind:
            ops.append(RemoveOp(field.id))
            ops.append(CreateOp(desired))
        elif field.id == active_id:
            continue
        elif not current.matches(desired):
            ops.append(UpdateOp(desired))
    return ops
