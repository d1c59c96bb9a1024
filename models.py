"""
models.py

Data models and constants for the PDF Signer application.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

from coordinates import CoordinateRangeError, NormalizedCoordinate
from settings import get_settings


# ----------------------------
# Constants
# ----------------------------

class FieldType:
    """Field type constants."""
    SIGNATURE = "signature"
    TEXT = "text"
    DATE = "date"
    STAMP = "stamp"

    ALL = (SIGNATURE, TEXT, DATE, STAMP)
    IMAGE_TYPES = (SIGNATURE, STAMP)
    TEXT_TYPES = (TEXT, DATE)


class AppMode:
    """Interaction mode constants."""
    DESIGNER = "designer"
    SIGNER = "signer"

    ALL = (DESIGNER, SIGNER)


FIELD_ID_KEY = 1  # QGraphicsItem.data key for field id


# ----------------------------
# Field model
# ----------------------------

@dataclass(frozen=True)
class Field:
    """A typed, positioned region on one page of the document.

    Geometry is normalized against the page extent (see ``coordinates``).
    Instances are immutable; use ``with_changes`` to derive an updated copy.
    """
    id: str
    type: str
    page: int
    x: float
    y: float
    width: float
    height: float
    required: bool = True
    value: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("field id must be a non-empty string")
        if self.type not in FieldType.ALL:
            raise ValueError(f"unknown field type {self.type!r}")
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValueError(f"page must be an integer >= 1, got {self.page!r}")
        for name in ("x", "y", "width", "height"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or math.isnan(v):
                raise CoordinateRangeError(f"{name} must be a number, got {v!r}")
        NormalizedCoordinate(self.x, self.y)
        NormalizedCoordinate(self.width, self.height)
        if self.value is not None and not isinstance(self.value, str):
            raise ValueError("field value must be a string or None")

    @property
    def is_image(self) -> bool:
        return self.type in FieldType.IMAGE_TYPES

    def with_changes(self, changes: Dict[str, Any]) -> "Field":
        """Return a copy with *changes* merged over this field.

        Unknown keys are ignored and the id can't be changed.
        """
        allowed = {f.name for f in fields(self)} - {"id"}
        return replace(self, **{k: v for k, v in changes.items() if k in allowed})

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Field":
        """Build a Field from a config record (extra keys ignored).

        Raises:
            KeyError: A mandatory key is missing.
            ValueError: A value violates the field invariants.
        """
        return cls(
            id=d["id"],
            type=d["type"],
            page=d["page"],
            x=float(d["x"]),
            y=float(d["y"]),
            width=float(d["width"]),
            height=float(d["height"]),
            required=bool(d.get("required", True)),
            value=d.get("value"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the config record shape."""
        return {
            "id": self.id,
            "type": self.type,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "required": self.required,
            "value": self.value,
        }


def new_field_id() -> str:
    """Generate a new opaque field id."""
    return str(uuid.uuid4())


def create_field(
    field_type: str,
    page: int,
    x: float,
    y: float,
    width: Optional[float] = None,
    height: Optional[float] = None,
    required: Optional[bool] = None,
) -> Field:
    """
    Create a new field with factory defaults.

    Size and required-ness default to the ``[fields]`` settings. Defaults:
    width 0.2, height 0.05, required True.

    Args:
        field_type: One of ``FieldType.ALL``
        page: 1-based page number
        x: Normalized left edge
        y: Normalized top edge

    Returns:
        The new Field with a fresh id
    """
    defaults = get_settings().settings.fields
    return Field(
        id=new_field_id(),
        type=field_type,
        page=page,
        x=x,
        y=y,
        width=defaults.default_width if width is None else width,
        height=defaults.default_height if height is None else height,
        required=defaults.default_required if required is None else required,
    )
