"""
canvas/events.py

Discrete events posted by scene objects and the page scene to the page's
sync engine.  Geometry is in viewport pixels; the engine normalizes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class ManipulationFinished:
    """A move or resize gesture ended with the object at this box."""
    field_id: str
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class SelectionChanged:
    """The scene selection changed; ``field_id`` is None when it is empty."""
    field_id: Optional[str]


@dataclass(frozen=True)
class TextEdited:
    """Inline editing of a text/date object finished."""
    field_id: str
    text: str


@dataclass(frozen=True)
class PlaceFieldRequested:
    """The user clicked an empty spot with a field tool armed."""
    field_type: str
    x: float
    y: float


SceneEvent = Union[ManipulationFinished, SelectionChanged, TextEdited, PlaceFieldRequested]
