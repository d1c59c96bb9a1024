"""
coordinates.py

Normalized coordinate model for field geometry.

Field positions and sizes are stored as fractions of the page extent
(origin top-left, axes growing right/down) so that they stay valid for any
render scale.  The helpers here convert between that unit square and a
pixel viewport.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


class CoordinateRangeError(ValueError):
    """Raised when a value can't be expressed in the normalized [0, 1] space."""


@dataclass(frozen=True)
class Dimensions:
    """Pixel (or point) extent of a viewport or page."""
    width: float
    height: float


@dataclass(frozen=True)
class Point:
    """Pixel position inside a viewport."""
    x: float
    y: float


def _check_unit(name: str, value: float) -> None:
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise CoordinateRangeError(f"{name}={value!r} is outside [0, 1]")


def _check_extent(extent: Dimensions) -> None:
    if not (extent.width > 0 and extent.height > 0):
        raise CoordinateRangeError(
            f"viewport extent must be positive, got {extent.width!r}x{extent.height!r}"
        )


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class NormalizedCoordinate:
    """A point in the unit square.

    Construction fails with ``CoordinateRangeError`` if either component is
    outside ``[0, 1]``.
    """
    x: float
    y: float

    def __post_init__(self):
        _check_unit("x", self.x)
        _check_unit("y", self.y)

    def to_viewport(self, extent: Dimensions) -> Point:
        """Scale this coordinate into *extent* pixels."""
        return Point(self.x * extent.width, self.y * extent.height)

    @classmethod
    def from_viewport(cls, point: Point, extent: Dimensions, clamp: bool = False) -> "NormalizedCoordinate":
        """Normalize a pixel *point* against *extent*.

        Args:
            point: Pixel position.
            extent: Viewport size; both sides must be positive.
            clamp: Clamp the result into ``[0, 1]`` instead of rejecting it.

        Returns:
            The normalized coordinate.

        Raises:
            CoordinateRangeError: Non-positive extent, or an out-of-range
                result when *clamp* is false.
        """
        _check_extent(extent)
        nx = point.x / extent.width
        ny = point.y / extent.height
        if clamp:
            nx, ny = _clamp_unit(nx), _clamp_unit(ny)
        return cls(nx, ny)


def to_viewport(normalized: NormalizedCoordinate, extent: Dimensions) -> Point:
    return normalized.to_viewport(extent)


def from_viewport(point: Point, extent: Dimensions, clamp: bool = False) -> NormalizedCoordinate:
    return NormalizedCoordinate.from_viewport(point, extent, clamp=clamp)


def normalize_rect(
    left: float,
    top: float,
    width: float,
    height: float,
    extent: Dimensions,
    clamp: bool = False,
) -> Tuple[float, float, float, float]:
    """Normalize a pixel rectangle into ``(x, y, width, height)`` fractions.

    The size is normalized the same way as the position, so a field that is
    dragged partly off the page keeps its size while its corner is clamped.
    """
    corner = from_viewport(Point(left, top), extent, clamp=clamp)
    size = from_viewport(Point(width, height), extent, clamp=clamp)
    return corner.x, corner.y, size.x, size.y


def denormalize_rect(
    x: float,
    y: float,
    width: float,
    height: float,
    extent: Dimensions,
) -> Tuple[float, float, float, float]:
    """Return ``(left, top, width, height)`` in pixels for normalized geometry."""
    corner = to_viewport(NormalizedCoordinate(x, y), extent)
    size = to_viewport(NormalizedCoordinate(width, height), extent)
    return corner.x, corner.y, size.x, size.y
