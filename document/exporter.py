"""
document/exporter.py

Flatten field values into a copy of the original PDF.

Coordinate notes
----------------
Field geometry is normalized with a top-left origin against the page as it
is displayed, that is ``page.rect`` (cropped, and rotated by ``/Rotate``).
PDF user space has its origin at the bottom-left, so the vertical coordinate
is flipped when the placement is computed::

    px = x * W
    py = (1 - y) * H - height * H

where ``W, H`` are the displayed page size.  Just before drawing, each
placement is flipped back to a top-left origin and mapped through
``page.derotation_matrix`` into the unrotated space PyMuPDF draws in.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from coordinates import Dimensions
from document.loader import DocumentParseError, open_pdf
from models import Field, FieldType
from settings import ExportSettings, get_settings
from utils import DataUrlError, hex_to_rgb_unit, parse_data_url

log = logging.getLogger(__name__)

_BLACK = (0.0, 0.0, 0.0)
_PLACEHOLDER_LABELS = {
    FieldType.SIGNATURE: "Signature required",
    FieldType.STAMP: "Stamp required",
}


class SourceDocumentError(Exception):
    """Raised when the original bytes can't be opened for export."""


class FieldEmbedError(Exception):
    """Raised when one field's value can't be drawn. The export continues."""


@dataclass(frozen=True)
class Placement:
    """A field box in PDF user space (origin bottom-left, units in points)."""
    x: float
    y: float
    width: float
    height: float

    def to_rect(self) -> fitz.Rect:
        """The box as a PDF-space rectangle (y0 at the bottom edge)."""
        return fitz.Rect(self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class ExportResult:
    """Outcome of a flattening run."""
    data: bytes
    drawn: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (field id, reason)


def compute_placement(f: Field, page_size: Dimensions) -> Placement:
    """
    Project normalized field geometry onto a page in PDF user space.

    Args:
        f: The field
        page_size: Displayed page size (``page.rect``) in points

    Returns:
        The Placement, bottom-left origin
    """
    w, h = page_size.width, page_size.height
    return Placement(
        x=f.x * w,
        y=(1.0 - f.y) * h - f.height * h,
        width=f.width * w,
        height=f.height * h,
    )


def _codec_for(mime: str) -> str:
    return "PNG" if mime == "image/png" else "JPEG"


def decode_image_value(value: str) -> bytes:
    """
    Decode a signature/stamp data URL into image bytes.

    The declared MIME type picks the codec (PNG for ``image/png``, JPEG
    otherwise) and the payload must actually be an image of that codec.

    Raises:
        FieldEmbedError: If the value can't be decoded or doesn't match
    """
    try:
        mime, payload = parse_data_url(value)
    except DataUrlError as e:
        raise FieldEmbedError(str(e)) from e

    codec = _codec_for(mime)
    try:
        with Image.open(io.BytesIO(payload)) as img:
            actual = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise FieldEmbedError(f"payload is not a readable image: {e}") from e
    if actual != codec:
        raise FieldEmbedError(f"declared {mime or 'no type'} but payload is {actual}")
    return payload


class _PageDrawer:
    """Draws fields onto one fitz page using PDF-space placements."""

    def __init__(self, page: fitz.Page, cfg: ExportSettings):
        self.page = page
        self.cfg = cfg
        self.rotation = page.rotation
        box = page.rect
        self.size = Dimensions(box.width, box.height)
        flip = fitz.Matrix(1, 0, 0, -1, 0, box.height)
        self.to_page = flip * page.derotation_matrix

    def _rect(self, placement: Placement) -> fitz.Rect:
        return placement.to_rect() * self.to_page

    def _point(self, x: float, y: float) -> fitz.Point:
        return fitz.Point(x, y) * self.to_page

    def draw_image(self, placement: Placement, value: str) -> None:
        payload = decode_image_value(value)
        try:
            self.page.insert_image(self._rect(placement), stream=payload, keep_proportion=False)
        except (RuntimeError, ValueError) as e:
            raise FieldEmbedError(f"could not embed image: {e}") from e

    def draw_placeholder(self, placement: Placement, label: str) -> None:
        color = hex_to_rgb_unit(self.cfg.placeholder_color, (0.8, 0.0, 0.0))
        rect = self._rect(placement)
        self.page.draw_rect(rect, color=color, width=1, dashes="[3 2] 0")
        self.page.insert_text(
            self._point(placement.x + 2, placement.y + placement.height / 2 - self.cfg.label_font_size / 3),
            label,
            fontsize=self.cfg.label_font_size,
            fontname=self.cfg.font_name,
            color=color,
            rotate=self.rotation,
        )

    def draw_text(self, placement: Placement, text: str) -> None:
        baseline = placement.y + placement.height / 2 - self.cfg.descender
        try:
            self.page.insert_text(
                self._point(placement.x, baseline),
                text,
                fontsize=self.cfg.font_size,
                fontname=self.cfg.font_name,
                color=_BLACK,
                rotate=self.rotation,
            )
        except (RuntimeError, ValueError) as e:
            raise FieldEmbedError(f"could not draw text: {e}") from e


def _draw_field(drawer: _PageDrawer, f: Field) -> bool:
    """Draw one field. Returns False if the field has nothing to draw."""
    placement = compute_placement(f, drawer.size)
    if f.type in FieldType.IMAGE_TYPES:
        if f.value:
            drawer.draw_image(placement, f.value)
            return True
        if f.required:
            drawer.draw_placeholder(placement, _PLACEHOLDER_LABELS[f.type])
            return True
        return False
    if f.value:
        drawer.draw_text(placement, f.value)
        return True
    return False


def flatten_fields(original: bytes, fields: Iterable[Field], cfg: Optional[ExportSettings] = None) -> ExportResult:
    """
    Burn *fields* into a copy of the PDF in *original*.

    Fields are processed in order.  A field on a page the document doesn't
    have, or whose value can't be embedded, is skipped and recorded in
    ``ExportResult.skipped``; every other field is still drawn.

    Args:
        original: Original PDF bytes (not modified)
        fields: Fields to flatten
        cfg: Export settings, defaults to the ``[export]`` settings

    Returns:
        ExportResult with the new PDF bytes

    Raises:
        SourceDocumentError: If *original* is not a readable PDF
    """
    cfg = cfg or get_settings().settings.export
    try:
        doc = open_pdf(bytes(original))
    except DocumentParseError as e:
        raise SourceDocumentError(str(e)) from e

    result = ExportResult(data=b"")
    drawers = {}
    try:
        for f in fields:
            index = f.page - 1
            if not 0 <= index < doc.page_count:
                log.warning("Skipping field %s: page %d not in document (%d pages)", f.id, f.page, doc.page_count)
                result.skipped.append((f.id, f"page {f.page} out of range"))
                continue
            drawer = drawers.get(index)
            if drawer is None:
                drawer = drawers[index] = _PageDrawer(doc[index], cfg)
            try:
                if _draw_field(drawer, f):
                    result.drawn.append(f.id)
            except FieldEmbedError as e:
                log.warning("Skipping %s field %s: %s", f.type, f.id, e)
                result.skipped.append((f.id, str(e)))
        result.data = doc.tobytes(garbage=1, deflate=True)
    finally:
        doc.close()
    log.info("Flattened %d field(s), skipped %d", len(result.drawn), len(result.skipped))
    return result


def export_pdf(original: bytes, fields: Iterable[Field], cfg: Optional[ExportSettings] = None) -> bytes:
    """Flatten *fields* into *original* and return the new PDF bytes."""
    return flatten_fields(original, fields, cfg).data
