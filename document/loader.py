"""
document/loader.py

Opens PDF bytes and describes the document: name, page count and page sizes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import fitz  # PyMuPDF

from coordinates import Dimensions

log = logging.getLogger(__name__)


class DocumentParseError(Exception):
    """Raised when bytes can't be opened as a PDF with at least one page."""


@dataclass(frozen=True)
class DocumentHandle:
    """A loaded document.

    ``data`` holds the original bytes and is never modified; exports always
    start again from it.  ``page_sizes`` are in PDF points, page ``n`` at
    index ``n - 1``.
    """
    name: str
    data: bytes
    page_sizes: Tuple[Dimensions, ...]

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    def page_size(self, page: int) -> Dimensions:
        """Size of 1-based *page*."""
        if not 1 <= page <= self.page_count:
            raise IndexError(f"page {page} out of range 1..{self.page_count}")
        return self.page_sizes[page - 1]

    def __repr__(self) -> str:
        return f"DocumentHandle(name={self.name!r}, pages={self.page_count}, bytes={len(self.data)})"


def open_pdf(data: bytes) -> fitz.Document:
    """Open *data* as a PDF, raising ``DocumentParseError`` on failure."""
    if not data:
        raise DocumentParseError("document is empty")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise DocumentParseError(f"not a valid PDF: {e}") from e
    if doc.page_count < 1:
        doc.close()
        raise DocumentParseError("document has no pages")
    return doc


def load_document(data: bytes, name: str = "document.pdf") -> DocumentHandle:
    """
    Load PDF bytes into a DocumentHandle.

    Args:
        data: Raw PDF bytes
        name: Original file name, used for export file names

    Returns:
        The DocumentHandle

    Raises:
        DocumentParseError: If the bytes are not a PDF with pages
    """
    doc = open_pdf(bytes(data))
    try:
        sizes = tuple(Dimensions(p.rect.width, p.rect.height) for p in doc)
    finally:
        doc.close()
    log.info("Loaded %s: %d page(s)", name, len(sizes))
    return DocumentHandle(name=name, data=bytes(data), page_sizes=sizes)
