"""
document package

PDF loading, page rasterization and export flattening, all on PyMuPDF.
"""

from document.loader import DocumentHandle, DocumentParseError, load_document, open_pdf
from document.exporter import (
    ExportResult,
    FieldEmbedError,
    Placement,
    SourceDocumentError,
    compute_placement,
    export_pdf,
    flatten_fields,
)

__all__ = [
    "DocumentHandle",
    "DocumentParseError",
    "load_document",
    "open_pdf",
    "ExportResult",
    "FieldEmbedError",
    "Placement",
    "SourceDocumentError",
    "compute_placement",
    "export_pdf",
    "flatten_fields",
]
