"""
utils.py

Utility functions for the PDF Signer application.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import os
import re
from typing import Tuple

from PyQt6.QtGui import QColor

# data:<mime>[;base64],<payload>
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^,;]*)*),(?P<data>.*)$", re.DOTALL)

class DataUrlError(ValueError):
    """Raised when a string isn't a usable base64 data URL."""

def parse_data_url(value: str) -> Tuple[str, bytes]:
    """
    Decode a base64 data URL.

    Args:
        value: String like ``"data:image/png;base64,iVBOR..."``

    Returns:
        Tuple of (mime type, decoded payload bytes)

    Raises:
        DataUrlError: If the string is not a base64 data URL or the payload
            is not valid base64.
    """
    m = _DATA_URL_RE.match((value or "").strip())
    if not m:
        raise DataUrlError("not a data URL")
    if ";base64" not in (m.group("params") or "").lower():
        raise DataUrlError("data URL is not base64-encoded")
    mime = (m.group("mime") or "").lower()
    try:
        payload = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DataUrlError(f"invalid base64 payload: {e}") from e
    if not payload:
        raise DataUrlError("empty payload")
    return mime, payload

def encode_data_url(payload: bytes, mime: str) -> str:
    """Encode *payload* as a base64 data URL of type *mime*."""
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"

def image_file_to_data_url(path: str) -> str:
    """
    Read an image file and return it as a data URL.

    Only PNG and JPEG are accepted since those are the codecs the export
    can embed.

    Raises:
        DataUrlError: For any other file type.
    """
    mime, _ = mimetypes.guess_type(path)
    if mime not in ("image/png", "image/jpeg"):
        raise DataUrlError(f"unsupported image type: {mime or 'unknown'}")
    with open(path, "rb") as f:
        return encode_data_url(f.read(), mime)

def signed_filename(name: str, prefix: str = "signed-") -> str:
    """Return the export file name for the flattened document."""
    return f"{prefix}{os.path.basename(name)}"

def config_filename(name: str, prefix: str = "config-") -> str:
    """Return the export file name for the field configuration."""
    stem, _ = os.path.splitext(os.path.basename(name))
    return f"{prefix}{stem}.json"

def hex_to_rgb_unit(s: str, fallback: Tuple[float, float, float] = (0.0, 0.0, 0.0)) -> Tuple[float, float, float]:
    """
    Convert "#RRGGBB" (alpha ignored) to a 0..1 float triple for PyMuPDF.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Value returned if parsing fails

    Returns:
        Tuple of (r, g, b) floats
    """
    s = (s or "").strip().lstrip("#")
    if len(s) not in (6, 8):
        return fallback
    try:
        return tuple(int(s[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError:
        return fallback

def hex_to_qcolor(s: str, fallback: QColor) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails

    Returns:
        Parsed QColor or fallback
    """
    if not s:
        return QColor(fallback)
    s = s.strip()
    if s.startswith("#"):
        s = s[1:]
    try:
        if len(s) == 6:
            r = int(s[0:2], 16)
            g = int(s[2:4], 16)
            b = int(s[4:6], 16)
            return QColor(r, g, b)
        if len(s) == 8:
            r = int(s[0:2], 16)
            g = int(s[2:4], 16)
            b = int(s[4:6], 16)
            a = int(s[6:8], 16)
            return QColor(r, g, b, a)
    except ValueError:
        pass
    return QColor(fallback)
