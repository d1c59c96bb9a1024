"""Tests for data URL helpers, file names and color parsing."""
from __future__ import annotations

import pytest
from PyQt6.QtGui import QColor

from utils import (
    DataUrlError,
    config_filename,
    encode_data_url,
    hex_to_qcolor,
    hex_to_rgb_unit,
    image_file_to_data_url,
    parse_data_url,
    signed_filename,
)

# ---------------------------------------------------------------------------
# Data URLs
# ---------------------------------------------------------------------------

def test_parse_data_url(png_data_url):
    mime, payload = parse_data_url(png_data_url)
    assert mime == "image/png"
    assert payload.startswith(b"\x89PNG")

def test_encode_then_parse():
    url = encode_data_url(b"abc", "text/plain")
    assert url == "data:text/plain;base64,YWJj"
    assert parse_data_url(url) == ("text/plain", b"abc")

@pytest.mark.parametrize("value", [
    "",
    "hello",
    "data:image/png,rawpayload",
    "data:image/png;base64,@@@",
    "data:image/png;base64,",
])
def test_parse_data_url_rejects(value):
    with pytest.raises(DataUrlError):
        parse_data_url(value)

def test_image_file_to_data_url(tmp_path, make_image):
    p = tmp_path / "sig.png"
    p.write_bytes(make_image("PNG"))
    assert image_file_to_data_url(str(p)).startswith("data:image/png;base64,")

def test_image_file_to_data_url_rejects_other_types(tmp_path):
    p = tmp_path / "sig.gif"
    p.write_bytes(b"GIF89a")
    with pytest.raises(DataUrlError):
        image_file_to_data_url(str(p))

# ---------------------------------------------------------------------------
# File names
# ---------------------------------------------------------------------------

def test_signed_filename():
    assert signed_filename("contract.pdf") == "signed-contract.pdf"
    assert signed_filename("/tmp/docs/contract.pdf") == "signed-contract.pdf"

def test_config_filename():
    assert config_filename("contract.pdf") == "config-contract.json"
    assert config_filename("contract.pdf", prefix="fields-") == "fields-contract.json"

# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

def test_hex_to_rgb_unit():
    assert hex_to_rgb_unit("#FF0000") == (1.0, 0.0, 0.0)
    assert hex_to_rgb_unit("#00FF0080") == (0.0, 1.0, 0.0)
    assert hex_to_rgb_unit("nope", fallback=(0.5, 0.5, 0.5)) == (0.5, 0.5, 0.5)

def test_hex_to_qcolor():
    c = hex_to_qcolor("#0071E322", QColor("black"))
    assert (c.red(), c.green(), c.blue(), c.alpha()) == (0x00, 0x71, 0xE3, 0x22)
    assert hex_to_qcolor("zz", QColor("white")) == QColor("white")
