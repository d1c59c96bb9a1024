"""Tests for config parsing/serialization and schema validation.

Covers:
  1. Round trip of a config document through parse/serialize.
  2. Schema errors carry a path to the bad entry.
  3. Field invariant errors and duplicate ids are rejected whole.
  4. Export file names follow the configured prefixes.
"""
from __future__ import annotations

import json

import pytest

from models import Field, FieldType
from schemas import get_config_schema, validate_config
from store.config_io import (
    ConfigParseError,
    config_filename,
    config_to_dict,
    config_to_json,
    parse_config,
    signed_filename,
)


def record(**overrides):
    d = {"id": "sig-1", "type": "signature", "page": 1,
         "x": 0.1, "y": 0.8, "width": 0.2, "height": 0.05,
         "required": True, "value": None}
    d.update(overrides)
    return d


def doc(*records, name="contract.pdf"):
    return json.dumps({"documentName": name, "fields": list(records)})


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

def test_parse_preserves_file_order():
    fields = parse_config(doc(record(id="b"), record(id="a", type="text", value="x")))
    assert [f.id for f in fields] == ["b", "a"]
    assert fields[1].type == FieldType.TEXT
    assert fields[1].value == "x"


def test_serialize_then_parse_is_identity():
    fields = [
        Field("a", FieldType.SIGNATURE, 1, 0.1, 0.2, 0.3, 0.05),
        Field("b", FieldType.DATE, 2, 0.5, 0.5, 0.2, 0.05, required=False, value="2024-01-31"),
    ]
    assert parse_config(config_to_json("contract.pdf", fields)) == fields


def test_config_to_dict_shape():
    d = config_to_dict("contract.pdf", [Field("a", "stamp", 1, 0, 0, 0.1, 0.1)])
    assert d["documentName"] == "contract.pdf"
    assert d["fields"][0] == {"id": "a", "type": "stamp", "page": 1, "x": 0, "y": 0,
                              "width": 0.1, "height": 0.1, "required": True, "value": None}


def test_empty_field_list_is_valid():
    assert parse_config('{"fields": []}') == []


def test_extra_keys_are_ignored():
    text = json.dumps({"fields": [record(label="Sign here")], "version": 3})
    assert parse_config(text)[0].id == "sig-1"


def test_optional_keys_default():
    r = record()
    del r["required"]
    del r["value"]
    f = parse_config(doc(r))[0]
    assert f.required is True
    assert f.value is None


# ---------------------------------------------------------------------------
# Rejection
# ---------------------------------------------------------------------------

def test_invalid_json():
    with pytest.raises(ConfigParseError) as exc:
        parse_config("{not json")
    assert exc.value.errors


def test_missing_fields_key():
    with pytest.raises(ConfigParseError):
        parse_config('{"documentName": "x.pdf"}')


@pytest.mark.parametrize("bad", [
    {"type": "checkbox"},
    {"page": 0},
    {"x": 1.5},
    {"height": -0.1},
    {"id": ""},
    {"value": 12},
    {"required": "yes"},
])
def test_schema_violations(bad):
    with pytest.raises(ConfigParseError) as exc:
        parse_config(doc(record(), record(**{"id": "second", **bad})))
    assert any(e.startswith("fields -> 1") for e in exc.value.errors)


def test_missing_required_key_reported():
    r = record()
    del r["width"]
    ok, errors = validate_config({"fields": [r]})
    assert not ok
    assert "width" in errors[0]


def test_duplicate_ids_rejected():
    with pytest.raises(ConfigParseError, match="duplicate"):
        parse_config(doc(record(id="same"), record(id="same")))


def test_validate_config_accepts_valid_document():
    assert validate_config(json.loads(doc(record()))) == (True, [])


def test_schema_is_cached():
    assert get_config_schema() is get_config_schema()


# ---------------------------------------------------------------------------
# File names
# ---------------------------------------------------------------------------

def test_export_names_use_settings(isolated_settings):
    assert signed_filename("contract.pdf") == "signed-contract.pdf"
    assert config_filename("contract.pdf") == "config-contract.json"
    isolated_settings.settings.export.signed_prefix = "final-"
    assert signed_filename("contract.pdf") == "final-contract.pdf"
