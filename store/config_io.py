"""
store/config_io.py

Reading and writing the field configuration JSON.

Format::

    {"documentName": "contract.pdf",
     "fields": [{"id": ..., "type": "signature", "page": 1,
                 "x": 0.1, "y": 0.8, "width": 0.2, "height": 0.05,
                 "required": true, "value": null}]}
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List

from models import Field
from schemas import validate_config
from settings import get_settings
from utils import config_filename as _config_filename
from utils import signed_filename as _signed_filename

log = logging.getLogger(__name__)


class ConfigParseError(Exception):
    """Raised when a config document can't be parsed.

    ``errors`` holds one message per problem found.
    """

    def __init__(self, message: str, errors: Iterable[str] = ()):
        super().__init__(message)
        self.errors: List[str] = list(errors)


def parse_config(text: str) -> List[Field]:
    """
    Parse a config document into fields, in file order.

    Args:
        text: JSON text

    Returns:
        List of Field

    Raises:
        ConfigParseError: On invalid JSON, a schema violation or a field
            that breaks the field invariants. Nothing is partially parsed.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ConfigParseError(f"invalid JSON: {e}", [str(e)]) from e

    ok, errors = validate_config(data)
    if not ok:
        log.warning("Config rejected: %d schema error(s)", len(errors))
        raise ConfigParseError(f"config does not match schema: {errors[0]}", errors)

    fields: List[Field] = []
    seen = set()
    for i, record in enumerate(data["fields"]):
        try:
            f = Field.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigParseError(f"fields -> {i}: {e}", [f"fields -> {i}: {e}"]) from e
        if f.id in seen:
            raise ConfigParseError(f"fields -> {i}: duplicate id {f.id!r}", [f"fields -> {i}: duplicate id"])
        seen.add(f.id)
        fields.append(f)
    log.debug("Parsed config with %d field(s)", len(fields))
    return fields


def config_to_dict(document_name: str, fields: Iterable[Field]) -> dict:
    """Build the config document for *fields*."""
    return {
        "documentName": document_name,
        "fields": [f.to_dict() for f in fields],
    }


def config_to_json(document_name: str, fields: Iterable[Field]) -> str:
    """Serialize *fields* as config JSON text."""
    return json.dumps(config_to_dict(document_name, fields), indent=2)


def signed_filename(name: str) -> str:
    """``contract.pdf`` -> ``signed-contract.pdf``"""
    return _signed_filename(name, get_settings().settings.export.signed_prefix)


def config_filename(name: str) -> str:
    """``contract.pdf`` -> ``config-contract.json``"""
    return _config_filename(name, get_settings().settings.export.config_prefix)
