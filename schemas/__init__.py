"""
schemas/__init__.py

JSON Schema definition and validation for the field configuration file.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft202012Validator

# Schema file paths
SCHEMA_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_SCHEMA_PATH = os.path.join(SCHEMA_DIR, "config_schema.json")

# Cached schema
_config_schema: Optional[Dict] = None


def get_config_schema() -> Dict:
    """Load and return the config document schema."""
    global _config_schema
    if _config_schema is None:
        with open(CONFIG_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _config_schema = json.load(f)
    return _config_schema


def _format_error(error) -> str:
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"{path}: {error.message}"


def validate_config(data: Any) -> Tuple[bool, List[str]]:
    """
    Validate a decoded config document against the schema.

    Extra keys are allowed at every level.

    Args:
        data: The decoded JSON data

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    validator = Draft202012Validator(get_config_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    return not errors, [_format_error(e) for e in errors]
