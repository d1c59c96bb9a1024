"""
store package

The document state store and the config file reader/writer.
"""

from store.config_io import ConfigParseError, config_to_json, parse_config
from store.document_store import DocumentSession, DocumentStore

__all__ = [
    "ConfigParseError",
    "config_to_json",
    "parse_config",
    "DocumentSession",
    "DocumentStore",
]
