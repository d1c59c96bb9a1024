"""
store/document_store.py

The authoritative, session-scoped state: loaded document, field list,
active field and interaction mode.

Every mutation builds a new immutable ``DocumentSession``, swaps it in and
emits ``session_changed``.  A mutation that fails raises before the swap, so
observers never see a half-applied change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from document.loader import DocumentHandle, load_document
from models import AppMode, Field
from store.config_io import config_to_dict, parse_config

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSession:
    """Immutable snapshot of the working state."""
    document: Optional[DocumentHandle] = None
    fields: Tuple[Field, ...] = ()
    active_field_id: Optional[str] = None
    mode: Optional[str] = None
    config_loaded: bool = False

    def field(self, field_id: Optional[str]) -> Optional[Field]:
        """Return the field with *field_id*, or None."""
        if field_id is None:
            return None
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def page_fields(self, page: int) -> Tuple[Field, ...]:
        """Fields on 1-based *page*, in list order."""
        return tuple(f for f in self.fields if f.page == page)

    @property
    def active_field(self) -> Optional[Field]:
        return self.field(self.active_field_id)

    @property
    def is_ready(self) -> bool:
        """True once the pages can be shown: designer needs a document,
        signer needs a document and a loaded config."""
        if self.document is None or self.mode is None:
            return False
        if self.mode == AppMode.SIGNER:
            return self.config_loaded
        return True


class DocumentStore(QObject):
    """
    Holds the current DocumentSession.

    Signals:
        session_changed(object): Emitted with the new DocumentSession after
            every successful mutation
    """

    session_changed = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._session = DocumentSession()

    @property
    def session(self) -> DocumentSession:
        return self._session

    def _commit(self, session: DocumentSession) -> None:
        if session == self._session:
            return
        self._session = session
        self.session_changed.emit(session)

    # ---- document / mode ----

    def load_document(self, data: bytes, name: str = "document.pdf") -> DocumentHandle:
        """
        Load PDF bytes as the current document.

        Clears the field list, the selection and the config flag.

        Raises:
            DocumentParseError: If *data* is not a PDF with pages
        """
        handle = load_document(data, name)
        self._commit(replace(
            self._session,
            document=handle,
            fields=(),
            active_field_id=None,
            config_loaded=False,
        ))
        return handle

    def set_mode(self, mode: Optional[str]) -> None:
        if mode is not None and mode not in AppMode.ALL:
            raise ValueError(f"unknown mode {mode!r}")
        log.debug("Mode -> %s", mode)
        self._commit(replace(self._session, mode=mode))

    def load_config(self, text: str) -> None:
        """
        Replace the field list with the fields of a config document.

        Raises:
            ConfigParseError: If the document can't be parsed; the current
                fields are kept
        """
        fields = parse_config(text)
        log.info("Loaded config with %d field(s)", len(fields))
        self._commit(replace(
            self._session,
            fields=tuple(fields),
            active_field_id=None,
            config_loaded=True,
        ))

    def export_config(self) -> Dict[str, Any]:
        """Config document for the current session."""
        doc = self._session.document
        return config_to_dict(doc.name if doc else "", self._session.fields)

    def clear(self) -> None:
        """Forget the document, fields and selection (mode is kept)."""
        self._commit(DocumentSession(mode=self._session.mode))

    # ---- fields ----

    def add_field(self, field: Field) -> None:
        """Append *field* and make it the active field."""
        if self._session.field(field.id) is not None:
            raise ValueError(f"duplicate field id {field.id!r}")
        self._commit(replace(
            self._session,
            fields=self._session.fields + (field,),
            active_field_id=field.id,
        ))

    def update_field(self, field_id: str, changes: Dict[str, Any]) -> None:
        """
        Merge *changes* over the field with *field_id*.

        Unknown ids are ignored.  Attributes not in *changes* are preserved
        and the id can't be changed.

        Raises:
            ValueError: If the merged field breaks the field invariants
        """
        current = self._session.field(field_id)
        if current is None:
            log.debug("update_field: unknown id %s", field_id)
            return
        updated = current.with_changes(changes)
        if updated == current:
            return
        self._commit(replace(
            self._session,
            fields=tuple(updated if f.id == field_id else f for f in self._session.fields),
        ))

    def remove_field(self, field_id: str) -> None:
        """Remove the field with *field_id*. Unknown ids are ignored."""
        if self._session.field(field_id) is None:
            return
        active = self._session.active_field_id
        self._commit(replace(
            self._session,
            fields=tuple(f for f in self._session.fields if f.id != field_id),
            active_field_id=None if active == field_id else active,
        ))

    def set_active_field(self, field_id: Optional[str]) -> None:
        """Select *field_id*; an id that doesn't exist deselects."""
        if field_id is not None and self._session.field(field_id) is None:
            log.debug("set_active_field: unknown id %s, deselecting", field_id)
            field_id = None
        self._commit(replace(self._session, active_field_id=field_id))
