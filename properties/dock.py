"""
properties/dock.py

Inspector panel for the active field: type, page, value, required flag and
removal.  Every edit goes through the document store; the panel itself
holds no field state beyond the id it is showing.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QPixmap
from PyQt6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from models import AppMode, Field, FieldType
from settings import get_settings
from store.document_store import DocumentSession, DocumentStore
from utils import DataUrlError, image_file_to_data_url, parse_data_url

log = logging.getLogger(__name__)

_PREVIEW_HEIGHT = 64


class InspectorPanel(QWidget):
    """
    Property panel for the store's active field.

    Text and date fields get a line edit; signature and stamp fields get an
    image preview with load/clear buttons.  The required flag and the remove
    button are only enabled in designer mode.
    """

    def __init__(self, store: DocumentStore, parent=None):
        super().__init__(parent)
        self.store = store
        self._field_id: Optional[str] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)

        self.empty_label = QLabel("Select a field to edit its properties")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.empty_label.setWordWrap(True)
        layout.addWidget(self.empty_label)

        self.body = QWidget()
        form = QFormLayout(self.body)
        form.setContentsMargins(0, 0, 0, 0)
        self.type_label = QLabel("-")
        self.page_label = QLabel("-")
        self.geometry_label = QLabel("-")
        self.geometry_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        form.addRow("Type:", self.type_label)
        form.addRow("Page:", self.page_label)
        form.addRow("Position:", self.geometry_label)

        # Value editor: page 0 = text, page 1 = image
        self.value_stack = QStackedWidget()
        self.value_edit = QLineEdit()
        self.value_edit.setPlaceholderText("Enter value...")
        self.value_stack.addWidget(self.value_edit)

        image_box = QWidget()
        image_layout = QVBoxLayout(image_box)
        image_layout.setContentsMargins(0, 0, 0, 0)
        self.image_preview = QLabel("No image")
        self.image_preview.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_preview.setMinimumHeight(_PREVIEW_HEIGHT)
        image_layout.addWidget(self.image_preview)
        buttons = QHBoxLayout()
        self.load_image_btn = QPushButton("Load image...")
        self.clear_image_btn = QPushButton("Clear")
        buttons.addWidget(self.load_image_btn)
        buttons.addWidget(self.clear_image_btn)
        image_layout.addLayout(buttons)
        self.value_stack.addWidget(image_box)
        form.addRow("Value:", self.value_stack)

        self.required_check = QCheckBox("Required field")
        form.addRow("", self.required_check)
        layout.addWidget(self.body)

        layout.addStretch(1)
        self.remove_btn = QPushButton("Remove field")
        layout.addWidget(self.remove_btn)

        self._connect_signals()
        store.session_changed.connect(self.refresh)
        self.refresh(store.session)

    def _connect_signals(self):
        self.value_edit.editingFinished.connect(self._apply_text_value)
        self.load_image_btn.clicked.connect(self._load_image)
        self.clear_image_btn.clicked.connect(self._clear_image)
        self.required_check.toggled.connect(self._apply_required)
        self.remove_btn.clicked.connect(self._remove_field)

    # ---- store -> widgets ----

    def current_field(self) -> Optional[Field]:
        return self.store.session.field(self._field_id)

    def refresh(self, session: DocumentSession) -> None:
        """Show the active field of *session*."""
        f = session.active_field
        switched = (f.id if f else None) != self._field_id
        self._field_id = f.id if f else None
        self.empty_label.setVisible(f is None)
        self.body.setVisible(f is not None)
        self.remove_btn.setVisible(f is not None)
        if f is None:
            return

        designer = session.mode != AppMode.SIGNER
        self.type_label.setText(f.type.capitalize())
        self.page_label.setText(str(f.page))
        self.geometry_label.setText(
            f"x {f.x:.3f}  y {f.y:.3f}  w {f.width:.3f}  h {f.height:.3f}"
        )

        if f.is_image:
            self.value_stack.setCurrentIndex(1)
            self._show_preview(f.value)
            self.clear_image_btn.setEnabled(bool(f.value))
        else:
            self.value_stack.setCurrentIndex(0)
            # Don't clobber text being typed unless the selection moved
            if switched or not self.value_edit.hasFocus():
                self.value_edit.blockSignals(True)
                self.value_edit.setText(f.value or "")
                self.value_edit.blockSignals(False)

        self.required_check.blockSignals(True)
        self.required_check.setChecked(f.required)
        self.required_check.blockSignals(False)
        self.required_check.setEnabled(designer)
        self.remove_btn.setEnabled(designer)

    def _show_preview(self, value: Optional[str]):
        if not value:
            self.image_preview.setPixmap(QPixmap())
            self.image_preview.setText("No image")
            return
        pixmap = QPixmap()
        try:
            _, payload = parse_data_url(value)
        except DataUrlError:
            payload = b""
        if not payload or not pixmap.loadFromData(payload):
            self.image_preview.setPixmap(QPixmap())
            self.image_preview.setText("Unreadable image")
            return
        self.image_preview.setPixmap(pixmap.scaledToHeight(
            _PREVIEW_HEIGHT, Qt.TransformationMode.SmoothTransformation
        ))

    # ---- widgets -> store ----

    def _apply_text_value(self):
        f = self.current_field()
        if f is None or f.is_image:
            return
        text = self.value_edit.text().strip()
        if text != (f.value or ""):
            self.store.update_field(f.id, {"value": text or None})

    def _load_image(self):
        f = self.current_field()
        if f is None:
            return
        start_dir = str(get_settings().get_last_directory())
        path, _ = QFileDialog.getOpenFileName(
            self, f"Load {f.type} image", start_dir, "Images (*.png *.jpg *.jpeg)"
        )
        if not path:
            return
        try:
            value = image_file_to_data_url(path)
        except (DataUrlError, OSError) as e:
            QMessageBox.warning(self, "Load image", f"Could not load {os.path.basename(path)}:\n{e}")
            return
        log.info("Loaded %s image for field %s from %s", f.type, f.id, path)
        self.store.update_field(f.id, {"value": value})

    def _clear_image(self):
        f = self.current_field()
        if f is not None and f.type in FieldType.IMAGE_TYPES:
            self.store.update_field(f.id, {"value": None})

    def _apply_required(self, checked: bool):
        f = self.current_field()
        if f is not None:
            self.store.update_field(f.id, {"required": checked})

    def _remove_field(self):
        f = self.current_field()
        if f is not None:
            self.store.remove_field(f.id)
