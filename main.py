"""
main.py

PDF Signer - Main Application

PyQt6 application for placing signature/text/date/stamp fields on a PDF:
- Designer mode: place, move and resize fields, save the layout as JSON
- Signer mode: load a layout, fill the fields, export a flattened PDF
- Headless flattening from the command line

Usage:
    python main.py [document.pdf] [--config fields.json] [--mode designer|signer]
    python main.py contract.pdf --config config-contract.json --flatten signed-contract.pdf

Dependencies:
    pip install PyQt6 PyMuPDF pillow jsonschema platformdirs tomli-w
"""

from __future__ import annotations

import argparse
import os
import sys
import traceback
from typing import List, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QActionGroup, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QDockWidget,
    QFileDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from canvas.sync import PageSyncEngine
from canvas.view import PageView
from debug_trace import close_log, setup_logging, trace, trace_exception
from document.exporter import SourceDocumentError, flatten_fields
from document.loader import DocumentParseError
from document.rasterizer import PageRasterizer
from models import AppMode, FieldType
from properties.dock import InspectorPanel
from settings import SettingsManager, get_settings
from store.config_io import ConfigParseError, config_filename, config_to_json, signed_filename
from store.document_store import DocumentSession, DocumentStore

_TOOL_LABELS = {
    FieldType.SIGNATURE: "Signature",
    FieldType.TEXT: "Text",
    FieldType.DATE: "Date",
    FieldType.STAMP: "Stamp",
}

_MIN_SCALE = 0.4
_MAX_SCALE = 4.0


class MainWindow(QMainWindow):
    """Main application window.

    Args:
        settings_manager: The SettingsManager instance for application settings.
        store: Document store to work on; a new one is created if omitted.
    """

    def __init__(self, settings_manager: SettingsManager, store: Optional[DocumentStore] = None):
        super().__init__()
        self.settings_manager = settings_manager
        self.store = store or DocumentStore(self)
        self.rasterizer = PageRasterizer(self)
        self.engines: List[PageSyncEngine] = []
        self.views: List[PageView] = []
        self._pages_for = None  # DocumentHandle the pages were built for
        self._scale = settings_manager.settings.canvas.render_scale
        self._field_tool: Optional[str] = None

        # Pages stacked vertically in a scroll area
        self.pages_widget = QWidget()
        self.pages_layout = QVBoxLayout(self.pages_widget)
        self.pages_layout.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self.pages_layout.setSpacing(24)
        self.placeholder = QLabel()
        self.placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.pages_layout.addWidget(self.placeholder)

        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.scroll.setWidget(self.pages_widget)
        self.setCentralWidget(self.scroll)

        # Inspector dock (right side)
        self.inspector = InspectorPanel(self.store, self)
        self.inspector_dock = QDockWidget("Field Properties", self)
        self.inspector_dock.setObjectName("InspectorDock")
        self.inspector_dock.setWidget(self.inspector)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self.inspector_dock)

        self._build_menus()
        self._build_toolbar()

        self.store.session_changed.connect(self._on_session_changed)
        self._on_session_changed(self.store.session)

    # ---- UI construction ----

    def _build_menus(self):
        """Build the application menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        self.open_pdf_act = QAction("Open PDF...", self)
        self.open_pdf_act.setShortcut(QKeySequence.StandardKey.Open)
        self.open_pdf_act.triggered.connect(self.open_pdf_dialog)
        file_menu.addAction(self.open_pdf_act)

        self.open_config_act = QAction("Open Field Config...", self)
        self.open_config_act.triggered.connect(self.open_config_dialog)
        file_menu.addAction(self.open_config_act)

        file_menu.addSeparator()

        self.save_config_act = QAction("Save Field Config...", self)
        self.save_config_act.setShortcut(QKeySequence.StandardKey.Save)
        self.save_config_act.triggered.connect(self.save_config_dialog)
        file_menu.addAction(self.save_config_act)

        self.export_pdf_act = QAction("Export Signed PDF...", self)
        self.export_pdf_act.setShortcut(QKeySequence("Ctrl+E"))
        self.export_pdf_act.triggered.connect(self.export_pdf_dialog)
        file_menu.addAction(self.export_pdf_act)

        file_menu.addSeparator()

        close_act = QAction("Close Document", self)
        close_act.triggered.connect(self.store.clear)
        file_menu.addAction(close_act)

        exit_act = QAction("E&xit", self)
        exit_act.setShortcut(QKeySequence.StandardKey.Quit)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

        # Mode menu
        mode_menu = menubar.addMenu("&Mode")
        self.mode_group = QActionGroup(self)
        self.mode_group.setExclusionPolicy(QActionGroup.ExclusionPolicy.ExclusiveOptional)
        self.mode_actions = {}
        for mode, label in ((AppMode.DESIGNER, "Designer"), (AppMode.SIGNER, "Signer")):
            act = QAction(label, self)
            act.setCheckable(True)
            act.triggered.connect(lambda checked, m=mode: self.set_mode(m))
            self.mode_group.addAction(act)
            mode_menu.addAction(act)
            self.mode_actions[mode] = act

        # View menu
        view_menu = menubar.addMenu("&View")
        zoom_in = QAction("Zoom In", self)
        zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(self.zoom_in)
        view_menu.addAction(zoom_in)
        zoom_out = QAction("Zoom Out", self)
        zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(self.zoom_out)
        view_menu.addAction(zoom_out)
        zoom_reset = QAction("Actual Size", self)
        zoom_reset.setShortcut(QKeySequence("Ctrl+0"))
        zoom_reset.triggered.connect(self.zoom_reset)
        view_menu.addAction(zoom_reset)
        view_menu.addSeparator()
        view_menu.addAction(self.inspector_dock.toggleViewAction())

    def _build_toolbar(self):
        """Build the field tool bar (designer mode only)."""
        tb = self.addToolBar("Fields")
        tb.setObjectName("FieldsToolbar")
        self.tool_group = QActionGroup(self)
        self.tool_group.setExclusive(True)
        self.tool_actions = {}

        select_act = QAction("Select", self)
        select_act.setCheckable(True)
        select_act.setChecked(True)
        select_act.triggered.connect(lambda: self.set_field_tool(None))
        self.tool_group.addAction(select_act)
        tb.addAction(select_act)
        self.tool_actions[None] = select_act

        tb.addSeparator()
        for field_type in FieldType.ALL:
            act = QAction(_TOOL_LABELS[field_type], self)
            act.setCheckable(True)
            act.setToolTip(f"Click on a page to place a {field_type} field")
            act.triggered.connect(lambda checked, t=field_type: self.set_field_tool(t))
            self.tool_group.addAction(act)
            tb.addAction(act)
            self.tool_actions[field_type] = act

        tb.addSeparator()
        tb.addAction(self.export_pdf_act)

    # ---- session -> UI ----

    def _on_session_changed(self, session: DocumentSession):
        for mode, act in self.mode_actions.items():
            act.setChecked(session.mode == mode)

        designer = session.mode == AppMode.DESIGNER
        has_doc = session.document is not None
        for act in self.tool_actions.values():
            act.setEnabled(designer and session.is_ready)
        if not designer and self._field_tool is not None:
            self.set_field_tool(None)
        self.open_config_act.setEnabled(has_doc)
        self.save_config_act.setEnabled(designer and has_doc)
        self.export_pdf_act.setEnabled(session.is_ready)

        title = "PDF Signer"
        if session.mode:
            title += f" - {session.mode.capitalize()}"
        if has_doc:
            title += f" - {session.document.name}"
        self.setWindowTitle(title)

        if session.is_ready:
            if self._pages_for is not session.document:
                self._build_pages(session)
        else:
            self._clear_pages()
            self.placeholder.setText(self._placeholder_text(session))
        self.placeholder.setVisible(not session.is_ready)

    @staticmethod
    def _placeholder_text(session: DocumentSession) -> str:
        if session.mode is None:
            return "Choose Designer or Signer from the Mode menu."
        steps = ["1. Open a PDF contract" + (" (loaded)" if session.document else "")]
        if session.mode == AppMode.SIGNER:
            steps.append("2. Open the JSON field config" + (" (loaded)" if session.config_loaded else ""))
        return "\n".join(steps)

    def _clear_pages(self):
        for engine in self.engines:
            engine.dispose()
        for view in self.views:
            self.pages_layout.removeWidget(view)
            view.deleteLater()
        self.engines = []
        self.views = []
        self._pages_for = None

    def _build_pages(self, session: DocumentSession):
        """Create one engine and view per page and request the rasters."""
        self._clear_pages()
        doc = session.document
        trace(f"Building {doc.page_count} page(s) for {doc.name}", "MAIN")
        for page in range(1, doc.page_count + 1):
            engine = PageSyncEngine(self.store, page, self.rasterizer, self)
            engine.set_field_tool(self._field_tool)
            engine.field_placed.connect(self._on_field_placed)
            view = PageView(engine.scene)
            view.set_field_tool_cursor(self._field_tool is not None)
            view.tool_cancelled.connect(lambda: self.set_field_tool(None))
            self.pages_layout.addWidget(view, 0, Qt.AlignmentFlag.AlignHCenter)
            self.engines.append(engine)
            self.views.append(view)
            engine.request_raster(self._scale)
        self._pages_for = doc
        self.statusBar().showMessage(f"{doc.name}: {doc.page_count} page(s)")

    # ---- modes and tools ----

    def set_mode(self, mode: str):
        self.store.set_mode(mode)
        self.statusBar().showMessage(f"{mode.capitalize()} mode")

    def set_field_tool(self, field_type: Optional[str]):
        self._field_tool = field_type
        self.tool_actions[field_type].setChecked(True)
        for engine, view in zip(self.engines, self.views):
            engine.set_field_tool(field_type)
            view.set_field_tool_cursor(field_type is not None)

    def _on_field_placed(self, field_id: str):
        # Tools are not sticky: back to selection after each placement
        self.set_field_tool(None)

    # ---- zoom ----

    def _set_scale(self, scale: float):
        self._scale = max(_MIN_SCALE, min(_MAX_SCALE, scale))
        for engine in self.engines:
            engine.request_raster(self._scale)
        self.statusBar().showMessage(f"Zoom {self._scale / self.settings_manager.settings.canvas.render_scale:.0%}")

    def zoom_in(self):
        self._set_scale(self._scale * self.settings_manager.settings.canvas.zoom_step)

    def zoom_out(self):
        self._set_scale(self._scale / self.settings_manager.settings.canvas.zoom_step)

    def zoom_reset(self):
        self._set_scale(self.settings_manager.settings.canvas.render_scale)

    # ---- file operations ----

    def _remember_directory(self, path: str):
        self.settings_manager.settings.last_directory = os.path.dirname(os.path.abspath(path))

    def open_pdf_dialog(self):
        start = str(self.settings_manager.get_last_directory())
        path, _ = QFileDialog.getOpenFileName(self, "Open PDF", start, "PDF (*.pdf)")
        if path:
            self.open_pdf(path)

    def open_pdf(self, path: str) -> bool:
        """Load the PDF at *path* into the store. Returns True on success."""
        try:
            with open(path, "rb") as f:
                data = f.read()
            self.store.load_document(data, os.path.basename(path))
        except (OSError, DocumentParseError) as e:
            QMessageBox.critical(self, "Open failed", f"Could not open {os.path.basename(path)}:\n{e}")
            return False
        self._remember_directory(path)
        default_mode = self.settings_manager.settings.default_mode
        if self.store.session.mode is None and default_mode in AppMode.ALL:
            self.store.set_mode(default_mode)
        return True

    def open_config_dialog(self):
        start = str(self.settings_manager.get_last_directory())
        path, _ = QFileDialog.getOpenFileName(self, "Open Field Config", start, "JSON (*.json)")
        if path:
            self.open_config(path)

    def open_config(self, path: str) -> bool:
        """Apply the config file at *path*. Returns True on success."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
            self.store.load_config(text)
        except OSError as e:
            QMessageBox.critical(self, "Open failed", str(e))
            return False
        except ConfigParseError as e:
            details = "\n".join(e.errors[:10])
            QMessageBox.critical(self, "Invalid field config", f"{e}\n\n{details}".strip())
            return False
        self._remember_directory(path)
        self.statusBar().showMessage(f"Loaded {len(self.store.session.fields)} field(s) from {os.path.basename(path)}")
        return True

    def save_config_dialog(self):
        session = self.store.session
        if session.document is None:
            return
        start = os.path.join(str(self.settings_manager.get_last_directory()), config_filename(session.document.name))
        path, _ = QFileDialog.getSaveFileName(self, "Save Field Config", start, "JSON (*.json)")
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(config_to_json(session.document.name, session.fields))
        except OSError as e:
            QMessageBox.critical(self, "Save failed", str(e))
            return
        self._remember_directory(path)
        self.statusBar().showMessage(f"Saved field config: {path}")

    def export_pdf_dialog(self):
        session = self.store.session
        if not session.is_ready:
            return
        start = os.path.join(str(self.settings_manager.get_last_directory()), signed_filename(session.document.name))
        path, _ = QFileDialog.getSaveFileName(self, "Export Signed PDF", start, "PDF (*.pdf)")
        if not path:
            return
        if not path.lower().endswith(".pdf"):
            path += ".pdf"
        try:
            result = flatten_fields(session.document.data, session.fields)
            with open(path, "wb") as f:
                f.write(result.data)
        except (OSError, SourceDocumentError) as e:
            QMessageBox.critical(self, "Export failed", str(e))
            return
        self._remember_directory(path)
        self.statusBar().showMessage(f"Exported {path}: {len(result.drawn)} field(s) drawn")
        if result.skipped:
            lines = [f"{fid[:8]}: {reason}" for fid, reason in result.skipped]
            QMessageBox.warning(
                self,
                "Export finished with warnings",
                f"{len(result.skipped)} field(s) could not be drawn:\n\n" + "\n".join(lines),
            )

    def closeEvent(self, event):
        self._clear_pages()
        self.rasterizer.shutdown()
        super().closeEvent(event)


# ---- command line ----

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfsigner",
        description="Place signature, text, date and stamp fields on a PDF and flatten them.",
    )
    parser.add_argument("pdf", nargs="?", help="PDF document to open")
    parser.add_argument("--config", metavar="JSON", help="field config to load")
    parser.add_argument("--mode", choices=AppMode.ALL, help="start in designer or signer mode")
    parser.add_argument("--flatten", metavar="OUT", help="flatten the fields into OUT and exit (no window)")
    parser.add_argument("--log-level", default=None, help="logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--log-file", default=None, help="also write the log to this file")
    return parser


def flatten_headless(pdf_path: str, config_path: Optional[str], out_path: str) -> int:
    """Load, flatten and write without a GUI. Returns the exit status."""
    store = DocumentStore()
    try:
        with open(pdf_path, "rb") as f:
            store.load_document(f.read(), os.path.basename(pdf_path))
        if config_path:
            with open(config_path, "r", encoding="utf-8") as f:
                store.load_config(f.read())
        session = store.session
        result = flatten_fields(session.document.data, session.fields)
        with open(out_path, "wb") as f:
            f.write(result.data)
    except ConfigParseError as e:
        print(f"error: {e}", file=sys.stderr)
        for msg in e.errors[1:]:
            print(f"  {msg}", file=sys.stderr)
        return 1
    except (OSError, DocumentParseError, SourceDocumentError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    for fid, reason in result.skipped:
        print(f"warning: field {fid} skipped: {reason}", file=sys.stderr)
    print(f"wrote {out_path} ({len(result.drawn)} field(s) drawn)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = build_arg_parser().parse_args(argv)

    settings_manager = get_settings()
    setup_logging(args.log_level or settings_manager.settings.log_level, args.log_file)
    trace("Application starting", "MAIN")

    if args.flatten:
        if not args.pdf:
            print("error: --flatten needs a PDF", file=sys.stderr)
            return 2
        status = flatten_headless(args.pdf, args.config, args.flatten)
        close_log()
        return status

    app = QApplication(sys.argv[:1])

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    # Save settings on application quit
    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager)
    if args.mode:
        w.set_mode(args.mode)
    if args.pdf and w.open_pdf(args.pdf) and args.config:
        w.open_config(args.config)
    w.resize(1280, 900)
    w.show()
    trace("Entering event loop", "MAIN")
    return app.exec()


def _excepthook(exc_type, exc_value, exc_tb):
    trace("UNCAUGHT EXCEPTION:", "CRASH")
    trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
    close_log()
    sys.__excepthook__(exc_type, exc_value, exc_tb)


def run():
    """Console script entry point."""
    # Set up global exception handler to catch crashes
    sys.excepthook = _excepthook
    try:
        sys.exit(main())
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise


if __name__ == "__main__":
    run()
