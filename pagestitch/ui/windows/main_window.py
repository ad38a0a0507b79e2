"""
Main application window for PDF Stitcher.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
from PyQt5.QtCore import Qt, QTimer, pyqtSignal
from PyQt5.QtGui import QKeySequence
from PyQt5.QtWidgets import (
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
    QScrollArea,
    QShortcut,
    QSizePolicy,
    QSpacerItem,
    QTabBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from pagestitch.controllers import AnnotationController
from pagestitch.core.annotations import PageKey
from pagestitch.core.document import EXPORT_FILENAME
from pagestitch.core.document.pdf_exporter import snapshot_annotations
from pagestitch.core.export import ExportWorker
from pagestitch.core.session import Session, SessionPersistence, Tool
from pagestitch.ui.toolbars import DrawingToolbar
from pagestitch.ui.widgets import PageWidget, SelectionListWidget

logger = structlog.get_logger()

ZOOM_STEP = 0.25
PAGE_SPACING = 30


class MainWindow(QMainWindow):
    """Main application window: document tabs, page viewer and export list."""

    # Signals
    documents_changed = pyqtSignal()

    def __init__(self, session: Session, persistence: Optional[SessionPersistence] = None):
        super().__init__()

        self._init_core_components(session, persistence)

        self._setup_window()
        self._setup_ui()
        self._setup_connections()

        self.refresh_all()
        QTimer.singleShot(0, self._restore_scroll_position)

    def _init_core_components(self, session: Session,
                              persistence: Optional[SessionPersistence]):
        """Initialize the session and the controllers working on it."""
        self.session = session
        self.persistence = persistence
        self.annotation_controller = AnnotationController(session, parent=self)

        self.page_widgets: List[PageWidget] = []
        self._updating_tabs = False

        # Export worker (created when needed)
        self.export_worker: Optional[ExportWorker] = None

    def _setup_window(self):
        self.setWindowTitle("PDF Stitcher")
        self.setMinimumSize(1000, 700)

    def _setup_ui(self):
        """Setup the user interface."""
        self._create_toolbar()
        self._create_tabs()
        self._create_viewer()
        self._create_side_panel()
        self._setup_layout()

    def _create_toolbar(self):
        """Create the top toolbar."""
        self.top_frame = QFrame()
        self.top_frame.setObjectName("TopFrame")
        self.top_layout = QHBoxLayout(self.top_frame)
        self.top_layout.setContentsMargins(10, 8, 10, 8)
        self.top_layout.setSpacing(8)

        self._add_toolbar_button("Open PDFs", "Add source PDFs (Ctrl+O)", self.open_pdfs)
        self.close_button = self._add_toolbar_button(
            "Close", "Close the current document", self.close_current_document
        )

        self._add_toolbar_separator()

        self._add_toolbar_button("−", "Zoom Out", lambda: self.adjust_zoom(-ZOOM_STEP))
        self.zoom_label = QLabel("100%", self.top_frame)
        self.zoom_label.setFixedWidth(50)
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.top_layout.addWidget(self.zoom_label)
        self._add_toolbar_button("+", "Zoom In", lambda: self.adjust_zoom(ZOOM_STEP))

        self._add_toolbar_spacer(40, expanding=True)

        self.status_label = QLabel("", self.top_frame)
        self.status_label.setStyleSheet("color: #8899AA;")
        self.top_layout.addWidget(self.status_label)

        self._add_toolbar_separator()

        self._add_toolbar_button("Reset", "Clear all PDFs and start over", self.reset_workspace)
        self.export_button = self._add_toolbar_button(
            "Export PDF", "Stitch the selected pages (Ctrl+S)", self.export_pdf
        )

    def _add_toolbar_button(self, text: str, tooltip: str, callback) -> QToolButton:
        """Add a button to the toolbar."""
        btn = QToolButton(self.top_frame)
        btn.setText(text)
        btn.setToolTip(tooltip)
        btn.clicked.connect(callback)
        self.top_layout.addWidget(btn)
        return btn

    def _add_toolbar_separator(self):
        separator = QFrame()
        separator.setFrameShape(QFrame.VLine)
        separator.setFrameShadow(QFrame.Sunken)
        separator.setStyleSheet("background-color: #555555; max-width: 1px;")
        self.top_layout.addWidget(separator)

    def _add_toolbar_spacer(self, width: int, expanding: bool = False):
        policy = QSizePolicy.Expanding if expanding else QSizePolicy.Fixed
        self.top_layout.addSpacerItem(QSpacerItem(width, 20, policy, QSizePolicy.Minimum))

    def _create_tabs(self):
        self.tab_bar = QTabBar()
        self.tab_bar.setMovable(True)
        self.tab_bar.setTabsClosable(True)
        self.tab_bar.setExpanding(False)

    def _create_viewer(self):
        self.page_container = QWidget()
        self.page_layout = QVBoxLayout(self.page_container)
        self.page_layout.setSpacing(PAGE_SPACING)
        self.page_layout.setAlignment(Qt.AlignHCenter | Qt.AlignTop)

        self.empty_label = QLabel("Open one or more PDFs to start stitching.")
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.setStyleSheet("color: #8899AA; font-size: 16px;")
        self.page_layout.addWidget(self.empty_label)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setWidget(self.page_container)

    def _create_side_panel(self):
        self.side_panel = QFrame()
        self.side_panel.setFixedWidth(300)
        side_layout = QVBoxLayout(self.side_panel)
        side_layout.setContentsMargins(8, 8, 8, 8)

        self.drawing_toolbar = DrawingToolbar(self.side_panel)
        side_layout.addWidget(self.drawing_toolbar)

        self.selection_header = QLabel("Export List", self.side_panel)
        self.selection_header.setStyleSheet("font-weight: bold; color: #8899AA;")
        side_layout.addWidget(self.selection_header)

        self.selection_list = SelectionListWidget(
            self.session, self.annotation_controller.renderer, self.side_panel
        )
        side_layout.addWidget(self.selection_list, 1)

        self.remove_button = QToolButton(self.side_panel)
        self.remove_button.setText("Remove Selected Page")
        self.remove_button.clicked.connect(self.selection_list.remove_current)
        side_layout.addWidget(self.remove_button)

    def _setup_layout(self):
        viewer = QWidget()
        viewer_layout = QVBoxLayout(viewer)
        viewer_layout.setContentsMargins(0, 0, 0, 0)
        viewer_layout.setSpacing(0)
        viewer_layout.addWidget(self.tab_bar)
        viewer_layout.addWidget(self.scroll_area, 1)

        body = QWidget()
        body_layout = QHBoxLayout(body)
        body_layout.setContentsMargins(0, 0, 0, 0)
        body_layout.addWidget(viewer, 1)
        body_layout.addWidget(self.side_panel)

        central = QWidget()
        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)
        main_layout.addWidget(self.top_frame)
        main_layout.addWidget(body, 1)
        self.setCentralWidget(central)

    def _setup_connections(self):
        """Connect signals and keyboard shortcuts."""
        self.tab_bar.currentChanged.connect(self._on_tab_changed)
        self.tab_bar.tabCloseRequested.connect(self._on_tab_close_requested)
        self.tab_bar.tabMoved.connect(self._on_tab_moved)

        self.drawing_toolbar.tool_toggled.connect(self.annotation_controller.toggle_tool)
        self.drawing_toolbar.color_selected.connect(self.annotation_controller.set_color)
        self.drawing_toolbar.clear_requested.connect(self.clear_current_annotations)

        self.annotation_controller.tool_changed.connect(self._sync_toolbar)
        self.annotation_controller.color_changed.connect(self._sync_toolbar)
        self.annotation_controller.annotations_changed.connect(self._on_annotations_changed)

        self.selection_list.selection_changed.connect(self._on_selection_changed)
        self.scroll_area.verticalScrollBar().valueChanged.connect(self._on_scroll)

        QShortcut(QKeySequence.Open, self, activated=self.open_pdfs)
        QShortcut(QKeySequence.Save, self, activated=self.export_pdf)
        QShortcut(QKeySequence.ZoomIn, self, activated=lambda: self.adjust_zoom(ZOOM_STEP))
        QShortcut(QKeySequence.ZoomOut, self, activated=lambda: self.adjust_zoom(-ZOOM_STEP))

    # Rendering

    def refresh_all(self):
        """Rebuild every view from the session."""
        self._render_tabs()
        self._render_viewer()
        self.selection_list.refresh()
        self._sync_toolbar()
        self.zoom_label.setText(f"{round(self.session.preferences.zoom * 100)}%")
        self._update_selection_header()

    def _render_tabs(self):
        self._updating_tabs = True
        try:
            while self.tab_bar.count():
                self.tab_bar.removeTab(0)
            for doc in self.session.documents:
                index = self.tab_bar.addTab(doc.name)
                self.tab_bar.setTabData(index, doc.id)
                if doc.id == self.session.preferences.current_document_id:
                    self.tab_bar.setCurrentIndex(index)
        finally:
            self._updating_tabs = False
        self.close_button.setEnabled(bool(self.session.documents))

    def _render_viewer(self):
        """Render every page of the current document."""
        self._clear_page_widgets()

        doc = self.session.current_document
        self.empty_label.setVisible(doc is None)
        if doc is None:
            return

        zoom = self.session.preferences.zoom
        for page_number in range(1, doc.page_count + 1):
            pixmap = self.session.reader.render_page(doc.id, page_number, zoom)
            if pixmap is None:
                logger.warning("page_render_failed", document_id=doc.id, page=page_number)
                continue
            widget = PageWidget(
                self.annotation_controller,
                self.session,
                PageKey(doc.id, page_number),
                doc.name,
                self.page_container,
            )
            widget.set_page_pixmap(pixmap)
            widget.selection_toggled.connect(self._on_page_selection_toggled)
            self.page_layout.addWidget(widget, 0, Qt.AlignHCenter)
            self.page_widgets.append(widget)

    def _clear_page_widgets(self):
        for widget in self.page_widgets:
            widget.release()
            self.page_layout.removeWidget(widget)
            widget.deleteLater()
        self.page_widgets = []

    def _sync_toolbar(self, *_args):
        self.drawing_toolbar.sync(self.session.preferences.tool, self.session.preferences.color)

    def _update_selection_header(self):
        count = len(self.session.selected_pages)
        self.selection_header.setText(f"Export List ({count})")
        self.export_button.setEnabled(count > 0)

    def _restore_scroll_position(self):
        self.scroll_area.verticalScrollBar().setValue(self.session.preferences.scroll_top)

    # Documents

    def open_pdfs(self):
        """Pick source PDFs and add them as tabs."""
        file_paths, _ = QFileDialog.getOpenFileNames(self, "Open PDFs", "", "PDF Files (*.pdf)")
        if file_paths:
            self.load_files(file_paths)

    def load_files(self, file_paths: List[str]):
        files = []
        unreadable = []
        for path in file_paths:
            try:
                files.append((os.path.basename(path), Path(path).read_bytes()))
            except OSError as e:
                logger.warning("file_read_failed", path=path, error=str(e))
                unreadable.append(f"Error loading {os.path.basename(path)}: {e.strerror}")

        self.status_label.setText("Processing PDFs...")
        result = self.session.ingest_files(files)
        self.status_label.setText("")
        logger.info("files_ingested", loaded=len(result.loaded), failed=len(result.failures))

        messages = unreadable + [str(failure) for failure in result.failures]
        if messages:
            QMessageBox.warning(self, "Some files could not be loaded", "\n".join(messages))

        if result.loaded:
            self.refresh_all()
            self.scroll_area.verticalScrollBar().setValue(0)
            self.documents_changed.emit()

    def close_current_document(self):
        doc = self.session.current_document
        if doc is not None:
            self.close_document(doc.id)

    def close_document(self, document_id: str):
        self.session.close_document(document_id)
        self.refresh_all()
        self.scroll_area.verticalScrollBar().setValue(0)
        self.documents_changed.emit()

    def _on_tab_changed(self, index: int):
        if self._updating_tabs or index < 0:
            return
        document_id = self.tab_bar.tabData(index)
        if document_id == self.session.preferences.current_document_id:
            return
        self.session.set_current_document(document_id)
        self._render_viewer()
        self.scroll_area.verticalScrollBar().setValue(0)

    def _on_tab_close_requested(self, index: int):
        self.close_document(self.tab_bar.tabData(index))

    def _on_tab_moved(self, from_index: int, to_index: int):
        if not self._updating_tabs:
            self.session.move_document(from_index, to_index)

    # View

    def adjust_zoom(self, delta: float):
        scroll_bar = self.scroll_area.verticalScrollBar()
        old_zoom = self.session.preferences.zoom
        fraction = scroll_bar.value() / max(1, scroll_bar.maximum())

        zoom = self.session.change_zoom(delta)
        self.zoom_label.setText(f"{round(zoom * 100)}%")
        if zoom == old_zoom:
            return

        self._render_viewer()
        QTimer.singleShot(0, lambda: scroll_bar.setValue(int(fraction * scroll_bar.maximum())))

    def _on_scroll(self, value: int):
        # Kept in memory only; written with the next saved change
        if self.session.current_document is not None:
            self.session.preferences.scroll_top = value

    # Selection

    def _on_page_selection_toggled(self, _page_key, _selected):
        self.selection_list.refresh()
        self._update_selection_header()

    def _on_selection_changed(self):
        self._update_selection_header()
        for widget in self.page_widgets:
            widget.refresh_selection_state()

    # Annotations

    def _on_annotations_changed(self, _page_key):
        self.selection_list.invalidate_preview()

    def clear_current_annotations(self):
        doc = self.session.current_document
        if doc is None:
            return
        reply = QMessageBox.question(
            self,
            "Clear Annotations",
            f"Remove every annotation from {doc.name}?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self.annotation_controller.clear_document(doc.id)

    # Workspace

    def reset_workspace(self):
        """Drop every document, selection and annotation."""
        reply = QMessageBox.question(
            self,
            "Reset Workspace",
            "Clear all PDFs and start over?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        if reply != QMessageBox.Yes:
            return

        self._clear_page_widgets()
        self.session.reader.close_all()
        if self.persistence is not None:
            try:
                self.persistence.clear()
            except OSError as e:
                logger.error("session_clear_failed", error=str(e))
                QMessageBox.critical(self, "Reset Failed", f"Could not clear saved data: {e}")

        session = Session()
        if self.persistence is not None:
            self.persistence.attach(session)
        self.session = session
        self.annotation_controller.set_session(session)
        self.selection_list.set_session(session)
        logger.info("workspace_reset")
        self.refresh_all()
        self.documents_changed.emit()

    # Export

    def export_pdf(self) -> bool:
        """Stitch the selected pages into a new PDF file."""
        if not self.session.selected_pages:
            QMessageBox.information(self, "Nothing to Export", "Add pages to the export list first.")
            return False

        output_path, _ = QFileDialog.getSaveFileName(
            self, "Export Stitched PDF", EXPORT_FILENAME, "PDF Files (*.pdf)"
        )
        if not output_path:
            return False

        progress = QProgressDialog("Stitching and burning drawings...", None, 0, 100, self)
        progress.setWindowTitle("Exporting PDF")
        progress.setWindowModality(Qt.WindowModality.WindowModal)
        progress.setMinimumDuration(0)
        progress.setCancelButton(None)
        progress.setAutoClose(False)
        progress.setAutoReset(False)
        progress.show()

        self.export_worker = ExportWorker(
            self.session.selected_pages,
            self.session.source_files,
            snapshot_annotations(self.session.annotations),
            output_path,
        )

        def on_progress(message):
            progress.setLabelText(message)

        def on_page_progress(current, total):
            if total > 0:
                progress.setValue(int((current / total) * 100))
                progress.setLabelText(f"Stitching pages: {current}/{total}")

        def on_finished(success, message):
            progress.close()
            if success:
                QMessageBox.information(self, "Export Complete", message)
            else:
                QMessageBox.critical(self, "Export Failed", message)

            if self.export_worker is not None:
                self.export_worker.deleteLater()
            self.export_worker = None
            self.export_button.setEnabled(bool(self.session.selected_pages))

        self.export_worker.progress.connect(on_progress)
        self.export_worker.page_progress.connect(on_page_progress)
        self.export_worker.finished.connect(on_finished)

        self.export_button.setEnabled(False)
        self.export_worker.start()
        return True

    def keyPressEvent(self, event):  # type: ignore[override]
        if event.key() == Qt.Key.Key_Escape and self.session.preferences.tool != Tool.NONE:
            self.annotation_controller.set_tool(Tool.NONE)
            event.accept()
            return
        super().keyPressEvent(event)

    def closeEvent(self, event):  # type: ignore[override]
        if self.export_worker is not None and self.export_worker.isRunning():
            self.export_worker.wait()
        self._clear_page_widgets()
        self.session.reader.close_all()
        event.accept()
