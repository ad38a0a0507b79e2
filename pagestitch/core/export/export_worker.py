from typing import Mapping, Sequence

import structlog
from PyQt5.QtCore import QThread, pyqtSignal

from pagestitch.core.document.pdf_exporter import AnnotationMap, PDFExporter
from pagestitch.core.errors import ExportError
from pagestitch.core.session.models import SelectedPage

logger = structlog.get_logger()


class ExportWorker(QThread):
    """Worker thread for stitching the output PDF without freezing the UI."""

    # Signals
    finished = pyqtSignal(bool, str)  # success, message
    progress = pyqtSignal(str)  # status message
    page_progress = pyqtSignal(int, int)  # current, total pages

    def __init__(self, selected_pages: Sequence[SelectedPage],
                 source_files: Mapping[str, bytes], annotations: AnnotationMap,
                 output_path: str, parent=None):
        super().__init__(parent)
        # Work on copies so edits made during the export cannot leak in
        self.selected_pages = list(selected_pages)
        self.source_files = dict(source_files)
        self.annotations = {key: list(items) for key, items in annotations.items()}
        self.output_path = output_path
        self.exporter = PDFExporter()

    def run(self):
        """Execute the export in a background thread."""
        self.exporter.progress_signal.connect(self._on_page_progress)
        self.progress.emit("Stitching and burning drawings...")

        try:
            self.exporter.export_to_file(
                self.selected_pages,
                self.source_files,
                self.annotations,
                self.output_path,
            )
        except ExportError as e:
            logger.error("export_failed", error=str(e))
            self.finished.emit(False, f"Export failed: {e}")
            return
        except Exception as e:
            # The dialog waits on finished, so it must fire on any failure
            logger.exception("export_crashed")
            self.finished.emit(False, f"Error during export: {e}")
            return

        self.finished.emit(True, f"Saved {len(self.selected_pages)} pages to {self.output_path}")

    def _on_page_progress(self, current, total):
        """Handle page-level progress updates."""
        self.page_progress.emit(current, total)
