import os
import shutil
import tempfile
from typing import Dict, List, Mapping, Optional, Sequence

import fitz  # PyMuPDF
import structlog
from PyQt5.QtCore import QObject, pyqtSignal

from ..annotations.models import Annotation, PageKey
from ..annotations.renderer import AnnotationRenderer
from ..errors import ExportError
from ..session.models import SelectedPage

logger = structlog.get_logger()

# Raster density of burned-in annotations, relative to page points
EXPORT_SCALE = 2
EXPORT_FILENAME = "stitched_pro.pdf"

AnnotationMap = Mapping[PageKey, Sequence[Annotation]]


def snapshot_annotations(store) -> Dict[PageKey, List[Annotation]]:
    """Copy of an AnnotationStore's content that later edits do not affect."""
    return {key: store.get_page_annotations(key) for key in store.page_keys()}


class PDFExporter(QObject):
    """Stitches selected pages into one PDF and burns their annotations in."""

    progress_signal = pyqtSignal(int, int)  # current, total

    def __init__(self, renderer: Optional[AnnotationRenderer] = None,
                 export_scale: float = EXPORT_SCALE):
        super().__init__()
        self.renderer = renderer or AnnotationRenderer()
        self.export_scale = export_scale

    def compose(self, selected_pages: Sequence[SelectedPage],
                source_files: Mapping[str, bytes],
                annotations: AnnotationMap) -> bytes:
        """
        Build the merged document.

        Args:
            selected_pages: Pages to export, in output order
            source_files: Raw PDF bytes per document id
            annotations: Annotations per page; pages without entries are copied as-is

        Returns:
            The merged PDF as bytes

        Raises:
            ExportError: if any page cannot be copied or annotated, or saving fails
        """
        if not selected_pages:
            raise ExportError("No pages selected")

        output = fitz.open()
        try:
            total = len(selected_pages)
            for index, item in enumerate(selected_pages):
                self._append_page(output, item, source_files, annotations)
                self.progress_signal.emit(index + 1, total)

            data = output.tobytes(garbage=4, deflate=True)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Export failed: {e}") from e
        finally:
            output.close()

        logger.info("export_composed", pages=len(selected_pages), size=len(data))
        return data

    def export_to_file(self, selected_pages: Sequence[SelectedPage],
                       source_files: Mapping[str, bytes],
                       annotations: AnnotationMap, output_path: str) -> None:
        """
        Build the merged document and write it to disk. The file only appears
        once the whole document has been produced.

        Raises:
            ExportError: on any failure; no file is left behind
        """
        data = self.compose(selected_pages, source_files, annotations)

        output_dir = os.path.dirname(os.path.abspath(output_path))
        temp_path = None
        try:
            temp_fd, temp_path = tempfile.mkstemp(suffix='.pdf', dir=output_dir)
            with os.fdopen(temp_fd, 'wb') as f:
                f.write(data)
            shutil.move(temp_path, output_path)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
            raise ExportError(f"Could not save {output_path}: {e}") from e

        logger.info("export_saved", path=output_path)

    def _append_page(self, output: fitz.Document, item: SelectedPage,
                     source_files: Mapping[str, bytes],
                     annotations: AnnotationMap) -> None:
        data = source_files.get(item.document_id)
        if data is None:
            raise ExportError(f"Source document of {item.display_name} is not loaded")

        # A fresh source per entry keeps duplicate pages independent
        src = fitz.open(stream=bytes(data), filetype="pdf")
        try:
            if not 1 <= item.page_number <= src.page_count:
                raise ExportError(
                    f"Page {item.page_number} does not exist in {item.display_name}"
                )
            output.insert_pdf(src, from_page=item.page_number - 1, to_page=item.page_number - 1)
        finally:
            src.close()

        page = output.load_page(output.page_count - 1)
        width, height = page.rect.width, page.rect.height

        page_annotations = annotations.get(item.page_key)
        if not page_annotations:
            return

        png = self.renderer.render_png(page_annotations, width, height, self.export_scale)
        page.insert_image(page.rect, stream=png, overlay=True, keep_proportion=False)
