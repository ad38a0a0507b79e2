"""
Source PDF decoding and page rendering.
"""
from typing import Dict, Optional, Tuple

import fitz  # PyMuPDF
import structlog
from PyQt5.QtGui import QImage, QPixmap

from ..errors import DocumentLoadError

logger = structlog.get_logger()


def open_pdf_bytes(name: str, data: bytes) -> fitz.Document:
    """
    Decode a PDF held in memory.

    Args:
        name: File name, used in error messages
        data: Raw file bytes

    Returns:
        An open PyMuPDF document

    Raises:
        DocumentLoadError: if the bytes are not a readable PDF
    """
    try:
        doc = fitz.open(stream=bytes(data), filetype="pdf")
    except Exception as e:
        raise DocumentLoadError(name, str(e)) from e

    if doc.needs_pass:
        doc.close()
        raise DocumentLoadError(name, "document is password protected")
    if doc.page_count < 1:
        doc.close()
        raise DocumentLoadError(name, "document has no pages")
    return doc


class PDFDocumentReader:
    """Keeps decoded source documents open for rendering, keyed by document id."""

    def __init__(self):
        self._docs: Dict[str, fitz.Document] = {}

    def open_document(self, document_id: str, name: str, data: bytes) -> int:
        """
        Decode and keep a source document.

        Args:
            document_id: Id the document is stored under
            name: File name for error reporting
            data: Raw PDF bytes

        Returns:
            Number of pages

        Raises:
            DocumentLoadError: if decoding fails
        """
        doc = open_pdf_bytes(name, data)
        self.close_document(document_id)
        self._docs[document_id] = doc
        logger.info("document_opened", document_id=document_id, name=name, pages=doc.page_count)
        return doc.page_count

    def close_document(self, document_id: str) -> None:
        doc = self._docs.pop(document_id, None)
        if doc is not None:
            doc.close()

    def close_all(self) -> None:
        for document_id in list(self._docs):
            self.close_document(document_id)

    def is_loaded(self, document_id: str) -> bool:
        return document_id in self._docs

    def get_page_count(self, document_id: str) -> int:
        doc = self._docs.get(document_id)
        return doc.page_count if doc else 0

    def get_page_size(self, document_id: str, page_number: int) -> Tuple[float, float]:
        """
        Get the size of a page in points.

        Args:
            document_id: Source document
            page_number: 1-based page number

        Returns:
            Tuple of (width, height), (0, 0) if unknown
        """
        page = self._load_page(document_id, page_number)
        if page is None:
            return 0.0, 0.0
        return page.rect.width, page.rect.height

    def render_page(self, document_id: str, page_number: int,
                    zoom: float) -> Optional[QPixmap]:
        """
        Render a page to a pixmap.

        Args:
            document_id: Source document
            page_number: 1-based page number
            zoom: Display scale (1.0 = one pixel per point)

        Returns:
            The rendered page, or None if the page does not exist
        """
        page = self._load_page(document_id, page_number)
        if page is None:
            return None

        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        img = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888)
        # fromImage copies the pixels out of the PyMuPDF buffer
        return QPixmap.fromImage(img)

    def _load_page(self, document_id: str, page_number: int) -> Optional[fitz.Page]:
        doc = self._docs.get(document_id)
        if doc is None or not 1 <= page_number <= doc.page_count:
            return None
        return doc.load_page(page_number - 1)
