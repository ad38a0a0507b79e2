"""
Session context: open documents, export selection, annotations and view state.
"""
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from ..annotations.manager import AnnotationStore
from ..document.pdf_reader import PDFDocumentReader
from ..errors import DocumentLoadError, SessionRestoreError
from .models import MAX_ZOOM, MIN_ZOOM, DocumentInfo, SelectedPage, Tool, ViewPreferences

logger = structlog.get_logger()


def new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


@dataclass
class IngestResult:
    """Outcome of adding a batch of files. Failures do not abort the batch."""

    loaded: List[DocumentInfo] = field(default_factory=list)
    failures: List[DocumentLoadError] = field(default_factory=list)


class Session:
    """
    Everything the user is working on, passed explicitly to the components
    that read or change it.
    """

    def __init__(self, annotations: Optional[AnnotationStore] = None,
                 reader: Optional[PDFDocumentReader] = None):
        self.documents: List[DocumentInfo] = []
        self.source_files: Dict[str, bytes] = {}
        self.selected_pages: List[SelectedPage] = []
        self.annotations = annotations if annotations is not None else AnnotationStore()
        self.preferences = ViewPreferences()
        self.reader = reader if reader is not None else PDFDocumentReader()

        self._next_selection_id = 1
        self._change_listeners: List[Callable[["Session"], None]] = []

    # Change notification

    def add_change_listener(self, listener: Callable[["Session"], None]) -> None:
        """Register a callback run after every committed mutation."""
        self._change_listeners.append(listener)

    def mark_changed(self) -> None:
        for listener in list(self._change_listeners):
            listener(self)

    # Documents

    def ingest_files(self, files: Iterable[Tuple[str, bytes]]) -> IngestResult:
        """
        Decode and add source PDFs.

        Args:
            files: (file name, raw bytes) pairs

        Returns:
            Loaded documents and per-file failures
        """
        result = IngestResult()
        for name, data in files:
            document_id = new_document_id()
            try:
                page_count = self.reader.open_document(document_id, name, data)
            except DocumentLoadError as e:
                logger.warning("document_load_failed", name=name, error=e.reason)
                result.failures.append(e)
                continue

            info = DocumentInfo(id=document_id, name=name, page_count=page_count)
            self.documents.append(info)
            self.source_files[document_id] = bytes(data)
            result.loaded.append(info)

        if result.loaded:
            # Switch to the newest document
            self.set_current_document(result.loaded[-1].id, notify=False)
            self.mark_changed()
        return result

    def get_document(self, document_id: str) -> Optional[DocumentInfo]:
        for doc in self.documents:
            if doc.id == document_id:
                return doc
        return None

    @property
    def current_document(self) -> Optional[DocumentInfo]:
        document_id = self.preferences.current_document_id
        return self.get_document(document_id) if document_id else None

    def set_current_document(self, document_id: Optional[str], notify: bool = True) -> None:
        if document_id is not None and self.get_document(document_id) is None:
            raise KeyError(document_id)
        self.preferences.current_document_id = document_id
        self.preferences.scroll_top = 0
        if notify:
            self.mark_changed()

    def close_document(self, document_id: str) -> None:
        """
        Close a document and drop everything that refers to it: its source
        bytes, its selected pages and its annotations.
        """
        if self.get_document(document_id) is None:
            raise KeyError(document_id)

        self.documents = [d for d in self.documents if d.id != document_id]
        self.source_files.pop(document_id, None)
        self.reader.close_document(document_id)
        self.selected_pages = [p for p in self.selected_pages if p.document_id != document_id]
        self.annotations.clear_document(document_id)

        if self.preferences.current_document_id == document_id:
            self.preferences.current_document_id = self.documents[0].id if self.documents else None
            self.preferences.scroll_top = 0

        logger.info("document_closed", document_id=document_id)
        self.mark_changed()

    def move_document(self, old_index: int, new_index: int) -> None:
        """Reorder the document tabs."""
        doc = self.documents.pop(old_index)
        self.documents.insert(new_index, doc)
        self.mark_changed()

    # Export selection

    def add_page(self, document_id: str, page_number: int,
                 display_name: Optional[str] = None) -> SelectedPage:
        """
        Append a page to the export list. The same page may be added more than once.

        Raises:
            KeyError: unknown document
            ValueError: page number out of range
        """
        doc = self.get_document(document_id)
        if doc is None:
            raise KeyError(document_id)
        if not 1 <= page_number <= doc.page_count:
            raise ValueError(f"Page {page_number} out of range for {doc.name}")

        item = SelectedPage(
            selection_id=self._next_selection_id,
            document_id=document_id,
            page_number=page_number,
            display_name=display_name if display_name is not None else doc.name,
        )
        self._next_selection_id += 1
        self.selected_pages.append(item)
        self.mark_changed()
        return item

    def is_page_selected(self, document_id: str, page_number: int) -> bool:
        return any(
            p.document_id == document_id and p.page_number == page_number
            for p in self.selected_pages
        )

    def toggle_page(self, document_id: str, page_number: int,
                    display_name: Optional[str] = None) -> bool:
        """
        Remove the first selection of a page, or add it if absent.

        Returns:
            True if the page is selected afterwards
        """
        for index, item in enumerate(self.selected_pages):
            if item.document_id == document_id and item.page_number == page_number:
                self.remove_page(index)
                return False
        self.add_page(document_id, page_number, display_name)
        return True

    def remove_page(self, index: int) -> SelectedPage:
        item = self.selected_pages.pop(index)
        self.mark_changed()
        return item

    def move_page(self, old_index: int, new_index: int) -> None:
        """Move one export entry; the others keep their relative order."""
        item = self.selected_pages.pop(old_index)
        self.selected_pages.insert(new_index, item)
        self.mark_changed()

    # View state

    def change_zoom(self, delta: float) -> float:
        zoom = max(MIN_ZOOM, min(MAX_ZOOM, self.preferences.zoom + delta))
        self.preferences.zoom = round(zoom, 2)
        self.mark_changed()
        return self.preferences.zoom

    def set_tool(self, tool: Tool) -> None:
        self.preferences.tool = tool
        self.mark_changed()

    def set_color(self, color: str) -> None:
        self.preferences.color = color
        self.mark_changed()

    # Serialization

    def to_dict(self) -> dict:
        """Application state without the source file bytes."""
        return {
            'docs': [d.to_dict() for d in self.documents],
            'selectedPages': [p.to_dict() for p in self.selected_pages],
            'drawings': self.annotations.to_dict(),
            **self.preferences.to_dict(),
        }

    @classmethod
    def from_dict(cls, state: dict, files: Dict[str, bytes],
                  annotations: Optional[AnnotationStore] = None,
                  reader: Optional[PDFDocumentReader] = None) -> "Session":
        """
        Rebuild a session and reopen its documents.

        Raises:
            SessionRestoreError: if the state is malformed or a stored
                document cannot be decoded
        """
        session = cls(annotations=annotations, reader=reader)
        try:
            session.documents = [DocumentInfo.from_dict(d) for d in state.get('docs', [])]
            session.selected_pages = [
                SelectedPage.from_dict(p) for p in state.get('selectedPages', [])
            ]
            session.annotations.load_dict(state.get('drawings', {}))
            session.preferences = ViewPreferences.from_dict(state)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SessionRestoreError(f"Malformed session state: {e}") from e

        try:
            for doc in session.documents:
                data = files.get(doc.id)
                if data is None:
                    raise SessionRestoreError(f"Missing source file for {doc.name}")
                session.reader.open_document(doc.id, doc.name, data)
                session.source_files[doc.id] = bytes(data)
        except DocumentLoadError as e:
            session.reader.close_all()
            raise SessionRestoreError(str(e)) from e
        except SessionRestoreError:
            session.reader.close_all()
            raise

        if session.selected_pages:
            session._next_selection_id = max(p.selection_id for p in session.selected_pages) + 1
        if session.preferences.current_document_id and session.current_document is None:
            session.preferences.current_document_id = None
        return session
