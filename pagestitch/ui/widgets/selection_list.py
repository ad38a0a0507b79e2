"""
Export list: the ordered pages that make up the stitched document.
"""
from typing import Optional, Tuple

from PyQt5.QtCore import QSize, Qt, pyqtSignal
from PyQt5.QtGui import QIcon, QPainter
from PyQt5.QtWidgets import QAbstractItemView, QApplication, QLabel, QListWidget, QListWidgetItem

from pagestitch.core.annotations import AnnotationRenderer
from pagestitch.core.session import SelectedPage, Session

THUMBNAIL_ZOOM = 0.15
PREVIEW_ZOOM = 0.8
PREVIEW_OFFSET_X = 20
PREVIEW_OFFSET_Y = 50
PREVIEW_BOTTOM_MARGIN = 300


def preview_position(cursor_x: float, cursor_y: float,
                     viewport_height: float) -> Tuple[float, float]:
    """
    Top-left corner of the hover preview: right of the cursor and slightly
    above it, kept clear of the bottom of the screen. Only the vertical
    position is clamped.
    """
    x = cursor_x + PREVIEW_OFFSET_X
    y = min(cursor_y - PREVIEW_OFFSET_Y, viewport_height - PREVIEW_BOTTOM_MARGIN)
    return x, y


class PagePreview(QLabel):
    """Floating enlarged view of a selected page."""

    def __init__(self, parent=None):
        super().__init__(parent, Qt.ToolTip | Qt.FramelessWindowHint)
        self.setAttribute(Qt.WA_ShowWithoutActivating)
        self.setStyleSheet("border: 1px solid #555555; background: white;")
        self.current_selection_id = None


class SelectionListWidget(QListWidget):
    """
    Drag-and-drop list of selected pages. Every change goes through the
    session; the list is rebuilt from it afterwards.
    """

    selection_changed = pyqtSignal()

    def __init__(self, session: Session, renderer: Optional[AnnotationRenderer] = None,
                 parent=None):
        super().__init__(parent)
        self.session = session
        self.renderer = renderer or AnnotationRenderer()
        self.preview = PagePreview()

        self.setDragDropMode(QAbstractItemView.InternalMove)
        self.setDefaultDropAction(Qt.MoveAction)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setIconSize(QSize(48, 64))
        self.setMouseTracking(True)
        self.model().rowsMoved.connect(self._on_rows_moved)

        self.refresh()

    def set_session(self, session: Session):
        self.session = session
        self.refresh()

    def refresh(self):
        """Rebuild the items from the session's export list."""
        self.blockSignals(True)
        self.clear()
        for position, item in enumerate(self.session.selected_pages, start=1):
            self.addItem(self._make_item(position, item))
        self.blockSignals(False)

    def invalidate_preview(self):
        """Re-render the preview on next hover, e.g. after annotations changed."""
        self.preview.current_selection_id = None

    def remove_current(self) -> bool:
        row = self.currentRow()
        if row < 0:
            return False
        self.session.remove_page(row)
        self.refresh()
        self.selection_changed.emit()
        return True

    def _make_item(self, position: int, selected: SelectedPage) -> QListWidgetItem:
        item = QListWidgetItem(f"{position}. {selected.display_name} - p.{selected.page_number}")
        item.setData(Qt.UserRole, selected.selection_id)
        thumbnail = self.session.reader.render_page(
            selected.document_id, selected.page_number, THUMBNAIL_ZOOM
        )
        if thumbnail is not None:
            item.setIcon(QIcon(thumbnail))
        return item

    def _on_rows_moved(self, _parent, start, _end, _destination, row):
        # Qt reports the destination row as it was before the move
        new_index = row if row < start else row - 1
        if new_index == start:
            return
        self.session.move_page(start, new_index)
        self.selection_changed.emit()

    def dropEvent(self, event):
        super().dropEvent(event)
        self.refresh()

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key_Delete, Qt.Key_Backspace):
            self.remove_current()
            return
        super().keyPressEvent(event)

    # Hover preview

    def mouseMoveEvent(self, event):
        super().mouseMoveEvent(event)
        item = self.itemAt(event.pos())
        if item is None:
            self.preview.hide()
            return
        self._show_preview(item, event.globalPos())

    def leaveEvent(self, event):
        self.preview.hide()
        super().leaveEvent(event)

    def hideEvent(self, event):
        self.preview.hide()
        super().hideEvent(event)

    def _show_preview(self, item: QListWidgetItem, global_pos):
        selection_id = item.data(Qt.UserRole)
        if selection_id != self.preview.current_selection_id or not self.preview.isVisible():
            selected = next(
                (p for p in self.session.selected_pages if p.selection_id == selection_id), None
            )
            if selected is None:
                self.preview.hide()
                return
            pixmap = self._render_preview(selected)
            if pixmap is None:
                self.preview.hide()
                return
            self.preview.setPixmap(pixmap)
            self.preview.adjustSize()
            self.preview.current_selection_id = selection_id

        screen = QApplication.screenAt(global_pos) or QApplication.primaryScreen()
        viewport_height = screen.availableGeometry().bottom()
        x, y = preview_position(global_pos.x(), global_pos.y(), viewport_height)
        self.preview.move(int(x), int(y))
        self.preview.show()

    def _render_preview(self, selected: SelectedPage):
        pixmap = self.session.reader.render_page(
            selected.document_id, selected.page_number, PREVIEW_ZOOM
        )
        if pixmap is None:
            return None

        annotations = self.session.annotations.get_page_annotations(selected.page_key)
        if annotations:
            painter = QPainter(pixmap)
            painter.setRenderHint(QPainter.Antialiasing)
            self.renderer.paint(annotations, pixmap.width(), pixmap.height(), painter)
            painter.end()
        return pixmap
