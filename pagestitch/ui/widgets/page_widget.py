from PyQt5.QtCore import QEvent, Qt, pyqtSignal
from PyQt5.QtGui import QCursor, QFont, QPainter
from PyQt5.QtWidgets import QPlainTextEdit, QPushButton, QWidget

from pagestitch.controllers import (
    DEFAULT_TEXT_SIZE_PX,
    AnnotationController,
    PageSurface,
    PointerButton,
    PointerType,
)
from pagestitch.core.annotations import PageKey
from pagestitch.core.session import Session, Tool

BUTTON_MAP = {
    Qt.LeftButton: PointerButton.PRIMARY,
    Qt.RightButton: PointerButton.SECONDARY,
    Qt.MiddleButton: PointerButton.MIDDLE,
}


class InlineTextEdit(QPlainTextEdit):
    """
    Text box placed on a page. Enter commits, Shift+Enter inserts a line
    break, Escape discards, and losing focus commits.
    """

    committed = pyqtSignal(str)
    cancelled = pyqtSignal()

    def __init__(self, color: str, parent=None):
        super().__init__(parent)
        self._closed = False
        font = QFont("Arial")
        font.setPixelSize(DEFAULT_TEXT_SIZE_PX)
        self.setFont(font)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setStyleSheet(f"""
            QPlainTextEdit {{
                background: rgba(255, 255, 255, 0.9);
                color: {color};
                border: 1px dashed #4a9eff;
                padding: 0px;
            }}
        """)
        self.resize(200, DEFAULT_TEXT_SIZE_PX * 3)

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key_Return, Qt.Key_Enter) and not event.modifiers() & Qt.ShiftModifier:
            self._close(commit=True)
            return
        if event.key() == Qt.Key_Escape:
            self._close(commit=False)
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        self._close(commit=True)

    def _close(self, commit: bool):
        if self._closed:
            return
        self._closed = True
        if commit:
            self.committed.emit(self.toPlainText())
        else:
            self.cancelled.emit()


class PageWidget(QWidget):
    """
    One source page in the document viewer: the rendered page, its live
    annotation overlay and the button that adds it to the export list.
    """

    selection_toggled = pyqtSignal(object, bool)  # PageKey, selected

    def __init__(self, controller: AnnotationController, session: Session,
                 page_key: PageKey, display_name: str, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.session = session
        self.page_key = page_key
        self.display_name = display_name
        self.surface_id = f"viewer:{page_key.to_string()}"
        self.page_pixmap = None
        self.text_editor = None

        self.add_button = QPushButton(self)
        self.add_button.setCursor(QCursor(Qt.PointingHandCursor))
        self.add_button.clicked.connect(self._toggle_selection)
        self.refresh_selection_state()

        self.controller.surface_updated.connect(self._on_surface_updated)
        self.controller.text_input_requested.connect(self._on_text_input_requested)
        self.controller.text_input_closed.connect(self._on_text_input_closed)
        self.controller.tool_changed.connect(self._update_cursor)

        self.setAttribute(Qt.WA_AcceptTouchEvents)
        self.setMouseTracking(True)
        # Taking focus on click commits any open text box before the press is handled
        self.setFocusPolicy(Qt.ClickFocus)
        self._update_cursor()

    def set_page_pixmap(self, pixmap):
        """Show a freshly rendered page and size the overlay to match it."""
        self.page_pixmap = pixmap
        self.setFixedSize(pixmap.width(), pixmap.height())

        if self.controller.get_surface(self.surface_id) is None:
            surface = PageSurface(self.page_key, pixmap.width(), pixmap.height())
            self.controller.register_surface(self.surface_id, surface)
        else:
            self.controller.resize_surface(self.surface_id, pixmap.width(), pixmap.height())

        self._place_add_button()
        self.update()

    def release(self):
        """Detach from the controller before the widget goes away."""
        self.controller.unregister_surface(self.surface_id)
        for signal, slot in (
            (self.controller.surface_updated, self._on_surface_updated),
            (self.controller.text_input_requested, self._on_text_input_requested),
            (self.controller.text_input_closed, self._on_text_input_closed),
            (self.controller.tool_changed, self._update_cursor),
        ):
            signal.disconnect(slot)

    def refresh_selection_state(self):
        selected = self.session.is_page_selected(self.page_key.document_id, self.page_key.page_number)
        self.add_button.setText("✓ Added" if selected else "+ Add Page")
        self.add_button.setStyleSheet(f"""
            QPushButton {{
                background-color: {'#22c55e' if selected else '#4a9eff'};
                color: white;
                border: none;
                border-radius: 4px;
                padding: 4px 10px;
                font-weight: bold;
            }}
        """)
        self.add_button.adjustSize()
        self._place_add_button()

    def paintEvent(self, event):
        if not self.page_pixmap:
            return

        painter = QPainter(self)
        painter.drawPixmap(0, 0, self.page_pixmap)
        surface = self.controller.get_surface(self.surface_id)
        if surface is not None:
            painter.drawImage(0, 0, surface.image)
        painter.end()

    # Pointer forwarding

    def mousePressEvent(self, event):
        button = BUTTON_MAP.get(event.button(), PointerButton.NONE)
        self.controller.handle_pointer_down(self.surface_id, self._point(event.pos()),
                                            PointerType.MOUSE, button)

    def mouseMoveEvent(self, event):
        self.controller.handle_pointer_move(self.surface_id, self._point(event.pos()))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.controller.handle_pointer_up(self.surface_id, self._point(event.pos()))

    def leaveEvent(self, event):
        self.controller.handle_pointer_leave(self.surface_id)
        super().leaveEvent(event)

    def event(self, event):
        touch_types = (QEvent.TouchBegin, QEvent.TouchUpdate, QEvent.TouchEnd, QEvent.TouchCancel)
        # Without an active tool touches fall through and scroll the viewer
        if event.type() in touch_types and self.controller.tool != Tool.NONE:
            points = event.touchPoints()
            if points:
                self._forward_touch(event.type(), self._point(points[0].pos()))
            event.accept()
            return True
        return super().event(event)

    def _forward_touch(self, event_type, point):
        if event_type == QEvent.TouchBegin:
            self.controller.handle_pointer_down(self.surface_id, point, PointerType.TOUCH)
        elif event_type == QEvent.TouchUpdate:
            self.controller.handle_pointer_move(self.surface_id, point, PointerType.TOUCH)
        elif event_type == QEvent.TouchEnd:
            self.controller.handle_pointer_up(self.surface_id, point)
        else:
            self.controller.handle_pointer_leave(self.surface_id)

    @staticmethod
    def _point(pos):
        return (float(pos.x()), float(pos.y()))

    # Text input

    def _on_text_input_requested(self, surface_id, x, y):
        if surface_id != self.surface_id:
            return
        self._remove_text_editor()

        self.text_editor = InlineTextEdit(self.controller.color, self)
        self.text_editor.move(int(x), int(y))
        self.text_editor.committed.connect(self._commit_text)
        self.text_editor.cancelled.connect(self._cancel_text)
        self.text_editor.show()
        self.text_editor.setFocus()

    def _commit_text(self, content):
        pending = self.controller.pending_text
        if pending is not None and pending.surface_id == self.surface_id:
            self.controller.commit_text(content)
        else:
            self._remove_text_editor()

    def _cancel_text(self):
        pending = self.controller.pending_text
        if pending is not None and pending.surface_id == self.surface_id:
            self.controller.cancel_text()
        else:
            self._remove_text_editor()

    def _on_text_input_closed(self, surface_id):
        if surface_id == self.surface_id:
            self._remove_text_editor()

    def _remove_text_editor(self):
        if self.text_editor is not None:
            editor = self.text_editor
            self.text_editor = None
            editor.hide()
            editor.deleteLater()

    # Helpers

    def _on_surface_updated(self, surface_id):
        if surface_id == self.surface_id:
            self.update()

    def _update_cursor(self, *_args):
        if self.controller.tool == Tool.NONE:
            self.unsetCursor()
        elif self.controller.tool == Tool.TEXT:
            self.setCursor(QCursor(Qt.IBeamCursor))
        else:
            self.setCursor(QCursor(Qt.CrossCursor))

    def _place_add_button(self):
        self.add_button.move(max(0, self.width() - self.add_button.width() - 10), 10)

    def _toggle_selection(self):
        selected = self.session.toggle_page(
            self.page_key.document_id, self.page_key.page_number, self.display_name
        )
        self.refresh_selection_state()
        self.selection_toggled.emit(self.page_key, selected)
