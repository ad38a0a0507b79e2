"""
Controller for interactive annotation editing on displayed pages.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import structlog
from PyQt5.QtCore import QObject, QPointF, pyqtSignal

from pagestitch.core.annotations import ERASE_THRESHOLD_PX, AnnotationRenderer, PageKey
from pagestitch.core.annotations.renderer import make_stroke_pen
from pagestitch.core.session import Session, Tool

from .page_surface import PageSurface

logger = structlog.get_logger()

# Font size of new text labels, in display pixels
DEFAULT_TEXT_SIZE_PX = 16


class PointerPhase(Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    LEAVE = "leave"


class PointerType(Enum):
    MOUSE = "mouse"
    TOUCH = "touch"
    PEN = "pen"


class PointerButton(Enum):
    NONE = 0
    PRIMARY = 1
    SECONDARY = 2
    MIDDLE = 3


class EditorState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass
class PointerEvent:
    """Pointer input in the pixel space of a surface."""

    phase: PointerPhase
    position: Optional[Tuple[float, float]] = None
    pointer_type: PointerType = PointerType.MOUSE
    button: PointerButton = PointerButton.PRIMARY


@dataclass
class PendingText:
    """A text input opened on a surface and not yet committed."""

    surface_id: str
    position: Tuple[float, float]


class AnnotationController(QObject):
    """Turns pointer input on page surfaces into annotation edits."""

    # Signals
    annotations_changed = pyqtSignal(object)  # PageKey
    surface_updated = pyqtSignal(str)  # surface id whose overlay changed
    text_input_requested = pyqtSignal(str, float, float)  # surface id, x, y
    text_input_closed = pyqtSignal(str)  # surface id
    tool_changed = pyqtSignal(object)  # Tool
    color_changed = pyqtSignal(str)

    def __init__(self, session: Session, renderer: Optional[AnnotationRenderer] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.session = session
        self.renderer = renderer or AnnotationRenderer()
        self._surfaces: Dict[str, PageSurface] = {}

        self._state = EditorState.IDLE
        self._drag_surface_id: Optional[str] = None
        self._drag_tool = Tool.NONE
        self._current_path: List[Tuple[float, float]] = []
        self._pending_text: Optional[PendingText] = None

    def set_session(self, session: Session) -> None:
        """Work on another session. Open gestures and text inputs are dropped."""
        self._reset_gesture()
        self.cancel_text()
        self.session = session
        for surface_id in list(self._surfaces):
            self.repaint_surface(surface_id)

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def tool(self) -> Tool:
        return self.session.preferences.tool

    @property
    def color(self) -> str:
        return self.session.preferences.color

    @property
    def pending_text(self) -> Optional[PendingText]:
        return self._pending_text

    # Surfaces

    def register_surface(self, surface_id: str, surface: PageSurface) -> None:
        """Attach a surface and paint the annotations its page already has."""
        self._surfaces[surface_id] = surface
        self.repaint_surface(surface_id)

    def unregister_surface(self, surface_id: str) -> None:
        if self._drag_surface_id == surface_id:
            self._reset_gesture()
        if self._pending_text and self._pending_text.surface_id == surface_id:
            self._pending_text = None
        self._surfaces.pop(surface_id, None)

    def get_surface(self, surface_id: str) -> Optional[PageSurface]:
        return self._surfaces.get(surface_id)

    def resize_surface(self, surface_id: str, width: int, height: int) -> None:
        surface = self._surfaces.get(surface_id)
        if surface is None:
            return
        surface.resize(width, height)
        self.repaint_surface(surface_id)

    def repaint_surface(self, surface_id: str) -> None:
        """Clear a surface and paint every annotation of its page."""
        surface = self._surfaces.get(surface_id)
        if surface is None:
            return

        surface.clear()
        annotations = self.session.annotations.get_page_annotations(surface.page_key)
        if annotations:
            with surface.painting() as painter:
                self.renderer.paint(annotations, surface.width, surface.height, painter)
        self.surface_updated.emit(surface_id)

    def repaint_page(self, page_key: PageKey) -> None:
        for surface_id, surface in list(self._surfaces.items()):
            if surface.page_key == page_key:
                self.repaint_surface(surface_id)

    # Tool and color

    def set_tool(self, tool: Tool) -> None:
        """Switch tools. A gesture in progress is finished first."""
        self._finish_gesture()
        self.session.set_tool(tool)
        self.tool_changed.emit(tool)

    def toggle_tool(self, tool: Tool) -> Tool:
        """Activate a tool, or deactivate it if it is already active."""
        self.set_tool(Tool.NONE if self.tool == tool else tool)
        return self.tool

    def set_color(self, color: str) -> None:
        self.session.set_color(color)
        self.color_changed.emit(color)

    # Pointer input

    def handle_pointer(self, surface_id: str, event: PointerEvent) -> None:
        if event.phase == PointerPhase.DOWN:
            self.handle_pointer_down(surface_id, event.position, event.pointer_type, event.button)
        elif event.phase == PointerPhase.MOVE:
            self.handle_pointer_move(surface_id, event.position, event.pointer_type)
        elif event.phase == PointerPhase.UP:
            self.handle_pointer_up(surface_id, event.position)
        else:
            self.handle_pointer_leave(surface_id)

    def handle_pointer_down(self, surface_id: str, point: Tuple[float, float],
                            pointer_type: PointerType = PointerType.MOUSE,
                            button: PointerButton = PointerButton.PRIMARY) -> None:
        """
        Start a gesture with the active tool.

        Args:
            surface_id: Surface under the pointer
            point: Pointer position in surface pixels
            pointer_type: Input device
            button: Pressed button; touch and pen always count as primary
        """
        surface = self._surfaces.get(surface_id)
        if surface is None or self.tool == Tool.NONE:
            return
        if pointer_type == PointerType.MOUSE and button != PointerButton.PRIMARY:
            return

        self._finish_gesture()
        point = (float(point[0]), float(point[1]))

        if self.tool == Tool.TEXT:
            self._pending_text = PendingText(surface_id=surface_id, position=point)
            self.text_input_requested.emit(surface_id, point[0], point[1])
            return

        self._state = EditorState.DRAGGING
        self._drag_surface_id = surface_id
        self._drag_tool = self.tool

        if self._drag_tool == Tool.DRAW:
            self._current_path = [point]
            with surface.painting() as painter:
                painter.setPen(make_stroke_pen(self.color))
                painter.drawPoint(QPointF(*point))
            self.surface_updated.emit(surface_id)
        else:
            self._erase_at(surface, point)

    def handle_pointer_move(self, surface_id: str, point: Tuple[float, float],
                            pointer_type: PointerType = PointerType.MOUSE) -> None:
        if self._state != EditorState.DRAGGING or surface_id != self._drag_surface_id:
            return
        surface = self._surfaces.get(surface_id)
        if surface is None:
            return

        point = (float(point[0]), float(point[1]))
        if self._drag_tool == Tool.DRAW:
            previous = self._current_path[-1]
            self._current_path.append(point)
            with surface.painting() as painter:
                painter.setPen(make_stroke_pen(self.color))
                painter.drawLine(QPointF(*previous), QPointF(*point))
            self.surface_updated.emit(surface_id)
        else:
            self._erase_at(surface, point)

    def handle_pointer_up(self, surface_id: str,
                          point: Optional[Tuple[float, float]] = None) -> None:
        """End the gesture, extending the stroke to the release point if it moved."""
        if surface_id != self._drag_surface_id:
            return
        if point is not None and self._drag_tool == Tool.DRAW and self._current_path:
            point = (float(point[0]), float(point[1]))
            if point != self._current_path[-1]:
                self.handle_pointer_move(surface_id, point)
        self._finish_gesture()

    def handle_pointer_leave(self, surface_id: str) -> None:
        if surface_id == self._drag_surface_id:
            self._finish_gesture()

    # Text input

    def commit_text(self, content: str) -> bool:
        """
        Store the pending text input.

        Args:
            content: Entered text; blank content is discarded

        Returns:
            True if a label was added
        """
        pending = self._pending_text
        self._pending_text = None
        if pending is None:
            return False

        self.text_input_closed.emit(pending.surface_id)
        surface = self._surfaces.get(pending.surface_id)
        if surface is None:
            return False

        x, y = pending.position
        added = self.session.annotations.append_text(
            surface.page_key,
            x / surface.width,
            y / surface.height,
            content,
            DEFAULT_TEXT_SIZE_PX / surface.height,
            self.color,
        )
        if added:
            self._commit(surface.page_key)
        return added

    def cancel_text(self) -> None:
        pending = self._pending_text
        self._pending_text = None
        if pending is not None:
            self.text_input_closed.emit(pending.surface_id)

    # Commands

    def clear_page(self, page_key: PageKey) -> bool:
        """Remove every annotation of a page."""
        if not self.session.annotations.clear_page(page_key):
            return False
        logger.info("page_annotations_cleared", page=page_key.to_string())
        self._commit(page_key)
        return True

    def clear_document(self, document_id: str) -> int:
        """
        Remove every annotation of a document.

        Returns:
            Number of pages that had annotations
        """
        keys = [key for key in self.session.annotations.page_keys()
                if key.document_id == document_id]
        count = self.session.annotations.clear_document(document_id)
        if count:
            logger.info("document_annotations_cleared", document_id=document_id, pages=count)
            for key in keys:
                self.repaint_page(key)
                self.annotations_changed.emit(key)
            self.session.mark_changed()
        return count

    # Internals

    def _erase_at(self, surface: PageSurface, point: Tuple[float, float]) -> None:
        removed = self.session.annotations.erase_near(
            surface.page_key, point, surface.width, surface.height, ERASE_THRESHOLD_PX
        )
        if removed:
            self._commit(surface.page_key)

    def _finish_gesture(self) -> None:
        """Commit the stroke in progress, if any, and return to idle."""
        if self._state != EditorState.DRAGGING:
            return

        surface = self._surfaces.get(self._drag_surface_id)
        if self._drag_tool == Tool.DRAW and surface is not None and self._current_path:
            width, height = surface.width, surface.height
            points = [(x / width, y / height) for x, y in self._current_path]
            if self.session.annotations.append_stroke(surface.page_key, points, self.color):
                self._commit(surface.page_key)

        self._reset_gesture()

    def _reset_gesture(self) -> None:
        self._state = EditorState.IDLE
        self._drag_surface_id = None
        self._drag_tool = Tool.NONE
        self._current_path = []

    def _commit(self, page_key: PageKey) -> None:
        self.repaint_page(page_key)
        self.annotations_changed.emit(page_key)
        self.session.mark_changed()
