"""
Controllers that connect user input to the session.
"""
from .annotation_controller import (
    DEFAULT_TEXT_SIZE_PX,
    AnnotationController,
    EditorState,
    PendingText,
    PointerButton,
    PointerEvent,
    PointerPhase,
    PointerType,
)
from .page_surface import PageSurface

__all__ = [
    'AnnotationController',
    'EditorState',
    'PageSurface',
    'PendingText',
    'PointerButton',
    'PointerEvent',
    'PointerPhase',
    'PointerType',
    'DEFAULT_TEXT_SIZE_PX',
]
