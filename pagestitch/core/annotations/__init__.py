"""
Annotation system for stitched pages.
"""
from .manager import ERASE_THRESHOLD_PX, AnnotationStore
from .models import (
    DEFAULT_STROKE_COLOR,
    DEFAULT_TEXT_COLOR,
    Annotation,
    AnnotationKind,
    PageKey,
    StrokeAnnotation,
    TextAnnotation,
)
from .renderer import AnnotationRenderer

__all__ = [
    'Annotation',
    'AnnotationKind',
    'AnnotationRenderer',
    'AnnotationStore',
    'PageKey',
    'StrokeAnnotation',
    'TextAnnotation',
    'DEFAULT_STROKE_COLOR',
    'DEFAULT_TEXT_COLOR',
    'ERASE_THRESHOLD_PX',
]
