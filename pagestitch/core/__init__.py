"""
Core business logic for PDF Stitcher.
"""
from .annotations import AnnotationRenderer, AnnotationStore, PageKey
from .errors import DocumentLoadError, ExportError, SessionRestoreError, StitcherError
from .session import Session

__all__ = [
    'AnnotationRenderer',
    'AnnotationStore',
    'PageKey',
    'Session',
    'StitcherError',
    'DocumentLoadError',
    'ExportError',
    'SessionRestoreError',
]
