"""
Session context and its persistence.
"""
from .models import DocumentInfo, SelectedPage, Tool, ViewPreferences
from .persistence import SessionPersistence
from .session import IngestResult, Session

__all__ = [
    'DocumentInfo',
    'IngestResult',
    'SelectedPage',
    'Session',
    'SessionPersistence',
    'Tool',
    'ViewPreferences',
]
