"""
Custom widgets for viewing, annotating and selecting pages.
"""
from .page_widget import InlineTextEdit, PageWidget
from .selection_list import PagePreview, SelectionListWidget, preview_position

__all__ = ['InlineTextEdit', 'PagePreview', 'PageWidget', 'SelectionListWidget', 'preview_position']
