"""
Toolbar components for annotation tools.
"""
from .drawing_toolbar import DrawingToolbar

__all__ = ['DrawingToolbar']
