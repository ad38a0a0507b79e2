"""
Qt user interface of PDF Stitcher.
"""
from .windows import MainWindow

__all__ = ['MainWindow']
