"""
Live annotation overlay of one displayed page.
"""
from contextlib import contextmanager

from PyQt5.QtCore import Qt
from PyQt5.QtGui import QImage, QPainter

from pagestitch.core.annotations.models import PageKey


class PageSurface:
    """
    Transparent raster the size of a page as currently displayed. Its pixel
    size is the scale used to normalize and denormalize annotations.
    """

    def __init__(self, page_key: PageKey, width: int, height: int):
        self.page_key = page_key
        self.image = self._blank_image(width, height)

    @staticmethod
    def _blank_image(width: int, height: int) -> QImage:
        image = QImage(max(1, int(width)), max(1, int(height)), QImage.Format_ARGB32_Premultiplied)
        image.fill(Qt.transparent)
        return image

    @property
    def width(self) -> int:
        return self.image.width()

    @property
    def height(self) -> int:
        return self.image.height()

    def resize(self, width: int, height: int) -> None:
        """Resize the overlay. The content is discarded and must be repainted."""
        self.image = self._blank_image(width, height)

    def clear(self) -> None:
        self.image.fill(Qt.transparent)

    @contextmanager
    def painting(self):
        """Active antialiased painter on the overlay."""
        painter = QPainter(self.image)
        try:
            painter.setRenderHint(QPainter.Antialiasing)
            painter.setRenderHint(QPainter.TextAntialiasing)
            yield painter
        finally:
            painter.end()
