"""
Paints annotation lists onto any Qt drawing surface.

The same code path serves the live page overlays and the high resolution
rasters embedded at export time, so both always agree.
"""
from typing import Iterable, List

from PyQt5.QtCore import QBuffer, QByteArray, QIODevice, QPointF, Qt
from PyQt5.QtGui import QColor, QFont, QFontMetricsF, QImage, QPainter, QPainterPath, QPen

from .models import Annotation, AnnotationKind, StrokeAnnotation, TextAnnotation

STROKE_WIDTH = 2.0
LINE_HEIGHT_FACTOR = 1.2
FONT_FAMILY = "Arial"


def make_font(font_size: float) -> QFont:
    """Font used for text annotations at the given pixel size."""
    font = QFont(FONT_FAMILY)
    font.setPixelSize(max(1, int(round(font_size))))
    return font


def measure_text_width(text: str, font_size: float) -> float:
    """Advance width of a single line of text in pixels."""
    return QFontMetricsF(make_font(font_size)).horizontalAdvance(text)


def make_stroke_pen(color: str) -> QPen:
    pen = QPen(QColor(color), STROKE_WIDTH)
    pen.setCapStyle(Qt.RoundCap)
    pen.setJoinStyle(Qt.RoundJoin)
    return pen


class AnnotationRenderer:
    """Stateless painter for normalized annotations."""

    def paint(self, annotations: Iterable[Annotation], target_width: float,
              target_height: float, painter: QPainter) -> None:
        """
        Paint annotations in insertion order.

        Args:
            annotations: Annotations of a single page
            target_width: Width of the target surface in its own units
            target_height: Height of the target surface in its own units
            painter: Active painter on the target surface
        """
        for annotation in annotations:
            if annotation.kind == AnnotationKind.TEXT:
                self._paint_text(annotation, target_width, target_height, painter)
            else:
                self._paint_stroke(annotation, target_width, target_height, painter)

    def stroke_path(self, stroke: StrokeAnnotation, target_width: float,
                    target_height: float) -> QPainterPath:
        """Denormalized path of a stroke."""
        path = QPainterPath()
        first_x, first_y = stroke.points[0]
        path.moveTo(first_x * target_width, first_y * target_height)
        for x, y in stroke.points[1:]:
            path.lineTo(x * target_width, y * target_height)
        return path

    def text_origins(self, text: TextAnnotation, target_width: float,
                     target_height: float) -> List[QPointF]:
        """Top-left corner of every line of a text annotation."""
        font_size = text.font_size_fraction * target_height
        left = text.x * target_width
        top = text.y * target_height
        return [
            QPointF(left, top + index * font_size * LINE_HEIGHT_FACTOR)
            for index in range(len(text.lines))
        ]

    def _paint_stroke(self, stroke: StrokeAnnotation, target_width: float,
                      target_height: float, painter: QPainter) -> None:
        if not stroke.points:
            return

        painter.setPen(make_stroke_pen(stroke.color))
        painter.setBrush(Qt.NoBrush)

        if len(stroke.points) == 1:
            x, y = stroke.points[0]
            painter.drawPoint(QPointF(x * target_width, y * target_height))
        else:
            painter.drawPath(self.stroke_path(stroke, target_width, target_height))

        painter.setPen(Qt.NoPen)

    def _paint_text(self, text: TextAnnotation, target_width: float,
                    target_height: float, painter: QPainter) -> None:
        font = make_font(text.font_size_fraction * target_height)
        # drawText takes the baseline, lines are anchored at the glyph top
        ascent = QFontMetricsF(font).ascent()

        painter.setFont(font)
        painter.setPen(QColor(text.color))
        for line, origin in zip(text.lines, self.text_origins(text, target_width, target_height)):
            painter.drawText(QPointF(origin.x(), origin.y() + ascent), line)
        painter.setPen(Qt.NoPen)

    def render_image(self, annotations: Iterable[Annotation], width: float,
                     height: float, scale: float = 1.0) -> QImage:
        """
        Rasterize annotations onto a transparent image.

        Args:
            annotations: Annotations of a single page
            width: Page width in page units
            height: Page height in page units
            scale: Pixel density multiplier of the raster

        Returns:
            ARGB image of size (width * scale, height * scale)
        """
        image = QImage(
            max(1, int(round(width * scale))),
            max(1, int(round(height * scale))),
            QImage.Format_ARGB32_Premultiplied,
        )
        image.fill(Qt.transparent)

        painter = QPainter(image)
        try:
            painter.setRenderHint(QPainter.Antialiasing)
            painter.setRenderHint(QPainter.TextAntialiasing)
            painter.scale(scale, scale)
            self.paint(annotations, width, height, painter)
        finally:
            painter.end()

        return image

    def render_png(self, annotations: Iterable[Annotation], width: float,
                   height: float, scale: float = 1.0) -> bytes:
        """Rasterize annotations and encode them as a PNG with alpha."""
        return encode_png(self.render_image(annotations, width, height, scale))


def encode_png(image: QImage) -> bytes:
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.WriteOnly)
    try:
        if not image.save(buffer, "PNG"):
            raise ValueError("PNG encoding failed")
    finally:
        buffer.close()
    return bytes(data)

