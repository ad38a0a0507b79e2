"""
Per-page store of normalized annotations.
"""
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from ..geometry import distance_point_to_segment, point_in_rect
from .models import (
    Annotation,
    AnnotationKind,
    PageKey,
    StrokeAnnotation,
    TextAnnotation,
    annotation_from_dict,
)
from .renderer import LINE_HEIGHT_FACTOR, measure_text_width

logger = structlog.get_logger()

ERASE_THRESHOLD_PX = 10.0

TextMeasurer = Callable[[str, float], float]


class AnnotationStore:
    """
    Owns the annotation set of a session, keyed by PageKey.

    Every mutation builds a new list for the page and swaps it in, so a
    page's entries are never observed half-updated.
    """

    def __init__(self, text_measurer: Optional[TextMeasurer] = None):
        self._pages: Dict[PageKey, List[Annotation]] = {}
        self._measure_text = text_measurer or measure_text_width

    def get_page_annotations(self, page_key: PageKey) -> List[Annotation]:
        """
        Get the annotations of one page in paint order.

        Args:
            page_key: Page to look up

        Returns:
            A copy of the page's list (empty if none)
        """
        return list(self._pages.get(page_key, ()))

    def has_annotations(self, page_key: PageKey) -> bool:
        return bool(self._pages.get(page_key))

    def page_keys(self) -> List[PageKey]:
        return list(self._pages.keys())

    def annotation_count(self) -> int:
        return sum(len(items) for items in self._pages.values())

    def append_stroke(self, page_key: PageKey, points: Sequence[Tuple[float, float]],
                      color: str) -> bool:
        """
        Append a stroke to a page.

        Args:
            page_key: Target page
            points: Normalized (x, y) points
            color: Stroke color

        Returns:
            True if a stroke was stored. Empty point lists are ignored.
        """
        if not points:
            logger.debug("empty_stroke_dropped", page=page_key.to_string())
            return False

        stroke = StrokeAnnotation(points=[(float(x), float(y)) for x, y in points], color=color)
        self._pages[page_key] = self.get_page_annotations(page_key) + [stroke]
        return True

    def append_text(self, page_key: PageKey, x: float, y: float, text: str,
                    font_size_fraction: float, color: str) -> bool:
        """
        Append a text label to a page.

        Args:
            page_key: Target page
            x: Normalized left edge
            y: Normalized top edge
            text: Label content, stored trimmed
            font_size_fraction: Font size divided by page height
            color: Text color

        Returns:
            True if a label was stored. Blank text is ignored.
        """
        content = (text or "").strip()
        if not content:
            logger.debug("empty_text_dropped", page=page_key.to_string())
            return False

        label = TextAnnotation(
            x=float(x),
            y=float(y),
            text=content,
            font_size_fraction=float(font_size_fraction),
            color=color,
        )
        self._pages[page_key] = self.get_page_annotations(page_key) + [label]
        return True

    def erase_near(self, page_key: PageKey, hit_point: Tuple[float, float],
                   width: float, height: float,
                   pixel_threshold: float = ERASE_THRESHOLD_PX) -> bool:
        """
        Remove every annotation close to a point.

        Args:
            page_key: Page to erase on
            hit_point: Point in the pixel space of a width x height raster
            width: Raster width used to denormalize coordinates
            height: Raster height used to denormalize coordinates
            pixel_threshold: Hit distance in pixels

        Returns:
            True if at least one annotation was removed
        """
        items = self._pages.get(page_key)
        if not items:
            return False

        remaining = [
            item for item in items
            if not self._is_hit(item, hit_point, width, height, pixel_threshold)
        ]
        if len(remaining) == len(items):
            return False

        self._pages[page_key] = remaining
        logger.debug(
            "annotations_erased",
            page=page_key.to_string(),
            removed=len(items) - len(remaining),
        )
        return True

    def clear_page(self, page_key: PageKey) -> bool:
        """Remove all annotations of one page."""
        return self._pages.pop(page_key, None) is not None

    def clear_document(self, document_id: str) -> int:
        """
        Remove all annotations of every page of a document.

        Returns:
            Number of pages that had annotations
        """
        keys = [key for key in self._pages if key.document_id == document_id]
        for key in keys:
            del self._pages[key]
        return len(keys)

    def clear_all(self) -> None:
        self._pages.clear()

    def _is_hit(self, item: Annotation, hit_point: Tuple[float, float],
                width: float, height: float, threshold: float) -> bool:
        if item.kind == AnnotationKind.TEXT:
            return self._text_hit(item, hit_point, width, height, threshold)
        return self._stroke_hit(item, hit_point, width, height, threshold)

    def _stroke_hit(self, stroke: StrokeAnnotation, hit_point: Tuple[float, float],
                    width: float, height: float, threshold: float) -> bool:
        pixels = [(x * width, y * height) for x, y in stroke.points]
        if len(pixels) == 1:
            # A dot is a zero-length segment
            pixels = pixels * 2

        for start, end in zip(pixels, pixels[1:]):
            if distance_point_to_segment(hit_point, start, end) <= threshold:
                return True
        return False

    def _text_hit(self, label: TextAnnotation, hit_point: Tuple[float, float],
                  width: float, height: float, threshold: float) -> bool:
        left = label.x * width
        top = label.y * height
        font_size = label.font_size_fraction * height
        lines = label.lines

        # Only the first line is measured
        text_width = self._measure_text(lines[0], font_size)
        text_height = len(lines) * font_size * LINE_HEIGHT_FACTOR

        return point_in_rect(
            hit_point,
            left - threshold,
            top - threshold,
            left + text_width + threshold,
            top + text_height + threshold,
        )

    def to_dict(self) -> Dict[str, list]:
        """Serialize the annotation set keyed by page key strings."""
        return {
            key.to_string(): [item.to_dict() for item in items]
            for key, items in self._pages.items()
            if items
        }

    def load_dict(self, data: Dict[str, Iterable[dict]]) -> None:
        """
        Replace the annotation set with deserialized content.

        Raises:
            ValueError, KeyError, TypeError: if the data is malformed
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TypeError(f"Annotation set must be a mapping, got {type(data).__name__}")
        pages: Dict[PageKey, List[Annotation]] = {}
        for key, items in data.items():
            if not isinstance(items, list):
                raise TypeError(f"Annotations of {key!r} must be a list")
            annotations = [annotation_from_dict(item) for item in items]
            # Stroke entries without points cannot be painted
            annotations = [
                a for a in annotations
                if a.kind == AnnotationKind.TEXT or a.points
            ]
            if annotations:
                pages[PageKey.from_string(key)] = annotations
        self._pages = pages
