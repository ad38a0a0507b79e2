from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

DEFAULT_STROKE_COLOR = "#ef4444"
# Fallback for stored labels without a color; new labels use the active color
DEFAULT_TEXT_COLOR = "#000000"


class AnnotationKind(Enum):
    STROKE = "stroke"
    TEXT = "text"


@dataclass(frozen=True)
class PageKey:
    """Identifies one page of one source document."""

    document_id: str
    page_number: int  # 1-based

    def to_string(self) -> str:
        """Key used for this page in persisted state."""
        return f"{self.document_id}-{self.page_number}"

    @staticmethod
    def from_string(value: str) -> "PageKey":
        # Document ids may contain dashes, the page number never does
        document_id, _, page = value.rpartition("-")
        if not document_id or not page.isdigit():
            raise ValueError(f"Malformed page key: {value!r}")
        return PageKey(document_id, int(page))


@dataclass
class StrokeAnnotation:
    """A freehand polyline in normalized page coordinates."""

    points: List[Tuple[float, float]]  # (x, y) fractions of page width/height
    color: str = DEFAULT_STROKE_COLOR
    kind: AnnotationKind = field(default=AnnotationKind.STROKE, init=False)

    def to_dict(self):
        """Convert annotation to dictionary for JSON serialization."""
        return {
            'type': self.kind.value,
            'points': [{'x': x, 'y': y} for x, y in self.points],
            'color': self.color,
        }

    @staticmethod
    def from_dict(data):
        points = [(float(p['x']), float(p['y'])) for p in data.get('points') or []]
        return StrokeAnnotation(points=points, color=data.get('color') or DEFAULT_STROKE_COLOR)


@dataclass
class TextAnnotation:
    """A multi-line text label anchored at its normalized top-left corner."""

    x: float
    y: float
    text: str
    font_size_fraction: float  # font size divided by page height
    color: str = DEFAULT_TEXT_COLOR
    kind: AnnotationKind = field(default=AnnotationKind.TEXT, init=False)

    @property
    def lines(self) -> List[str]:
        return self.text.split('\n')

    def to_dict(self):
        """Convert annotation to dictionary for JSON serialization."""
        return {
            'type': self.kind.value,
            'x': self.x,
            'y': self.y,
            'text': self.text,
            'size': self.font_size_fraction,
            'color': self.color,
        }

    @staticmethod
    def from_dict(data):
        return TextAnnotation(
            x=float(data['x']),
            y=float(data['y']),
            text=data['text'],
            font_size_fraction=float(data['size']),
            color=data.get('color') or DEFAULT_TEXT_COLOR,
        )


Annotation = Union[StrokeAnnotation, TextAnnotation]


def annotation_from_dict(data) -> Annotation:
    """
    Create an annotation from its dictionary form. Untyped entries are strokes,
    and so is a bare list of points written by older sessions.

    Raises:
        TypeError: if the entry is neither a dictionary nor a point list
    """
    if isinstance(data, list):
        return StrokeAnnotation.from_dict({'points': data})
    if not isinstance(data, dict):
        raise TypeError(f"Unsupported annotation entry: {data!r}")
    if data.get('type') == AnnotationKind.TEXT.value:
        return TextAnnotation.from_dict(data)
    return StrokeAnnotation.from_dict(data)
