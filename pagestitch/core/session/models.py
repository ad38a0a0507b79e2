from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from ..annotations.models import DEFAULT_STROKE_COLOR, PageKey

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0


class Tool(Enum):
    NONE = "none"
    DRAW = "draw"
    ERASE = "erase"
    TEXT = "text"

    @staticmethod
    def from_value(value: Optional[str]) -> "Tool":
        # Persisted state uses null for "no tool"
        if not value:
            return Tool.NONE
        return Tool(value)


@dataclass
class DocumentInfo:
    """Metadata of an open source document."""

    id: str
    name: str
    page_count: int

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(data):
        return DocumentInfo(id=data['id'], name=data['name'], page_count=int(data['page_count']))


@dataclass
class SelectedPage:
    """One entry of the export list. Several entries may point at the same page."""

    selection_id: int
    document_id: str
    page_number: int  # 1-based
    display_name: str

    @property
    def page_key(self) -> PageKey:
        return PageKey(self.document_id, self.page_number)

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(data):
        return SelectedPage(
            selection_id=int(data['selection_id']),
            document_id=data['document_id'],
            page_number=int(data['page_number']),
            display_name=data.get('display_name', ''),
        )


@dataclass
class ViewPreferences:
    zoom: float = 1.0
    tool: Tool = Tool.NONE
    color: str = DEFAULT_STROKE_COLOR
    current_document_id: Optional[str] = None
    scroll_top: int = 0

    def to_dict(self):
        return {
            'zoom': self.zoom,
            'tool': self.tool.value if self.tool != Tool.NONE else None,
            'color': self.color,
            'current_document_id': self.current_document_id,
            'scroll_top': self.scroll_top,
        }

    @staticmethod
    def from_dict(data):
        tool = Tool.from_value(data.get('tool'))
        # Older sessions stored a boolean draw flag instead of a tool
        if data.get('drawMode'):
            tool = Tool.DRAW
        return ViewPreferences(
            zoom=float(data.get('zoom', 1.0)),
            tool=tool,
            color=data.get('color') or DEFAULT_STROKE_COLOR,
            current_document_id=data.get('current_document_id'),
            scroll_top=int(data.get('scroll_top', 0)),
        )
