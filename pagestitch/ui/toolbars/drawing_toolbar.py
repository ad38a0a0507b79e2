from PyQt5.QtCore import pyqtSignal
from PyQt5.QtGui import QColor
from PyQt5.QtWidgets import (
    QColorDialog, QFrame, QGraphicsDropShadowEffect, QHBoxLayout, QLabel,
    QSizePolicy, QToolButton, QVBoxLayout
)

from pagestitch.core.annotations import DEFAULT_STROKE_COLOR
from pagestitch.core.session import Tool

TOOL_LABELS = (
    (Tool.DRAW, "Draw"),
    (Tool.ERASE, "Erase"),
    (Tool.TEXT, "Text"),
)


class DrawingToolbar(QFrame):
    """Compact annotation toolbar: tool toggles, color and clearing."""

    tool_toggled = pyqtSignal(object)  # Tool
    color_selected = pyqtSignal(str)
    clear_requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("DrawingToolbar")
        self.current_color = DEFAULT_STROKE_COLOR
        self.current_tool = Tool.NONE
        self.tool_buttons = {}

        self.setup_ui()

    def setup_ui(self):
        self.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Fixed)

        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(12, 10, 12, 10)
        main_layout.setSpacing(8)

        header_label = QLabel("Annotate", self)
        header_label.setStyleSheet("font-weight: bold; color: #8899AA;")
        main_layout.addWidget(header_label)

        # Tool toggles
        tools_layout = QHBoxLayout()
        tools_layout.setSpacing(6)
        for tool, label in TOOL_LABELS:
            button = QToolButton(self)
            button.setText(label)
            button.setCheckable(True)
            button.setFixedHeight(32)
            button.setToolTip(f"{label} on pages (click again to stop)")
            button.clicked.connect(lambda _checked, t=tool: self.tool_toggled.emit(t))
            button.setStyleSheet("""
                QToolButton {
                    background-color: #3a3a4a;
                    color: white;
                    border: none;
                    border-radius: 4px;
                    padding: 0 10px;
                }
                QToolButton:hover {
                    background-color: #4a4a5a;
                }
                QToolButton:checked {
                    background-color: #4a9eff;
                    font-weight: bold;
                }
            """)
            tools_layout.addWidget(button)
            self.tool_buttons[tool] = button

        # Color picker
        self.color_button = QToolButton(self)
        self.color_button.setToolTip("Choose color")
        self.color_button.setFixedSize(32, 32)
        self.color_button.clicked.connect(self._choose_color)
        self._update_color_button()
        tools_layout.addWidget(self.color_button)

        tools_layout.addStretch()
        main_layout.addLayout(tools_layout)

        self.clear_button = QToolButton(self)
        self.clear_button.setText("Clear Annotations")
        self.clear_button.setToolTip("Remove every annotation of the current document")
        self.clear_button.clicked.connect(self.clear_requested.emit)
        main_layout.addWidget(self.clear_button)

        shadow = QGraphicsDropShadowEffect()
        shadow.setBlurRadius(20)
        shadow.setColor(QColor(0, 0, 0, 80))
        shadow.setOffset(0, 2)
        self.setGraphicsEffect(shadow)

    def sync(self, tool: Tool, color: str):
        """Reflect the session's tool and color without emitting signals."""
        self.current_tool = tool
        for button_tool, button in self.tool_buttons.items():
            button.setChecked(button_tool == tool)
        if color != self.current_color:
            self.current_color = color
            self._update_color_button()

    def _choose_color(self):
        """Open color picker dialog."""
        color = QColorDialog.getColor(QColor(self.current_color), self, "Choose Annotation Color")

        if color.isValid():
            self.current_color = color.name()
            self._update_color_button()
            self.color_selected.emit(self.current_color)

    def _update_color_button(self):
        """Update the color button to show the current color."""
        self.color_button.setStyleSheet(f"""
            QToolButton {{
                background-color: {self.current_color};
                border: 2px solid #555555;
                border-radius: 4px;
            }}
            QToolButton:hover {{
                border: 2px solid #777777;
            }}
        """)
