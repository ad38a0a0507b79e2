"""
Exceptions raised by the core of PDF Stitcher.
"""


class StitcherError(Exception):
    """Base class for all application errors."""


class DocumentLoadError(StitcherError):
    """A source PDF could not be decoded."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Error loading {name}: {reason}")
        self.name = name
        self.reason = reason


class ExportError(StitcherError):
    """The merged document could not be produced. Nothing was written."""


class SessionRestoreError(StitcherError):
    """Persisted session state is missing pieces or cannot be parsed."""
