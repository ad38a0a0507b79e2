"""
Per-platform locations for application data.
"""
import os
import sys
from pathlib import Path

APP_NAME = "PDFStitcher"
DATA_DIR_ENV = "PDF_STITCHER_DATA_DIR"


def get_app_data_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the application data directory for storing user data.

    The PDF_STITCHER_DATA_DIR environment variable overrides the platform
    default.

    Args:
        app_name: Name of the application

    Returns:
        Path to the app data directory
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        app_dir = Path(override)
    else:
        if os.name == 'nt':  # Windows
            base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
        elif sys.platform == 'darwin':  # macOS
            base_dir = os.path.expanduser('~/Library/Application Support')
        else:  # Linux and others
            base_dir = os.path.expanduser('~/.local/share')
        app_dir = Path(base_dir) / app_name

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_session_dir(app_name: str = APP_NAME) -> Path:
    """Directory holding the persisted workspace records."""
    session_dir = get_app_data_dir(app_name) / "session"
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir
