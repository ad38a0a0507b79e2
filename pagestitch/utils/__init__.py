"""
Utility functions and helpers.
"""
from .logging_setup import configure_logging
from .resource_loader import get_app_data_dir, get_session_dir

__all__ = [
    'configure_logging',
    'get_app_data_dir',
    'get_session_dir',
]
