"""
Handles persistence of the session to two JSON records on disk.
"""
import base64
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

from ...utils.resource_loader import get_session_dir
from ..errors import SessionRestoreError
from .session import Session

logger = structlog.get_logger()

STATE_KEY = "pdf_stitcher_v2_state"
FILES_KEY = "pdf_stitcher_v2_files"


class SessionPersistence:
    """
    Key-value store of whole records. Each save writes the full current
    state, so the last completed write always wins.
    """

    def __init__(self, storage_dir: Optional[Path] = None):
        self._storage_dir = Path(storage_dir) if storage_dir is not None else None
        # Reason the last restore() started from scratch, if it had to
        self.restore_error: Optional[str] = None

    @property
    def storage_dir(self) -> Path:
        if self._storage_dir is None:
            self._storage_dir = get_session_dir()
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        return self._storage_dir

    def _record_path(self, key: str) -> Path:
        return self.storage_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[Any]:
        """
        Read a record.

        Returns:
            The decoded record, or None if it was never written

        Raises:
            SessionRestoreError: if the record exists but cannot be parsed
        """
        path = self._record_path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise SessionRestoreError(f"Could not read {key}: {e}") from e

    def set_item(self, key: str, value: Any) -> None:
        """Write a record atomically."""
        path = self._record_path(key)
        fd, temp_path = tempfile.mkstemp(suffix='.json', dir=str(path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(value, f)
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def clear(self) -> None:
        for key in (STATE_KEY, FILES_KEY):
            path = self._record_path(key)
            if path.exists():
                path.unlink()

    def save(self, session: Session) -> None:
        """Write the session state and the source files."""
        self.set_item(STATE_KEY, session.to_dict())
        self.set_item(FILES_KEY, {
            document_id: base64.b64encode(data).decode('ascii')
            for document_id, data in session.source_files.items()
        })
        logger.debug("session_saved", documents=len(session.documents))

    def load(self) -> Optional[Session]:
        """
        Load the stored session.

        Returns:
            The restored session, or None if nothing was stored

        Raises:
            SessionRestoreError: if stored data is unusable
        """
        state = self.get_item(STATE_KEY)
        if state is None:
            return None

        raw_files = self.get_item(FILES_KEY) or {}
        try:
            files = {
                document_id: base64.b64decode(encoded)
                for document_id, encoded in raw_files.items()
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise SessionRestoreError(f"Malformed file record: {e}") from e

        if not isinstance(state, dict):
            raise SessionRestoreError("Malformed session state")
        return Session.from_dict(state, files)

    def restore(self) -> Session:
        """
        Load the stored session, starting empty when there is none. A session
        that cannot be restored completely is discarded along with its records.
        """
        self.restore_error = None
        try:
            session = self.load()
        except SessionRestoreError as e:
            logger.warning("session_restore_failed", error=str(e))
            self.restore_error = str(e)
            self.clear()
            return Session()

        if session is None:
            return Session()

        logger.info(
            "session_restored",
            documents=len(session.documents),
            selected=len(session.selected_pages),
        )
        return session

    def attach(self, session: Session) -> None:
        """Save the session after every change."""
        session.add_change_listener(self._auto_save)

    def _auto_save(self, session: Session) -> None:
        try:
            self.save(session)
        except OSError as e:
            logger.error("session_save_failed", error=str(e))
