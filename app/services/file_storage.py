"""
Local disk storage for uploaded files.

Files live under ``UPLOAD_STORAGE_DIR/<user_id>/<stored name>``. Stored
names are random, so the original file name never reaches the filesystem.
"""

import os
import uuid
from typing import Optional

import structlog

from app.config import settings

logger = structlog.get_logger(__name__)


class FileStorage:
    """Write, locate and remove uploaded files on local disk."""

    def __init__(self, root: Optional[str] = None):
        self.root = os.path.abspath(root or settings.UPLOAD_STORAGE_DIR)

    def _user_dir(self, user_id) -> str:
        return os.path.join(self.root, str(user_id))

    @staticmethod
    def stored_name(original_filename: str) -> str:
        _, ext = os.path.splitext(original_filename or "")
        return f"{uuid.uuid4().hex}{ext.lower()[:10]}"

    def path_for(self, user_id, stored_name: str) -> str:
        path = os.path.abspath(os.path.join(self._user_dir(user_id), stored_name))
        if not path.startswith(self.root + os.sep):
            raise ValueError(f"Refusing path outside storage root: {stored_name}")
        return path

    def save(self, user_id, stored_name: str, content: bytes) -> str:
        os.makedirs(self._user_dir(user_id), exist_ok=True)
        path = self.path_for(user_id, stored_name)
        with open(path, "wb") as f:
            f.write(content)
        logger.info("file_stored", user_id=str(user_id), size=len(content))
        return path

    def exists(self, user_id, stored_name: str) -> bool:
        return os.path.isfile(self.path_for(user_id, stored_name))

    def delete(self, user_id, stored_name: str) -> None:
        path = self.path_for(user_id, stored_name)
        if os.path.exists(path):
            os.remove(path)
            logger.info("file_removed", user_id=str(user_id))
        else:
            logger.warning("file_missing_on_delete", user_id=str(user_id), stored_name=stored_name)


def get_storage() -> FileStorage:
    """Storage rooted at the configured directory (override in tests)."""
    return FileStorage()
