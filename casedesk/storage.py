"""
Document Storage
================

Local filesystem blob storage for uploaded case documents.

Layout under STORAGE_PATH:
    documents/<case id prefix>/<case id>/<uuid><ext>

Keys are generated here and never derived from user input beyond the
lower-cased file extension.
"""

import hashlib
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import StoreError

logger = logging.getLogger(__name__)

DOCUMENTS_DIR = "documents"


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass
class StoredObject:
    key: str
    stored_name: str
    size_bytes: int
    sha256: str


class LocalStorage:
    """Blob storage rooted at a directory"""

    def __init__(self, base_path: str):
        self.base_path = Path(base_path).resolve()

    def generate_key(self, case_id: str, filename: str) -> str:
        ext = os.path.splitext(filename)[1].lower()
        stored_name = f"{uuid.uuid4()}{ext}"
        return "/".join([DOCUMENTS_DIR, case_id[:2], case_id, stored_name])

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path not in path.parents:
            raise StoreError(f"Storage key escapes storage root: {key}")
        return path

    def put(self, key: str, data: bytes) -> StoredObject:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {key}: {e}")
            raise StoreError("Failed to store document") from e
        return StoredObject(key=key, stored_name=path.name, size_bytes=len(data), sha256=sha256_hex(data))

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {key}: {e}")
            raise StoreError("Failed to read document") from e

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()


_storage: Optional[LocalStorage] = None


def get_storage(base_path: str) -> LocalStorage:
    """Storage singleton for the configured path"""
    global _storage
    resolved = Path(base_path).resolve()
    if _storage is None or _storage.base_path != resolved:
        _storage = LocalStorage(base_path)
    return _storage
