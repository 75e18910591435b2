"""
Object store for addendum and annexure files.

The store only needs put/delete. The default implementation writes into a
local directory that main.py serves under /uploads.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

log = logging.getLogger(__name__)


ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})


@dataclass(frozen=True)
class UploadConfig:
    storage_dir: str = "uploads"
    public_base_url: str = "/uploads"
    allowed_mime_types: FrozenSet[str] = field(default=ALLOWED_MIME_TYPES)
    max_upload_size: int = 10 * 1024 * 1024  # 10MB


def load_upload_config() -> UploadConfig:
    """Build upload settings from the environment (UPLOAD_DIR, UPLOAD_PUBLIC_URL, MAX_UPLOAD_SIZE)."""
    return UploadConfig(
        storage_dir=os.getenv("UPLOAD_DIR", "uploads"),
        public_base_url=os.getenv("UPLOAD_PUBLIC_URL", "/uploads").rstrip("/"),
        max_upload_size=int(os.getenv("MAX_UPLOAD_SIZE", 10485760)),
    )


class LocalObjectStore:
    """Objects are files under config.storage_dir; keys may contain '/'."""

    def __init__(self, config: UploadConfig):
        self.config = config
        self.root = Path(config.storage_dir)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Object key escapes the storage directory: {key!r}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key and return the public URL."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.info("Object store: stored %s (%s, %s bytes)", key, content_type, len(data))
        return f"{self.config.public_base_url}/{key}"

    def key_for_url(self, url: str) -> Optional[str]:
        """Inverse of put(): the key behind a public URL, or None if the URL is not ours."""
        prefix = f"{self.config.public_base_url}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):] or None

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
            log.info("Object store: deleted %s", key)
