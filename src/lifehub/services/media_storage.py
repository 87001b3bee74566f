# src/lifehub/services/media_storage.py
"""Local-disk storage for chat attachments."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from lifehub.core.errors import InvalidRequestError, PersistenceError
from lifehub.services.message_store import MediaReference

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredMedia:
    """Attachment written to disk, with the reference stored on its message."""

    reference: MediaReference
    path: Path


class MediaStorage:
    """Store uploaded blobs and hand back the URL they are served from."""

    def __init__(self, root: str | Path, url_prefix: str, max_bytes: int) -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _unique_name(self, original_name: str | None) -> str:
        suffix = Path(original_name or "").suffix
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"

    async def save_upload(self, upload: UploadFile) -> StoredMedia:
        """Write ``upload`` to disk, enforcing the size limit while streaming.

        Raises:
            InvalidRequestError: If the attachment exceeds the size limit.
            PersistenceError: If the blob cannot be written.
        """
        if upload.size is not None and upload.size > self.max_bytes:
            raise InvalidRequestError("File too large")

        self.ensure_root()
        path = self.root / self._unique_name(upload.filename)
        size = 0
        try:
            with path.open("wb") as out:
                while chunk := await upload.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise InvalidRequestError("File too large")
                    await asyncio.to_thread(out.write, chunk)
        except InvalidRequestError:
            path.unlink(missing_ok=True)
            raise
        except OSError as err:
            path.unlink(missing_ok=True)
            logger.error("Failed to store attachment %s: %s", upload.filename, err, exc_info=True)
            raise PersistenceError("Failed to store attachment") from err

        reference = MediaReference(
            url=f"{self.url_prefix}/{path.name}",
            mime_type=upload.content_type,
            file_name=upload.filename,
            size=size,
        )
        return StoredMedia(reference=reference, path=path)

    def delete(self, stored: StoredMedia) -> None:
        """Remove a stored blob; used to roll back a failed send."""
        try:
            stored.path.unlink(missing_ok=True)
        except OSError as err:
            logger.error("Failed to remove orphaned attachment %s: %s", stored.path, err)
            return
        logger.info("Removed orphaned attachment %s", stored.path.name)
