"""
Handwritten Note OCR — Temporary Image Store
==============================================

What:  Keeps a short-lived copy of each processed upload so it can be fetched back.
Why:   Clients that show the note next to its source image need somewhere to load it from.
How:   Writes the decoded bytes plus a small JSON metadata file under
       <storage_root>/temp/, named by a random UUID.
Who:   Called by NoteService after a successful extraction, and by the images route.

Expiry Model:
    Time-to-live is a property of the store, not a timer in the process:
    - load() treats anything older than settings.temp_image_ttl as gone and deletes it
    - purge_expired() sweeps the whole directory: at startup, and from save()
      whenever settings.temp_image_purge_interval has passed since the last sweep
    Nothing is lost if the process restarts between upload and expiry.

Directory Structure:
    storage/
    └── temp/
        ├── 3f2b...-9a1c            (image bytes)
        └── 3f2b...-9a1c.json       ({"content_type": ..., "uploaded_at": ...})
"""

import base64
import hashlib
import json
import logging
import os
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from note_ocr.config import settings
from note_ocr.exceptions import FileStorageError, NotFoundError
from note_ocr.schemas.note import ImagePayload

logger = logging.getLogger(__name__)

TEMP_DIR = "temp"
METADATA_SUFFIX = ".json"


class StoredImage:
    """Bytes and metadata of one stored upload."""

    def __init__(self, image_id: str, content: bytes, content_type: str, uploaded_at: datetime):
        self.image_id = image_id
        self.content = content
        self.content_type = content_type
        self.uploaded_at = uploaded_at

    @property
    def etag(self) -> str:
        return f'"{hashlib.md5(self.content).hexdigest()}"'


class TempImageStore:
    """
    File-backed store with a time-to-live on every entry.

    Ids are generated here (uuid4); anything that is not a UUID is rejected
    before touching the file system, which rules out path traversal.
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        purge_interval_seconds: Optional[int] = None,
    ):
        """
        Args:
            storage_root: Override settings.storage_root (used in tests).
            ttl_seconds: Override settings.temp_image_ttl (used in tests).
            purge_interval_seconds: Override settings.temp_image_purge_interval (used in tests).
        """
        self.root = Path(storage_root or settings.storage_root).resolve() / TEMP_DIR
        self.ttl = timedelta(seconds=ttl_seconds or settings.temp_image_ttl)
        if purge_interval_seconds is None:
            purge_interval_seconds = settings.temp_image_purge_interval
        self.purge_interval = timedelta(seconds=purge_interval_seconds)
        self._last_purge: Optional[datetime] = None

    def _paths(self, image_id: str) -> Tuple[Path, Path]:
        try:
            canonical = str(uuid.UUID(image_id))
        except (ValueError, AttributeError, TypeError):
            raise NotFoundError(message="Image not found or expired", context={"image_id": image_id})
        data_path = self.root / canonical
        return data_path, data_path.with_name(canonical + METADATA_SUFFIX)

    def _is_expired(self, uploaded_at: datetime, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) - uploaded_at > self.ttl

    async def save(self, payload: ImagePayload) -> str:
        """
        Store an image and return its id.

        Raises:
            FileStorageError if the directory or files cannot be written.
        """
        if self._purge_due():
            await self.purge_expired()

        image_id = str(uuid.uuid4())
        data_path, meta_path = self._paths(image_id)
        content = base64.b64decode(payload.base64_data)
        metadata = {
            "content_type": payload.mime_type,
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
            "size": len(content),
        }

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(data_path, "wb") as f:
                await f.write(content)
            # Metadata last: an entry without metadata is never served
            async with aiofiles.open(meta_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(metadata))
        except OSError as e:
            logger.error("Failed to store image %s: %s", image_id, str(e))
            await self.delete(image_id)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"image_id": image_id, "os_error": str(e)},
            )

        logger.info("Stored temporary image %s (%d bytes)", image_id, len(content))
        return image_id

    async def load(self, image_id: str) -> StoredImage:
        """
        Fetch a stored image.

        Raises:
            NotFoundError: Unknown id, or the entry outlived its time-to-live.
            FileStorageError: The files exist but could not be read.
        """
        data_path, meta_path = self._paths(image_id)
        if not meta_path.exists() or not data_path.exists():
            raise NotFoundError(message="Image not found or expired", context={"image_id": image_id})

        try:
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                metadata = json.loads(await f.read())
            uploaded_at = datetime.fromisoformat(metadata["uploaded_at"])
        except (OSError, ValueError, KeyError) as e:
            logger.error("Unreadable metadata for image %s: %s", image_id, str(e))
            raise FileStorageError(
                message="Failed to retrieve image",
                context={"image_id": image_id, "error": str(e)},
            )

        if self._is_expired(uploaded_at):
            await self.delete(image_id)
            raise NotFoundError(message="Image not found or expired", context={"image_id": image_id})

        try:
            async with aiofiles.open(data_path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise FileStorageError(
                message="Failed to retrieve image",
                context={"image_id": image_id, "os_error": str(e)},
            )

        return StoredImage(
            image_id=image_id,
            content=content,
            content_type=metadata.get("content_type", "application/octet-stream"),
            uploaded_at=uploaded_at,
        )

    async def delete(self, image_id: str) -> None:
        """
        Remove an entry. Missing files are fine; other errors are logged, not raised.
        """
        data_path, meta_path = self._paths(image_id)
        for path in (meta_path, data_path):
            try:
                if path.exists():
                    os.remove(path)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path.name, str(e))

    def _modified_at(self, path: Path) -> datetime:
        return datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)

    def _purge_due(self) -> bool:
        if self._last_purge is None:
            return True
        return datetime.now(timezone.utc) - self._last_purge >= self.purge_interval

    async def purge_expired(self) -> int:
        """
        Delete every expired entry (and orphaned data files). Returns the count removed.

        Files with unreadable metadata, or no metadata at all, age by their
        modification time so a save still in flight is never swept.
        """
        now = datetime.now(timezone.utc)
        self._last_purge = now
        if not self.root.exists():
            return 0

        removed = 0
        for meta_path in self.root.glob(f"*{METADATA_SUFFIX}"):
            image_id = meta_path.name[: -len(METADATA_SUFFIX)]
            try:
                metadata = json.loads(meta_path.read_text(encoding="utf-8"))
                expired = self._is_expired(datetime.fromisoformat(metadata["uploaded_at"]), now)
            except (OSError, ValueError, KeyError):
                try:
                    expired = self._is_expired(self._modified_at(meta_path), now)
                except OSError:
                    continue
            if expired:
                await self.delete(image_id)
                removed += 1

        # Data files whose metadata write never happened
        for data_path in self.root.iterdir():
            if data_path.suffix == METADATA_SUFFIX or data_path.with_name(
                data_path.name + METADATA_SUFFIX
            ).exists():
                continue
            try:
                if self._is_expired(self._modified_at(data_path), now):
                    os.remove(data_path)
                    removed += 1
            except OSError as e:
                logger.warning("Failed to remove orphan %s: %s", data_path.name, str(e))

        if removed:
            logger.info("Purged %d expired temporary image entries", removed)
        return removed


# ── Singleton Instance ────────────────────────────────────────────────────
image_store = TempImageStore()
