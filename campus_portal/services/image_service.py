# campus_portal/services/image_service.py
from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import List, Protocol, Sequence

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from campus_portal.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class ImageStorage(Protocol):
    async def save(self, upload: UploadFile) -> str:
        """Persist one uploaded image and return its public URL."""
        ...


class LocalImageStorage:
    """
    Stores uploads under `upload_dir` with random names; the app serves that
    directory read-only at `url_prefix`.
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def _target_name(self, filename: str) -> str:
        suffix = Path(filename or "").suffix.lower()
        if suffix not in ALLOWED_SUFFIXES:
            suffix = ".bin"
        return f"{uuid.uuid4().hex}{suffix}"

    def _write(self, name: str, data: bytes) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / name).write_bytes(data)

    async def save(self, upload: UploadFile) -> str:
        data = await upload.read()
        name = self._target_name(upload.filename)
        await run_in_threadpool(self._write, name, data)
        return f"{self.url_prefix}/{name}"


async def upload_all(storage: ImageStorage, uploads: Sequence[UploadFile]) -> List[str]:
    """
    Upload concurrently; all-or-nothing for the batch.
    """
    if not uploads:
        return []
    try:
        return list(await asyncio.gather(*(storage.save(u) for u in uploads)))
    except Exception as e:
        logger.exception("Image upload failed")
        raise UpstreamFailure(f"Image upload failed: {e}") from e


async def resolve_images(
    storage: ImageStorage,
    existing: Sequence[str],
    uploads: Sequence[UploadFile],
) -> List[str]:
    """
    Final ordered image list: existing references first, then the new uploads.
    The per-variant cap is checked by the caller.
    """
    new_urls = await upload_all(storage, uploads)
    return [*existing, *new_urls]
