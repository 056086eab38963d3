# postflow/infrastructure/media_storage.py
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional

import structlog
from fastapi import UploadFile

from ..services.errors import ValidationError

logger = structlog.get_logger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024
MAX_FILES = 10
CHUNK_SIZE = 1024 * 1024
ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class StoredMedia:
    file_name: str
    file_path: str
    file_type: Optional[str]
    file_size: int
    mime_type: str


class MediaStorage:
    """Stores uploaded post media under <uploads_dir>/media, served at /uploads/media."""

    def __init__(self, uploads_dir: str):
        self.media_dir = os.path.abspath(os.path.join(uploads_dir, "media"))

    def validate(self, files: List[UploadFile]) -> None:
        if len(files) > MAX_FILES:
            raise ValidationError(f"At most {MAX_FILES} media files are allowed")
        for f in files:
            if f.content_type not in ALLOWED_MIME_TYPES:
                raise ValidationError(f"Invalid file type. Allowed: {', '.join(ALLOWED_MIME_TYPES)}")
            if f.size is not None and f.size > MAX_FILE_SIZE:
                raise ValidationError(f"File {f.filename} exceeds the 100MB limit")

    @staticmethod
    def stored_name(original_name: str) -> str:
        base, ext = os.path.splitext(os.path.basename(original_name or "upload"))
        base = _UNSAFE_CHARS.sub("_", base).strip("._") or "upload"
        ext = _UNSAFE_CHARS.sub("", ext)
        return f"{base}-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}"

    async def save(self, upload: UploadFile) -> StoredMedia:
        os.makedirs(self.media_dir, exist_ok=True)
        name = self.stored_name(upload.filename)
        path = os.path.join(self.media_dir, name)
        size = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > MAX_FILE_SIZE:
                        raise ValidationError(f"File {upload.filename} exceeds the 100MB limit")
                    out.write(chunk)
        except Exception:
            self.remove([path])
            raise

        ext = os.path.splitext(upload.filename or "")[1]
        return StoredMedia(
            file_name=name,
            file_path=path,
            file_type=ext[1:].lower() or None,
            file_size=size,
            mime_type=upload.content_type,
        )

    async def save_all(self, uploads: List[UploadFile]) -> List[StoredMedia]:
        stored: List[StoredMedia] = []
        try:
            for upload in uploads:
                stored.append(await self.save(upload))
        except Exception:
            self.remove([m.file_path for m in stored])
            raise
        return stored

    def remove(self, paths: List[str]) -> None:
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("media_remove_failed", path=path, error=str(e))
