"""
Profile Photo Storage Module

store(file) -> URL and delete(url). Files land under settings.UPLOAD_DIR/profile
and are served by the StaticFiles mount at /uploads.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from taskmanager.core.config import settings
from taskmanager.core.errors import InvalidArgument

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"


class PhotoStorage:
    def __init__(self, root: str, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def store(self, upload: UploadFile) -> str:
        """
        Persist an uploaded image and return the URL it is served from.

        Raises:
            InvalidArgument: If the file is not an image or exceeds the size limit
        """
        if not (upload.content_type or "").startswith("image/"):
            raise InvalidArgument("Only image files are allowed!")

        data = upload.file.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise InvalidArgument("File upload error: photo exceeds the size limit")

        ext = os.path.splitext(upload.filename or "")[1].lower()
        filename = f"profile-{uuid.uuid4().hex}{ext}"
        directory = self.root / "profile"
        directory.mkdir(parents=True, exist_ok=True)
        (directory / filename).write_bytes(data)
        return f"{URL_PREFIX}/profile/{filename}"

    def delete(self, url: Optional[str]) -> None:
        path = self._path_for(url)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete photo {path}: {e}")

    def _path_for(self, url: Optional[str]) -> Optional[Path]:
        if not url or not url.startswith(URL_PREFIX + "/"):
            return None
        relative = url[len(URL_PREFIX) + 1:]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            return None
        return path


def get_photo_storage() -> PhotoStorage:
    return PhotoStorage(settings.UPLOAD_DIR, settings.MAX_PHOTO_BYTES)
