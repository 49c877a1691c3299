"""
Media Service - storage for park and profile photos

Services only ever hold the opaque names returned by store().
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Protocol

from skateguide.config import settings
from skateguide.exceptions import ValidationError

logger = logging.getLogger(__name__)


class MediaStorage(Protocol):
    def store(self, filename: str, content: bytes) -> str: ...

    def delete(self, name: str) -> None: ...


class LocalMediaStorage:
    """Stores files under a local directory with uuid-based names"""

    ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

    def __init__(self, root: str):
        self.root = Path(root)

    def store(self, filename: str, content: bytes) -> str:
        extension = os.path.splitext(filename or "")[1].lower()
        if extension not in self.ALLOWED_EXTENSIONS:
            raise ValidationError(f"Unsupported image type: {extension or 'none'}")
        if not content:
            raise ValidationError("Empty image file.")

        self.root.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}{extension}"
        (self.root / name).write_bytes(content)
        logger.debug(f"Stored media {name} ({len(content)} bytes)")
        return name

    def delete(self, name: str) -> None:
        # Names are generated by store(); anything with a path component is not ours
        if not name or os.path.basename(name) != name:
            logger.warning(f"Refusing to delete media with unexpected name: {name!r}")
            return

        path = self.root / name
        if path.exists():
            path.unlink()
            logger.debug(f"Deleted media {name}")
        else:
            logger.warning(f"Media {name} already missing")


def get_media_storage() -> MediaStorage:
    """Default storage collaborator"""
    return LocalMediaStorage(settings.MEDIA_ROOT)
