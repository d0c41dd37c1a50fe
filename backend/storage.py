"""
Object storage for uploaded chart images.
Objects live in a local directory and are served by the app under /storage.
"""
import logging
import time
from pathlib import Path, PurePosixPath

from backend.config import PUBLIC_BASE_URL, STORAGE_DIR

logger = logging.getLogger(__name__)

STORAGE_ROUTE = "/storage"


class ObjectStorage:
    def __init__(self, root: str = STORAGE_DIR, public_base_url: str = PUBLIC_BASE_URL):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not parts or any(p in ("..", "/") for p in parts):
            raise ValueError(f"Invalid object key: {key!r}")
        return self.root.joinpath(*parts)

    def upload(self, data: bytes, key: str) -> str:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Stored object {key} ({len(data)} bytes)")
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}{STORAGE_ROUTE}/{key}"


def object_key_for(owner_id: str, filename: str) -> str:
    """<owner>/<epoch millis>.<original extension>; not collision-proof"""
    suffix = PurePosixPath(filename or "").suffix.lstrip(".").lower() or "png"
    return f"{owner_id}/{int(time.time() * 1000)}.{suffix}"


_storage = None


def get_storage() -> ObjectStorage:
    """FastAPI dependency returning the shared storage instance"""
    global _storage
    if _storage is None:
        _storage = ObjectStorage()
    return _storage
