import logging
import uuid
from pathlib import Path
from typing import Optional

from app.storage.base import ALLOWED_IMAGE_TYPES, AssetStore, AssetStoreError, StoredAsset

logger = logging.getLogger(__name__)


class LocalAssetStore(AssetStore):
    """
    Keeps images on the local filesystem.

    Files are written to `directory` under a random name and exposed as
    `{base_url}{url_prefix}/{filename}`; the app mounts `directory` at
    `url_prefix` as static files.
    """

    name = "local"

    def __init__(self, directory: str, base_url: str, url_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")
        self.url_prefix = "/" + url_prefix.strip("/")

    def store(self, data: bytes, content_type: str) -> StoredAsset:
        extension = ALLOWED_IMAGE_TYPES.get(content_type, "")
        filename = f"{uuid.uuid4().hex}{extension}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / filename).write_bytes(data)
        except OSError as e:
            raise AssetStoreError(f"Could not write image file: {e}") from e

        logger.info("Stored image %s (%d bytes)", filename, len(data))
        return StoredAsset(url=f"{self.base_url}{self.url_prefix}/{filename}")

    def delete(self, url: Optional[str], public_id: Optional[str] = None) -> None:
        path = self.path_for(url)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            return
        logger.info("Removed image file %s", path.name)

    def path_for(self, url: Optional[str]) -> Optional[Path]:
        """
        Map an image URL back to its file, or None when the URL does not
        point into this store (e.g. an externally hosted image).
        """
        if not url:
            return None
        marker = f"{self.url_prefix}/"
        index = url.find(marker)
        if index == -1:
            return None
        filename = url[index + len(marker):].split("?", 1)[0]
        # Never follow paths outside the upload directory.
        if not filename or Path(filename).name != filename:
            return None
        return self.directory / filename
