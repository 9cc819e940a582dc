from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


MAX_IMAGE_SIZE = 10 * 1024 * 1024

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
}


class AssetStoreError(Exception):
    """Raised when an asset cannot be stored or removed."""
    pass


@dataclass(frozen=True)
class StoredAsset:
    """Where an uploaded image ended up."""
    url: str
    public_id: Optional[str] = None


class AssetStore(ABC):
    """
    Storage backend for product images.

    `store` persists the bytes and returns the public URL plus, for
    remote hosts, the opaque asset id needed to remove it later.
    `delete` removes an asset previously returned by `store`; a missing
    asset is not an error.
    """

    name: str = "abstract"

    @abstractmethod
    def store(self, data: bytes, content_type: str) -> StoredAsset:
        """Persist image bytes and return their location."""

    @abstractmethod
    def delete(self, url: Optional[str], public_id: Optional[str] = None) -> None:
        """Remove a stored image."""
