import io
import logging
from typing import Optional

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.storage.base import AssetStore, AssetStoreError, StoredAsset

logger = logging.getLogger(__name__)


class CloudinaryAssetStore(AssetStore):
    """Uploads images to Cloudinary and removes them by public id."""

    name = "cloudinary"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "products"):
        if not (cloud_name and api_key and api_secret):
            raise AssetStoreError("Cloudinary credentials are not configured")
        self.folder = folder
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def store(self, data: bytes, content_type: str) -> StoredAsset:
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=self.folder,
                resource_type="image",
            )
        except CloudinaryError as e:
            raise AssetStoreError(f"Cloudinary upload failed: {e}") from e

        logger.info("Uploaded image to Cloudinary as %s", result["public_id"])
        return StoredAsset(url=result["secure_url"], public_id=result["public_id"])

    def delete(self, url: Optional[str], public_id: Optional[str] = None) -> None:
        if not public_id:
            return
        try:
            result = cloudinary.uploader.destroy(public_id, resource_type="image", invalidate=True)
        except CloudinaryError as e:
            raise AssetStoreError(f"Cloudinary delete failed: {e}") from e

        # "not found" means it is already gone
        if result.get("result") not in ("ok", "not found"):
            raise AssetStoreError(f"Cloudinary delete returned {result!r}")
        logger.info("Removed Cloudinary image %s", public_id)
