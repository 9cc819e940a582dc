from functools import lru_cache

from app.config import get_settings
from app.storage.base import AssetStore


@lru_cache
def get_asset_store() -> AssetStore:
    """
    Build the asset store selected by ASSET_STORE.

    Used as a FastAPI dependency; tests override it with a store rooted
    in a temporary directory.
    """
    settings = get_settings()
    backend = settings.ASSET_STORE.lower()

    if backend == "local":
        from app.storage.local import LocalAssetStore
        return LocalAssetStore(
            directory=settings.UPLOADS_DIR,
            base_url=settings.BASE_URL,
            url_prefix=settings.UPLOADS_URL_PREFIX,
        )
    if backend == "cloudinary":
        from app.storage.cloudinary_store import CloudinaryAssetStore
        return CloudinaryAssetStore(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            folder=settings.CLOUDINARY_FOLDER,
        )
    raise ValueError(f"Unknown ASSET_STORE '{settings.ASSET_STORE}' (expected 'local' or 'cloudinary')")
