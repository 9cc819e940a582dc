from sqlalchemy.orm import Session
from typing import Optional, List, Tuple
import math
import logging

from app.config import get_settings
from app.models.product import Product
from app.repositories.product_repository import ProductRepository
from app.schemas.product import (
    Pagination,
    ProductCreate,
    ProductQuery,
    ProductResponse,
    ProductUpdate,
)
from app.storage.base import ALLOWED_IMAGE_TYPES, AssetStore
from app.storage.factory import get_asset_store
from app.utils.cache import CacheService, cache_service

logger = logging.getLogger(__name__)


class ProductNotFoundError(Exception):
    """Exception raised when no product has the requested uid."""

    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"Product with UID {uid} not found")


class InvalidImageError(Exception):
    """Exception raised when an uploaded image has a bad type or size."""
    pass


class ProductService:
    """
    Service class for catalog operations.

    This service handles:
    - Creating, reading, updating and deleting products
    - Paginated listing with search, price filter and sorting
    - Attaching and detaching product images
    - Cache invalidation for product details

    Old image assets are removed on a best-effort basis: a failed removal
    is logged and never fails the request.
    """

    CACHE_PREFIX = "product"

    def __init__(
        self,
        db: Session,
        asset_store: Optional[AssetStore] = None,
        cache: Optional[CacheService] = None,
    ):
        self.db = db
        self.repository = ProductRepository(db)
        self.asset_store = asset_store or get_asset_store()
        self.cache = cache or cache_service

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        No duplicate SKU check is made; SKUs are informational codes.
        """
        product = self.repository.create(product_data.model_dump())
        logger.info("Created product %s (sku=%s)", product.uid, product.sku)
        return product

    def list(self, query: ProductQuery) -> Tuple[List[Product], Pagination]:
        """
        Get one page of products matching the query.

        Returns:
            Tuple of (products, pagination metadata)
        """
        products, total = self.repository.find_many(query)
        pagination = Pagination(
            page=query.page,
            limit=query.limit,
            total=total,
            pages=self.count_pages(total, query.limit),
        )
        return products, pagination

    @staticmethod
    def count_pages(total: int, limit: int) -> int:
        if total == 0:
            return 0
        # An unlimited listing fits on a single page.
        if limit == 0:
            return 1
        return math.ceil(total / limit)

    def get_by_uid(self, uid: str) -> Product:
        """
        Get a product by its public uid.

        Raises:
            ProductNotFoundError: If no product has this uid
        """
        product = self.repository.find_by_uid(uid)
        if product is None:
            raise ProductNotFoundError(uid)
        return product

    def get_details(self, uid: str) -> dict:
        """
        Get serialized product details, served from Redis when cached.

        Raises:
            ProductNotFoundError: If no product has this uid
        """
        cached = self.cache.get(self.CACHE_PREFIX, uid)
        if cached:
            return cached

        product = self.get_by_uid(uid)
        details = self._serialize(product)
        self.cache.set(self.CACHE_PREFIX, uid, details)
        return details

    def update(self, uid: str, product_data: ProductUpdate) -> Product:
        """
        Update an existing product.

        Only fields present in the request are written. A missing row is
        detected from the UPDATE itself rather than a prior lookup.

        Raises:
            ProductNotFoundError: If no product has this uid
        """
        update_data = product_data.model_dump(exclude_unset=True)
        if not update_data:
            return self.get_by_uid(uid)

        product = self.repository.update_by_uid(uid, update_data)
        if product is None:
            raise ProductNotFoundError(uid)

        self._invalidate_cache(uid)
        return product

    def delete(self, uid: str) -> Product:
        """
        Delete a product permanently and drop its image.

        Returns:
            The deleted product

        Raises:
            ProductNotFoundError: If no product has this uid
        """
        product = self.repository.delete_by_uid(uid)
        if product is None:
            raise ProductNotFoundError(uid)

        self._invalidate_cache(uid)
        self._discard_asset(product.image_url, product.image_public_id)
        logger.info("Deleted product %s", uid)
        return product

    def attach_image(self, uid: str, data: bytes, content_type: Optional[str]) -> Product:
        """
        Store a new image for the product, replacing any previous one.

        The previous asset is removed only after the new one is saved on
        the product, so a failed upload leaves the old image in place.

        Raises:
            ProductNotFoundError: If no product has this uid
            InvalidImageError: If the file type or size is not accepted
        """
        product = self.get_by_uid(uid)
        self.validate_image(data, content_type)

        old_url, old_public_id = product.image_url, product.image_public_id
        stored = self.asset_store.store(data, content_type)

        try:
            updated = self.repository.update_by_uid(
                uid, {"image_url": stored.url, "image_public_id": stored.public_id}
            )
        except Exception:
            self._discard_asset(stored.url, stored.public_id)
            raise

        if updated is None:
            self._discard_asset(stored.url, stored.public_id)
            raise ProductNotFoundError(uid)

        self._invalidate_cache(uid)
        if old_url and old_url != stored.url:
            self._discard_asset(old_url, old_public_id)
        return updated

    def detach_image(self, uid: str) -> Product:
        """
        Remove the product's image and clear its image fields.

        Raises:
            ProductNotFoundError: If no product has this uid
        """
        product = self.get_by_uid(uid)
        old_url, old_public_id = product.image_url, product.image_public_id

        updated = self.repository.update_by_uid(uid, {"image_url": None, "image_public_id": None})
        if updated is None:
            raise ProductNotFoundError(uid)

        self._invalidate_cache(uid)
        self._discard_asset(old_url, old_public_id)
        return updated

    @staticmethod
    def validate_image(data: bytes, content_type: Optional[str]) -> None:
        """
        Check an uploaded image against the allowed types and size limit.

        Raises:
            InvalidImageError: If the image is rejected
        """
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidImageError(
                "Invalid file type. Allowed: jpg, png, webp, gif, svg."
            )
        if not data:
            raise InvalidImageError("Uploaded file is empty")
        max_size = get_settings().MAX_IMAGE_SIZE
        if len(data) > max_size:
            raise InvalidImageError(
                f"File size exceeds maximum allowed size of {max_size // (1024 * 1024)}MB"
            )

    def _discard_asset(self, url: Optional[str], public_id: Optional[str]) -> None:
        """Best-effort removal of a stored image."""
        if not url and not public_id:
            return
        try:
            self.asset_store.delete(url, public_id)
        except Exception as e:
            logger.warning("Could not remove image %s: %s", public_id or url, e)

    def _serialize(self, product: Product) -> dict:
        return ProductResponse.model_validate(product).model_dump(mode="json", by_alias=True)

    def _invalidate_cache(self, uid: str) -> None:
        """Invalidate cache for a product."""
        self.cache.delete(self.CACHE_PREFIX, uid)
