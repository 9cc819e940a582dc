"""HTTP client for the catalog API with a small client-side query cache."""

import io
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from PIL import Image, UnidentifiedImageError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from app.storage.base import ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE

logger = logging.getLogger(__name__)

IMAGE_MIN_PX = 600
IMAGE_MAX_PX = 3000
WEBP_QUALITY = 90

SVG_TYPE = "image/svg+xml"

# Query parameter names accepted by GET /products
LIST_PARAMS = {
    "page": "page",
    "limit": "limit",
    "search": "search",
    "sort_by": "sortBy",
    "sort_order": "sortOrder",
    "min_price": "minPrice",
    "max_price": "maxPrice",
}


class CatalogAPIError(Exception):
    """Raised when the catalog API answers with an error status."""

    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Catalog API error {status_code}: {detail}")


class ImageProcessingError(Exception):
    """Raised when image bytes cannot be decoded or re-encoded."""
    pass


@dataclass(frozen=True)
class ProcessedImage:
    """Image bytes ready for upload."""
    data: bytes
    content_type: str
    filename: str
    width: int
    height: int
    warning: Optional[str] = None


def validate_image_file(content_type: Optional[str], size: int) -> None:
    """Check an image before uploading it.

    Mirrors the server's allow-list so obviously bad files never leave
    the client.

    Raises:
        ValueError: If the type is not allowed, or the file is empty or
            larger than 10MB.
    """
    if not content_type or content_type not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Invalid file type. Allowed: JPG, PNG, WEBP, GIF, SVG.")
    if size == 0:
        raise ValueError("File is empty (0 bytes).")
    if size > MAX_IMAGE_SIZE:
        raise ValueError("File is too large. Maximum 10MB.")


def read_image_size(data: bytes) -> Optional[tuple[int, int]]:
    """Return ``(width, height)`` of raster image bytes, or None if unreadable."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return None
    if width <= 0 or height <= 0:
        return None
    return width, height


def validate_image_dimensions(
    data: bytes,
    content_type: Optional[str],
    min_px: int = IMAGE_MIN_PX,
    max_px: int = IMAGE_MAX_PX,
) -> tuple[int, int]:
    """Check that the shorter side is at least ``min_px`` and the longer at most ``max_px``.

    SVG images and images whose size cannot be read pass and are
    reported as ``(min_px, min_px)``.

    Raises:
        ValueError: If the image is too small or too large.
    """
    if content_type == SVG_TYPE:
        return min_px, min_px

    size = read_image_size(data)
    if size is None:
        return min_px, min_px

    width, height = size
    if min(width, height) < min_px:
        raise ValueError(
            f"Minimum size on the shorter side is {min_px}px. Got {width}x{height}px."
        )
    if max(width, height) > max_px:
        raise ValueError(
            f"Maximum size on the longer side is {max_px}px. Got {width}x{height}px."
        )
    return width, height


def process_image(
    data: bytes,
    content_type: str,
    filename: str,
    min_px: int = IMAGE_MIN_PX,
    max_px: int = IMAGE_MAX_PX,
    quality: int = WEBP_QUALITY,
) -> ProcessedImage:
    """Prepare a raster image for upload.

    Images whose longer side exceeds ``max_px`` are scaled down keeping
    their aspect ratio; smaller images are never scaled up. The result
    is re-encoded as WebP. SVG images are returned untouched. Images
    below ``min_px`` on their shorter side are still processed but carry
    a warning.

    Raises:
        ImageProcessingError: If the bytes cannot be decoded or encoded.
    """
    if content_type == SVG_TYPE:
        return ProcessedImage(data, content_type, filename, min_px, min_px)

    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            src_width, src_height = source.size
            longer = max(src_width, src_height)
            scale = max_px / longer if longer > max_px else 1
            target = (max(1, round(src_width * scale)), max(1, round(src_height * scale)))

            image = source
            if target != source.size:
                image = image.resize(target, Image.Resampling.LANCZOS)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if image.has_transparency_data else "RGB")

            buffer = io.BytesIO()
            image.save(buffer, format="WEBP", quality=quality)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageProcessingError(f"Could not process image: {e}") from e

    warning = None
    if min(src_width, src_height) < min_px:
        warning = f"Image is smaller than the recommended {min_px}px on its shorter side."

    return ProcessedImage(
        data=buffer.getvalue(),
        content_type="image/webp",
        filename=os.path.splitext(filename)[0] + ".webp",
        width=target[0],
        height=target[1],
        warning=warning,
    )


class QueryCache:
    """Time-bounded cache of GET responses keyed by query key tuples.

    A key is a tuple such as ``("products", (("page", 1),))`` or
    ``("product", uid)``. Invalidating a prefix drops every key that
    starts with it.
    """

    def __init__(self, stale_time: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.stale_time = stale_time
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Any]] = {}

    def get(self, key: tuple) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.stale_time:
            del self._entries[key]
            return None
        return value

    def set(self, key: tuple, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, *prefix: Any) -> None:
        for key in [k for k in self._entries if k[:len(prefix)] == prefix]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()


class CatalogClient:
    """Synchronous client for the product catalog API.

    GET responses are cached for ``stale_time`` seconds. Any mutation
    invalidates the product list and the mutated product. Transport
    failures on GET requests are retried ``retries`` times; mutations
    are sent once. HTTP error statuses are never retried.

    Either pass ``base_url`` (the client owns an ``httpx.Client``) or an
    existing ``http_client`` whose base URL already points at the API.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        stale_time: float = 60.0,
        retries: int = 1,
        timeout: float = 30.0,
    ) -> None:
        if http_client is None and base_url is None:
            raise ValueError("Either base_url or http_client is required")
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url, timeout=timeout)
        self.retries = retries
        self.cache = QueryCache(stale_time=stale_time)

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # --- queries -------------------------------------------------------------

    def list_products(self, **query: Any) -> dict:
        """List products; keyword names follow ProductQuery (``sort_by``, ``min_price``...)."""
        params = {}
        for name, value in query.items():
            if name not in LIST_PARAMS:
                raise TypeError(f"Unknown query parameter '{name}'")
            if value is not None and value != "":
                params[LIST_PARAMS[name]] = value

        key = ("products", tuple(sorted(params.items())))
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        data = self._query("/products/", params=params)
        self.cache.set(key, data)
        return data

    def get_product(self, uid: str) -> dict:
        key = ("product", uid)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        data = self._query(f"/products/{uid}")
        self.cache.set(key, data)
        return data

    # --- mutations -----------------------------------------------------------

    def create_product(self, data: dict) -> dict:
        product = self._request("POST", "/products/", json=data)
        self.cache.invalidate("products")
        return product

    def update_product(self, uid: str, data: dict) -> dict:
        product = self._request("PATCH", f"/products/{uid}", json=data)
        self._invalidate(uid)
        return product

    def delete_product(self, uid: str) -> dict:
        product = self._request("DELETE", f"/products/{uid}")
        self._invalidate(uid)
        return product

    def upload_image(self, uid: str, filename: str, data: bytes, content_type: str) -> dict:
        """Validate, prepare and upload a product image.

        Raster images are scaled down to ``IMAGE_MAX_PX`` and sent as WebP.
        If they cannot be processed the original bytes are sent instead.
        """
        validate_image_file(content_type, len(data))
        try:
            processed = process_image(data, content_type, filename)
        except ImageProcessingError as e:
            logger.warning("Uploading %s unprocessed: %s", filename, e)
        else:
            if processed.warning:
                logger.warning("%s: %s", filename, processed.warning)
            data, content_type, filename = processed.data, processed.content_type, processed.filename

        product = self._request(
            "POST",
            f"/products/{uid}/image",
            files={"file": (filename, data, content_type)},
        )
        self._invalidate(uid)
        return product

    def delete_image(self, uid: str) -> dict:
        product = self._request("DELETE", f"/products/{uid}/image")
        self._invalidate(uid)
        return product

    # --- helpers -------------------------------------------------------------

    def _invalidate(self, uid: str) -> None:
        self.cache.invalidate("products")
        self.cache.invalidate("product", uid)

    def _query(self, path: str, **kwargs: Any) -> Any:
        retrying = Retrying(
            stop=stop_after_attempt(self.retries + 1),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self._request, "GET", path, **kwargs)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error("Catalog request %s %s failed: %s", method, path, e)
            raise

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise CatalogAPIError(response.status_code, detail)
        return response.json()
