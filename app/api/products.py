from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional

from app.config import get_settings
from app.database import get_db
from app.services.product_service import (
    ProductService,
    ProductNotFoundError,
    InvalidImageError,
)
from app.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductQuery,
    ProductResponse,
    ProductListResponse
)
from app.storage.base import ALLOWED_IMAGE_TYPES, AssetStore
from app.storage.factory import get_asset_store

router = APIRouter(prefix="/products", tags=["Products"])


def get_product_query(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description="Items per page (default 10, 0 returns all)"),
    search: Optional[str] = Query(None, description="Search in name, description and SKU"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Field to sort by"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="asc or desc"),
    min_price: Optional[str] = Query(None, alias="minPrice", description="Minimum price"),
    max_price: Optional[str] = Query(None, alias="maxPrice", description="Maximum price"),
) -> ProductQuery:
    """Coerce raw query-string values into a validated ProductQuery."""
    raw = {
        "page": page,
        "limit": limit,
        "search": search,
        "sortBy": sort_by,
        "sortOrder": sort_order,
        "minPrice": min_price,
        "maxPrice": max_price,
    }
    try:
        return ProductQuery.model_validate({k: v for k, v in raw.items() if v is not None})
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def read_upload(file: UploadFile) -> bytes:
    """
    Pre-filter an uploaded image on type and size before it reaches
    the service.

    Raises:
        HTTPException: 400 if the file type is not allowed or too large.
    """
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Allowed: jpg, png, webp, gif, svg."
        )

    max_size = get_settings().MAX_IMAGE_SIZE
    contents = file.file.read(max_size + 1)
    if len(contents) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size exceeds maximum allowed size of {max_size // (1024 * 1024)}MB"
        )
    return contents


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product. The server assigns uid and timestamps."
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **price**: Product price (required)
    - **sku**: Stock keeping unit (required)
    - **description**, **discountPrice**: optional
    """
    service = ProductService(db, asset_store)
    return service.create(product_data)


@router.get(
    "/",
    response_model=ProductListResponse,
    summary="List products",
    description="Get a paginated list of products with search, price filter and sorting."
)
def list_products(
    query: ProductQuery = Depends(get_product_query),
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """Get paginated list of products."""
    service = ProductService(db, asset_store)
    products, pagination = service.list(query)

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        pagination=pagination
    )


@router.get(
    "/{uid}",
    response_model=ProductResponse,
    summary="Get product by UID",
    description="Get a single product. Results are cached in Redis."
)
def get_product(
    uid: str,
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """Get a product by its public UID."""
    service = ProductService(db, asset_store)
    try:
        return service.get_details(uid)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch(
    "/{uid}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Partially update a product. Only provided fields are changed."
)
def update_product(
    uid: str,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    Cache is automatically invalidated after update.
    """
    service = ProductService(db, asset_store)
    try:
        return service.update(uid, product_data)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete(
    "/{uid}",
    response_model=ProductResponse,
    summary="Delete a product",
    description="Delete a product and its image. Returns the deleted product."
)
def delete_product(
    uid: str,
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """Delete a product."""
    service = ProductService(db, asset_store)
    try:
        return service.delete(uid)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{uid}/image",
    response_model=ProductResponse,
    summary="Upload product image",
    description="Attach an image (jpg, png, webp, gif, svg; max 10MB), replacing any previous one."
)
def upload_image(
    uid: str,
    file: UploadFile = File(..., description="Image file"),
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """Upload an image for a product."""
    contents = read_upload(file)

    service = ProductService(db, asset_store)
    try:
        return service.attach_image(uid, contents, file.content_type)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidImageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{uid}/image",
    response_model=ProductResponse,
    summary="Delete product image",
    description="Remove the product's image and clear its image URL."
)
def delete_image(
    uid: str,
    db: Session = Depends(get_db),
    asset_store: AssetStore = Depends(get_asset_store)
):
    """Remove the image from a product."""
    service = ProductService(db, asset_store)
    try:
        return service.detach_image(uid)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
