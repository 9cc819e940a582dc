from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 1000
# Keeps (page - 1) * limit inside a 64-bit OFFSET
MAX_PAGE = 1_000_000

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "price": "price",
    "discountPrice": "discount_price",
    "sku": "sku",
}


class SortOrder(str, Enum):
    """Sort direction for product listings."""
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    """Base schema that speaks camelCase on the wire and rejects unknown fields."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )


class ProductBase(CamelModel):
    """Base schema for Product with common attributes."""
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: float = Field(..., description="Product price")
    discount_price: Optional[float] = Field(None, description="Discounted price")
    sku: str = Field(..., min_length=1, max_length=100, description="Stock keeping unit")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductUpdate(CamelModel):
    """Schema for updating an existing product. All fields are optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Optional[float] = Field(None, description="Product price")
    discount_price: Optional[float] = Field(None, description="Discounted price")
    sku: Optional[str] = Field(None, min_length=1, max_length=100, description="Stock keeping unit")

    @field_validator("name", "price", "sku")
    @classmethod
    def reject_null(cls, value):
        # Only description and discountPrice can be cleared.
        if value is None:
            raise ValueError("Field may not be null")
        return value


class ProductResponse(ProductBase):
    """Schema for product response including all fields."""
    uid: str
    image_url: Optional[str] = None
    image_public_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class ProductQuery(CamelModel):
    """
    Listing parameters after coercion.

    Non-integer page/limit values fall back to their defaults and
    non-numeric price bounds are dropped, mirroring how browsers
    tend to send half-filled filter forms.
    """
    page: int = Field(DEFAULT_PAGE, ge=1, le=MAX_PAGE, description="Page number (1-indexed)")
    limit: int = Field(DEFAULT_LIMIT, ge=0, le=MAX_LIMIT, description="Items per page, 0 for all")
    search: Optional[str] = Field(None, description="Search in name, description and SKU")
    sort_by: str = Field("createdAt", description="Field to sort by")
    sort_order: SortOrder = Field(SortOrder.DESC, description="Sort direction")
    min_price: Optional[float] = Field(None, description="Minimum price, inclusive")
    max_price: Optional[float] = Field(None, description="Maximum price, inclusive")

    @field_validator("page", mode="before")
    @classmethod
    def coerce_page(cls, value):
        return _to_int(value, DEFAULT_PAGE)

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, value):
        return _to_int(value, DEFAULT_LIMIT)

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def coerce_price(cls, value):
        return _to_float(value)

    @field_validator("search", mode="before")
    @classmethod
    def blank_search_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value or None

    @field_validator("sort_by", mode="before")
    @classmethod
    def check_sort_by(cls, value):
        if value is None or value == "":
            return "createdAt"
        if value not in SORTABLE_FIELDS:
            raise ValueError(
                f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}"
            )
        return value

    @field_validator("sort_order", mode="before")
    @classmethod
    def lower_sort_order(cls, value):
        if value is None or value == "":
            return SortOrder.DESC
        if isinstance(value, str):
            return value.lower()
        return value


class Pagination(BaseModel):
    """Pagination metadata for list responses."""
    page: int
    limit: int
    total: int
    pages: int


class ProductListResponse(BaseModel):
    """Schema for paginated product list response."""
    items: list[ProductResponse]
    pagination: Pagination


def _to_int(value, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    # NaN and infinities are treated as absent bounds
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number
