import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, DateTime

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_uid() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """
    Product model representing an item in the catalog.

    Attributes:
        id: Internal identifier, never exposed through the API
        uid: Public, immutable identifier used in all external references
        name: Product name
        description: Optional long description
        price: Product price
        discount_price: Optional discounted price
        sku: Stock keeping unit code
        image_url: URL of the attached image (local or remote)
        image_public_id: Remote asset host reference for the image
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String(36), unique=True, index=True, nullable=False, default=generate_uid)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    discount_price = Column(Float, nullable=True)
    sku = Column(String(100), nullable=False, index=True)
    image_url = Column(String(1024), nullable=True)
    image_public_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self):
        return f"<Product(uid='{self.uid}', name='{self.name}', sku='{self.sku}')>"
