"""Fill the catalog with demo products: ``python -m app.seed``."""
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.database import Base, SessionLocal, engine
from app.models.product import Product
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {
        "name": "iPhone 15 Pro Max",
        "description": "Smartphone with 48MP camera, A17 Pro chip, 256GB",
        "price": 149999,
        "discount_price": 129999,
        "sku": "IPHONE-15-PRO-MAX-256GB",
    },
    {
        "name": "MacBook Pro 14",
        "description": "Laptop with M3 Pro chip, 512GB SSD, 18GB RAM",
        "price": 249999,
        "discount_price": 229999,
        "sku": "MACBOOK-PRO-14-M3",
    },
    {
        "name": "AirPods Pro 2",
        "description": "Wireless earbuds with active noise cancellation",
        "price": 29999,
        "discount_price": 24999,
        "sku": "AIRPODS-PRO-2",
    },
    {
        "name": "iPad Air",
        "description": "Tablet with M1 chip, 256GB, Wi-Fi + Cellular",
        "price": 89999,
        "discount_price": 79999,
        "sku": "IPAD-AIR-256GB",
    },
    {
        "name": "Apple Watch Series 9",
        "description": "Smart watch with Always-On Retina display",
        "price": 49999,
        "discount_price": 44999,
        "sku": "APPLE-WATCH-SERIES-9",
    },
    {
        "name": "Samsung Galaxy S24 Ultra",
        "description": "Smartphone with S Pen, 200MP camera, 512GB",
        "price": 159999,
        "discount_price": 139999,
        "sku": "SAMSUNG-S24-ULTRA-512GB",
    },
    {
        "name": "Sony WH-1000XM5",
        "description": "Over-ear headphones with noise cancellation",
        "price": 34999,
        "sku": "SONY-WH-1000XM5",
    },
]


def seed_products(db: Session) -> list[Product]:
    """Replace every product with the demo set and return the new rows."""
    db.execute(delete(Product))
    db.commit()
    logger.info("Cleared existing products")

    repository = ProductRepository(db)
    created = [repository.create(dict(data)) for data in DEMO_PRODUCTS]
    logger.info("Created %d demo products", len(created))
    return created


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_products(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
