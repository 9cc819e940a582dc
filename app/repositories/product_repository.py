from sqlalchemy.orm import Session
from sqlalchemy import and_, delete, func, or_, select, update
from typing import Any, Optional, List, Tuple

from app.models.product import Product, generate_uid, utcnow
from app.schemas.product import ProductQuery, SORTABLE_FIELDS, SortOrder


class ProductRepository:
    """
    Storage access for products.

    Translates listing parameters into SQL filter, sort and pagination
    clauses. Mutations are single statements so that a row disappearing
    between a lookup and a write surfaces as "nothing matched" instead of
    a storage error.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, data: dict) -> Product:
        now = utcnow()
        product = Product(uid=generate_uid(), created_at=now, updated_at=now, **data)
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def find_many(self, query: ProductQuery) -> Tuple[List[Product], int]:
        """
        Return one page of products matching the query and the total
        number of matches ignoring pagination.
        """
        where = self.build_where_clause(query.search, query.min_price, query.max_price)

        count_stmt = select(func.count()).select_from(Product)
        stmt = select(Product)
        if where is not None:
            count_stmt = count_stmt.where(where)
            stmt = stmt.where(where)

        total = self.db.scalar(count_stmt) or 0

        stmt = stmt.order_by(*self.build_order_by(query.sort_by, query.sort_order))
        # limit == 0 returns every match
        if query.limit > 0:
            stmt = stmt.offset((query.page - 1) * query.limit).limit(query.limit)

        products = list(self.db.scalars(stmt).all())
        return products, total

    def find_by_uid(self, uid: str) -> Optional[Product]:
        return self.db.scalar(select(Product).where(Product.uid == uid))

    def update_by_uid(self, uid: str, data: dict[str, Any]) -> Optional[Product]:
        """
        Apply `data` to the product with the given uid.

        Returns the updated product, or None when no row matched.
        """
        values = dict(data)
        values["updated_at"] = utcnow()
        stmt = (
            update(Product)
            .where(Product.uid == uid)
            .values(**values)
            .returning(Product)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        product = self.db.scalars(stmt).first()
        self.db.commit()
        return product

    def delete_by_uid(self, uid: str) -> Optional[Product]:
        """
        Delete the product with the given uid.

        Returns the deleted row detached from the session, or None when
        no row matched.
        """
        stmt = (
            delete(Product)
            .where(Product.uid == uid)
            .returning(Product)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        product = self.db.scalars(stmt).first()
        if product is not None:
            # Keep the loaded state readable after commit.
            self.db.expunge(product)
        self.db.commit()
        return product

    @staticmethod
    def build_where_clause(
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ):
        """
        Build the combined filter.

        Search is a case-insensitive substring match on name, description
        or SKU. Price bounds are inclusive and either may be omitted.
        Returns None when there is nothing to filter on.
        """
        conditions = []

        if search:
            conditions.append(
                or_(
                    Product.name.icontains(search, autoescape=True),
                    Product.description.icontains(search, autoescape=True),
                    Product.sku.icontains(search, autoescape=True),
                )
            )

        if min_price is not None:
            conditions.append(Product.price >= min_price)
        if max_price is not None:
            conditions.append(Product.price <= max_price)

        if not conditions:
            return None
        return and_(*conditions)

    @staticmethod
    def build_order_by(sort_by: str, sort_order: SortOrder) -> list:
        column = getattr(Product, SORTABLE_FIELDS[sort_by])
        # Internal id breaks ties so pages never overlap.
        if sort_order == SortOrder.ASC:
            return [column.asc(), Product.id.asc()]
        return [column.desc(), Product.id.desc()]
