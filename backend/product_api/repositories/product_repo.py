from typing import Dict, List, Tuple

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from product_api.models.product import Product, utcnow
from product_api.schemas.product_schema import ListProductFilter


class StoreError(Exception):
    pass


class DuplicateKeyError(StoreError):
    pass


class RecordNotFoundError(StoreError):
    pass


# Identifiers that may appear in ORDER BY. Input is only ever used as a key here.
SORT_COLUMNS = {
    "id": Product.id,
    "sku": Product.sku,
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "category": Product.category,
    "status": Product.status,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}
SORT_DIRECTIONS = {"asc": asc, "desc": desc}

UPDATABLE_FIELDS = (
    "sku",
    "name",
    "description",
    "price",
    "stock",
    "category",
    "status",
    "image_url",
)

_UNIQUE_VIOLATION = "23505"

# products.id is a 32-bit INTEGER on PostgreSQL, so no row can carry a larger id
MAX_PRODUCT_ID = 2**31 - 1


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == _UNIQUE_VIOLATION
    # sqlite only reports a message: "UNIQUE constraint failed: products.sku"
    return "unique" in str(orig).lower()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _addressable(product_id: int) -> bool:
    return 0 < product_id <= MAX_PRODUCT_ID


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, values: Dict) -> Product:
        now = utcnow()
        p = Product(**values, created_at=now, updated_at=now)
        self.db.add(p)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_violation(e):
                raise DuplicateKeyError(f"sku already exists: {values.get('sku')}") from e
            raise StoreError(f"failed to create product: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"failed to create product: {e}") from e
        return p

    def get_by_id(self, product_id: int) -> Product:
        if not _addressable(product_id):
            raise RecordNotFoundError(f"product {product_id} not found")
        try:
            p = self.db.get(Product, product_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise StoreError(f"failed to get product by id: {e}") from e
        if p is None:
            raise RecordNotFoundError(f"product {product_id} not found")
        return p

    def get_by_sku(self, sku: str) -> Product:
        try:
            p = self.db.execute(
                select(Product).where(Product.sku == sku)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"failed to get product by sku: {e}") from e
        if p is None:
            raise RecordNotFoundError(f"product with sku {sku!r} not found")
        return p

    def _conditions(self, f: ListProductFilter) -> list:
        conds = []
        if f.name:
            conds.append(Product.name.ilike(f"%{_escape_like(f.name)}%", escape="\\"))
        if f.sku:
            conds.append(Product.sku.ilike(f"%{_escape_like(f.sku)}%", escape="\\"))
        if f.category:
            conds.append(func.lower(Product.category) == f.category.lower())
        if f.status:
            conds.append(Product.status == f.status)
        if f.min_price is not None:
            conds.append(Product.price >= f.min_price)
        if f.max_price is not None:
            conds.append(Product.price <= f.max_price)
        return conds

    def list(self, f: ListProductFilter) -> Tuple[List[Product], int]:
        """
        Filtered, sorted page of products plus the total row count for the same
        filter (pagination ignored). `f` must already be validated/defaulted.
        """
        conds = self._conditions(f)
        order = SORT_DIRECTIONS[f.sort_order](SORT_COLUMNS[f.sort_by])
        try:
            total = self.db.execute(
                select(func.count()).select_from(Product).where(*conds)
            ).scalar() or 0
            items = (
                self.db.execute(
                    select(Product)
                    .where(*conds)
                    .order_by(order)
                    .limit(f.limit)
                    .offset(f.offset)
                )
                .scalars()
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError(f"failed to list products: {e}") from e
        return items, total

    def update(self, product_id: int, changes: Dict) -> None:
        """
        Apply only the given fields. An empty change set is a no-op and leaves
        updated_at alone; otherwise updated_at is refreshed in the same statement.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise StoreError(f"fields not updatable: {sorted(unknown)}")
        if not changes:
            return
        if not _addressable(product_id):
            raise RecordNotFoundError(f"product {product_id} not found")

        values = dict(changes)
        values["updated_at"] = utcnow()
        try:
            result = self.db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_violation(e):
                raise DuplicateKeyError(f"sku already exists: {changes.get('sku')}") from e
            raise StoreError(f"failed to update product: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"failed to update product: {e}") from e
        if result.rowcount == 0:
            raise RecordNotFoundError(f"product {product_id} not found")

    def delete(self, product_id: int) -> None:
        if not _addressable(product_id):
            raise RecordNotFoundError(f"product {product_id} not found")
        try:
            result = self.db.execute(
                delete(Product)
                .where(Product.id == product_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"failed to delete product: {e}") from e
        if result.rowcount == 0:
            raise RecordNotFoundError(f"product {product_id} not found")

    def exists_sku(self, sku: str) -> bool:
        return self.db.execute(
            select(func.count()).select_from(Product).where(Product.sku == sku)
        ).scalar() > 0
