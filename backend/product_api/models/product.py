import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)

from product_api.db import Base


class ProductStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


PRODUCT_STATUSES = tuple(s.value for s in ProductStatus)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint(
            "status IN ('Active', 'Inactive')", name="ck_products_status"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    sku = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    # NUMERIC(10,2): max 99,999,999.99
    price = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(100), nullable=False, default="Uncategorized")
    status = Column(String(16), nullable=False, default=ProductStatus.ACTIVE.value)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Product id={self.id} sku={self.sku} name={self.name}>"
