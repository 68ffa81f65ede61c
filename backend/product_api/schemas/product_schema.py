from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CreateProductIn(BaseModel):
    # everything is optional at the shape level so the validator can report
    # every missing or null field at once instead of failing on the first one
    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = 0
    category: Optional[str] = None
    status: Optional[str] = None


class UpdateProductIn(BaseModel):
    """
    Partial update. Only fields present in the payload are applied; presence is
    read from `model_fields_set`, so an explicit null and an absent key differ.
    """
    id: int
    sku: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None
    category: Optional[str] = None
    status: Optional[str] = None
    image_url: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class ListProductFilter(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None

    page: Optional[int] = None
    limit: Optional[int] = None

    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int
    category: str
    status: str
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProductListOut(BaseModel):
    total_count: int
    page: int
    limit: int
    total_pages: int
    showing: Optional[str] = None
    products: List[ProductOut]
