"""
Field rules for product requests.

Every function here is pure: it inspects a request, collects *all* violations
and returns them as a ValidationErrors list (empty when the request is valid).
Nothing is raised from this module; the service decides what to do with the result.
"""
from decimal import Decimal
from typing import List, NamedTuple, Optional

from product_api.config import settings
from product_api.models.product import PRODUCT_STATUSES
from product_api.schemas.product_schema import (
    CreateProductIn,
    ListProductFilter,
    UpdateProductIn,
)

MAX_SKU_LENGTH = 100
MAX_CATEGORY_LENGTH = 100
MAX_IMAGE_URL_LENGTH = 2048
MAX_PRICE = Decimal("99999999.99")
PRICE_SCALE = 2
MAX_PAGE_LIMIT = 100
# OFFSET is bound as a signed 64-bit integer
MAX_OFFSET = 2**63 - 1

SORT_FIELDS = (
    "id",
    "sku",
    "name",
    "price",
    "stock",
    "category",
    "status",
    "created_at",
    "updated_at",
)
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"

_STATUS_MESSAGE = "status must be either 'Active' or 'Inactive'"


class ValidationError(NamedTuple):
    field: str
    message: str


class ValidationErrors(list):
    """List of ValidationError with a per-field view for the response body."""

    def add(self, field: str, message: str) -> None:
        self.append(ValidationError(field, message))

    def to_dict(self) -> dict:
        # several violations on one field are joined so none is dropped
        out = {}
        for err in self:
            out[err.field] = f"{out[err.field]}; {err.message}" if err.field in out else err.message
        return out


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def _check_price(errs: ValidationErrors, price: Decimal) -> None:
    if not price.is_finite():
        errs.add("price", "price must be a finite number")
        return
    if price < 0:
        errs.add("price", "price must be greater than or equal to 0")
    elif price > MAX_PRICE:
        errs.add("price", "price must not exceed 99,999,999.99")
    elif price.as_tuple().exponent < -PRICE_SCALE and price != price.quantize(Decimal("0.01")):
        errs.add("price", "price must have at most 2 decimal places")


def _check_sku(errs: ValidationErrors, sku: Optional[str], missing: str) -> None:
    if _is_blank(sku):
        errs.add("sku", missing)
    elif len(sku) > MAX_SKU_LENGTH:
        errs.add("sku", "sku must not exceed 100 characters")


def _check_category(errs: ValidationErrors, category: Optional[str], missing: str) -> None:
    if _is_blank(category):
        errs.add("category", missing)
    elif len(category) > MAX_CATEGORY_LENGTH:
        errs.add("category", "category must not exceed 100 characters")


def validate_create(req: CreateProductIn) -> ValidationErrors:
    errs = ValidationErrors()

    _check_sku(errs, req.sku, "sku is required")

    if _is_blank(req.name):
        errs.add("name", "name is required")

    if req.price is None:
        errs.add("price", "price is required")
    else:
        _check_price(errs, req.price)

    if req.stock is None:
        errs.add("stock", "stock must not be null")
    elif req.stock < 0:
        errs.add("stock", "stock must be greater than or equal to 0")

    _check_category(errs, req.category, "category is required")

    if req.status not in PRODUCT_STATUSES:
        errs.add("status", _STATUS_MESSAGE)

    return errs


def validate_update(req: UpdateProductIn) -> ValidationErrors:
    """Same per-field rules as create, applied only to the fields the caller sent."""
    errs = ValidationErrors()
    present = req.model_fields_set

    if req.id <= 0:
        errs.add("id", "id must be a positive integer")

    if "sku" in present:
        _check_sku(errs, req.sku, "sku must not be empty")

    if "name" in present and _is_blank(req.name):
        errs.add("name", "name must not be empty")

    if "price" in present:
        if req.price is None:
            errs.add("price", "price must not be null")
        else:
            _check_price(errs, req.price)

    if "stock" in present:
        if req.stock is None:
            errs.add("stock", "stock must not be null")
        elif req.stock < 0:
            errs.add("stock", "stock must be greater than or equal to 0")

    if "category" in present:
        _check_category(errs, req.category, "category must not be empty")

    if "status" in present and req.status not in PRODUCT_STATUSES:
        errs.add("status", _STATUS_MESSAGE)

    if "image_url" in present and req.image_url is not None and len(req.image_url) > MAX_IMAGE_URL_LENGTH:
        errs.add("image_url", "image_url must not exceed 2048 characters")

    return errs


def validate_list_filter(f: ListProductFilter) -> ValidationErrors:
    """
    Validate a list filter and apply defaults in place:
    page 0/unset -> 1, limit 0/unset -> DEFAULT_PAGE_LIMIT,
    sort_by unset -> created_at, sort_order unset -> desc.
    """
    errs = ValidationErrors()

    if f.page is not None and f.page < 0:
        errs.add("page", "page must be a positive number")
    if not f.page:
        f.page = 1

    if f.limit is not None and f.limit < 0:
        errs.add("limit", "limit must be a positive number")
    if not f.limit:
        f.limit = settings.DEFAULT_PAGE_LIMIT
    if f.limit > MAX_PAGE_LIMIT:
        errs.add("limit", "limit must not exceed 100")
    elif f.page > 0 and f.limit > 0 and (f.page - 1) * f.limit > MAX_OFFSET:
        errs.add("page", "page is out of range")

    if f.min_price is not None and f.min_price < 0:
        errs.add("min_price", "min_price must be greater than or equal to 0")
    if f.max_price is not None and f.max_price < 0:
        errs.add("max_price", "max_price must be greater than or equal to 0")
    if f.min_price is not None and f.max_price is not None and f.min_price > f.max_price:
        errs.add("price", "min_price must be less than or equal to max_price")

    if f.sort_by:
        if f.sort_by not in SORT_FIELDS:
            errs.add("sort_by", "sort_by must be one of: " + ", ".join(SORT_FIELDS))
    else:
        f.sort_by = DEFAULT_SORT_FIELD

    if f.sort_order:
        if f.sort_order not in SORT_ORDERS:
            errs.add("sort_order", "sort_order must be one of: asc, desc")
    else:
        f.sort_order = DEFAULT_SORT_ORDER

    if f.status is not None and f.status not in PRODUCT_STATUSES:
        errs.add("status", _STATUS_MESSAGE)

    return errs
