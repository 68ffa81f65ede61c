import logging
import math
import os
from typing import Optional

from sqlalchemy.orm import Session

from product_api.adapters.blob_store import BlobStore, BlobStoreError, get_blob_store
from product_api.config import settings
from product_api.models.product import Product
from product_api.repositories.product_repo import (
    DuplicateKeyError,
    ProductRepository,
    RecordNotFoundError,
    StoreError,
)
from product_api.schemas.product_schema import (
    CreateProductIn,
    ListProductFilter,
    ProductListOut,
    ProductOut,
    UpdateProductIn,
)
from product_api.services.errors import (
    ImageRequired,
    ImageTooLarge,
    InternalError,
    InvalidImageFormat,
    ProductHasNoImage,
    ProductNotFound,
    SKUExists,
    ValidationFailed,
)
from product_api.services.product_validation import (
    validate_create,
    validate_list_filter,
    validate_update,
)
from product_api.utils.transactions import unit_of_work

log = logging.getLogger("product_api.product_service")

ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")


def image_prefix_for(product_id: int) -> str:
    return f"products/{product_id}/"


def image_path_for(product_id: int, ext: str) -> str:
    """Deterministic per-product location, so a re-upload overwrites in place."""
    return f"{image_prefix_for(product_id)}product-{product_id}-image{ext}"


class ProductService:
    def __init__(self, db: Session, blob_store: Optional[BlobStore] = None, max_image_size: Optional[int] = None):
        self.db = db
        self.repo = ProductRepository(db)
        self.blobs = blob_store if blob_store is not None else get_blob_store()
        self.max_image_size = max_image_size or settings.MAX_IMAGE_SIZE_BYTES

    def _internal(self, action: str, exc: Exception) -> InternalError:
        log.error("%s failed: %s", action, exc, exc_info=exc)
        return InternalError()

    def _load(self, product_id: int) -> Product:
        try:
            return self.repo.get_by_id(product_id)
        except RecordNotFoundError:
            raise ProductNotFound()
        except StoreError as e:
            raise self._internal("get product", e)

    def _owned_path(self, product_id: int, reference: str) -> Optional[str]:
        """Blob path behind `reference` when it sits in this product's own folder, else None."""
        path = self.blobs.path_for_url(reference)
        if path is None or not path.startswith(image_prefix_for(product_id)):
            return None
        return path

    def _best_effort_delete(self, product_id: int, reference: str, context: str) -> bool:
        """
        Advisory cleanup of a stored image. The primary operation has already
        committed, so failures are logged and reported through the return value only.
        """
        path = self._owned_path(product_id, reference)
        if path is None:
            log.info("image %s is not held for product %s, nothing to clean up (%s)", reference, product_id, context)
            return True
        try:
            self.blobs.delete(path)
        except Exception as e:
            log.warning("image cleanup failed for %s (%s): %s", path, context, e)
            return False
        log.info("removed image %s (%s)", path, context)
        return True

    # --- CRUD ---

    def create_product(self, req: CreateProductIn) -> ProductOut:
        errs = validate_create(req)
        if errs:
            raise ValidationFailed(details=errs.to_dict())
        try:
            with unit_of_work(self.db):
                p = self.repo.create(req.model_dump())
        except DuplicateKeyError:
            raise SKUExists()
        except StoreError as e:
            raise self._internal("create product", e)
        log.info("created product id=%s sku=%s", p.id, p.sku)
        return ProductOut.model_validate(p)

    def get_product(self, product_id: int) -> ProductOut:
        return ProductOut.model_validate(self._load(product_id))

    def get_product_by_sku(self, sku: str) -> ProductOut:
        try:
            p = self.repo.get_by_sku(sku)
        except RecordNotFoundError:
            raise ProductNotFound()
        except StoreError as e:
            raise self._internal("get product by sku", e)
        return ProductOut.model_validate(p)

    def update_product(self, req: UpdateProductIn) -> ProductOut:
        errs = validate_update(req)
        if errs:
            raise ValidationFailed(details=errs.to_dict())
        changes = req.changes()
        if changes.get("image_url") == "":
            changes["image_url"] = None
        # a stored image may only be referenced by the product it was uploaded for
        image_url = changes.get("image_url")
        if image_url and self.blobs.path_for_url(image_url) is not None:
            if self._owned_path(req.id, image_url) is None:
                raise ValidationFailed(details={"image_url": "image_url must not point at another product's stored image"})
        try:
            with unit_of_work(self.db):
                self.repo.update(req.id, changes)
        except RecordNotFoundError:
            raise ProductNotFound()
        except DuplicateKeyError:
            raise SKUExists()
        except StoreError as e:
            raise self._internal("update product", e)
        if changes:
            log.info("updated product id=%s fields=%s", req.id, sorted(changes))
        return self.get_product(req.id)

    def delete_product(self, product_id: int) -> None:
        image_url = self._load(product_id).image_url
        try:
            with unit_of_work(self.db):
                self.repo.delete(product_id)
        except RecordNotFoundError:
            raise ProductNotFound()
        except StoreError as e:
            raise self._internal("delete product", e)
        log.info("deleted product id=%s", product_id)
        if image_url:
            self._best_effort_delete(product_id, image_url, f"product {product_id} deleted")

    def list_products(self, f: ListProductFilter) -> ProductListOut:
        errs = validate_list_filter(f)
        if errs:
            raise ValidationFailed(details=errs.to_dict())
        try:
            items, total = self.repo.list(f)
        except StoreError as e:
            raise self._internal("list products", e)

        showing = None
        if items:
            start = f.offset + 1
            end = f.offset + len(items)
            showing = f"Showing {start} to {end} of {total} products"

        return ProductListOut(
            total_count=total,
            page=f.page,
            limit=f.limit,
            total_pages=math.ceil(total / f.limit),
            showing=showing,
            products=[ProductOut.model_validate(p) for p in items],
        )

    # --- images ---

    def upload_image(self, product_id: int, data: Optional[bytes], filename: Optional[str]) -> ProductOut:
        """
        Store a new product image and point the product at it.

        Order: write blob -> update row -> remove the previous blob. The row never
        references a missing object; a crash before the last step can leave the old
        file behind, which is harmless.
        """
        if not data:
            raise ImageRequired()
        if len(data) > self.max_image_size:
            raise ImageTooLarge()
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise InvalidImageFormat()

        previous = self._load(product_id).image_url

        try:
            stored = self.blobs.store(data, image_path_for(product_id, ext))
        except BlobStoreError as e:
            raise self._internal("store product image", e)
        image_url = self.blobs.url_for(stored)

        try:
            with unit_of_work(self.db):
                self.repo.update(product_id, {"image_url": image_url})
        except RecordNotFoundError:
            # product vanished between the read and the write
            self._best_effort_delete(product_id, image_url, f"product {product_id} gone during upload")
            raise ProductNotFound()
        except StoreError as e:
            raise self._internal("update product image", e)
        log.info("product id=%s image set to %s", product_id, image_url)

        if previous and self._owned_path(product_id, previous) != stored:
            self._best_effort_delete(product_id, previous, f"replaced on product {product_id}")

        return self.get_product(product_id)

    def delete_image(self, product_id: int) -> ProductOut:
        image_url = self._load(product_id).image_url
        if not image_url:
            raise ProductHasNoImage()

        path = self._owned_path(product_id, image_url)
        if path is not None:
            try:
                self.blobs.delete(path)
            except BlobStoreError as e:
                raise self._internal("delete product image", e)

        try:
            with unit_of_work(self.db):
                self.repo.update(product_id, {"image_url": None})
        except RecordNotFoundError:
            raise ProductNotFound()
        except StoreError as e:
            raise self._internal("clear product image", e)
        log.info("product id=%s image removed", product_id)
        return self.get_product(product_id)
