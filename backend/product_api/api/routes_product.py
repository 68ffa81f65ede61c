from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from product_api.adapters.blob_store import BlobStore, get_blob_store
from product_api.api.responses import error_response, success
from product_api.config import settings
from product_api.db import get_db
from product_api.schemas.product_schema import (
    CreateProductIn,
    ListProductFilter,
    UpdateProductIn,
)
from product_api.services.errors import ProductServiceError
from product_api.services.product_service import ProductService

router = APIRouter(prefix="/product", tags=["product"])


def get_product_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> ProductService:
    return ProductService(db, blob_store)


@router.get("", summary="List products")
def list_products(
    name: Optional[str] = Query(None, description="partial, case-insensitive"),
    sku: Optional[str] = Query(None, description="partial, case-insensitive"),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="Active or Inactive"),
    min_price: Optional[Decimal] = Query(None),
    max_price: Optional[Decimal] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: Optional[str] = Query(None),
    svc: ProductService = Depends(get_product_service),
):
    # empty query values behave like absent ones
    f = ListProductFilter(
        name=name or None,
        sku=sku or None,
        category=category or None,
        status=status or None,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        return success(svc.list_products(f))
    except ProductServiceError as e:
        return error_response(e)


@router.get("/sku/{sku}", summary="Get product by SKU")
def get_product_by_sku(sku: str, svc: ProductService = Depends(get_product_service)):
    try:
        return success(svc.get_product_by_sku(sku))
    except ProductServiceError as e:
        return error_response(e)


@router.get("/{product_id}", summary="Get product by id")
def get_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    try:
        return success(svc.get_product(product_id))
    except ProductServiceError as e:
        return error_response(e)


@router.post("", summary="Create product")
def create_product(payload: CreateProductIn, svc: ProductService = Depends(get_product_service)):
    try:
        return success(svc.create_product(payload), status_code=201)
    except ProductServiceError as e:
        return error_response(e)


@router.put("", summary="Partially update product")
def update_product(payload: UpdateProductIn, svc: ProductService = Depends(get_product_service)):
    try:
        return success(svc.update_product(payload))
    except ProductServiceError as e:
        return error_response(e)


@router.delete("/{product_id}", summary="Delete product")
def delete_product(product_id: int, svc: ProductService = Depends(get_product_service)):
    try:
        svc.delete_product(product_id)
        return success({"id": product_id})
    except ProductServiceError as e:
        return error_response(e)


@router.post("/{product_id}/image", summary="Upload product image")
def upload_image(
    product_id: int,
    image: Optional[UploadFile] = File(None),
    svc: ProductService = Depends(get_product_service),
):
    data, filename = None, None
    if image is not None:
        # read one byte past the limit so oversized files are detectable without buffering them whole
        data = image.file.read(settings.MAX_IMAGE_SIZE_BYTES + 1)
        filename = image.filename
    try:
        return success(svc.upload_image(product_id, data, filename))
    except ProductServiceError as e:
        return error_response(e)


@router.delete("/{product_id}/image", summary="Delete product image")
def delete_image(product_id: int, svc: ProductService = Depends(get_product_service)):
    try:
        return success(svc.delete_image(product_id))
    except ProductServiceError as e:
        return error_response(e)
