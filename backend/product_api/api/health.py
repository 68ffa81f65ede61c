import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text

from product_api.adapters.blob_store import BlobStore, get_blob_store
from product_api.db import engine

router = APIRouter()
log = logging.getLogger("product_api.health")


@router.get("/health", tags=["health"])
def health(blob_store: BlobStore = Depends(get_blob_store)):
    db_ok = False
    storage_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception as e:
        log.warning("health: database check failed: %s", e)
    try:
        storage_ok = blob_store.ping()
    except Exception as e:
        log.warning("health: storage check failed: %s", e)

    return {
        "status": "ok" if db_ok and storage_ok else "degraded",
        "db": db_ok,
        "storage": storage_ok,
    }
