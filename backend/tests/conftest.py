import os
import shutil
import tempfile

# settings are read at import time, so point them at throwaway locations first
_TMP = tempfile.mkdtemp(prefix="product_api_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["STORAGE_TYPE"] = "local"
os.environ["STORAGE_BASE_PATH"] = os.path.join(_TMP, "storage")
os.environ["STORAGE_BASE_URL"] = "/uploads"
os.environ["API_PREFIX"] = "/api/v1"
os.environ["DEFAULT_PAGE_LIMIT"] = "20"

import pytest

from product_api.adapters.blob_store import get_blob_store
from product_api.db import SessionLocal, init_db
from product_api.models.product import Product


@pytest.fixture(autouse=True, scope="session")
def setup_db():
    init_db(reset=True)
    yield
    shutil.rmtree(_TMP, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_state():
    db = SessionLocal()
    try:
        db.query(Product).delete()
        db.commit()
    finally:
        db.close()
    shutil.rmtree(os.path.join(get_blob_store().root, "products"), ignore_errors=True)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store():
    return get_blob_store()
