import logging
import time
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from product_api.adapters.blob_store import get_blob_store
from product_api.api.health import router as health_router
from product_api.api.responses import failure, request_validation_details
from product_api.api.routes_product import router as product_router
from product_api.api.routes_uploads import router as uploads_router
from product_api.config import settings
from product_api.db import init_db
from product_api.logging_config import configure_logging

configure_logging()
log = logging.getLogger("product_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()
    get_blob_store()
    log.info("Product API started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(title="Product Catalog API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    # an exception escaping the route is answered with 500 by the outer error handler
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        log.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, status_code, elapsed_ms)


@app.exception_handler(RequestValidationError)
async def on_request_validation_error(request: Request, exc: RequestValidationError):
    return failure(
        "VALIDATION_ERROR",
        "Validation failed",
        422,
        request_validation_details(exc.errors()),
    )


@app.exception_handler(Exception)
async def on_unexpected_error(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return failure("INTERNAL", "An unexpected error occurred", 500)


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(product_router, prefix=settings.API_PREFIX)

# stored images are served under the path part of STORAGE_BASE_URL
app.include_router(uploads_router, prefix=urlparse(settings.STORAGE_BASE_URL).path.rstrip("/") or "/uploads")


def run():
    import uvicorn

    uvicorn.run("product_api.main:app", host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
