from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from product_api.services.errors import ProductServiceError


def envelope(data: Any = None, error: Optional[dict] = None) -> dict:
    return {"success": error is None, "data": data, "error": error}


def success(data: Any = None, status_code: int = 200) -> JSONResponse:
    # pydantic's json mode keeps Decimal as a string, jsonable_encoder would make it a float
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return JSONResponse(status_code=status_code, content=envelope(jsonable_encoder(data)))


def failure(code: str, message: str, status_code: int, details: Optional[dict] = None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content=envelope(error=error))


def error_response(exc: ProductServiceError) -> JSONResponse:
    return failure(exc.code, exc.message, exc.status_code, exc.details)


def request_validation_details(errors) -> dict:
    """Flatten FastAPI/pydantic error entries to {field: message}."""
    details = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        details.setdefault(field, err.get("msg", "invalid value"))
    return details
