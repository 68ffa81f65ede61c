"""
Domain error vocabulary for product operations.

Each error carries the wire `code` and HTTP `status_code` the boundary uses,
so the mapping lives in one place.
"""
from typing import Optional


class ProductServiceError(Exception):
    code = "INTERNAL"
    status_code = 500
    message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(ProductServiceError):
    code = "VALIDATION_ERROR"
    status_code = 422
    message = "Validation failed"


class ProductNotFound(ProductServiceError):
    code = "NOT_FOUND"
    status_code = 404
    message = "Product not found"


class SKUExists(ProductServiceError):
    code = "CONFLICT"
    status_code = 409
    message = "Product with this SKU already exists"


class ProductHasNoImage(ProductServiceError):
    code = "BAD_REQUEST"
    status_code = 400
    message = "Product has no image to delete"


class ImageRequired(ProductServiceError):
    code = "BAD_REQUEST"
    status_code = 400
    message = "Image file is required"


class ImageTooLarge(ProductServiceError):
    code = "BAD_REQUEST"
    status_code = 400
    message = "Image file size exceeds maximum limit of 5MB"


class InvalidImageFormat(ProductServiceError):
    code = "BAD_REQUEST"
    status_code = 400
    message = "Invalid image format, only JPG, JPEG, PNG, GIF are allowed"


class InternalError(ProductServiceError):
    pass
