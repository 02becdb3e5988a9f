"""
    Centralized exception handling for the FastAPI application.
"""
from typing import Dict, List, Optional
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str, headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        super().__init__(self.detail)

class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    def __init__(self, image_id: str):
        super().__init__(status_code=404, detail=f"Image with ID '{image_id}' not found.")

class TagNotFoundException(APIException):
    """Exception for when a tag is not found."""
    def __init__(self, name: str):
        super().__init__(status_code=404, detail=f"Tag '{name}' not found.")

class InvalidImageException(APIException):
    """Exception for invalid image files."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class InvalidTagException(APIException):
    """Exception for tag names that cannot be used."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class DuplicateTagException(APIException):
    def __init__(self, name: str):
        self.name = name
        super().__init__(status_code=409, detail="This tag already exists")

class TagCascadeException(APIException):
    """
        Raised when removing a tag from its images fails part way.
        Images listed in `updated_image_ids` were already rewritten and are not rolled back.
    """
    def __init__(self, name: str, updated_image_ids: List[str], reason: str):
        self.name = name
        self.updated_image_ids = updated_image_ids
        updated = ", ".join(updated_image_ids) if updated_image_ids else "none"
        super().__init__(
            status_code=500,
            detail=f"Failed to delete tag '{name}': {reason}. Images already updated: {updated}.",
        )

class StorageException(APIException):
    """Exception for S3 object storage failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class DynamoDBException(APIException):
    """Exception for DynamoDB failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class NotAuthenticatedException(APIException):
    def __init__(self):
        super().__init__(status_code=401, detail="Authentication required")

class InvalidCredentialsException(APIException):
    def __init__(self):
        super().__init__(status_code=401, detail="Invalid login credentials")

class RateLimitExceededException(APIException):
    """Exception for login attempts over the rate limit."""
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            status_code=429,
            detail=f"Too many login attempts. Please try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

class RateLimiterUnavailableException(APIException):
    def __init__(self, detail: str):
        super().__init__(status_code=503, detail=detail)

async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    log.error(f"API Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
