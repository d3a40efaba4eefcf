"""HTTP middleware and request helpers."""
from .request_logging import RequestLoggingMiddleware
from .security import SecurityHeadersMiddleware
from .upload import UploadError, remove_upload, save_uploads, validate_upload

__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "UploadError",
    "remove_upload",
    "save_uploads",
    "validate_upload",
]
