"""Authentication package."""
from .cron import verify_cron_secret
from .dependencies import extract_bearer_token, verify_admin, verify_auth

__all__ = [
    "extract_bearer_token",
    "verify_auth",
    "verify_admin",
    "verify_cron_secret",
]
