"""
Runtime configuration.

Values come from the process environment; a local `.env` file is loaded
first when present. Read once at import time.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# Development fallback only, a warning is logged when it is used
DEFAULT_JWT_SECRET = "your-super-secret-jwt-key"

PORT = int(os.environ.get("PORT", "3000"))
NODE_ENV = os.environ.get("NODE_ENV", "development")

MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017/studenthub")
MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "")

JWT_SECRET = os.environ.get("JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", "7"))

FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "uploads")


def read_commission_rate() -> float:
    """Platform share of every completed sale, 0..1."""
    rate = float(os.environ.get("ADMIN_COMMISSION_RATE", "0.1"))
    if not 0 <= rate <= 1:
        raise ValueError(f"ADMIN_COMMISSION_RATE must be within 0..1, got {rate}")
    return rate


ADMIN_COMMISSION_RATE = read_commission_rate()

# Buyers get this long to confirm receipt before it is confirmed for them
RECEIPT_CONFIRMATION_DAYS = 7

# MoMo wallet
MOMO_PARTNER_CODE = os.environ.get("MOMO_PARTNER_CODE", "")
MOMO_ACCESS_KEY = os.environ.get("MOMO_ACCESS_KEY", "")
MOMO_SECRET_KEY = os.environ.get("MOMO_SECRET_KEY", "")
MOMO_ENDPOINT = os.environ.get(
    "MOMO_ENDPOINT", "https://test-payment.momo.vn/v2/gateway/api/create"
)
MOMO_REDIRECT_URL = os.environ.get("MOMO_REDIRECT_URL", f"{FRONTEND_URL}/payment/result")
MOMO_IPN_URL = os.environ.get("MOMO_IPN_URL", "")

# VNPay
VNP_TMNCODE = os.environ.get("VNP_TMNCODE", "")
VNP_HASHSECRET = os.environ.get("VNP_HASHSECRET", "")
VNP_URL = os.environ.get("VNP_URL", "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html")
VNP_API = os.environ.get(
    "VNP_API", "https://sandbox.vnpayment.vn/merchant_webapi/api/transaction"
)
# Empty: derived from the incoming request host
VNP_RETURN_URL = os.environ.get("VNP_RETURN_URL", "")


def get_mongo_db_name() -> str:
    """Database name: MONGO_DB_NAME, else the path of MONGO_URI, else 'studenthub'."""
    if MONGO_DB_NAME:
        return MONGO_DB_NAME
    path = MONGO_URI.split("://", 1)[-1].split("/", 1)
    if len(path) == 2:
        name = path[1].split("?", 1)[0]
        if name:
            return name
    return "studenthub"


def is_default_jwt_secret() -> bool:
    return JWT_SECRET == DEFAULT_JWT_SECRET
