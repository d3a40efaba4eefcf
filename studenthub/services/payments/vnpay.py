"""VNPay gateway - signed payment URLs, return/IPN verification, querydr and refund.

Payment URLs are signed with HMAC-SHA512 over the alphabetically sorted,
form-encoded parameters; the merchant API (querydr/refund) signs the
pipe-joined field values instead.
"""

import hashlib
import hmac
from datetime import datetime
from typing import Any, Mapping
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from studenthub import config
from studenthub.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

VNP_VERSION = "2.1.0"
VNP_TIMEZONE = ZoneInfo("Asia/Ho_Chi_Minh")
DEFAULT_IP = "127.0.0.1"

# Same unreserved set as JavaScript's encodeURIComponent
_SAFE_CHARS = "-_.!~*'()"


class VnpayError(Exception):
    """VNPay merchant API call failed."""


def vnp_now() -> datetime:
    return datetime.now(VNP_TIMEZONE)


def new_order_id(now: datetime | None = None) -> str:
    """`VNP<yyMMddHHmmss>` in Vietnam time."""
    return f"VNP{(now or vnp_now()).strftime('%y%m%d%H%M%S')}"


def encode_value(value: Any) -> str:
    return quote(str(value), safe=_SAFE_CHARS).replace("%20", "+")


def build_sign_data(params: Mapping[str, Any]) -> str:
    """`k=v&...` over sorted keys with encoded values."""
    return "&".join(f"{key}={encode_value(params[key])}" for key in sorted(params))


class VnpayGateway:
    """Client for the VNPay payment gateway."""

    def __init__(
        self,
        tmn_code: str | None = None,
        hash_secret: str | None = None,
        pay_url: str | None = None,
        api_url: str | None = None,
        return_url: str | None = None,
    ):
        self.tmn_code = tmn_code if tmn_code is not None else config.VNP_TMNCODE
        self.hash_secret = hash_secret if hash_secret is not None else config.VNP_HASHSECRET
        self.pay_url = pay_url or config.VNP_URL
        self.api_url = api_url or config.VNP_API
        self.return_url = return_url if return_url is not None else config.VNP_RETURN_URL

        # HTTP client (lazy init)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    def sign(self, data: str) -> str:
        return hmac.new(
            self.hash_secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha512
        ).hexdigest()

    # ==================== PAYMENT URL ====================

    def create_payment_url(
        self,
        order_id: str,
        amount: float,
        order_info: str,
        ip_addr: str = DEFAULT_IP,
        locale: str = "vn",
        bank_code: str | None = None,
        return_url: str | None = None,
        now: datetime | None = None,
    ) -> str:
        """Signed redirect URL for the VNPay checkout page."""
        params: dict[str, Any] = {
            "vnp_Version": VNP_VERSION,
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            "vnp_Locale": locale or "vn",
            "vnp_CurrCode": "VND",
            "vnp_TxnRef": order_id,
            "vnp_OrderInfo": order_info,
            "vnp_OrderType": "other",
            "vnp_Amount": int(round(amount * 100)),
            "vnp_ReturnUrl": return_url or self.return_url,
            "vnp_IpAddr": ip_addr or DEFAULT_IP,
            "vnp_CreateDate": (now or vnp_now()).strftime("%Y%m%d%H%M%S"),
        }
        if bank_code:
            params["vnp_BankCode"] = bank_code

        sign_data = build_sign_data(params)
        return f"{self.pay_url}?{sign_data}&vnp_SecureHash={self.sign(sign_data)}"

    def verify_return(self, params: Mapping[str, Any]) -> bool:
        """Verify `vnp_SecureHash` of return/IPN query parameters."""
        received = params.get("vnp_SecureHash")
        if not received:
            return False
        unsigned = {
            k: v for k, v in params.items() if k not in ("vnp_SecureHash", "vnp_SecureHashType")
        }
        return hmac.compare_digest(str(received).lower(), self.sign(build_sign_data(unsigned)))

    # ==================== MERCHANT API ====================

    async def _post_api(self, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_http_client()
        try:
            response = await client.post(self.api_url, json=body)
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"VNPay {body.get('vnp_Command')} failed for "
                f"{sanitize_id_for_logging(body.get('vnp_TxnRef'))}: {e}"
            )
            raise VnpayError(f"VNPay {body.get('vnp_Command')} failed: {e}") from e

    async def query_transaction(
        self, order_id: str, transaction_date: str, ip_addr: str = DEFAULT_IP
    ) -> dict[str, Any]:
        """querydr: transaction status by order id and original create date."""
        now = vnp_now()
        body = {
            "vnp_RequestId": now.strftime("%H%M%S"),
            "vnp_Version": VNP_VERSION,
            "vnp_Command": "querydr",
            "vnp_TmnCode": self.tmn_code,
            "vnp_TxnRef": order_id,
            "vnp_OrderInfo": f"Truy van GD ma:{order_id}",
            "vnp_TransactionDate": transaction_date,
            "vnp_CreateDate": now.strftime("%Y%m%d%H%M%S"),
            "vnp_IpAddr": ip_addr,
        }
        data = "|".join(str(body[k]) for k in (
            "vnp_RequestId", "vnp_Version", "vnp_Command", "vnp_TmnCode", "vnp_TxnRef",
            "vnp_TransactionDate", "vnp_CreateDate", "vnp_IpAddr", "vnp_OrderInfo",
        ))
        body["vnp_SecureHash"] = self.sign(data)
        return await self._post_api(body)

    async def refund_transaction(
        self,
        order_id: str,
        transaction_date: str,
        amount: float,
        transaction_type: str,
        created_by: str,
        ip_addr: str = DEFAULT_IP,
    ) -> dict[str, Any]:
        """refund: full (`02`) or partial (`03`) refund of a transaction."""
        now = vnp_now()
        body = {
            "vnp_RequestId": now.strftime("%H%M%S"),
            "vnp_Version": VNP_VERSION,
            "vnp_Command": "refund",
            "vnp_TmnCode": self.tmn_code,
            "vnp_TransactionType": transaction_type,
            "vnp_TxnRef": order_id,
            "vnp_Amount": int(round(amount * 100)),
            "vnp_TransactionNo": "0",
            "vnp_TransactionDate": transaction_date,
            "vnp_CreateBy": created_by,
            "vnp_CreateDate": now.strftime("%Y%m%d%H%M%S"),
            "vnp_IpAddr": ip_addr,
            "vnp_OrderInfo": f"Hoan tien GD ma:{order_id}",
        }
        data = "|".join(str(body[k]) for k in (
            "vnp_RequestId", "vnp_Version", "vnp_Command", "vnp_TmnCode", "vnp_TransactionType",
            "vnp_TxnRef", "vnp_Amount", "vnp_TransactionNo", "vnp_TransactionDate",
            "vnp_CreateBy", "vnp_CreateDate", "vnp_IpAddr", "vnp_OrderInfo",
        ))
        body["vnp_SecureHash"] = self.sign(data)
        return await self._post_api(body)

    async def aclose(self) -> None:
        """Close shared HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
