"""MoMo wallet gateway - captureWallet payments and IPN verification.

Signatures are HMAC-SHA256 (hex) over `key=value` pairs joined with `&`
in the fixed field order MoMo documents for each message.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Any

import httpx

from studenthub import config
from studenthub.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

REQUEST_TYPE = "captureWallet"

_IPN_FIELDS = (
    "amount", "extraData", "message", "orderId", "orderInfo", "orderType",
    "partnerCode", "payType", "requestId", "responseTime", "resultCode", "transId",
)


class MomoError(Exception):
    """MoMo request could not be completed."""


def format_amount(amount: float | int | str) -> str:
    """Render an amount the way MoMo signs it (no trailing `.0`)."""
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)


def encode_extra_data(data: dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(data, separators=(",", ":")).encode("utf-8")).decode("ascii")


def decode_extra_data(extra_data: str) -> dict[str, Any]:
    try:
        return json.loads(base64.b64decode(extra_data).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return {}


class MomoGateway:
    """Client for the MoMo v2 payment API."""

    def __init__(
        self,
        partner_code: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        endpoint: str | None = None,
        redirect_url: str | None = None,
        ipn_url: str | None = None,
    ):
        self.partner_code = partner_code if partner_code is not None else config.MOMO_PARTNER_CODE
        self.access_key = access_key if access_key is not None else config.MOMO_ACCESS_KEY
        self.secret_key = secret_key if secret_key is not None else config.MOMO_SECRET_KEY
        self.endpoint = endpoint or config.MOMO_ENDPOINT
        self.redirect_url = redirect_url if redirect_url is not None else config.MOMO_REDIRECT_URL
        self.ipn_url = ipn_url if ipn_url is not None else config.MOMO_IPN_URL

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

    def sign(self, raw: str) -> str:
        return hmac.new(
            self.secret_key.encode("utf-8"), raw.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    def new_order_id(self) -> str:
        """`<partnerCode><epoch ms>`, also used as the request id."""
        return f"{self.partner_code}{int(time.time() * 1000)}"

    def build_create_request(
        self, order_id: str, amount: float, order_info: str, extra_data: str
    ) -> dict[str, Any]:
        """Signed body for the create endpoint."""
        amount_str = format_amount(amount)
        raw_signature = (
            f"accessKey={self.access_key}"
            f"&amount={amount_str}"
            f"&extraData={extra_data}"
            f"&ipnUrl={self.ipn_url}"
            f"&orderId={order_id}"
            f"&orderInfo={order_info}"
            f"&partnerCode={self.partner_code}"
            f"&redirectUrl={self.redirect_url}"
            f"&requestId={order_id}"
            f"&requestType={REQUEST_TYPE}"
        )
        return {
            "partnerCode": self.partner_code,
            "accessKey": self.access_key,
            "requestId": order_id,
            "amount": int(amount) if float(amount).is_integer() else amount,
            "orderId": order_id,
            "orderInfo": order_info,
            "redirectUrl": self.redirect_url,
            "ipnUrl": self.ipn_url,
            "extraData": extra_data,
            "requestType": REQUEST_TYPE,
            "signature": self.sign(raw_signature),
            "lang": "vi",
        }

    async def create_payment(
        self, order_id: str, amount: float, order_info: str, extra_data: str
    ) -> dict[str, Any]:
        """
        Send a create request to MoMo.

        Returns:
            MoMo response (contains `payUrl` on success)

        Raises:
            MomoError: invalid amount, transport failure or non-JSON response
        """
        if amount is None or amount <= 0:
            raise MomoError("Invalid payment amount")

        body = self.build_create_request(order_id, amount, order_info, extra_data)
        client = await self._get_http_client()
        try:
            response = await client.post(self.endpoint, json=body)
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"MoMo request failed for {sanitize_id_for_logging(order_id)}: {e}")
            raise MomoError(f"MoMo request failed: {e}") from e
        except ValueError as e:
            raise MomoError("Invalid response from MoMo") from e

        if not data.get("payUrl"):
            logger.warning(
                f"MoMo returned no payUrl for {sanitize_id_for_logging(order_id)}: "
                f"resultCode={data.get('resultCode')}"
            )
        return data

    def verify_ipn(self, ipn: dict[str, Any]) -> bool:
        """Check the IPN signature over its documented field set."""
        values = {**{k: ipn.get(k, "") for k in _IPN_FIELDS}, "partnerCode": self.partner_code}
        raw = f"accessKey={self.access_key}" + "".join(
            f"&{k}={format_amount(values[k]) if k == 'amount' else values[k]}" for k in _IPN_FIELDS
        )
        signature = ipn.get("signature") or ""
        return hmac.compare_digest(str(signature), self.sign(raw))

    async def aclose(self) -> None:
        """Close shared HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
