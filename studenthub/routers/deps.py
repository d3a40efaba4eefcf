"""
Shared Dependencies for Routers

Lazy-loaded gateway singletons; HTTP clients are opened on first use.
"""

from typing import Optional, TYPE_CHECKING

from studenthub.routers.models import serialize

if TYPE_CHECKING:
    from studenthub.services.payments import MomoGateway, VnpayGateway


# ==================== LAZY SINGLETONS ====================

_momo_gateway: Optional["MomoGateway"] = None
_vnpay_gateway: Optional["VnpayGateway"] = None


def get_momo_gateway() -> "MomoGateway":
    """Get or create MomoGateway singleton (lazy loaded)"""
    global _momo_gateway
    if _momo_gateway is None:
        from studenthub.services.payments import MomoGateway
        _momo_gateway = MomoGateway()
    return _momo_gateway


def get_vnpay_gateway() -> "VnpayGateway":
    """Get or create VnpayGateway singleton (lazy loaded)"""
    global _vnpay_gateway
    if _vnpay_gateway is None:
        from studenthub.services.payments import VnpayGateway
        _vnpay_gateway = VnpayGateway()
    return _vnpay_gateway


def get_client_ip(request) -> str:
    """First X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


# ==================== SHUTDOWN HELPERS ====================

async def shutdown_services():
    """Cleanly close singleton services (http clients, etc.)."""
    global _momo_gateway, _vnpay_gateway
    if _momo_gateway is not None:
        try:
            await _momo_gateway.aclose()
        finally:
            _momo_gateway = None
    if _vnpay_gateway is not None:
        try:
            await _vnpay_gateway.aclose()
        finally:
            _vnpay_gateway = None


# ==================== POPULATION HELPERS ====================

async def populate_users(
    db, items: list, field: str, fields: tuple[str, ...] = ("name", "avatar")
) -> list[dict]:
    """Serialize models, replacing the user id in `field` with a user summary."""
    summaries = await db.users.get_summaries([getattr(i, field) for i in items], fields)
    result = []
    for item in items:
        user_id = getattr(item, field)
        result.append(serialize(item, **{field: summaries.get(user_id, {"id": user_id})}))
    return result
