"""Payment gateways (MoMo, VNPay)."""
from .momo import MomoError, MomoGateway, decode_extra_data, encode_extra_data
from .vnpay import VnpayError, VnpayGateway, new_order_id as new_vnpay_order_id

__all__ = [
    "MomoError",
    "MomoGateway",
    "VnpayError",
    "VnpayGateway",
    "decode_extra_data",
    "encode_extra_data",
    "new_vnpay_order_id",
]
