# Services Module
from .database import Database
from .payments import MomoGateway, VnpayGateway

__all__ = ["Database", "MomoGateway", "VnpayGateway"]
