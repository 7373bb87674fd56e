from .party import Party, Region
from .user import User, UserRole
from .slab import WeightSlab, DistanceSlab, ServiceType, Mode
from .rate import RateDefault, PartyRateSlab, RateAudit, RateAuditAction, ShipmentType
from .invoice import Invoice, InvoiceItem
from .payment import PartyPayment, PaymentAllocation

__all__ = [
    "Party",
    "Region",
    "User",
    "UserRole",
    "WeightSlab",
    "DistanceSlab",
    "ServiceType",
    "Mode",
    "RateDefault",
    "PartyRateSlab",
    "RateAudit",
    "RateAuditAction",
    "ShipmentType",
    "Invoice",
    "InvoiceItem",
    "PartyPayment",
    "PaymentAllocation",
]
