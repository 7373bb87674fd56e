from .party import RegionCreate, RegionResponse, PartyCreate, PartyResponse, OutstandingSummaryResponse
from .slab import WeightSlabCreate, WeightSlabUpdate, WeightSlabResponse, EnumerationUpsert, EnumerationResponse
from .rate import (
    PartyRateSlabWrite,
    PartyRateSlabResponse,
    RateDefaultWrite,
    RateDefaultResponse,
    ResolvedRateResponse,
    RateAuditResponse,
)
from .invoice import InvoiceCreate, InvoiceResponse, InvoiceSummary, InvoiceAllocationsResponse, LedgerDiscrepancy
from .payment import (
    PaymentAllocationCreate,
    PartyPaymentCreate,
    PartyPaymentResponse,
    AllocationResultResponse,
)

__all__ = [
    "RegionCreate",
    "RegionResponse",
    "PartyCreate",
    "PartyResponse",
    "OutstandingSummaryResponse",
    "WeightSlabCreate",
    "WeightSlabUpdate",
    "WeightSlabResponse",
    "EnumerationUpsert",
    "EnumerationResponse",
    "PartyRateSlabWrite",
    "PartyRateSlabResponse",
    "RateDefaultWrite",
    "RateDefaultResponse",
    "ResolvedRateResponse",
    "RateAuditResponse",
    "InvoiceCreate",
    "InvoiceResponse",
    "InvoiceSummary",
    "InvoiceAllocationsResponse",
    "LedgerDiscrepancy",
    "PaymentAllocationCreate",
    "PartyPaymentCreate",
    "PartyPaymentResponse",
    "AllocationResultResponse",
]
