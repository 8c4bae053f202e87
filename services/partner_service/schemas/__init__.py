"""Partner Service schemas package.

IMPORTANT: Every schema class must be listed here.
When adding a new schema, add its import and __all__ entry.
"""

from services.partner_service.schemas.admin import (  # noqa: F401
    AdjustBalanceRequest,
    AdminWalletResponse,
    AuditLogEntry,
    BlockWalletRequest,
    RefundUpdateRequest,
    RemovePlanResponse,
    UnblockWalletRequest,
)
from services.partner_service.schemas.booking import (  # noqa: F401
    AcceptBookingRequest,
    AcceptBookingResponse,
    AvailableBookingsResponse,
    BookingResponse,
    InsufficientBalanceResponse,
    LeadRejectedResponse,
    LowBalanceResponse,
    PartnerLeadDetails,
)
from services.partner_service.schemas.common import Money  # noqa: F401
from services.partner_service.schemas.plan import (  # noqa: F401
    CurrentPlanResponse,
    MGPlanCreate,
    MGPlanResponse,
    MGPlanUpdate,
    PlanHistoryEntry,
    PlanSummary,
    SubscribeRequest,
    SubscriptionResponse,
)
from services.partner_service.schemas.wallet import (  # noqa: F401
    TopUpRequest,
    TopUpResponse,
    TransactionListResponse,
    WalletSummaryResponse,
    WalletTransactionResponse,
)

__all__ = [
    # Admin
    "AdjustBalanceRequest",
    "AdminWalletResponse",
    "AuditLogEntry",
    "BlockWalletRequest",
    "RefundUpdateRequest",
    "RemovePlanResponse",
    "UnblockWalletRequest",
    # Bookings
    "AcceptBookingRequest",
    "AcceptBookingResponse",
    "AvailableBookingsResponse",
    "BookingResponse",
    "InsufficientBalanceResponse",
    "LeadRejectedResponse",
    "LowBalanceResponse",
    "PartnerLeadDetails",
    # Common
    "Money",
    # Plans
    "CurrentPlanResponse",
    "MGPlanCreate",
    "MGPlanResponse",
    "MGPlanUpdate",
    "PlanHistoryEntry",
    "PlanSummary",
    "SubscribeRequest",
    "SubscriptionResponse",
    # Wallet
    "TopUpRequest",
    "TopUpResponse",
    "TransactionListResponse",
    "WalletSummaryResponse",
    "WalletTransactionResponse",
]
