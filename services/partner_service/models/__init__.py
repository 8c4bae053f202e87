"""Partner Service models package.

Re-exports all models and enums so that Alembic's env.py and
``Base.metadata.create_all`` see every table on import.
"""

from services.partner_service.models.audit import WalletAuditLog  # noqa: F401
from services.partner_service.models.booking import Booking  # noqa: F401
from services.partner_service.models.enums import (  # noqa: F401
    VALIDITY_MONTHS,
    AuditAction,
    BookingStatus,
    HistoryEntryType,
    PartnerType,
    PaymentStatus,
    PlanPartnerType,
    RefundStatus,
    TransactionPurpose,
    TransactionType,
    ValidityType,
    WalletStatus,
)
from services.partner_service.models.partner import Partner  # noqa: F401
from services.partner_service.models.payment import PaymentTransaction  # noqa: F401
from services.partner_service.models.plan import MGPlan  # noqa: F401
from services.partner_service.models.transaction import WalletTransaction  # noqa: F401
from services.partner_service.models.wallet import PartnerWallet  # noqa: F401

__all__ = [
    # Enums
    "VALIDITY_MONTHS",
    "AuditAction",
    "BookingStatus",
    "HistoryEntryType",
    "PartnerType",
    "PaymentStatus",
    "PlanPartnerType",
    "RefundStatus",
    "TransactionPurpose",
    "TransactionType",
    "ValidityType",
    "WalletStatus",
    # Models
    "Booking",
    "MGPlan",
    "Partner",
    "PartnerWallet",
    "PaymentTransaction",
    "WalletAuditLog",
    "WalletTransaction",
]
