"""Enums for the Partner Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PartnerType(str, enum.Enum):
    INDIVIDUAL = "individual"
    FRANCHISE = "franchise"


class PlanPartnerType(str, enum.Enum):
    """Which partner types a plan is offered to."""

    INDIVIDUAL = "individual"
    FRANCHISE = "franchise"
    BOTH = "both"


class ValidityType(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"


VALIDITY_MONTHS = {
    ValidityType.MONTHLY: 1,
    ValidityType.QUARTERLY: 3,
    ValidityType.YEARLY: 12,
}


class WalletStatus(str, enum.Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"


class TransactionType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionPurpose(str, enum.Enum):
    TOPUP = "topup"
    LEAD_FEE = "lead_fee"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    MANUAL = "manual"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class HistoryEntryType(str, enum.Enum):
    SUBSCRIPTION = "subscription"
    REMOVAL = "removal"


class RefundStatus(str, enum.Enum):
    PENDING = "pending"
    ELIGIBLE = "eligible"
    PROCESSED = "processed"
    EXPIRED = "expired"


class AuditAction(str, enum.Enum):
    ADMIN_CREDIT = "admin_credit"
    ADMIN_DEBIT = "admin_debit"
    BLOCK = "block"
    UNBLOCK = "unblock"
