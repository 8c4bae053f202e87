"""Admin wallet and partner-plan schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.partner_service.models.enums import AuditAction, RefundStatus, WalletStatus
from services.partner_service.schemas.common import REQUEST_CONFIG, Money
from services.partner_service.schemas.plan import PlanHistoryEntry, PlanSummary
from services.partner_service.schemas.wallet import WalletTransactionResponse


class AdjustBalanceRequest(BaseModel):
    amount: Decimal = Field(
        ..., decimal_places=2, description="Positive to credit, negative to debit"
    )
    reason: str = Field(..., min_length=5)


class BlockWalletRequest(BaseModel):
    reason: str = Field(..., min_length=5, description="Reason for blocking the wallet")


class UnblockWalletRequest(BaseModel):
    reason: str = Field(
        default="Admin unblocked wallet",
        description="Reason for unblocking",
    )


class AdminWalletResponse(BaseModel):
    wallet_id: uuid.UUID
    partner_id: uuid.UUID
    partner_name: str
    balance: Money
    status: WalletStatus
    transaction_count: int
    lead_acceptance_paused: bool
    mg_plan: Optional[PlanSummary] = None
    recent_transactions: list[WalletTransactionResponse] = Field(default_factory=list)


class AuditLogEntry(BaseModel):
    id: uuid.UUID
    wallet_id: uuid.UUID
    action: AuditAction
    performed_by: str
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    reason: str
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RemovePlanResponse(BaseModel):
    message: str
    removal_entry: PlanHistoryEntry
    lead_acceptance_paused: bool


class RefundUpdateRequest(BaseModel):
    refund_status: RefundStatus = RefundStatus.PROCESSED
    refund_notes: Optional[str] = None

    model_config = REQUEST_CONFIG
