"""Wallet request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.partner_service.models.enums import (
    TransactionPurpose,
    TransactionType,
    WalletStatus,
)
from services.partner_service.schemas.common import REQUEST_CONFIG, Money
from services.partner_service.schemas.plan import PlanSummary


class WalletTransactionResponse(BaseModel):
    id: uuid.UUID
    transaction_ref: str
    transaction_type: TransactionType
    purpose: TransactionPurpose
    amount: Money
    balance_before: Money
    balance_after: Money
    sequence: int
    description: str
    reference: Optional[str] = None
    booking_id: Optional[uuid.UUID] = None
    team_member_id: Optional[uuid.UUID] = None
    initiated_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionListResponse(BaseModel):
    transactions: list[WalletTransactionResponse]
    total: int
    skip: int
    limit: int


class WalletSummaryResponse(BaseModel):
    """``GET /wallet``: balance, recent log and the gating terms in force."""

    balance: Money
    status: WalletStatus
    transactions: list[WalletTransactionResponse]
    lead_fee: Money
    min_wallet_balance: Money
    lead_acceptance_paused: bool
    mg_plan: Optional[PlanSummary] = None


class TopUpRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: TransactionType = TransactionType.CREDIT
    description: Optional[str] = Field(default=None, max_length=255)
    reference: Optional[str] = Field(default=None, max_length=100)

    model_config = REQUEST_CONFIG


class TopUpResponse(BaseModel):
    message: str
    transaction: WalletTransactionResponse
    balance: Money
    lead_acceptance_paused: bool
