"""MG plan request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from services.partner_service.models.enums import (
    HistoryEntryType,
    PlanPartnerType,
    RefundStatus,
    ValidityType,
)
from services.partner_service.schemas.common import REQUEST_CONFIG, Money

_LEADS_ALIASES = AliasChoices("leads", "leads_guaranteed", "leadsGuaranteed")
_COMMISSION_ALIASES = AliasChoices("commission", "commission_rate", "commissionRate")


class MGPlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    leads: int = Field(..., ge=0, validation_alias=_LEADS_ALIASES)
    commission: Decimal = Field(
        ..., ge=0, le=100, decimal_places=2, validation_alias=_COMMISSION_ALIASES
    )
    lead_fee: Decimal = Field(default=Decimal("50"), ge=0, decimal_places=2)
    min_wallet_balance: Decimal = Field(default=Decimal("20"), ge=0, decimal_places=2)
    description: Optional[str] = None
    refund_policy: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    icon: Optional[str] = None
    validity_type: ValidityType = ValidityType.MONTHLY
    validity_months: Optional[int] = Field(default=None, ge=1)
    partner_type: PlanPartnerType = PlanPartnerType.BOTH
    is_active: bool = True
    is_default: bool = False

    model_config = REQUEST_CONFIG


class MGPlanUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    leads: Optional[int] = Field(default=None, ge=0, validation_alias=_LEADS_ALIASES)
    commission: Optional[Decimal] = Field(
        default=None, ge=0, le=100, decimal_places=2, validation_alias=_COMMISSION_ALIASES
    )
    lead_fee: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    min_wallet_balance: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    description: Optional[str] = None
    refund_policy: Optional[str] = None
    features: Optional[list[str]] = None
    icon: Optional[str] = None
    validity_type: Optional[ValidityType] = None
    validity_months: Optional[int] = Field(default=None, ge=1)
    partner_type: Optional[PlanPartnerType] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None

    model_config = REQUEST_CONFIG


class MGPlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    price: Money
    leads: int
    commission: Money
    lead_fee: Money
    min_wallet_balance: Money
    description: Optional[str] = None
    refund_policy: Optional[str] = None
    features: list[str] = Field(default_factory=list)
    icon: Optional[str] = None
    validity_type: ValidityType
    validity_months: int
    partner_type: PlanPartnerType
    is_active: bool
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlanSummary(BaseModel):
    id: uuid.UUID
    name: str
    leads: int
    lead_fee: Money
    min_wallet_balance: Money

    model_config = ConfigDict(from_attributes=True)


class PlanHistoryEntry(BaseModel):
    """One frozen snapshot from ``partners.plan_history``."""

    id: Optional[str] = None
    entry_type: HistoryEntryType = HistoryEntryType.SUBSCRIPTION
    plan_id: Optional[uuid.UUID] = None
    plan_name: Optional[str] = None
    price: Optional[Money] = None
    leads_guaranteed: Optional[int] = None
    commission_rate: Optional[Money] = None
    lead_fee: Optional[Money] = None
    min_wallet_balance: Optional[Money] = None
    validity_months: Optional[int] = None
    subscribed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    leads_consumed: int = 0
    refund_status: RefundStatus = RefundStatus.PENDING
    refund_notes: Optional[str] = None
    removed_at: Optional[datetime] = None
    removed_by: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SubscribeRequest(BaseModel):
    plan_id: uuid.UUID

    model_config = REQUEST_CONFIG


class SubscriptionResponse(BaseModel):
    """Result of subscribe/renew."""

    message: str
    plan: MGPlanResponse
    subscribed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    leads_guaranteed: int
    leads_used: int
    leads_remaining: int
    commission_rate: Money
    lead_fee: Money
    min_wallet_balance: Money
    lead_acceptance_paused: bool


class CurrentPlanResponse(BaseModel):
    """``GET /mg-plans/current``."""

    plan: Optional[MGPlanResponse] = None
    subscribed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_expired: bool
    leads_guaranteed: int
    leads_used: int
    leads_remaining: int
    lead_fee: Money
    min_wallet_balance: Money
    wallet_balance: Money
    lead_acceptance_paused: bool
    lead_state: str
    refund_status: Optional[RefundStatus] = None
    history: list[PlanHistoryEntry] = Field(default_factory=list)
