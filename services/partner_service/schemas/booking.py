"""Lead acceptance and available-leads schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from services.partner_service.models.enums import BookingStatus
from services.partner_service.schemas.common import REQUEST_CONFIG, Money
from services.partner_service.schemas.plan import PlanSummary
from services.partner_service.schemas.wallet import WalletTransactionResponse


class AcceptBookingRequest(BaseModel):
    partner_id: uuid.UUID

    model_config = REQUEST_CONFIG


class BookingResponse(BaseModel):
    id: uuid.UUID
    booking_number: Optional[int] = None
    customer_name: str
    service_name: str
    pincode: Optional[str] = None
    status: BookingStatus
    partner_id: Optional[uuid.UUID] = None
    accepted_at: Optional[datetime] = None
    lead_fee_charged: Optional[Money] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AcceptBookingResponse(BaseModel):
    message: str
    booking: BookingResponse
    transaction: Optional[WalletTransactionResponse] = None
    wallet_balance: Money
    lead_acceptance_paused: bool
    leads_used: int
    lead_quota: int


class LeadRejectedResponse(BaseModel):
    """403: plan expired or quota exhausted."""

    detail: str
    outcome: str


class InsufficientBalanceResponse(BaseModel):
    """402: not enough balance for the lead fee, with top-up advice."""

    detail: str
    outcome: str
    wallet_balance: Money
    required_top_up: Money
    suggested_top_ups: list[Money]
    min_wallet_balance: Money
    lead_fee: Money


class PartnerLeadDetails(BaseModel):
    wallet_balance: Money
    min_wallet_balance: Money
    lead_fee: Money
    lead_acceptance_paused: bool
    mg_plan: Optional[PlanSummary] = None


class AvailableBookingsResponse(BaseModel):
    count: int
    partner_details: PartnerLeadDetails
    bookings: list[BookingResponse]


class LowBalanceResponse(BaseModel):
    """400 from the available-leads listing when under the plan minimum."""

    detail: str
    wallet_balance: Money
    min_wallet_balance: Money
    lead_acceptance_paused: bool
