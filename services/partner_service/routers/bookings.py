"""Lead endpoints: browse open bookings and accept one."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from libs.auth.dependencies import get_current_user, require_partner
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import format_money
from libs.common.logging import get_logger
from libs.common.notifications import NotificationClient, get_notification_client
from libs.common.rate_limit import lead_accept_limit
from libs.db.session import get_async_db
from services.partner_service.schemas import (
    AcceptBookingRequest,
    AcceptBookingResponse,
    AvailableBookingsResponse,
    BookingResponse,
    InsufficientBalanceResponse,
    LeadRejectedResponse,
    LowBalanceResponse,
    PartnerLeadDetails,
    PlanSummary,
)
from services.partner_service.services import lead_gating
from services.partner_service.services.lead_gating import LeadOutcome
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get(
    "/available",
    response_model=AvailableBookingsResponse,
    responses={400: {"model": LowBalanceResponse}},
)
async def list_available_bookings(
    pincode: Optional[str] = Query(None, max_length=10),
    limit: int = Query(50, ge=1, le=100),
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
):
    """Open, unassigned bookings. Refused while the wallet is under the minimum."""
    availability = await lead_gating.list_available_leads(
        db, partner_id, pincode=pincode, limit=limit
    )

    if not availability.allowed:
        symbol = get_settings().CURRENCY_SYMBOL
        body = LowBalanceResponse(
            detail=(
                "Wallet balance low. Maintain at least "
                f"{format_money(availability.min_wallet_balance, symbol)} "
                "to receive leads."
            ),
            wallet_balance=availability.wallet_balance,
            min_wallet_balance=availability.min_wallet_balance,
            lead_acceptance_paused=True,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=body.model_dump(mode="json"),
        )

    plan = availability.plan
    return AvailableBookingsResponse(
        count=len(availability.bookings),
        partner_details=PartnerLeadDetails(
            wallet_balance=availability.wallet_balance,
            min_wallet_balance=availability.min_wallet_balance,
            lead_fee=availability.lead_fee,
            lead_acceptance_paused=availability.partner.lead_acceptance_paused,
            mg_plan=PlanSummary.model_validate(plan) if plan else None,
        ),
        bookings=availability.bookings,
    )


@router.post(
    "/{booking_id}/accept",
    response_model=AcceptBookingResponse,
    responses={
        402: {"model": InsufficientBalanceResponse},
        403: {"model": LeadRejectedResponse},
    },
)
@lead_accept_limit
async def accept_booking(
    request: Request,
    booking_id: uuid.UUID,
    body: AcceptBookingRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Accept a lead for ``partner_id``, charging the plan's lead fee.

    - 200: booking assigned, fee debited
    - 402: balance below the lead fee (top-up advice in the body)
    - 403: plan expired or lead quota exhausted
    """
    if not current_user.is_admin and current_user.user_id != str(body.partner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot accept bookings on behalf of another partner",
        )

    result = await lead_gating.accept_lead(
        db, booking_id=booking_id, partner_id=body.partner_id, notifier=notifier
    )
    decision = result.decision

    if decision.outcome == LeadOutcome.WALLET_INSUFFICIENT:
        content = InsufficientBalanceResponse(
            detail=decision.message,
            outcome=decision.outcome.value,
            wallet_balance=decision.wallet_balance,
            required_top_up=decision.required_top_up,
            suggested_top_ups=decision.suggested_top_ups,
            min_wallet_balance=decision.min_wallet_balance,
            lead_fee=decision.lead_fee,
        )
        return JSONResponse(
            status_code=decision.http_status, content=content.model_dump(mode="json")
        )

    if not decision.accepted:
        content = LeadRejectedResponse(
            detail=decision.message, outcome=decision.outcome.value
        )
        return JSONResponse(
            status_code=decision.http_status, content=content.model_dump(mode="json")
        )

    partner = result.partner
    return AcceptBookingResponse(
        message=decision.message,
        booking=BookingResponse.model_validate(result.booking),
        transaction=result.transaction,
        wallet_balance=decision.wallet_balance,
        lead_acceptance_paused=partner.lead_acceptance_paused,
        leads_used=partner.leads_used,
        lead_quota=partner.lead_quota,
    )
