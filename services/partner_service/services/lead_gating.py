"""Wallet & lead-gating engine.

Every acceptance attempt is checked in a fixed order:

1. plan period over            -> PLAN_EXPIRED        (403)
2. guaranteed quota used up    -> QUOTA_EXHAUSTED     (403)
3. balance below the lead fee  -> WALLET_INSUFFICIENT (402, with top-up advice)
4. otherwise                   -> ACCEPTED

Rejections pause lead acceptance and move no money. An accepted lead assigns
the booking, debits the lead fee, records a reporting-ledger row, counts one
lead against the plan and re-derives the pause flag, all in one transaction.

:func:`evaluate_lead_acceptance` is the pure decision; :func:`accept_lead`
does the I/O around it.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.currency import format_money, to_money
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.notifications import NotificationClient, NotificationSeverity
from services.partner_service.models import (
    Booking,
    BookingStatus,
    MGPlan,
    Partner,
    TransactionPurpose,
    WalletTransaction,
)
from services.partner_service.services import ledger, payment_ledger, plan_registry
from services.partner_service.services.locks import partner_lock
from services.partner_service.services.partners import get_partner_or_404
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class LeadOutcome(str, enum.Enum):
    ACCEPTED = "accepted"
    PLAN_EXPIRED = "plan_expired"
    QUOTA_EXHAUSTED = "quota_exhausted"
    WALLET_INSUFFICIENT = "wallet_insufficient"


class LeadState(str, enum.Enum):
    """Derived per-partner state; never stored."""

    ELIGIBLE = "eligible"
    PLAN_EXPIRED = "plan_expired"
    QUOTA_EXHAUSTED = "quota_exhausted"
    WALLET_INSUFFICIENT = "wallet_insufficient"
    PAUSED = "paused"


_HTTP_STATUS = {
    LeadOutcome.ACCEPTED: status.HTTP_200_OK,
    LeadOutcome.PLAN_EXPIRED: status.HTTP_403_FORBIDDEN,
    LeadOutcome.QUOTA_EXHAUSTED: status.HTTP_403_FORBIDDEN,
    LeadOutcome.WALLET_INSUFFICIENT: status.HTTP_402_PAYMENT_REQUIRED,
}

PLAN_EXPIRED_MESSAGE = (
    "MG plan period has expired. Renew your plan to continue accepting leads."
)
QUOTA_EXHAUSTED_MESSAGE = (
    "Lead quota exhausted for the current MG plan. Upgrade or renew your plan "
    "to continue accepting leads."
)


@dataclass(frozen=True)
class GatingSnapshot:
    """Everything the decision needs, read under the partner's locks."""

    expires_at: Optional[datetime]
    lead_quota: int
    leads_used: int
    wallet_balance: Decimal
    lead_fee: Decimal
    min_wallet_balance: Decimal
    paused: bool = False


@dataclass
class LeadDecision:
    outcome: LeadOutcome
    message: str
    wallet_balance: Decimal
    lead_fee: Decimal
    min_wallet_balance: Decimal
    required_top_up: Optional[Decimal] = None
    suggested_top_ups: list[Decimal] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.outcome == LeadOutcome.ACCEPTED

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.outcome]


@dataclass
class AcceptResult:
    decision: LeadDecision
    partner: Partner
    plan: Optional[MGPlan] = None
    booking: Optional[Booking] = None
    transaction: Optional[WalletTransaction] = None


def required_top_up(
    wallet_balance: Decimal, lead_fee: Decimal, min_wallet_balance: Decimal
) -> Decimal:
    """Top-up that covers one more lead and leaves the minimum behind."""
    return to_money(
        max((min_wallet_balance + lead_fee) - wallet_balance, min_wallet_balance)
    )


def should_pause(balance: Decimal, min_wallet_balance: Decimal) -> bool:
    return balance < min_wallet_balance


def evaluate_lead_acceptance(
    snapshot: GatingSnapshot,
    now: Optional[datetime] = None,
    suggested_top_ups: Optional[list[Decimal]] = None,
) -> LeadDecision:
    """Decide one acceptance attempt. No I/O."""
    now = now or utc_now()
    common = dict(
        wallet_balance=snapshot.wallet_balance,
        lead_fee=snapshot.lead_fee,
        min_wallet_balance=snapshot.min_wallet_balance,
    )

    if snapshot.expires_at is not None and now > snapshot.expires_at:
        return LeadDecision(
            outcome=LeadOutcome.PLAN_EXPIRED, message=PLAN_EXPIRED_MESSAGE, **common
        )

    if snapshot.lead_quota > 0 and snapshot.leads_used >= snapshot.lead_quota:
        return LeadDecision(
            outcome=LeadOutcome.QUOTA_EXHAUSTED,
            message=QUOTA_EXHAUSTED_MESSAGE,
            **common,
        )

    if snapshot.wallet_balance < snapshot.lead_fee:
        if suggested_top_ups is None:
            suggested_top_ups = get_settings().SUGGESTED_TOP_UPS
        symbol = get_settings().CURRENCY_SYMBOL
        return LeadDecision(
            outcome=LeadOutcome.WALLET_INSUFFICIENT,
            message=(
                f"Your wallet balance is "
                f"{format_money(snapshot.wallet_balance, symbol)}. "
                "Recharge to continue accepting leads."
            ),
            required_top_up=required_top_up(
                snapshot.wallet_balance,
                snapshot.lead_fee,
                snapshot.min_wallet_balance,
            ),
            suggested_top_ups=list(suggested_top_ups),
            **common,
        )

    return LeadDecision(
        outcome=LeadOutcome.ACCEPTED, message="Booking accepted successfully", **common
    )


def derive_lead_state(
    snapshot: GatingSnapshot, now: Optional[datetime] = None
) -> LeadState:
    """Partner-facing state: a rejection reason, PAUSED, or ELIGIBLE."""
    decision = evaluate_lead_acceptance(snapshot, now, suggested_top_ups=[])
    if not decision.accepted:
        return LeadState(decision.outcome.value)
    if snapshot.paused:
        return LeadState.PAUSED
    return LeadState.ELIGIBLE


async def build_snapshot(
    db: AsyncSession,
    partner: Partner,
    plan: Optional[MGPlan],
    *,
    lock_wallet: bool = False,
) -> GatingSnapshot:
    wallet = await ledger.get_or_create_wallet(db, partner.id, lock=lock_wallet)
    return GatingSnapshot(
        expires_at=partner.plan_expires_at,
        lead_quota=partner.lead_quota or 0,
        leads_used=partner.leads_used or 0,
        wallet_balance=wallet.balance,
        lead_fee=plan_registry.lead_fee_for(plan),
        min_wallet_balance=plan_registry.min_wallet_balance_for(plan),
        paused=partner.lead_acceptance_paused,
    )


async def sync_pause_flag(
    db: AsyncSession, partner: Partner, balance: Optional[Decimal] = None
) -> bool:
    """Set ``paused = balance < min_wallet_balance`` for the partner's plan.

    Does not commit. Re-running with an unchanged balance leaves the flag as is.
    """
    plan = await plan_registry.get_current_plan(db, partner)
    if balance is None:
        balance = (await ledger.get_or_create_wallet(db, partner.id)).balance
    paused = should_pause(balance, plan_registry.min_wallet_balance_for(plan))
    if paused != partner.lead_acceptance_paused:
        logger.info(
            "Lead acceptance for partner %s %s (balance=%s)",
            partner.id,
            "paused" if paused else "resumed",
            balance,
        )
    partner.lead_acceptance_paused = paused
    return paused


# ---------------------------------------------------------------------------
# Accept
# ---------------------------------------------------------------------------


async def _load_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).with_for_update()
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


async def _accept_locked(
    db: AsyncSession,
    booking_id: uuid.UUID,
    partner_id: uuid.UUID,
    now: datetime,
) -> AcceptResult:
    partner = await get_partner_or_404(db, partner_id, lock=True)
    booking = await _load_booking(db, booking_id)

    if (
        booking.status in (BookingStatus.ACCEPTED, BookingStatus.CANCELLED)
        or booking.partner_id is not None
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This booking has already been accepted or cancelled",
        )

    plan = await plan_registry.resolve_plan_for_lead(db, partner, now)
    snapshot = await build_snapshot(db, partner, plan, lock_wallet=True)
    decision = evaluate_lead_acceptance(snapshot, now)

    if not decision.accepted:
        partner.lead_acceptance_paused = True
        if decision.outcome == LeadOutcome.PLAN_EXPIRED:
            plan_registry.refresh_refund_status(partner, plan, now)
        await db.commit()
        logger.info(
            "Lead %s rejected for partner %s: %s (balance=%s)",
            booking_id,
            partner_id,
            decision.outcome.value,
            snapshot.wallet_balance,
        )
        return AcceptResult(decision=decision, partner=partner, plan=plan)

    lead_fee = decision.lead_fee
    booking.partner_id = partner.id
    booking.status = BookingStatus.ACCEPTED
    booking.accepted_at = now
    booking.lead_fee_charged = lead_fee

    txn = None
    balance_after = snapshot.wallet_balance
    if lead_fee > 0:
        txn = await _charge_lead_fee(db, partner, booking, plan, lead_fee, now)
        balance_after = txn.balance_after

    plan_registry.record_lead_consumption(partner, plan)
    partner.lead_acceptance_paused = should_pause(
        balance_after, decision.min_wallet_balance
    )
    decision.wallet_balance = balance_after

    await db.commit()

    logger.info(
        "Partner %s accepted booking %s: fee %s, balance %s -> %s, leads %d/%d",
        partner.id,
        booking.id,
        lead_fee,
        snapshot.wallet_balance,
        balance_after,
        partner.leads_used,
        partner.lead_quota,
    )
    return AcceptResult(
        decision=decision, partner=partner, plan=plan, booking=booking, transaction=txn
    )


async def _charge_lead_fee(
    db: AsyncSession,
    partner: Partner,
    booking: Booking,
    plan: Optional[MGPlan],
    lead_fee: Decimal,
    now: datetime,
) -> WalletTransaction:
    txn = await ledger.debit(
        db,
        partner.id,
        lead_fee,
        f"Lead acceptance fee for {booking.service_name or 'service'}",
        str(booking.id),
        purpose=TransactionPurpose.LEAD_FEE,
        booking_id=booking.id,
        initiated_by=str(partner.id),
        metadata={"plan_id": str(plan.id) if plan else None},
        commit=False,
    )

    await payment_ledger.record_payment_transaction(
        db,
        partner_id=partner.id,
        amount=lead_fee,
        fee_type=payment_ledger.LEAD_FEE,
        transaction_ref=payment_ledger.lead_fee_reference(
            partner.id, int(now.timestamp() * 1000)
        ),
        description=(
            f"Lead acceptance fee - {booking.service_name or 'service'} - "
            f"Booking: {booking.id}"
        ),
        metadata={
            "partner_name": partner.name,
            "partner_phone": partner.phone,
            "partner_email": partner.email,
            "booking_id": str(booking.id),
            "service_name": booking.service_name,
            "wallet_transaction_ref": txn.transaction_ref,
            "wallet_balance_after": str(txn.balance_after),
        },
    )
    return txn


async def _notify_accepted(notifier: NotificationClient, result: AcceptResult) -> None:
    symbol = get_settings().CURRENCY_SYMBOL
    partner, booking, txn = result.partner, result.booking, result.transaction
    balance = format_money(result.decision.wallet_balance, symbol)

    await notifier.notify_all_admins(
        "Booking Accepted by Partner",
        f"Partner {partner.name or partner.phone or 'Unknown'} has accepted booking "
        f"{booking.display_number} for {booking.service_name or 'Service'}.",
        NotificationSeverity.INFO,
    )
    if txn is not None:
        await notifier.notify_partner(
            partner.id,
            "Accepted Booking",
            f"Lead acceptance fee of {format_money(txn.amount, symbol)} has been "
            f"deducted. Current wallet balance: {balance}.",
            NotificationSeverity.INFO,
        )
    if partner.lead_acceptance_paused:
        await notifier.notify_partner(
            partner.id,
            "Lead acceptance paused",
            f"Your wallet balance is {balance}. Maintain at least "
            f"{format_money(result.decision.min_wallet_balance, symbol)} "
            "to keep receiving leads.",
            NotificationSeverity.WARNING,
        )


async def accept_lead(
    db: AsyncSession,
    *,
    booking_id: uuid.UUID,
    partner_id: uuid.UUID,
    notifier: NotificationClient,
    now: Optional[datetime] = None,
) -> AcceptResult:
    """Run one acceptance attempt for ``partner_id`` on ``booking_id``.

    Raises 404/400 ``HTTPException`` for unknown or already-taken bookings.
    Policy rejections come back as a non-accepted ``LeadDecision``.
    """
    now = now or utc_now()
    async with partner_lock(partner_id):
        try:
            result = await _accept_locked(db, booking_id, partner_id, now)
        except Exception:
            await db.rollback()
            raise

    if result.decision.accepted:
        await _notify_accepted(notifier, result)
    return result


# ---------------------------------------------------------------------------
# Available leads
# ---------------------------------------------------------------------------


@dataclass
class LeadAvailability:
    allowed: bool
    partner: Partner
    plan: Optional[MGPlan]
    wallet_balance: Decimal
    lead_fee: Decimal
    min_wallet_balance: Decimal
    bookings: list[Booking] = field(default_factory=list)


async def list_available_leads(
    db: AsyncSession,
    partner_id: uuid.UUID,
    *,
    pincode: Optional[str] = None,
    limit: int = 50,
) -> LeadAvailability:
    """Open bookings for a partner whose balance meets the plan minimum.

    Below the minimum the partner is paused and no bookings are returned.
    """
    partner = await get_partner_or_404(db, partner_id)
    plan = await plan_registry.get_current_plan(db, partner)
    balance = await ledger.get_balance(db, partner.id)
    availability = LeadAvailability(
        allowed=True,
        partner=partner,
        plan=plan,
        wallet_balance=balance,
        lead_fee=plan_registry.lead_fee_for(plan),
        min_wallet_balance=plan_registry.min_wallet_balance_for(plan),
    )

    if should_pause(balance, availability.min_wallet_balance):
        if not partner.lead_acceptance_paused:
            partner.lead_acceptance_paused = True
            await db.commit()
        availability.allowed = False
        return availability

    query = select(Booking).where(
        Booking.status == BookingStatus.PENDING, Booking.partner_id.is_(None)
    )
    if pincode:
        query = query.where(Booking.pincode == pincode)
    result = await db.execute(query.order_by(Booking.created_at.asc()).limit(limit))
    availability.bookings = list(result.scalars().all())
    return availability
