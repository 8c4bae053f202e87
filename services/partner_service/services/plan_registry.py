"""MG plan catalog and per-partner subscription bookkeeping.

Subscription state lives on the ``Partner`` row (``current_plan_id``,
``lead_quota``, ``leads_used``, ``plan_subscribed_at``, ``plan_expires_at``)
plus ``plan_history``: a JSON list of frozen plan snapshots, newest last,
trimmed to ``PLAN_HISTORY_LIMIT`` entries on every write.

The mutators here change the partner in memory and never commit; routers and
the lead-gating engine own the transaction.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.datetime_utils import add_months, utc_now
from libs.common.logging import get_logger
from services.partner_service.models import (
    VALIDITY_MONTHS,
    HistoryEntryType,
    MGPlan,
    Partner,
    RefundStatus,
    ValidityType,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

logger = get_logger(__name__)


@dataclass
class SubscriptionRecord:
    """Read model of a partner's current plan and usage."""

    plan: Optional[MGPlan]
    subscribed_at: Optional[datetime]
    expires_at: Optional[datetime]
    is_expired: bool
    leads_guaranteed: int
    leads_used: int
    leads_remaining: int
    lead_fee: Decimal
    min_wallet_balance: Decimal
    refund_status: Optional[str]
    history: list[dict]


# ---------------------------------------------------------------------------
# Plan terms
# ---------------------------------------------------------------------------


def resolve_validity_months(
    validity_type: ValidityType, validity_months: Optional[int] = None
) -> int:
    """Months per period: fixed for monthly/quarterly/yearly, given for custom."""
    if validity_type == ValidityType.CUSTOM:
        if not validity_months or validity_months < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Custom validity requires validity_months >= 1",
            )
        return validity_months
    return VALIDITY_MONTHS[ValidityType(validity_type)]


def lead_fee_for(plan: Optional[MGPlan]) -> Decimal:
    if plan is not None and plan.lead_fee is not None:
        return plan.lead_fee
    return get_settings().DEFAULT_LEAD_FEE


def min_wallet_balance_for(plan: Optional[MGPlan]) -> Decimal:
    if plan is not None and plan.min_wallet_balance is not None:
        return plan.min_wallet_balance
    return get_settings().DEFAULT_MIN_WALLET_BALANCE


def is_plan_expired(partner: Partner, now: Optional[datetime] = None) -> bool:
    if partner.plan_expires_at is None:
        return False
    return (now or utc_now()) > partner.plan_expires_at


# ---------------------------------------------------------------------------
# Catalog queries
# ---------------------------------------------------------------------------


async def get_plan(db: AsyncSession, plan_id: uuid.UUID) -> Optional[MGPlan]:
    return await db.get(MGPlan, plan_id)


async def get_plan_or_404(db: AsyncSession, plan_id: uuid.UUID) -> MGPlan:
    plan = await get_plan(db, plan_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found"
        )
    return plan


async def list_plans(
    db: AsyncSession,
    *,
    include_inactive: bool = False,
    partner_type: Optional[str] = None,
) -> list[MGPlan]:
    query = select(MGPlan)
    if not include_inactive:
        query = query.where(MGPlan.is_active.is_(True))
    if partner_type:
        query = query.where(MGPlan.partner_type.in_([partner_type, "both"]))
    result = await db.execute(query.order_by(MGPlan.price.asc(), MGPlan.name.asc()))
    return list(result.scalars().all())


async def find_default_plan(db: AsyncSession) -> Optional[MGPlan]:
    result = await db.execute(
        select(MGPlan)
        .where(MGPlan.is_default.is_(True), MGPlan.is_active.is_(True))
        .order_by(MGPlan.updated_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_active_plan_by_name(db: AsyncSession, name: str) -> Optional[MGPlan]:
    result = await db.execute(
        select(MGPlan)
        .where(MGPlan.name == name, MGPlan.is_active.is_(True))
        .order_by(MGPlan.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_current_plan(db: AsyncSession, partner: Partner) -> Optional[MGPlan]:
    """The partner's plan, or None on the free tier."""
    if partner.current_plan_id is None:
        return None
    return await get_plan(db, partner.current_plan_id)


async def count_subscribers(db: AsyncSession, plan_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Partner)
        .where(Partner.current_plan_id == plan_id)
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Catalog administration
# ---------------------------------------------------------------------------


async def _clear_other_defaults(db: AsyncSession, keep_id: uuid.UUID) -> None:
    await db.execute(
        update(MGPlan)
        .where(MGPlan.id != keep_id, MGPlan.is_default.is_(True))
        .values(is_default=False)
    )


async def create_plan(db: AsyncSession, data: dict[str, Any]) -> MGPlan:
    """Insert a plan; a default plan takes the flag from every other plan."""
    data = dict(data)
    validity_type = ValidityType(data.pop("validity_type", ValidityType.MONTHLY))
    data["validity_months"] = resolve_validity_months(
        validity_type, data.get("validity_months")
    )
    plan = MGPlan(validity_type=validity_type, **data)
    db.add(plan)
    await db.flush()
    if plan.is_default:
        await _clear_other_defaults(db, plan.id)
    logger.info("Created MG plan %s (%s)", plan.name, plan.id)
    return plan


async def update_plan(db: AsyncSession, plan: MGPlan, data: dict[str, Any]) -> MGPlan:
    """Apply a partial update, re-deriving validity months when needed."""
    data = dict(data)
    if "validity_type" in data or "validity_months" in data:
        validity_type = ValidityType(data.pop("validity_type", plan.validity_type))
        months = data.pop("validity_months", None)
        if validity_type == ValidityType.CUSTOM and months is None:
            months = plan.validity_months
        plan.validity_type = validity_type
        plan.validity_months = resolve_validity_months(validity_type, months)

    for field, value in data.items():
        setattr(plan, field, value)
    plan.updated_at = utc_now()
    await db.flush()

    if plan.is_default:
        await _clear_other_defaults(db, plan.id)
    logger.info("Updated MG plan %s fields=%s", plan.id, sorted(data))
    return plan


async def delete_plan(db: AsyncSession, plan: MGPlan) -> None:
    """Delete a plan nobody is subscribed to."""
    subscribers = await count_subscribers(db, plan.id)
    if subscribers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Cannot delete plan. {subscribers} partner(s) are currently "
                "subscribed to this plan."
            ),
        )
    await db.delete(plan)
    logger.info("Deleted MG plan %s (%s)", plan.name, plan.id)


# ---------------------------------------------------------------------------
# History helpers
# ---------------------------------------------------------------------------


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def history_entry(
    plan: MGPlan,
    *,
    subscribed_at: Optional[datetime],
    expires_at: Optional[datetime],
    leads_consumed: int = 0,
    entry_type: HistoryEntryType = HistoryEntryType.SUBSCRIPTION,
) -> dict:
    """Frozen snapshot of ``plan``'s terms. Money is kept as strings."""
    return {
        "id": str(uuid.uuid4()),
        "entry_type": entry_type.value,
        "plan_id": str(plan.id),
        "plan_name": plan.name,
        "price": str(plan.price),
        "leads_guaranteed": plan.leads,
        "commission_rate": str(plan.commission),
        "lead_fee": str(plan.lead_fee),
        "min_wallet_balance": str(plan.min_wallet_balance),
        "validity_months": plan.validity_months,
        "subscribed_at": _iso(subscribed_at),
        "expires_at": _iso(expires_at),
        "leads_consumed": leads_consumed,
        "refund_status": RefundStatus.PENDING.value,
        "refund_notes": plan.refund_policy,
        "removed_at": None,
        "removed_by": None,
    }


def _history_copy(partner: Partner) -> list[dict]:
    # Entries are copied so the committed state keeps the old values.
    return [dict(entry) for entry in (partner.plan_history or [])]


def _write_history(partner: Partner, history: list[dict]) -> None:
    limit = get_settings().PLAN_HISTORY_LIMIT
    partner.plan_history = history[-limit:]
    flag_modified(partner, "plan_history")


def append_history(partner: Partner, entry: dict) -> None:
    history = _history_copy(partner)
    history.append(entry)
    _write_history(partner, history)


def _matching_entry_index(
    history: list[dict], plan_id: Optional[uuid.UUID]
) -> Optional[int]:
    """Index of the newest subscription entry for ``plan_id``."""
    if not history:
        return None
    if plan_id is None or not history[-1].get("plan_id"):
        return len(history) - 1
    wanted = str(plan_id)
    for index in range(len(history) - 1, -1, -1):
        entry = history[index]
        if (
            entry.get("plan_id") == wanted
            and entry.get("entry_type") != HistoryEntryType.REMOVAL.value
        ):
            return index
    return None


def current_history_entry(partner: Partner, plan: Optional[MGPlan]) -> Optional[dict]:
    history = partner.plan_history or []
    index = _matching_entry_index(history, plan.id if plan else None)
    return history[index] if index is not None else None


# ---------------------------------------------------------------------------
# Subscription lifecycle
# ---------------------------------------------------------------------------


def subscribe(
    partner: Partner, plan: MGPlan, now: Optional[datetime] = None
) -> SubscriptionRecord:
    """Start a fresh period on ``plan`` with zero usage."""
    if not plan.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found or inactive",
        )
    now = now or utc_now()
    expires_at = add_months(now, plan.validity_months or 1)

    partner.current_plan_id = plan.id
    partner.lead_quota = plan.leads
    partner.leads_used = 0
    partner.plan_subscribed_at = now
    partner.plan_expires_at = expires_at
    append_history(
        partner, history_entry(plan, subscribed_at=now, expires_at=expires_at)
    )

    logger.info(
        "Partner %s subscribed to plan %s until %s",
        partner.id,
        plan.name,
        expires_at.isoformat(),
    )
    return subscription_record(partner, plan, now)


def renew(
    partner: Partner, plan: Optional[MGPlan], now: Optional[datetime] = None
) -> SubscriptionRecord:
    """Extend an active plan by one period, or restart an expired one.

    Usage is reset only when the plan had already expired.
    """
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active plan found. Please subscribe to a plan first.",
        )
    if not plan.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Your current plan is inactive. Please select a new plan.",
        )

    now = now or utc_now()
    months = plan.validity_months or 1
    current_expiry = partner.plan_expires_at or now
    expired = current_expiry < now

    if expired:
        # Settle the finished period before its usage is reset.
        refresh_refund_status(partner, plan, now)
        new_expiry = add_months(now, months)
        partner.leads_used = 0
        partner.plan_subscribed_at = now
        partner.lead_quota = plan.leads
        partner.plan_expires_at = new_expiry
        append_history(
            partner, history_entry(plan, subscribed_at=now, expires_at=new_expiry)
        )
    else:
        new_expiry = add_months(current_expiry, months)
        partner.plan_expires_at = new_expiry
        history = _history_copy(partner)
        index = _matching_entry_index(history, plan.id)
        if index is not None:
            history[index]["expires_at"] = _iso(new_expiry)
            _write_history(partner, history)

    logger.info(
        "Partner %s renewed plan %s (%s) until %s",
        partner.id,
        plan.name,
        "restarted" if expired else "extended",
        new_expiry.isoformat(),
    )
    return subscription_record(partner, plan, now)


def auto_enroll(partner: Partner, plan: MGPlan, now: Optional[datetime] = None) -> None:
    """Attach a fallback plan to a partner who never subscribed.

    Existing usage and period dates are kept; a history entry is seeded only
    when none exists for ``plan``.
    """
    now = now or utc_now()
    partner.current_plan_id = plan.id
    partner.lead_quota = plan.leads
    partner.leads_used = partner.leads_used or 0
    if partner.plan_subscribed_at is None:
        partner.plan_subscribed_at = now
    if partner.plan_expires_at is None:
        partner.plan_expires_at = add_months(now, plan.validity_months or 1)
    if _matching_entry_index(partner.plan_history or [], plan.id) is None:
        append_history(
            partner,
            history_entry(
                plan,
                subscribed_at=partner.plan_subscribed_at,
                expires_at=partner.plan_expires_at,
                leads_consumed=partner.leads_used,
            ),
        )
    logger.info("Auto-enrolled partner %s on fallback plan %s", partner.id, plan.name)


async def resolve_plan_for_lead(
    db: AsyncSession, partner: Partner, now: Optional[datetime] = None
) -> Optional[MGPlan]:
    """Current plan, else the default plan, else the named fallback tier.

    A fallback plan is auto-enrolled when ``AUTO_ENROLL_FALLBACK_PLAN`` is
    set. None means free tier.
    """
    plan = await get_current_plan(db, partner)
    if plan is not None:
        return plan

    settings = get_settings()
    plan = await find_default_plan(db)
    if plan is None and settings.FALLBACK_PLAN_NAME:
        plan = await find_active_plan_by_name(db, settings.FALLBACK_PLAN_NAME)
    if plan is None:
        return None

    if settings.AUTO_ENROLL_FALLBACK_PLAN:
        auto_enroll(partner, plan, now)
        return plan
    # Without auto-enrolment the partner stays on the free tier.
    return None


def record_lead_consumption(partner: Partner, plan: Optional[MGPlan]) -> None:
    """Count one accepted lead against the current period."""
    partner.leads_used = (partner.leads_used or 0) + 1
    if plan is None:
        return
    partner.lead_quota = plan.leads

    history = _history_copy(partner)
    index = _matching_entry_index(history, plan.id)
    if index is not None:
        entry = history[index]
        entry["leads_consumed"] = int(entry.get("leads_consumed") or 0) + 1
        _write_history(partner, history)


def refresh_refund_status(
    partner: Partner, plan: Optional[MGPlan], now: Optional[datetime] = None
) -> Optional[str]:
    """Move the active entry out of ``pending`` once the period has ended.

    Under-delivered periods become ``eligible``; fully delivered ones become
    ``expired``. Other states are left alone.
    """
    history = _history_copy(partner)
    index = _matching_entry_index(history, plan.id if plan else None)
    if index is None:
        return None
    entry = history[index]
    current = entry.get("refund_status") or RefundStatus.PENDING.value

    if not is_plan_expired(partner, now) or current != RefundStatus.PENDING.value:
        return current

    if plan is not None:
        guaranteed = plan.leads
    else:
        guaranteed = int(entry.get("leads_guaranteed") or 0)
    if (partner.leads_used or 0) < guaranteed:
        entry["refund_status"] = RefundStatus.ELIGIBLE.value
    else:
        entry["refund_status"] = RefundStatus.EXPIRED.value
    _write_history(partner, history)

    logger.info(
        "Refund status for partner %s entry %s: pending -> %s",
        partner.id,
        entry.get("id"),
        entry["refund_status"],
    )
    return entry["refund_status"]


def mark_refund(
    partner: Partner,
    entry_id: str,
    refund_status: RefundStatus,
    notes: Optional[str] = None,
) -> dict:
    """Admin settles an ``eligible`` refund by marking it ``processed``."""
    if RefundStatus(refund_status) != RefundStatus.PROCESSED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Refund status can only be set to 'processed'",
        )

    history = _history_copy(partner)
    for entry in history:
        if entry.get("id") == entry_id:
            current = entry.get("refund_status") or RefundStatus.PENDING.value
            if current != RefundStatus.ELIGIBLE.value:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=(
                        f"Refund is {current}; only eligible refunds "
                        "can be processed"
                    ),
                )
            entry["refund_status"] = RefundStatus.PROCESSED.value
            if notes is not None:
                entry["refund_notes"] = notes
            _write_history(partner, history)
            logger.info("Refund processed for partner %s entry %s", partner.id, entry_id)
            return entry

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="History entry not found"
    )


def admin_remove_plan(
    partner: Partner,
    plan: Optional[MGPlan],
    removed_by: str,
    now: Optional[datetime] = None,
) -> dict:
    """Drop the partner back to the free tier, recording a removal entry."""
    if partner.current_plan_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Partner has no MG plan to remove",
        )
    now = now or utc_now()
    refund_state = refresh_refund_status(partner, plan, now)

    if plan is not None:
        entry = history_entry(
            plan,
            subscribed_at=partner.plan_subscribed_at,
            expires_at=partner.plan_expires_at,
            leads_consumed=partner.leads_used or 0,
            entry_type=HistoryEntryType.REMOVAL,
        )
    else:
        entry = {
            "id": str(uuid.uuid4()),
            "entry_type": HistoryEntryType.REMOVAL.value,
            "plan_id": str(partner.current_plan_id),
            "plan_name": None,
            "subscribed_at": _iso(partner.plan_subscribed_at),
            "expires_at": _iso(partner.plan_expires_at),
            "leads_consumed": partner.leads_used or 0,
            "refund_notes": None,
        }
    entry["refund_status"] = refund_state or RefundStatus.PENDING.value
    entry["removed_at"] = _iso(now)
    entry["removed_by"] = removed_by
    append_history(partner, entry)

    partner.current_plan_id = None
    partner.lead_quota = 0
    partner.leads_used = 0
    partner.plan_subscribed_at = None
    partner.plan_expires_at = None

    logger.info("Removed MG plan from partner %s (by %s)", partner.id, removed_by)
    return entry


def subscription_record(
    partner: Partner, plan: Optional[MGPlan], now: Optional[datetime] = None
) -> SubscriptionRecord:
    leads_guaranteed = plan.leads if plan is not None else 0
    leads_used = partner.leads_used or 0
    entry = current_history_entry(partner, plan) if plan is not None else None
    return SubscriptionRecord(
        plan=plan,
        subscribed_at=partner.plan_subscribed_at,
        expires_at=partner.plan_expires_at,
        is_expired=is_plan_expired(partner, now),
        leads_guaranteed=leads_guaranteed,
        leads_used=leads_used,
        leads_remaining=max(leads_guaranteed - leads_used, 0),
        lead_fee=lead_fee_for(plan),
        min_wallet_balance=min_wallet_balance_for(plan),
        refund_status=entry.get("refund_status") if entry else None,
        history=list(partner.plan_history or []),
    )
