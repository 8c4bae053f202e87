"""Partner-facing MG plan endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user, require_partner
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.notifications import (
    NotificationClient,
    NotificationSeverity,
    get_notification_client,
)
from libs.db.session import get_async_db
from services.partner_service.models import MGPlan
from services.partner_service.schemas import (
    CurrentPlanResponse,
    MGPlanResponse,
    SubscribeRequest,
    SubscriptionResponse,
)
from services.partner_service.services import lead_gating, ledger, plan_registry
from services.partner_service.services.locks import partner_lock
from services.partner_service.services.partners import get_partner_or_404
from services.partner_service.services.plan_registry import SubscriptionRecord
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/mg-plans", tags=["mg-plans"])


def _subscription_response(
    message: str, record: SubscriptionRecord, plan: MGPlan, paused: bool
) -> SubscriptionResponse:
    return SubscriptionResponse(
        message=message,
        plan=MGPlanResponse.model_validate(plan),
        subscribed_at=record.subscribed_at,
        expires_at=record.expires_at,
        leads_guaranteed=record.leads_guaranteed,
        leads_used=record.leads_used,
        leads_remaining=record.leads_remaining,
        commission_rate=plan.commission,
        lead_fee=record.lead_fee,
        min_wallet_balance=record.min_wallet_balance,
        lead_acceptance_paused=paused,
    )


@router.get("", response_model=list[MGPlanResponse])
async def list_active_plans(
    partner_type: Optional[str] = Query(None, pattern="^(individual|franchise)$"),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Active plans, cheapest first."""
    return await plan_registry.list_plans(db, partner_type=partner_type)


@router.get("/current", response_model=CurrentPlanResponse)
async def get_current_plan(
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
):
    """Current plan, usage, refund status and history.

    A partner without a plan is enrolled on the fallback plan, as on lead
    acceptance.
    """
    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        plan = await plan_registry.resolve_plan_for_lead(db, partner)
        plan_registry.refresh_refund_status(partner, plan)
        await db.commit()

    snapshot = await lead_gating.build_snapshot(db, partner, plan)
    record = plan_registry.subscription_record(partner, plan)
    return CurrentPlanResponse(
        plan=MGPlanResponse.model_validate(plan) if plan else None,
        subscribed_at=record.subscribed_at,
        expires_at=record.expires_at,
        is_expired=record.is_expired,
        leads_guaranteed=record.leads_guaranteed,
        leads_used=record.leads_used,
        leads_remaining=record.leads_remaining,
        lead_fee=record.lead_fee,
        min_wallet_balance=record.min_wallet_balance,
        wallet_balance=snapshot.wallet_balance,
        lead_acceptance_paused=partner.lead_acceptance_paused,
        lead_state=lead_gating.derive_lead_state(snapshot).value,
        refund_status=record.refund_status,
        history=record.history,
    )


@router.get("/{plan_id}", response_model=MGPlanResponse)
async def get_plan(
    plan_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await plan_registry.get_plan_or_404(db, plan_id)


@router.post("/subscribe", response_model=SubscriptionResponse)
async def subscribe_to_plan(
    body: SubscribeRequest,
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Start a new period on the chosen plan; usage resets to zero."""
    plan = await plan_registry.get_plan(db, body.plan_id)
    if plan is None or not plan.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found or inactive",
        )

    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        record = plan_registry.subscribe(partner, plan)
        balance = (await ledger.get_or_create_wallet(db, partner.id)).balance
        paused = await lead_gating.sync_pause_flag(db, partner, balance)
        await db.commit()

    await notifier.notify_partner(
        partner_id,
        "MG plan activated",
        f"You are now subscribed to the {plan.name} plan with "
        f"{plan.leads} guaranteed leads.",
        NotificationSeverity.SUCCESS,
    )
    return _subscription_response(
        "Successfully subscribed to plan", record, plan, paused
    )


@router.post("/renew", response_model=SubscriptionResponse)
async def renew_plan(
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
):
    """Extend the current plan, or restart it if it has expired."""
    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        plan = await plan_registry.get_current_plan(db, partner)
        record = plan_registry.renew(partner, plan)
        balance = (await ledger.get_or_create_wallet(db, partner.id)).balance
        paused = await lead_gating.sync_pause_flag(db, partner, balance)
        await db.commit()

    return _subscription_response("Plan renewed successfully", record, plan, paused)
