"""Admin endpoints: plan catalog, partner wallets and partner plans."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.partner_service.models import (
    AuditAction,
    PartnerWallet,
    TransactionPurpose,
    WalletAuditLog,
    WalletStatus,
)
from services.partner_service.schemas import (
    AdjustBalanceRequest,
    AdminWalletResponse,
    AuditLogEntry,
    BlockWalletRequest,
    MGPlanCreate,
    MGPlanResponse,
    MGPlanUpdate,
    PlanHistoryEntry,
    PlanSummary,
    RefundUpdateRequest,
    RemovePlanResponse,
    UnblockWalletRequest,
)
from services.partner_service.services import lead_gating, ledger, plan_registry
from services.partner_service.services.locks import partner_lock
from services.partner_service.services.partners import get_partner_or_404
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])

# Columns that may be cleared with an explicit null.
_NULLABLE_PLAN_FIELDS = {"description", "refund_policy", "icon"}

DUPLICATE_PLAN_DETAIL = "A plan with this name already exists for this partner type"


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------


@router.get("/mg-plans", response_model=list[MGPlanResponse])
async def list_all_plans(
    include_inactive: bool = Query(True),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await plan_registry.list_plans(db, include_inactive=include_inactive)


@router.post(
    "/mg-plans", response_model=MGPlanResponse, status_code=status.HTTP_201_CREATED
)
async def create_plan(
    body: MGPlanCreate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a plan. Saving it as default clears the flag on every other plan."""
    try:
        plan = await plan_registry.create_plan(db, body.model_dump())
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_PLAN_DETAIL
        )
    await db.refresh(plan)
    logger.info("Admin %s created plan %s", admin.user_id, plan.id)
    return plan


@router.get("/mg-plans/{plan_id}", response_model=MGPlanResponse)
async def get_plan(
    plan_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await plan_registry.get_plan_or_404(db, plan_id)


@router.put("/mg-plans/{plan_id}", response_model=MGPlanResponse)
async def update_plan(
    plan_id: uuid.UUID,
    body: MGPlanUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    plan = await plan_registry.get_plan_or_404(db, plan_id)
    data = {
        field: value
        for field, value in body.model_dump(exclude_unset=True).items()
        if value is not None or field in _NULLABLE_PLAN_FIELDS
    }
    try:
        await plan_registry.update_plan(db, plan, data)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_PLAN_DETAIL
        )
    await db.refresh(plan)
    logger.info("Admin %s updated plan %s", admin.user_id, plan.id)
    return plan


@router.delete("/mg-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a plan. Refused while any partner is subscribed to it."""
    plan = await plan_registry.get_plan_or_404(db, plan_id)
    await plan_registry.delete_plan(db, plan)
    await db.commit()
    logger.info("Admin %s deleted plan %s", admin.user_id, plan_id)


# ---------------------------------------------------------------------------
# Partner wallets
# ---------------------------------------------------------------------------


async def _wallet_view(
    db: AsyncSession, partner_id: uuid.UUID
) -> AdminWalletResponse:
    partner = await get_partner_or_404(db, partner_id)
    wallet = await ledger.get_or_create_wallet(db, partner.id, commit=True)
    transactions, total = await ledger.list_transactions(db, partner.id, limit=20)
    plan = await plan_registry.get_current_plan(db, partner)
    return AdminWalletResponse(
        wallet_id=wallet.id,
        partner_id=partner.id,
        partner_name=partner.name,
        balance=wallet.balance,
        status=wallet.status,
        transaction_count=total,
        lead_acceptance_paused=partner.lead_acceptance_paused,
        mg_plan=PlanSummary.model_validate(plan) if plan else None,
        recent_transactions=transactions,
    )


@router.get("/wallets/{partner_id}", response_model=AdminWalletResponse)
async def get_partner_wallet(
    partner_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await _wallet_view(db, partner_id)


@router.post("/wallets/{partner_id}/adjust", response_model=AdminWalletResponse)
@admin_limit
async def adjust_balance(
    request: Request,
    partner_id: uuid.UUID,
    body: AdjustBalanceRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Manual credit (positive amount) or debit (negative amount)."""
    if body.amount == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amount cannot be zero",
        )

    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        wallet = await ledger.get_or_create_wallet(db, partner.id, lock=True)
        old_balance = wallet.balance

        common = dict(
            purpose=TransactionPurpose.ADMIN_ADJUSTMENT,
            initiated_by=admin.user_id,
            metadata={"reason": body.reason, "admin_id": admin.user_id},
            commit=False,
        )
        if body.amount > 0:
            txn = await ledger.credit(
                db,
                partner.id,
                body.amount,
                f"Adjustment - credited by admin: {body.reason}",
                **common,
            )
            audit_action = AuditAction.ADMIN_CREDIT
        else:
            txn = await ledger.debit(
                db,
                partner.id,
                abs(body.amount),
                f"Adjustment - debited by admin: {body.reason}",
                **common,
            )
            audit_action = AuditAction.ADMIN_DEBIT

        await lead_gating.sync_pause_flag(db, partner, txn.balance_after)
        db.add(
            WalletAuditLog(
                wallet_id=wallet.id,
                action=audit_action,
                performed_by=admin.user_id,
                old_value={"balance": str(old_balance)},
                new_value={"balance": str(txn.balance_after)},
                reason=body.reason,
                ip_address=_client_ip(request),
            )
        )
        await db.commit()

    logger.info(
        "Admin %s adjusted wallet of partner %s by %s: %s",
        admin.user_id,
        partner_id,
        body.amount,
        body.reason,
    )
    return await _wallet_view(db, partner_id)


async def _set_wallet_status(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    new_status: WalletStatus,
    action: AuditAction,
    reason: str,
    admin: AuthUser,
    request: Request,
) -> PartnerWallet:
    await get_partner_or_404(db, partner_id)
    wallet = await ledger.get_or_create_wallet(db, partner_id, lock=True)
    if wallet.status == new_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Wallet is already {new_status.value}",
        )

    old_status = wallet.status.value
    wallet.status = new_status
    db.add(
        WalletAuditLog(
            wallet_id=wallet.id,
            action=action,
            performed_by=admin.user_id,
            old_value={"status": old_status},
            new_value={"status": new_status.value},
            reason=reason,
            ip_address=_client_ip(request),
        )
    )
    await db.commit()
    logger.info(
        "Admin %s set wallet %s to %s: %s",
        admin.user_id,
        wallet.id,
        new_status.value,
        reason,
    )
    return wallet


@router.post("/wallets/{partner_id}/block", response_model=AdminWalletResponse)
async def block_wallet(
    partner_id: uuid.UUID,
    body: BlockWalletRequest,
    request: Request,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Block partner-initiated debits from the wallet."""
    await _set_wallet_status(
        db,
        partner_id=partner_id,
        new_status=WalletStatus.BLOCKED,
        action=AuditAction.BLOCK,
        reason=body.reason,
        admin=admin,
        request=request,
    )
    return await _wallet_view(db, partner_id)


@router.post("/wallets/{partner_id}/unblock", response_model=AdminWalletResponse)
async def unblock_wallet(
    partner_id: uuid.UUID,
    request: Request,
    body: UnblockWalletRequest = UnblockWalletRequest(),
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await _set_wallet_status(
        db,
        partner_id=partner_id,
        new_status=WalletStatus.ACTIVE,
        action=AuditAction.UNBLOCK,
        reason=body.reason,
        admin=admin,
        request=request,
    )
    return await _wallet_view(db, partner_id)


@router.get("/wallets/{partner_id}/audit-logs", response_model=list[AuditLogEntry])
async def list_wallet_audit_logs(
    partner_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    wallet = await ledger.get_wallet(db, partner_id)
    if wallet is None:
        return []
    result = await db.execute(
        select(WalletAuditLog)
        .where(WalletAuditLog.wallet_id == wallet.id)
        .order_by(desc(WalletAuditLog.created_at))
        .limit(limit)
    )
    return result.scalars().all()


# ---------------------------------------------------------------------------
# Partner plans
# ---------------------------------------------------------------------------


@router.delete("/partners/{partner_id}/mg-plan", response_model=RemovePlanResponse)
async def remove_partner_plan(
    partner_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Put the partner back on the free tier, keeping a removal record."""
    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        plan = await plan_registry.get_current_plan(db, partner)
        entry = plan_registry.admin_remove_plan(partner, plan, admin.user_id)
        paused = await lead_gating.sync_pause_flag(db, partner)
        await db.commit()

    return RemovePlanResponse(
        message="MG plan removed",
        removal_entry=PlanHistoryEntry.model_validate(entry),
        lead_acceptance_paused=paused,
    )


@router.patch(
    "/partners/{partner_id}/mg-plan/history/{entry_id}/refund",
    response_model=PlanHistoryEntry,
)
async def update_refund_status(
    partner_id: uuid.UUID,
    entry_id: str,
    body: RefundUpdateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark a history entry's refund as processed."""
    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        entry = plan_registry.mark_refund(
            partner, entry_id, body.refund_status, body.refund_notes
        )
        await db.commit()

    logger.info(
        "Admin %s set refund %s for partner %s entry %s",
        admin.user_id,
        body.refund_status.value,
        partner_id,
        entry_id,
    )
    return PlanHistoryEntry.model_validate(entry)
