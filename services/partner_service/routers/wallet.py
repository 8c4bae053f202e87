"""Partner wallet endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import require_partner
from libs.common.config import get_settings
from libs.common.currency import format_money
from libs.common.logging import get_logger
from libs.common.notifications import (
    NotificationClient,
    NotificationSeverity,
    get_notification_client,
)
from libs.common.rate_limit import topup_limit
from libs.db.session import get_async_db
from services.partner_service.models import (
    TransactionPurpose,
    TransactionType,
    WalletStatus,
)
from services.partner_service.schemas import (
    PlanSummary,
    TopUpRequest,
    TopUpResponse,
    TransactionListResponse,
    WalletSummaryResponse,
)
from services.partner_service.services import lead_gating, ledger, plan_registry
from services.partner_service.services.locks import partner_lock
from services.partner_service.services.partners import get_partner_or_404
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/wallet", tags=["wallet"])

RECENT_TRANSACTIONS = 20


@router.get("", response_model=WalletSummaryResponse)
async def get_my_wallet(
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
):
    """Balance, recent transactions and the lead terms of the current plan."""
    partner = await get_partner_or_404(db, partner_id)
    wallet = await ledger.get_or_create_wallet(db, partner.id, commit=True)
    transactions, _ = await ledger.list_transactions(
        db, partner.id, limit=RECENT_TRANSACTIONS
    )
    plan = await plan_registry.get_current_plan(db, partner)

    return WalletSummaryResponse(
        balance=wallet.balance,
        status=wallet.status,
        transactions=transactions,
        lead_fee=plan_registry.lead_fee_for(plan),
        min_wallet_balance=plan_registry.min_wallet_balance_for(plan),
        lead_acceptance_paused=partner.lead_acceptance_paused,
        mg_plan=PlanSummary.model_validate(plan) if plan else None,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def list_my_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
):
    """Newest-first transaction history."""
    transactions, total = await ledger.list_transactions(
        db, partner_id, skip=skip, limit=limit, transaction_type=transaction_type
    )
    return TransactionListResponse(
        transactions=transactions, total=total, skip=skip, limit=limit
    )


@router.post("/topup", response_model=TopUpResponse)
@topup_limit
async def top_up_wallet(
    request: Request,
    body: TopUpRequest,
    partner_id: uuid.UUID = Depends(require_partner),
    db: AsyncSession = Depends(get_async_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Credit the wallet, or debit it when there is enough balance."""
    async with partner_lock(partner_id):
        partner = await get_partner_or_404(db, partner_id, lock=True)
        wallet = await ledger.get_or_create_wallet(db, partner.id, lock=True)

        if body.type == TransactionType.DEBIT:
            if wallet.status == WalletStatus.BLOCKED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Wallet is blocked",
                )
            if wallet.balance < body.amount:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Insufficient wallet balance",
                )
            txn = await ledger.debit(
                db,
                partner.id,
                body.amount,
                body.description or "Wallet debit",
                body.reference,
                purpose=TransactionPurpose.MANUAL,
                initiated_by=str(partner.id),
                commit=False,
            )
        else:
            txn = await ledger.credit(
                db,
                partner.id,
                body.amount,
                body.description or "Wallet top-up",
                body.reference,
                purpose=TransactionPurpose.TOPUP,
                initiated_by=str(partner.id),
                commit=False,
            )

        paused = await lead_gating.sync_pause_flag(db, partner, txn.balance_after)
        await db.commit()
        await db.refresh(txn)

    logger.info(
        "Partner %s %s wallet by %s (ref=%s)",
        partner_id,
        "credited" if body.type == TransactionType.CREDIT else "debited",
        body.amount,
        txn.transaction_ref,
    )

    symbol = get_settings().CURRENCY_SYMBOL
    if txn.transaction_type == TransactionType.CREDIT:
        movement = "added to"
    else:
        movement = "deducted from"
    await notifier.notify_partner(
        partner_id,
        "Wallet updated",
        f"{format_money(txn.amount, symbol)} has been {movement} your wallet. "
        f"Current wallet balance: {format_money(txn.balance_after, symbol)}.",
        NotificationSeverity.SUCCESS,
    )

    return TopUpResponse(
        message="Wallet updated successfully",
        transaction=txn,
        balance=txn.balance_after,
        lead_acceptance_paused=paused,
    )
