"""Wallet ledger: append-only credit/debit log with a running balance.

Every mutation:

1. locks the wallet row (``SELECT ... FOR UPDATE``), creating the wallet at
   balance 0 if the partner has none yet;
2. appends a transaction carrying ``balance_before``/``balance_after`` and the
   wallet-local ``sequence``;
3. moves the wallet balance by the signed amount.

Debits are not clamped: a balance may go negative. Callers that need a floor
(the partner self-service debit) check it themselves.

Pass ``commit=False`` to take part in a caller's unit of work; the caller then
owns commit/rollback.
"""

import secrets
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.currency import ZERO, MoneyLike, to_money
from libs.common.logging import get_logger
from services.partner_service.models import (
    PartnerWallet,
    TransactionPurpose,
    TransactionType,
    WalletTransaction,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class TransactionRefExhausted(RuntimeError):
    """No unused transaction reference was found within the attempt budget."""


# ---------------------------------------------------------------------------
# Wallet lookup / lazy creation
# ---------------------------------------------------------------------------


async def get_wallet(
    db: AsyncSession, partner_id: uuid.UUID, *, lock: bool = False
) -> Optional[PartnerWallet]:
    query = select(PartnerWallet).where(PartnerWallet.partner_id == partner_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_or_create_wallet(
    db: AsyncSession,
    partner_id: uuid.UUID,
    *,
    lock: bool = False,
    commit: bool = False,
) -> PartnerWallet:
    """Return the partner's wallet, creating an empty one if missing."""
    wallet = await get_wallet(db, partner_id, lock=lock)
    if wallet is not None:
        return wallet

    wallet = PartnerWallet(
        partner_id=partner_id, balance=ZERO, transaction_seq=0
    )
    db.add(wallet)
    await db.flush()
    if commit:
        await db.commit()
        await db.refresh(wallet)

    logger.info("Created wallet %s for partner %s", wallet.id, partner_id)
    return wallet


async def get_balance(db: AsyncSession, partner_id: uuid.UUID) -> Decimal:
    """Current balance; 0 for a partner who has never transacted."""
    wallet = await get_or_create_wallet(db, partner_id, commit=True)
    return wallet.balance


# ---------------------------------------------------------------------------
# Transaction references
# ---------------------------------------------------------------------------


def _candidate_ref(prefix: str) -> str:
    return f"{prefix}{secrets.token_hex(5).upper()}"


async def generate_transaction_ref(db: AsyncSession) -> str:
    """Pick an unused ``WPWT...`` reference, retrying on collision.

    The unique constraint on ``transaction_ref`` still backs this check.
    """
    settings = get_settings()
    for _ in range(settings.TRANSACTION_REF_MAX_ATTEMPTS):
        candidate = _candidate_ref(settings.TRANSACTION_REF_PREFIX)
        result = await db.execute(
            select(WalletTransaction.id).where(
                WalletTransaction.transaction_ref == candidate
            )
        )
        if result.scalar_one_or_none() is None:
            return candidate
        logger.warning("Transaction ref collision on %s, retrying", candidate)

    raise TransactionRefExhausted(
        f"Could not generate a unique transaction id after "
        f"{settings.TRANSACTION_REF_MAX_ATTEMPTS} attempts"
    )


# ---------------------------------------------------------------------------
# Credit / debit
# ---------------------------------------------------------------------------


async def _apply(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    transaction_type: TransactionType,
    amount: MoneyLike,
    description: str,
    reference: Optional[str],
    purpose: TransactionPurpose,
    transaction_ref: Optional[str],
    booking_id: Optional[uuid.UUID],
    team_member_id: Optional[uuid.UUID],
    initiated_by: Optional[str],
    metadata: Optional[dict],
    commit: bool,
) -> WalletTransaction:
    try:
        amount = to_money(amount)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    if amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Amount must be greater than zero",
        )

    try:
        wallet = await get_or_create_wallet(db, partner_id, lock=True)

        if transaction_ref is None:
            transaction_ref = await generate_transaction_ref(db)

        balance_before = wallet.balance
        if transaction_type == TransactionType.CREDIT:
            balance_after = balance_before + amount
        else:
            balance_after = balance_before - amount

        wallet.transaction_seq += 1
        txn = WalletTransaction(
            wallet_id=wallet.id,
            partner_id=partner_id,
            transaction_ref=transaction_ref,
            transaction_type=transaction_type,
            purpose=purpose,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            sequence=wallet.transaction_seq,
            description=description,
            reference=reference,
            booking_id=booking_id,
            team_member_id=team_member_id,
            initiated_by=initiated_by,
            txn_metadata=metadata,
        )
        db.add(txn)
        wallet.balance = balance_after

        if commit:
            await db.commit()
            await db.refresh(txn)
        else:
            await db.flush()
    except Exception:
        if commit:
            await db.rollback()
        raise

    logger.info(
        "%s %s on wallet %s (ref=%s), balance %s -> %s",
        transaction_type.value.capitalize(),
        amount,
        txn.wallet_id,
        txn.transaction_ref,
        balance_before,
        balance_after,
    )
    return txn


async def credit(
    db: AsyncSession,
    partner_id: uuid.UUID,
    amount: MoneyLike,
    description: str,
    reference: Optional[str] = None,
    *,
    purpose: TransactionPurpose = TransactionPurpose.TOPUP,
    transaction_ref: Optional[str] = None,
    booking_id: Optional[uuid.UUID] = None,
    team_member_id: Optional[uuid.UUID] = None,
    initiated_by: Optional[str] = None,
    metadata: Optional[dict] = None,
    commit: bool = True,
) -> WalletTransaction:
    """Append a credit and raise the balance by ``amount``."""
    return await _apply(
        db,
        partner_id=partner_id,
        transaction_type=TransactionType.CREDIT,
        amount=amount,
        description=description,
        reference=reference,
        purpose=purpose,
        transaction_ref=transaction_ref,
        booking_id=booking_id,
        team_member_id=team_member_id,
        initiated_by=initiated_by,
        metadata=metadata,
        commit=commit,
    )


async def debit(
    db: AsyncSession,
    partner_id: uuid.UUID,
    amount: MoneyLike,
    description: str,
    reference: Optional[str] = None,
    *,
    purpose: TransactionPurpose = TransactionPurpose.MANUAL,
    transaction_ref: Optional[str] = None,
    booking_id: Optional[uuid.UUID] = None,
    team_member_id: Optional[uuid.UUID] = None,
    initiated_by: Optional[str] = None,
    metadata: Optional[dict] = None,
    commit: bool = True,
) -> WalletTransaction:
    """Append a debit and lower the balance by ``amount`` (may go negative)."""
    return await _apply(
        db,
        partner_id=partner_id,
        transaction_type=TransactionType.DEBIT,
        amount=amount,
        description=description,
        reference=reference,
        purpose=purpose,
        transaction_ref=transaction_ref,
        booking_id=booking_id,
        team_member_id=team_member_id,
        initiated_by=initiated_by,
        metadata=metadata,
        commit=commit,
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_transactions(
    db: AsyncSession,
    partner_id: uuid.UUID,
    *,
    skip: int = 0,
    limit: int = 20,
    transaction_type: Optional[TransactionType] = None,
) -> tuple[list[WalletTransaction], int]:
    """Newest-first page of the partner's log plus the total count."""
    query = select(WalletTransaction).where(WalletTransaction.partner_id == partner_id)
    count_query = (
        select(func.count())
        .select_from(WalletTransaction)
        .where(WalletTransaction.partner_id == partner_id)
    )
    if transaction_type is not None:
        query = query.where(WalletTransaction.transaction_type == transaction_type)
        count_query = count_query.where(
            WalletTransaction.transaction_type == transaction_type
        )

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(WalletTransaction.sequence.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def replay_balance(db: AsyncSession, partner_id: uuid.UUID) -> Decimal:
    """Recompute the balance from the log alone (credits minus debits)."""
    result = await db.execute(
        select(WalletTransaction.transaction_type, WalletTransaction.amount).where(
            WalletTransaction.partner_id == partner_id
        )
    )
    total = ZERO
    for transaction_type, amount in result.all():
        if transaction_type == TransactionType.CREDIT:
            total += amount
        else:
            total -= amount
    return to_money(total)
