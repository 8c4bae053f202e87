"""Reporting-ledger writes for partner fees.

These rows feed finance reports only. A failure here must never undo the
wallet movement it describes, so each write runs in a savepoint and errors
are logged and dropped.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.common.logging import get_logger
from services.partner_service.models import PaymentStatus, PaymentTransaction
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

LEAD_FEE = "lead_fee"


def lead_fee_reference(partner_id: uuid.UUID, timestamp_ms: int) -> str:
    return f"LEAD-{partner_id}-{timestamp_ms}"


async def record_payment_transaction(
    db: AsyncSession,
    *,
    partner_id: uuid.UUID,
    amount: Decimal,
    fee_type: str,
    transaction_ref: str,
    description: Optional[str] = None,
    status: PaymentStatus = PaymentStatus.SUCCESS,
    payment_method: str = "wallet",
    source: str = "partner",
    metadata: Optional[dict] = None,
) -> Optional[PaymentTransaction]:
    """Record a fee row. Returns None (and logs) if the write fails."""
    try:
        async with db.begin_nested():
            payment = PaymentTransaction(
                partner_id=partner_id,
                amount=amount,
                status=status,
                payment_method=payment_method,
                transaction_ref=transaction_ref,
                fee_type=fee_type,
                description=description,
                source=source,
                payment_metadata=metadata,
            )
            db.add(payment)
            await db.flush()
    except Exception:
        logger.exception(
            "Error recording %s transaction %s for partner %s",
            fee_type,
            transaction_ref,
            partner_id,
        )
        return None

    logger.info(
        "Recorded %s transaction %s: %s for partner %s",
        fee_type,
        transaction_ref,
        amount,
        partner_id,
    )
    return payment
