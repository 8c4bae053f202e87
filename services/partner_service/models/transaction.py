"""Append-only wallet ledger."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, JSONType, UTCDateTime
from services.partner_service.models.enums import (
    TransactionPurpose,
    TransactionType,
    enum_values,
)
from sqlalchemy import CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column


class WalletTransaction(Base):
    """Immutable ledger of all balance changes. Source of truth."""

    __tablename__ = "wallet_transactions"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("partner_wallets.id"), nullable=False, index=True
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False, index=True)
    transaction_ref: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="wallet_transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    purpose: Mapped[TransactionPurpose] = mapped_column(
        SAEnum(
            TransactionPurpose,
            name="wallet_transaction_purpose_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=TransactionPurpose.MANUAL,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    booking_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID, nullable=True)
    team_member_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID, nullable=True)
    initiated_by: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    txn_metadata: Mapped[Optional[dict]] = mapped_column(
        "txn_metadata", JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        Index(
            "ix_wallet_transactions_wallet_sequence",
            "wallet_id",
            "sequence",
            unique=True,
        ),
    )

    @property
    def signed_amount(self) -> Decimal:
        if self.transaction_type == TransactionType.DEBIT:
            return -self.amount
        return self.amount

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction {self.transaction_ref} "
            f"{self.transaction_type.value} {self.amount}>"
        )
