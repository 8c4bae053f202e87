"""Reporting ledger of partner fees, kept apart from the wallet log."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, JSONType, UTCDateTime
from services.partner_service.models.enums import PaymentStatus, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column


class PaymentTransaction(Base):
    """One row per fee charged to a partner, for finance reports."""

    __tablename__ = "payment_transactions"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    partner_id: Mapped[uuid.UUID] = mapped_column(GUID, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentStatus.SUCCESS,
        nullable=False,
    )
    payment_method: Mapped[str] = mapped_column(String, default="wallet", nullable=False)
    transaction_ref: Mapped[str] = mapped_column(String, index=True, nullable=False)
    fee_type: Mapped[str] = mapped_column(String, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    source: Mapped[str] = mapped_column(String, default="partner", nullable=False)
    payment_metadata: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSONType, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<PaymentTransaction {self.transaction_ref} {self.fee_type} {self.amount}>"
