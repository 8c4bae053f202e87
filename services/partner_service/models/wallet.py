"""Partner wallet: one per partner, balance may go negative."""

import uuid
from datetime import datetime
from decimal import Decimal

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, UTCDateTime
from services.partner_service.models.enums import WalletStatus, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column


class PartnerWallet(Base):
    """Running balance over the partner's transaction log.

    ``balance`` always equals the signed sum of the wallet's transactions and
    ``transaction_seq`` their count. Both change only through
    ``services.ledger``.
    """

    __tablename__ = "partner_wallets"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    partner_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("partners.id"), unique=True, index=True, nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    status: Mapped[WalletStatus] = mapped_column(
        SAEnum(
            WalletStatus,
            name="partner_wallet_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=WalletStatus.ACTIVE,
        nullable=False,
    )
    transaction_seq: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<PartnerWallet {self.id} partner={self.partner_id} balance={self.balance}>"
