"""Booking assignment record (the lead a partner accepts)."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, UTCDateTime
from services.partner_service.models.enums import BookingStatus, enum_values
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    service_name: Mapped[str] = mapped_column(String, nullable=False)
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(
            BookingStatus,
            name="booking_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    partner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID, ForeignKey("partners.id"), nullable=True, index=True
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    lead_fee_charged: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    @property
    def display_number(self) -> str:
        if self.booking_number is not None:
            return f"#{self.booking_number}"
        return str(self.id)[:8]

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.status.value} partner={self.partner_id}>"
