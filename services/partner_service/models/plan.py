"""MG (minimum-guarantee) plan catalog."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, JSONType, UTCDateTime
from services.partner_service.models.enums import (
    PlanPartnerType,
    ValidityType,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column


class MGPlan(Base):
    """A subscription tier: price, guaranteed leads, per-lead fee, minimum balance."""

    __tablename__ = "mg_plans"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    leads: Mapped[int] = mapped_column(Integer, nullable=False)
    commission: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    lead_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("50"), nullable=False
    )
    min_wallet_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("20"), nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    refund_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    features: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    validity_type: Mapped[ValidityType] = mapped_column(
        SAEnum(
            ValidityType,
            name="plan_validity_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ValidityType.MONTHLY,
        nullable=False,
    )
    validity_months: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    partner_type: Mapped[PlanPartnerType] = mapped_column(
        SAEnum(
            PlanPartnerType,
            name="plan_partner_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PlanPartnerType.BOTH,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("name", "partner_type", name="uq_mg_plans_name_partner_type"),
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint("leads >= 0", name="leads_non_negative"),
        CheckConstraint(
            "commission >= 0 AND commission <= 100", name="commission_percentage"
        ),
        CheckConstraint("lead_fee >= 0", name="lead_fee_non_negative"),
        CheckConstraint("min_wallet_balance >= 0", name="min_balance_non_negative"),
        CheckConstraint("validity_months >= 1", name="validity_months_positive"),
    )

    def __repr__(self) -> str:
        return f"<MGPlan {self.id} {self.name!r} leads={self.leads}>"
