"""Partner model and its MG-plan subscription record."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import GUID, JSONType, UTCDateTime
from services.partner_service.models.enums import PartnerType, enum_values
from sqlalchemy import Boolean, CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class Partner(Base):
    """A technician or franchisee who fulfils bookings.

    The subscription fields describe the partner's current MG plan:
    ``current_plan_id`` is null on the free tier, ``leads_used`` counts
    leads accepted against ``lead_quota`` in the current period, and
    ``plan_history`` keeps frozen snapshots of the most recent
    subscriptions (see ``services.plan_registry``).
    """

    __tablename__ = "partners"

    id: Mapped[uuid.UUID] = mapped_column(GUID, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    partner_type: Mapped[PartnerType] = mapped_column(
        SAEnum(
            PartnerType,
            name="partner_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PartnerType.INDIVIDUAL,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # MG plan subscription
    current_plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID, ForeignKey("mg_plans.id"), nullable=True, index=True
    )
    plan_subscribed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    plan_expires_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    lead_quota: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    leads_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    plan_history: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    lead_acceptance_paused: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("leads_used >= 0", name="leads_used_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Partner {self.id} {self.name!r} plan={self.current_plan_id}>"
