"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    partner = PartnerFactory.create(name="Ravi")
    db_session.add(partner)
    await db_session.commit()

Wallet balances must stay equal to the sum of their transactions, so fund
wallets through ``fund_wallet`` (which goes through the ledger) rather than
by setting ``balance``.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_phone() -> str:
    return f"+91{uuid.uuid4().int % 10**10:010d}"


# ---------------------------------------------------------------------------
# Partner Service
# ---------------------------------------------------------------------------


class MGPlanFactory:
    @staticmethod
    def create(**overrides):
        from services.partner_service.models import (
            MGPlan,
            PlanPartnerType,
            ValidityType,
        )

        defaults = {
            "id": _uuid(),
            "name": f"Plan {uuid.uuid4().hex[:6]}",
            "price": Decimal("1000"),
            "leads": 20,
            "commission": Decimal("5"),
            "lead_fee": Decimal("50"),
            "min_wallet_balance": Decimal("20"),
            "description": "Test plan",
            "features": [],
            "validity_type": ValidityType.MONTHLY,
            "validity_months": 1,
            "partner_type": PlanPartnerType.BOTH,
            "is_active": True,
            "is_default": False,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return MGPlan(**defaults)


class PartnerFactory:
    @staticmethod
    def create(plan=None, **overrides):
        """A partner, optionally subscribed to ``plan`` for one period."""
        from services.partner_service.models import Partner, PartnerType

        defaults = {
            "id": _uuid(),
            "name": "Test Partner",
            "phone": _unique_phone(),
            "email": None,
            "partner_type": PartnerType.INDIVIDUAL,
            "is_active": True,
            "current_plan_id": None,
            "plan_subscribed_at": None,
            "plan_expires_at": None,
            "lead_quota": 0,
            "leads_used": 0,
            "plan_history": [],
            "lead_acceptance_paused": False,
            "created_at": _now(),
            "updated_at": _now(),
        }
        if plan is not None:
            defaults.update(
                current_plan_id=plan.id,
                plan_subscribed_at=_now() - timedelta(days=1),
                plan_expires_at=_now() + timedelta(days=29),
                lead_quota=plan.leads,
            )
        defaults.update(overrides)
        return Partner(**defaults)


class BookingFactory:
    @staticmethod
    def create(**overrides):
        from services.partner_service.models import Booking, BookingStatus

        defaults = {
            "id": _uuid(),
            "booking_number": uuid.uuid4().int % 100000,
            "customer_name": "Test Customer",
            "service_name": "AC Repair",
            "pincode": "560001",
            "status": BookingStatus.PENDING,
            "partner_id": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Booking(**defaults)


async def fund_wallet(db, partner, amount) -> None:
    """Credit ``amount`` through the ledger and commit."""
    from services.partner_service.services import ledger

    await ledger.credit(db, partner.id, Decimal(str(amount)), "Test funding")


async def seed_partner(db, *, plan=None, balance=0, **overrides):
    """Insert a partner (and plan, when given) with a funded wallet."""
    if plan is not None:
        db.add(plan)
    partner = PartnerFactory.create(plan=plan, **overrides)
    db.add(partner)
    await db.commit()
    if balance:
        await fund_wallet(db, partner, balance)
    return partner
