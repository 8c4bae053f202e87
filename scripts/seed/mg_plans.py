#!/usr/bin/env python3
"""
Seed the MG plan catalog and a few demo partners for development/testing.

Silver is the default plan new partners fall back to. Each demo partner
gets a wallet, and the funded one gets an opening top-up through the
ledger so its balance and transaction log agree.

Idempotent: plans are matched by (name, partner_type) and partners by
phone before anything is created.
"""

import asyncio
import os
import sys
from decimal import Decimal

# Add project root to path
project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)
sys.path.insert(0, project_root)

from libs.common.datetime_utils import utc_now
from libs.db.config import AsyncSessionLocal
from services.partner_service.models import (
    MGPlan,
    Partner,
    PartnerType,
    PlanPartnerType,
    ValidityType,
)
from services.partner_service.services import ledger, plan_registry
from sqlalchemy import select

# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------

SEED_PLANS = [
    {
        "name": "Silver",
        "price": Decimal("1000"),
        "leads": 20,
        "commission": Decimal("5"),
        "lead_fee": Decimal("50"),
        "min_wallet_balance": Decimal("20"),
        "description": "Basic plan with guaranteed leads",
        "features": ["20 guaranteed leads", "Standard support"],
        "icon": "silver",
        "validity_type": ValidityType.MONTHLY,
        "validity_months": 1,
        "partner_type": PlanPartnerType.BOTH,
        "is_default": True,
    },
    {
        "name": "Gold",
        "price": Decimal("2500"),
        "leads": 60,
        "commission": Decimal("4"),
        "lead_fee": Decimal("40"),
        "min_wallet_balance": Decimal("50"),
        "description": "More leads at a lower per-lead fee",
        "refund_policy": "Unused leads refundable after expiry",
        "features": ["60 guaranteed leads", "Priority support"],
        "icon": "gold",
        "validity_type": ValidityType.QUARTERLY,
        "validity_months": 3,
        "partner_type": PlanPartnerType.INDIVIDUAL,
    },
    {
        "name": "Platinum",
        "price": Decimal("9000"),
        "leads": 300,
        "commission": Decimal("3"),
        "lead_fee": Decimal("30"),
        "min_wallet_balance": Decimal("200"),
        "description": "Franchise plan with a yearly lead guarantee",
        "refund_policy": "Unused leads refundable after expiry",
        "features": ["300 guaranteed leads", "Dedicated account manager"],
        "icon": "platinum",
        "validity_type": ValidityType.YEARLY,
        "validity_months": 12,
        "partner_type": PlanPartnerType.FRANCHISE,
    },
]

SEED_PARTNERS = [
    {
        "name": "Seed Funded Technician",
        "phone": "+910000000101",
        "partner_type": PartnerType.INDIVIDUAL,
        "plan": "Silver",
        "opening_balance": Decimal("500"),
    },
    {
        "name": "Seed Low Balance Technician",
        "phone": "+910000000102",
        "partner_type": PartnerType.INDIVIDUAL,
        "plan": "Silver",
        "opening_balance": Decimal("0"),
    },
    {
        "name": "Seed Franchise",
        "phone": "+910000000103",
        "partner_type": PartnerType.FRANCHISE,
        "plan": None,
        "opening_balance": Decimal("0"),
    },
]


async def seed_plans(session) -> dict[str, MGPlan]:
    plans = {}
    for plan_data in SEED_PLANS:
        stmt = select(MGPlan).where(
            MGPlan.name == plan_data["name"],
            MGPlan.partner_type == plan_data["partner_type"],
        )
        existing = (await session.execute(stmt)).scalar_one_or_none()
        if existing:
            print(f"  Plan '{plan_data['name']}' already exists, skipping...")
            plans[existing.name] = existing
            continue

        plan = MGPlan(**plan_data)
        session.add(plan)
        await session.flush()
        plans[plan.name] = plan
        print(f"  ✓ Created plan: {plan.name} ({plan.leads} leads, fee {plan.lead_fee})")
    return plans


async def seed_partners(session, plans: dict[str, MGPlan]) -> None:
    now = utc_now()
    for partner_data in SEED_PARTNERS:
        data = dict(partner_data)
        plan_name = data.pop("plan")
        opening_balance = data.pop("opening_balance")

        stmt = select(Partner).where(Partner.phone == data["phone"])
        if (await session.execute(stmt)).scalar_one_or_none():
            print(f"  Partner '{data['name']}' already exists, skipping...")
            continue

        partner = Partner(**data)
        session.add(partner)
        await session.flush()

        if plan_name:
            plan_registry.subscribe(partner, plans[plan_name], now)

        await ledger.get_or_create_wallet(session, partner.id, commit=False)
        if opening_balance > 0:
            await ledger.credit(
                session,
                partner.id,
                opening_balance,
                "Opening balance",
                initiated_by="seed",
                commit=False,
            )

        print(f"  ✓ Created partner: {partner.name}")
        print(f"    - Plan: {plan_name or 'none'}")
        print(f"    - Balance: {opening_balance}")


async def main():
    print("Seeding MG plans and demo partners...")
    async with AsyncSessionLocal() as session:
        plans = await seed_plans(session)
        await seed_partners(session, plans)
        await session.commit()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
